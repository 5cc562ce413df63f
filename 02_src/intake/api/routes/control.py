"""Control API routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class SweepResponse(BaseModel):
    """Sessions touched by an idle sweep."""

    reminded: list[int]
    cancelled: list[int]


# Global SIM instance (will be set by main app)
_sim_instance: Any = None


def set_sim_instance(sim: Any) -> None:
    """Set the global SIM instance."""
    global _sim_instance
    _sim_instance = sim


def get_sim_instance() -> Any:
    """Get the global SIM instance."""
    return _sim_instance


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset system data between test runs."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/sweep", response_model=SweepResponse)
    async def run_sweep() -> dict:
        """Run one idle-session sweep now."""
        try:
            result = await app.sweeper.sweep()
            return {"reminded": result.reminded, "cancelled": result.cancelled}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/sim/{command}", response_model=StatusResponse)
    async def control_sim(command: str) -> dict:
        """Start or stop the SIM conversation."""
        if command not in ("start", "stop"):
            raise HTTPException(status_code=404, detail=f"Unknown command: {command}")
        if not _sim_instance:
            raise HTTPException(status_code=404, detail="SIM not configured")
        try:
            if command == "start":
                await _sim_instance.start()
            else:
                await _sim_instance.stop()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
