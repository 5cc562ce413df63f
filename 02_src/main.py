"""Main entry point for the intake assistant."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from intake.api import create_fastapi_app
from intake.api.routes import control
from intake.logging_config import setup_logging
from sim import Sim


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))
    api_url = f"http://{api_host}:{api_port}"

    # SIM drives a scripted conversation against this same API
    sim = Sim(api_url=api_url)
    control.set_sim_instance(sim)

    app = create_fastapi_app()

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
