"""SIM implementation - scripted intake conversations over the HTTP API."""

import asyncio
import random
import uuid
from typing import Protocol

import httpx

from intake.logging_config import get_logger

logger = get_logger(__name__)

# Each script is one requester walking through an intake thread.
SCRIPTS = [
    {
        "user_id": "user_001",
        "messages": [
            "Hi, I need help with a launch campaign",
            "We're launching the new analytics dashboard to existing enterprise customers "
            "and need to drive adoption in the first month",
            "Product Marketing",
            "Existing enterprise admins",
            "At least 30% of admins log in to the dashboard within 30 days",
            "An email sequence and a one-pager",
            "End of next month",
            "skip",
            "done",
            "yes",
        ],
    },
    {
        "user_id": "user_002",
        "messages": [
            "hey",
            "Sales",
            "cancel",
        ],
    },
]


class ISim(Protocol):
    """Generate test traffic against a running instance."""

    async def start(self) -> None:
        """Start the scripted conversations."""
        ...

    async def stop(self) -> None:
        """Stop the conversations."""
        ...


class Sim:
    """Plays SCRIPTS against the messaging endpoint, one thread per script."""

    def __init__(self, api_url: str = "http://localhost:8000", pause: tuple[float, float] = (1, 3)):
        self._api_url = api_url
        self._pause = pause
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Start the scripted conversations."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient()
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop the conversations."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        try:
            await asyncio.gather(*(self._play(script) for script in SCRIPTS))
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            self._running = False

    async def _play(self, script: dict) -> None:
        thread_id: str | None = None
        for text in script["messages"]:
            if not self._running:
                break
            thread_id = await self._send_message(script["user_id"], text, thread_id)
            if thread_id is None:
                break
            await asyncio.sleep(random.uniform(*self._pause))

    async def _send_message(self, user_id: str, text: str, thread_id: str | None) -> str | None:
        """Send a message via HTTP API. Returns the thread id to reply in."""
        if not self._client:
            return None

        payload = {"message_id": uuid.uuid4().hex, "user_id": user_id, "text": text}
        if thread_id:
            payload["thread_id"] = thread_id

        try:
            response = await self._client.post(
                f"{self._api_url}/api/messages",
                json=payload,
                timeout=60.0,
            )
        except httpx.HTTPError as e:
            logger.error("SIM: Failed to send message: %s", e)
            return None

        if response.status_code != 200:
            logger.error("SIM: Error sending message: %s", response.status_code)
            return None

        data = response.json()
        logger.info("SIM: %s -> %s", user_id, text)
        for reply in data.get("replies", []):
            logger.info("SIM: Reply: %s", reply)
        return data.get("thread_id")
