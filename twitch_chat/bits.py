"""Fire-and-forget cheer notifications to an external webhook."""

from __future__ import annotations

import asyncio
import logging

import httpx

from .task_manager import TaskManager

LOGGER = logging.getLogger(__name__)


class BitsNotifier:
    """POST ``{name, content, name_color}`` to the configured endpoint.

    Callers never wait for or inspect the response. Failures are logged and
    dropped; they are not reported to the chat status stream.
    """

    def __init__(
        self,
        task_manager: TaskManager,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._tasks = task_manager
        self._timeout = timeout
        self._client = client

    def notify(self, endpoint: str, name: str, content: str, name_color: str) -> None:
        """Schedule the webhook call on the running loop and return immediately."""
        payload = {"name": name, "content": content, "name_color": name_color}
        try:
            task = asyncio.get_running_loop().create_task(self._post(endpoint, payload))
        except RuntimeError:
            LOGGER.debug(
                "bits.notify.no_loop",
                extra={"event": "bits.notify.no_loop", "endpoint": endpoint},
            )
            return
        self._tasks.add(task)

    async def _post(self, endpoint: str, payload: dict[str, str]) -> None:
        try:
            if self._client is not None:
                await self._client.post(endpoint, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    await client.post(endpoint, json=payload)
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "bits.notify.failed",
                extra={
                    "event": "bits.notify.failed",
                    "endpoint": endpoint,
                    "error_type": type(exc).__name__,
                },
            )
            return
        LOGGER.debug(
            "bits.notify.sent",
            extra={"event": "bits.notify.sent", "endpoint": endpoint},
        )
