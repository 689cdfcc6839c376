"""Lifecycle tracking for the session's background asyncio tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Track named jobs (transport reader, token refresh) and anonymous ones.

    Named tasks answer "is one already running?" questions such as the
    single in-flight refresh. Anonymous tasks (lookups, webhook posts)
    self-clean when they complete.
    """

    def __init__(self) -> None:
        self._named: dict[str, asyncio.Task[Any]] = {}
        self._anonymous: set[asyncio.Task[Any]] = set()

    def add(self, task: asyncio.Task[Any], name: str | None = None) -> None:
        """Register a task, optionally under a unique name.

        A named task replaces any prior task with the same name; the old task
        is not cancelled.
        """
        if name is not None:
            self._named[name] = task
            task.add_done_callback(lambda done, key=name: self._forget(key, done))
        else:
            self._anonymous.add(task)
            task.add_done_callback(self._anonymous.discard)
        task.add_done_callback(self._log_failure)

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create a task on the running loop and track it."""
        task = asyncio.get_running_loop().create_task(coro)
        self.add(task, name=name)
        return task

    def is_running(self, name: str) -> bool:
        task = self._named.get(name)
        return task is not None and not task.done()

    async def cancel_all(self) -> None:
        """Cancel every tracked task and await them all."""
        all_tasks: list[asyncio.Task[Any]] = list(self._named.values()) + [
            t for t in self._anonymous if not t.done()
        ]
        for task in all_tasks:
            if not task.done():
                task.cancel()
        for task in all_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._named.clear()
        self._anonymous.clear()

    async def await_all(self) -> None:
        """Await all tracked tasks without cancelling them."""
        all_tasks: list[asyncio.Task[Any]] = list(self._named.values()) + list(
            self._anonymous
        )
        for task in all_tasks:
            if not task.done():
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    def _forget(self, name: str, task: asyncio.Task[Any]) -> None:
        if self._named.get(name) is task:
            del self._named[name]

    @staticmethod
    def _log_failure(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error(
                "task.failed",
                extra={
                    "event": "task.failed",
                    "task": task.get_name(),
                    "error_type": type(exc).__name__,
                },
                exc_info=exc,
            )
