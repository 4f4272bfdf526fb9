"""Coalesce bursts of input events into a single delayed action."""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Optional, Set

import structlog

LOGGER = structlog.get_logger(__name__)

Action = Callable[[], Any]


class DebounceScheduler:
    """Runs only the last scheduled action once the quiet interval elapses.

    Scheduling again before the timer fires replaces the pending action and
    restarts the wait. Actions returning an awaitable run as tasks; firing a
    new action never cancels a task that is already running.
    """

    def __init__(self, delay_ms: int = 350) -> None:
        self.delay = delay_ms / 1000
        self._handle: Optional[asyncio.TimerHandle] = None
        self._action: Optional[Action] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, action: Action) -> None:
        """Replace any unfired action with ``action`` and restart the timer."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._action = action
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending action; returns True when one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._action = None
        return True

    def flush(self) -> bool:
        """Fire the pending action now instead of waiting for the timer."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        action = self._action
        self._handle = None
        self._action = None
        if action is None:
            return
        result = action()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("debounced_action_failed", error=repr(error), exc_info=error)

    async def drain(self) -> None:
        """Wait until no timer is pending and every fired action has finished."""
        while self._handle is not None or self._tasks:
            if self._tasks:
                await asyncio.wait(list(self._tasks))
            else:
                await asyncio.sleep(self.delay / 2)
