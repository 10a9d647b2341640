"""Guarded one-time async initialization."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from loguru import logger


class InitState(Enum):
    """Lifecycle state of a lazily initialized resource."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class AsyncInitializer:
    """
    Run an async setup routine at most once, even under concurrent demand.

    The attempt runs in a task owned by the initializer, not by whichever
    caller happened to start it. Every caller awaits that task through a
    shield, so cancelling one caller never cancels the attempt or the other
    waiters. A failed attempt moves the state back to UNINITIALIZED and the
    next caller retries.
    """

    def __init__(self, name: str, setup: Callable[[], Awaitable[None]]) -> None:
        self._name = name
        self._setup = setup
        self._state = InitState.UNINITIALIZED
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is InitState.READY

    async def ensure(self) -> None:
        """Complete initialization, starting it or joining the attempt in flight."""
        if self._state is InitState.READY:
            return

        if self._task is None:
            self._state = InitState.INITIALIZING
            self._task = asyncio.ensure_future(self._run_setup())
            self._task.add_done_callback(self._consume_outcome)

        await asyncio.shield(self._task)

    async def _run_setup(self) -> None:
        logger.debug(f"{self._name}: initializing")
        try:
            await self._setup()
        except (Exception, asyncio.CancelledError):
            self._state = InitState.UNINITIALIZED
            self._task = None
            raise
        self._state = InitState.READY
        self._task = None
        logger.debug(f"{self._name}: ready")

    def _consume_outcome(self, task: asyncio.Task[None]) -> None:
        # every caller may have been cancelled; keep a failure from going unreported
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"{self._name}: initialization failed: {task.exception()}")

    def reset(self) -> None:
        """Return to UNINITIALIZED so the next ensure() runs setup again."""
        if self._state is InitState.INITIALIZING:
            raise RuntimeError(f"{self._name}: cannot reset while initializing")
        self._state = InitState.UNINITIALIZED
