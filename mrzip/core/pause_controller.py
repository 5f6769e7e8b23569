"""Cooperative pause/resume/cancel gate for a conversion job."""

import asyncio

from .types import JobState


class PauseController:
    """Tri-state gate consulted before each new unit of work.

    ``running`` -> ``paused`` via pause(), back via resume(); cancel() is
    accepted from any state and is terminal. Work already in flight is
    never interrupted by the controller; it only decides whether new work
    may start. A cancelled controller cannot be reused.
    """

    def __init__(self):
        self._state = JobState.RUNNING
        self._runnable = asyncio.Event()
        self._runnable.set()

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def is_paused(self) -> bool:
        return self._state is JobState.PAUSED

    @property
    def is_cancelled(self) -> bool:
        return self._state is JobState.CANCELLED

    def pause(self) -> bool:
        """Stop new work from starting. Returns True if the state changed."""
        if self._state is not JobState.RUNNING:
            return False
        self._state = JobState.PAUSED
        self._runnable.clear()
        return True

    def resume(self) -> bool:
        """Let new work start again. Returns True if the state changed."""
        if self._state is not JobState.PAUSED:
            return False
        self._state = JobState.RUNNING
        self._runnable.set()
        return True

    def cancel(self) -> bool:
        """Cancel for good. Returns True only on the first call."""
        if self._state is JobState.CANCELLED:
            return False
        self._state = JobState.CANCELLED
        # Wake every waiter so it can observe the cancellation
        self._runnable.set()
        return True

    async def wait_until_runnable(self) -> bool:
        """Block while paused.

        Returns:
            True when new work may start, False once cancelled
        """
        while True:
            if self._state is JobState.CANCELLED:
                return False
            if self._state is JobState.RUNNING:
                return True
            await self._runnable.wait()
