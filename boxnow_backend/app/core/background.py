"""
Detached background work

Post-response side effects (voucher fetch + email) run here, outside the
request lifecycle. Each task has its own error boundary: failures are logged
and never reach the request that scheduled them.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Fire-and-forget task runner with strong references and shutdown drain."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self.completed = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, name: str, coro_factory: Callable[[], Awaitable[None]]) -> Optional[asyncio.Task]:
        """
        Schedule ``coro_factory()`` on the running loop without awaiting it.

        The factory is called inside the guarded task so that even errors raised
        while building the coroutine stay inside the boundary.
        """
        try:
            task = asyncio.get_running_loop().create_task(self._guard(name, coro_factory), name=name)
        except RuntimeError as e:
            logger.error(f"Background task {name} not scheduled: {e}")
            return None

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, name: str, coro_factory: Callable[[], Awaitable[None]]) -> None:
        try:
            await coro_factory()
            self.completed += 1
        except asyncio.CancelledError:
            logger.warning(f"Background task {name} cancelled")
            raise
        except Exception as e:
            self.failed += 1
            logger.error(f"Background task {name} failed: {type(e).__name__}: {e}", exc_info=True)

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for outstanding tasks at shutdown, cancelling stragglers."""
        if not self.pending:
            return

        logger.info(f"Waiting for {self.pending} background task(s)")
        pending = list(self._tasks)
        _, not_done = await asyncio.wait(pending, timeout=timeout)

        for task in not_done:
            task.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
            logger.warning(f"Cancelled {len(not_done)} background task(s) at shutdown")
