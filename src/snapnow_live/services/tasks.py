"""Owned, cancellable background tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class PeriodicTask:
    """Runs a coroutine function on a fixed interval until cancelled.

    The first run happens one interval after ``start``; callers that need an
    immediate run do it themselves before starting the loop. ``trigger`` wakes
    the loop early for an out-of-band run.
    """

    name: str
    interval_seconds: float
    action: Callable[[], Awaitable[None]]
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _wake: asyncio.Event | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        """Return true while the loop task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop; a second call while running is a no-op."""
        if self.running:
            return
        self._wake = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._wake), name=self.name
        )

    def trigger(self) -> None:
        """Run the action as soon as possible."""
        if self._wake is not None and self.running:
            self._wake.set()

    async def cancel(self) -> None:
        """Cancel the loop and wait for it to finish.

        Called from inside the action, the loop exits once the action returns.
        """
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, wake: asyncio.Event) -> None:
        while self._task is asyncio.current_task():
            try:
                await asyncio.wait_for(wake.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass
            wake.clear()
            if self._task is not asyncio.current_task():
                return
            try:
                await self.action()
            except Exception:
                logger.exception("Periodic task failed", extra={"task": self.name})


@dataclass
class TaskGroup:
    """Tracks fire-and-forget tasks so they can be drained or cancelled."""

    _tasks: set[asyncio.Task[None]] = field(default_factory=set)

    def spawn(self, coro: Awaitable[None], name: str | None = None) -> asyncio.Task[None]:
        """Schedule ``coro`` and keep a reference until it completes."""
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every pending task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel(self) -> None:
        """Cancel every pending task."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
