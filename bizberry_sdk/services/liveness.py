"""Triggers for opportunistic token refresh.

Browsers refresh tokens when the window regains focus. Outside a browser the
host decides what "the app became active again" means, so it hands the SDK a
``Liveness`` implementation. A periodic ``RefreshScheduler`` covers
long-running processes.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class Liveness(Protocol):
    """Source of "the app is active again" signals."""

    def subscribe(self, callback: Callable[[], Any]) -> Unsubscribe:
        """Register a callback; returns a function that removes it."""
        ...


class ManualLiveness:
    """Liveness driven by the host calling ``notify()``."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._listeners: List[Callable[[], Any]] = []

    def subscribe(self, callback: Callable[[], Any]) -> Unsubscribe:
        if not self.enabled:
            return lambda: None
        self._listeners.append(callback)

        def unsubscribe() -> None:
            self._listeners = [listener for listener in self._listeners if listener is not callback]

        return unsubscribe

    async def notify(self) -> None:
        """Signal that the app is active; awaits async listeners in order."""
        for listener in list(self._listeners):
            result = listener()
            if inspect.isawaitable(result):
                await result


class RefreshScheduler:
    """Runs a refresh coroutine every ``interval`` seconds in a background task."""

    def __init__(self, refresh: Callable[[], Awaitable[Any]], interval: float = 20.0):
        """
        Args:
            refresh: Coroutine function to call, e.g. ``auth.refresh_if_needed``
            interval: Seconds between calls
        """
        self.refresh = refresh
        self.interval = interval
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the interval. Starting twice keeps the existing task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Token refresh interval started ({self.interval}s)")

    async def stop(self) -> None:
        """Stop the interval and wait for the task to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Token refresh interval stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.refresh()
            except Exception as e:
                logger.warning(f"Scheduled token refresh failed: {e}")
