import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

from tabscribe.tabs import TabService, hash_tab_list
from tabscribe.utils.logger import logger

TabListChangeCallback = Union[
    Callable[[], None],  # Sync callback
    Callable[[], Awaitable[None]],  # Async callback
]

STOP_TIMEOUT_SECONDS = 2.0


class TabListWatcher:
    """Polls the filtered tab list and calls back when it changes.

    The last seen hash belongs to the polling task alone. Ticks run back to
    back (sleep, then poll), so a slow poll delays the next one instead of
    stacking up.
    """

    def __init__(
        self,
        service: TabService,
        on_change: TabListChangeCallback,
        check_interval: Optional[int] = None,
    ):
        """
        Args:
            service: TabService used for listing (exclusions already applied)
            on_change: Called with no arguments whenever the tab list changed
            check_interval: Poll interval in milliseconds; <= 0 keeps the watcher idle.
                Defaults to the service options' check_interval.
        """
        self.service = service
        self.on_change = on_change
        self.check_interval = (
            service.options.check_interval if check_interval is None else check_interval
        )
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.check_interval > 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        """Start polling. Returns False when idle (interval <= 0) or already running."""
        if not self.enabled:
            logger.debug("Tab list polling disabled (check interval is 0)")
            return False
        if self.running:
            logger.warning("Tab list polling already running")
            return False

        initial_hash = await self._current_hash()
        self._task = asyncio.create_task(self._poll_loop(initial_hash))
        logger.info(f"Started tab list polling every {self.check_interval}ms")
        return True

    async def stop(self) -> None:
        if not self.running:
            self._task = None
            return
        assert self._task is not None
        self._task.cancel()
        # asyncio.wait never raises the task's own CancelledError, so a
        # cancellation of the caller still propagates
        done, _ = await asyncio.wait({self._task}, timeout=STOP_TIMEOUT_SECONDS)
        if done:
            logger.debug("Tab list polling stopped")
        else:
            logger.warning("Tab list polling did not stop within timeout")
        self._task = None

    async def _current_hash(self) -> Optional[str]:
        try:
            return hash_tab_list(await self.service.list_tabs())
        except Exception as e:
            logger.error(f"Error reading initial tab list: {e}")
            return None

    async def tick(self, last_hash: Optional[str]) -> Optional[str]:
        """Run one poll and return the hash to remember.

        A missing previous hash (initial listing failed) only sets the baseline.
        Errors are logged and leave the previous hash in place.
        """
        try:
            current_hash = hash_tab_list(await self.service.list_tabs())
        except Exception as e:
            logger.error(f"Error during periodic tab list update: {e}")
            return last_hash

        if last_hash is None or current_hash == last_hash:
            return current_hash

        logger.debug("Tab list changed, notifying")
        try:
            result = self.on_change()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error in tab list change callback: {e}", exc_info=True)
        return current_hash

    async def _poll_loop(self, last_hash: Optional[str]) -> None:
        interval = self.check_interval / 1000
        while True:
            await asyncio.sleep(interval)
            last_hash = await self.tick(last_hash)
