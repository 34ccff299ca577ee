import asyncio
import logging
from typing import Awaitable, Callable, Optional

from canteen.core.config import HOLD_SWEEP_INTERVAL_SECS
from canteen.services.hold_service import sweep_expired

log = logging.getLogger("canteen.sweeper")


class HoldSweeper:
    """
    Background task that releases expired holds every `interval_secs`.

    A failing tick is logged and the loop keeps going; only stop() ends it.
    """

    def __init__(self, interval_secs: float = HOLD_SWEEP_INTERVAL_SECS,
                 sweep: Callable[[], Awaitable[int]] = sweep_expired):
        self.interval_secs = interval_secs
        self._sweep = sweep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="hold-sweeper")
        log.info(f"Hold sweeper started (every {self.interval_secs}s).")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("Hold sweeper stopped.")

    async def tick(self) -> int:
        try:
            released = await self._sweep()
        except Exception as e:
            log.error(f"Hold sweep failed: {e}")
            return 0
        if released:
            log.info(f"Hold sweep released {released} hold(s).")
        return released

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_secs)
            await self.tick()
