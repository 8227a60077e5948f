from __future__ import annotations

import asyncio
import logging
from typing import Optional

from marketplace.services import MarketplaceService

logger = logging.getLogger(__name__)


class SettlementWorker:
    """Settles auctions once their deadline passes.

    Runs as a background task for the lifetime of the app. Each sweep
    calls ``MarketplaceService.settle_expired``; a failing sweep is
    logged and the loop keeps going.
    """

    def __init__(self, service: MarketplaceService, interval_seconds: float = 5.0):
        self.service = service
        self.interval = max(0.01, interval_seconds)
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self.sweeps = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Settlement worker started (every {self.interval}s)")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Settlement worker stopped")

    async def run_once(self) -> int:
        """Run one sweep and return how many auctions were settled."""
        results = self.service.settle_expired()
        self.sweeps += 1
        return len(results)

    async def _run_loop(self) -> None:
        while not self._stop.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.warning(f"Settlement sweep failed: {e}")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
