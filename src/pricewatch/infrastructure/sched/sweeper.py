# src/pricewatch/infrastructure/sched/sweeper.py
"""
Periodic sweep: fetch prices for every active item, then dispatch the
alerts that fired. Runs inside the API process when SWEEP_ENABLED is set, or
standalone via `python -m pricewatch.infrastructure.sched.sweeper`.
"""

import asyncio
import logging
from typing import Optional

from dotenv import load_dotenv

log = logging.getLogger("pricewatch.sweeper")


class SweepScheduler:
    """Runs price sweep + alert dispatch every `interval` seconds."""

    def __init__(self, price_update_service, dispatch_service, interval: int = 3600):
        self.price_update_service = price_update_service
        self.dispatch_service = dispatch_service
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._is_running = False

    async def run_once(self):
        report = await self.price_update_service.run_sweep()
        if not report.interrupted:
            await self.dispatch_service.dispatch_pending()
        return report

    async def _loop(self):
        while self._is_running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("Sweep cycle failed")
            await asyncio.sleep(self.interval)

    def start(self):
        if self._is_running:
            return
        self._is_running = True
        self._task = asyncio.create_task(self._loop())
        log.info("Sweep scheduler started (every %ss)", self.interval)

    async def stop(self):
        if not self._is_running:
            return
        self._is_running = False
        self.price_update_service.request_stop()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("Sweep scheduler stopped")


async def main():
    load_dotenv()

    from pricewatch.boot import build_services
    from pricewatch.infrastructure.db.uow import create_tables
    from pricewatch.logging_conf import setup_logging

    setup_logging()
    create_tables()
    services = build_services()
    scheduler: SweepScheduler = services["scheduler"]
    try:
        scheduler.start()
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
        await services["fetcher"].aclose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("Sweeper stopped by user.")
