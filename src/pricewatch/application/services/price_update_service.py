# src/pricewatch/application/services/price_update_service.py
"""
PriceUpdateService - the ingestion path.

- update_item(): one observation for one item. Runs under a per-item
  asyncio.Lock and a single explicit transaction so the
  read(old price) -> evaluate -> write(alerts, new price) sequence is atomic
  per item. Out-of-order observations are rejected, never applied.
- run_sweep(): one pass over all active items. A failing item is logged,
  recorded in the report, and skipped; the sweep itself never fails fast.
  Task cancellation propagates; request_stop() ends the pass between items.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from pricewatch.config import settings
from pricewatch.application.strategy.alert_rules import AlertRuleEvaluator
from pricewatch.domain.entities import Alert, as_utc, utcnow
from pricewatch.domain.errors import ItemNotFoundError, StalePriceError, TransientFetchError
from pricewatch.domain.value_objects import MONEY_PLACES, Price, round_half_up
from pricewatch.infrastructure.db.repository import (
    AlertRepository,
    ItemRepository,
    PriceHistoryRepository,
    SubscriptionRepository,
)
from pricewatch.infrastructure.db.uow import session_scope
from pricewatch.infrastructure.monitoring.metrics import (
    FETCH_FAILURES,
    STALE_OBSERVATIONS,
    SWEEP_DURATION,
    SWEEPS,
)
from pricewatch.infrastructure.pricing.fetcher import PriceFetcher

log = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager]


@dataclass
class PriceUpdateResult:
    item_id: int
    old_price: Optional[Decimal]
    new_price: Decimal
    alerts: List[Alert] = field(default_factory=list)


@dataclass
class SweepReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    updated: int = 0
    alerts_created: int = 0
    failures: Dict[int, str] = field(default_factory=dict)
    interrupted: bool = False


class PriceUpdateService:
    def __init__(
        self,
        fetcher: PriceFetcher,
        session_factory: SessionFactory = session_scope,
        evaluator: Optional[AlertRuleEvaluator] = None,
        clock: Callable[[], datetime] = utcnow,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.session_factory = session_factory
        self.clock = clock
        self.evaluator = evaluator or AlertRuleEvaluator(clock=clock)
        self.max_retries = settings.FETCH_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = settings.FETCH_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds

        self._locks: Dict[int, asyncio.Lock] = {}
        self._stop_requested = False

    # ---------------------------------------------------------------------
    # Single observation
    # ---------------------------------------------------------------------
    def _lock_for(self, item_id: int) -> asyncio.Lock:
        return self._locks.setdefault(item_id, asyncio.Lock())

    async def update_item(self, item_id: int, price, observed_at: Optional[datetime] = None) -> PriceUpdateResult:
        """Applies one observed price; raises StalePriceError / ItemNotFoundError without writing."""
        # same scale as the Numeric(12, 2) price columns
        new_price = round_half_up(Price.of(price).value, MONEY_PLACES)
        observed_at = as_utc(observed_at) if observed_at is not None else self.clock()
        async with self._lock_for(item_id):
            return self._apply_update(item_id, new_price, observed_at)

    def _apply_update(self, item_id: int, new_price: Decimal, observed_at: datetime) -> PriceUpdateResult:
        rejection: Optional[Exception] = None
        result: Optional[PriceUpdateResult] = None

        with self.session_factory() as session:
            items = ItemRepository(session)
            history = PriceHistoryRepository(session)

            item = items.get(item_id)
            latest = history.latest(item_id) if item else None

            if item is None or not item.is_active:
                rejection = ItemNotFoundError(f"Item {item_id} not found or inactive.")
            elif latest is not None and observed_at < latest.recorded_at:
                rejection = StalePriceError(
                    f"Observation for item {item_id} at {observed_at.isoformat()} is older than "
                    f"latest stored point {latest.recorded_at.isoformat()}."
                )
            else:
                old_price = item.current_price
                history.append(item_id, new_price, observed_at)

                alerts: List[Alert] = []
                if old_price is not None:
                    subscriptions = SubscriptionRepository(session).list_active_for_item(item_id)
                    alert_repo = AlertRepository(session)
                    for alert in self.evaluator.evaluate_all(subscriptions, old_price, new_price):
                        alerts.append(alert_repo.add(alert))

                items.update_current_price(item_id, new_price)
                result = PriceUpdateResult(item_id=item_id, old_price=old_price, new_price=new_price, alerts=alerts)

        if rejection is not None:
            if isinstance(rejection, StalePriceError):
                STALE_OBSERVATIONS.inc()
            raise rejection

        if result.alerts:
            log.info("Item %s: %s -> %s fired %d alert(s)", item_id, result.old_price, new_price, len(result.alerts))
        else:
            log.debug("Item %s: %s -> %s (no alerts)", item_id, result.old_price, new_price)
        return result

    # ---------------------------------------------------------------------
    # Sweep
    # ---------------------------------------------------------------------
    def request_stop(self) -> None:
        """Ends a running sweep after the item currently in flight."""
        self._stop_requested = True

    async def _fetch_with_retry(self, url: str) -> Decimal:
        attempt = 0
        while True:
            try:
                return await self.fetcher.fetch(url)
            except TransientFetchError as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                log.warning("Fetch failed for %s (attempt %d/%d): %s; retrying in %.1fs",
                            url, attempt, self.max_retries + 1, e, delay)
                await asyncio.sleep(delay)

    async def run_sweep(self) -> SweepReport:
        self._stop_requested = False
        report = SweepReport(started_at=self.clock())
        started = time.monotonic()

        with self.session_factory() as session:
            items = ItemRepository(session).list_active()
        log.info("Price sweep started for %d active item(s)", len(items))

        for item in items:
            if self._stop_requested:
                log.warning("Price sweep interrupted before item %s", item.id)
                report.interrupted = True
                break
            try:
                price = await self._fetch_with_retry(item.url)
                result = await self.update_item(item.id, price, self.clock())
                report.updated += 1
                report.alerts_created += len(result.alerts)
            except TransientFetchError as e:
                FETCH_FAILURES.inc()
                report.failures[item.id] = str(e)
                log.warning("Skipping item %s this cycle: %s", item.id, e)
            except (StalePriceError, ItemNotFoundError) as e:
                report.failures[item.id] = str(e)
                log.info("Skipping item %s: %s", item.id, e)
            except Exception as e:
                # keep the sweep alive
                report.failures[item.id] = str(e)
                log.exception("Unexpected failure updating item %s", item.id)

        report.finished_at = self.clock()
        SWEEPS.inc()
        SWEEP_DURATION.observe(time.monotonic() - started)
        log.info("Price sweep finished: %d updated, %d alert(s), %d failure(s)",
                 report.updated, report.alerts_created, len(report.failures))
        return report
