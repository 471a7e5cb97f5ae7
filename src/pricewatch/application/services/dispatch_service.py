# src/pricewatch/application/services/dispatch_service.py
"""
AlertDispatchService - PENDING alerts -> AlertFilter -> notifier -> status.

Status transitions:
  - filter suppresses            -> SUPPRESSED (reason from the filter)
  - send succeeds                -> SENT, sent_at = now
  - send fails                   -> stays PENDING, delivery_attempts += 1
  - attempts reach max retries   -> SUPPRESSED ("delivery_failed")

Each alert is handled in two short transactions around the notifier call so no
session is held open across network I/O. Alerts are processed one at a time,
oldest first, so the dedup and rate-limit checks always see the previous
alert's committed outcome.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

from pricewatch.config import settings
from pricewatch.domain.entities import Alert, AlertStatus, SuppressionReason, TrackedItem, User, utcnow
from pricewatch.domain.errors import DeliveryError
from pricewatch.infrastructure.db.repository import (
    AlertRepository,
    ItemRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.infrastructure.db.uow import session_scope
from pricewatch.infrastructure.monitoring.metrics import (
    ALERTS_SENT,
    ALERTS_SUPPRESSED,
    DELIVERY_FAILURES,
)
from .alert_filter import AlertFilter, AlertPolicy

log = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, user: User, alert: Alert, item: TrackedItem) -> bool: ...


@dataclass
class DispatchReport:
    sent: int = 0
    suppressed: int = 0
    failed: int = 0


class AlertDispatchService:
    def __init__(
        self,
        notifier: Notifier,
        session_factory: Callable[[], AbstractContextManager] = session_scope,
        policy: Optional[AlertPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
        max_retries: Optional[int] = None,
    ):
        self.notifier = notifier
        self.session_factory = session_factory
        self.policy = policy or AlertPolicy.from_settings()
        self.clock = clock
        self.max_retries = settings.MAX_DELIVERY_RETRIES if max_retries is None else max_retries

    def _suppress(self, alerts: AlertRepository, alert: Alert, reason: str) -> None:
        alert.mark_suppressed(reason)
        alerts.save_status(alert)
        ALERTS_SUPPRESSED.labels(reason=reason).inc()
        log.info("Alert %s suppressed: %s", alert.id, reason)

    async def dispatch_one(self, alert_id: int) -> Optional[str]:
        """Processes a single alert; returns its resulting status value, or None if it is gone or no longer pending."""
        # Phase 1: filter and gather the delivery context.
        with self.session_factory() as session:
            alerts = AlertRepository(session)
            subscriptions = SubscriptionRepository(session)
            alert = alerts.get(alert_id)
            if alert is None or alert.status != AlertStatus.PENDING:
                return None

            reason = AlertFilter(alerts, subscriptions, self.policy, self.clock).suppression_reason(alert)
            if reason is not None:
                self._suppress(alerts, alert, reason)
                return alert.status.value

            subscription = subscriptions.get(alert.subscription_id)
            user = UserRepository(session).get(subscription.user_id) if subscription else None
            item = ItemRepository(session).get(subscription.item_id) if subscription else None

        # Phase 2: deliver outside any transaction.
        delivered = False
        if user is None or item is None:
            log.warning("Alert %s has no reachable destination", alert_id)
        else:
            try:
                delivered = await self.notifier.send(user, alert, item)
            except DeliveryError as e:
                log.warning("Delivery of alert %s failed: %s", alert_id, e)
            except Exception:
                log.exception("Unexpected error delivering alert %s", alert_id)

        # Phase 3: record the outcome.
        with self.session_factory() as session:
            alerts = AlertRepository(session)
            if delivered:
                alert.mark_sent(self.clock())
                alerts.save_status(alert)
                ALERTS_SENT.labels(alert_type=alert.alert_type.value).inc()
            else:
                DELIVERY_FAILURES.inc()
                alert.record_failed_delivery()
                if alert.delivery_attempts >= self.max_retries:
                    self._suppress(alerts, alert, SuppressionReason.DELIVERY_FAILED.value)
                else:
                    alerts.save_status(alert)
        return alert.status.value

    async def dispatch_pending(self, limit: Optional[int] = None) -> DispatchReport:
        report = DispatchReport()
        with self.session_factory() as session:
            pending_ids = [a.id for a in AlertRepository(session).list_pending(limit)]

        for alert_id in pending_ids:
            try:
                status = await self.dispatch_one(alert_id)
            except Exception:
                log.exception("Dispatch of alert %s aborted", alert_id)
                report.failed += 1
                continue
            if status == "SENT":
                report.sent += 1
            elif status == "SUPPRESSED":
                report.suppressed += 1
            elif status == "PENDING":
                report.failed += 1

        if pending_ids:
            log.info("Dispatch finished: %d sent, %d suppressed, %d failed",
                     report.sent, report.suppressed, report.failed)
        return report
