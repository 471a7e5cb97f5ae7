# src/pricewatch/boot.py
"""Builds and wires the application services."""

import logging
from typing import Any, Dict

from pricewatch.config import settings
from pricewatch.application.services import (
    AlertDispatchService,
    AlertPolicy,
    PriceUpdateService,
    TrackingService,
)
from pricewatch.application.strategy.alert_rules import AlertRuleEvaluator
from pricewatch.infrastructure.db.uow import session_scope
from pricewatch.infrastructure.notify import EmailNotifier, RoutingNotifier, TelegramNotifier
from pricewatch.infrastructure.pricing.fetcher import HttpPriceFetcher
from pricewatch.infrastructure.sched.sweeper import SweepScheduler

log = logging.getLogger(__name__)


def build_notifier() -> RoutingNotifier:
    """Telegram first when a bot token is configured, email as the fallback."""
    channels = []
    if settings.TELEGRAM_BOT_TOKEN:
        channels.append(TelegramNotifier())
    else:
        log.warning("TELEGRAM_BOT_TOKEN not set; Telegram alerts disabled.")
    email = EmailNotifier()
    if email.configured:
        channels.append(email)
    if not channels:
        log.warning("No notification channel configured; alerts will stay PENDING.")
    return RoutingNotifier(channels)


def build_services() -> Dict[str, Any]:
    log.info("Building application services...")
    services: Dict[str, Any] = {}

    try:
        policy = AlertPolicy.from_settings()
        fetcher = HttpPriceFetcher()
        notifier = build_notifier()

        services["policy"] = policy
        services["fetcher"] = fetcher
        services["notifier"] = notifier
        services["session_factory"] = session_scope

        services["rule_evaluator"] = AlertRuleEvaluator()
        services["price_update_service"] = PriceUpdateService(
            fetcher=fetcher,
            session_factory=session_scope,
            evaluator=services["rule_evaluator"],
        )
        services["dispatch_service"] = AlertDispatchService(
            notifier=notifier,
            session_factory=session_scope,
            policy=policy,
        )
        services["tracking_service"] = TrackingService(session_factory=session_scope)
        services["scheduler"] = SweepScheduler(
            services["price_update_service"],
            services["dispatch_service"],
            interval=settings.SWEEP_INTERVAL_SECONDS,
        )

        log.info("All services built and wired.")
        return services

    except Exception as e:
        log.critical("Service building failed: %s", e, exc_info=True)
        raise
