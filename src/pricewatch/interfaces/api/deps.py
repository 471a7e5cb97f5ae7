# src/pricewatch/interfaces/api/deps.py

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from pricewatch.config import settings
from pricewatch.application.services.alert_filter import AlertFilter, AlertPolicy
from pricewatch.application.services.recommendation_service import BuyRecommendationEngine
from pricewatch.application.services.trend_service import TrendAnalyzer
from pricewatch.infrastructure.db.base import get_session
from pricewatch.infrastructure.db.repository import (
    AlertRepository,
    PriceHistoryRepository,
    SubscriptionRepository,
)

# --- API Key ---

def require_api_key(x_api_key: str | None = Header(default=None)):
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True

# --- Services from app state ---

def get_services(request: Request) -> Dict[str, Any]:
    services = request.app.state.services
    if not services:
        raise HTTPException(status_code=503, detail="Services are not initialized.")
    return services

def _service(name: str):
    def _dependency(services: Dict[str, Any] = Depends(get_services)):
        service = services.get(name)
        if service is None:
            raise HTTPException(status_code=503, detail=f"{name} is currently unavailable.")
        return service
    return _dependency

get_tracking_service = _service("tracking_service")
get_price_update_service = _service("price_update_service")
get_rule_evaluator = _service("rule_evaluator")
get_policy = _service("policy")

# --- Per-request query components ---

def get_trend_analyzer(session: Session = Depends(get_session)) -> TrendAnalyzer:
    return TrendAnalyzer(PriceHistoryRepository(session))

def get_recommendation_engine(analyzer: TrendAnalyzer = Depends(get_trend_analyzer)) -> BuyRecommendationEngine:
    return BuyRecommendationEngine(analyzer)

def get_alert_filter(
    session: Session = Depends(get_session),
    policy: AlertPolicy = Depends(get_policy),
) -> AlertFilter:
    return AlertFilter(AlertRepository(session), SubscriptionRepository(session), policy)


__all__ = [
    "require_api_key",
    "get_session",
    "get_services",
    "get_tracking_service",
    "get_price_update_service",
    "get_rule_evaluator",
    "get_policy",
    "get_trend_analyzer",
    "get_recommendation_engine",
    "get_alert_filter",
]
