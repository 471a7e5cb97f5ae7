# src/pricewatch/application/services/__init__.py

from .trend_service import TrendAnalyzer
from .alert_filter import AlertFilter, AlertPolicy
from .recommendation_service import BuyRecommendationEngine
from .price_update_service import PriceUpdateService
from .dispatch_service import AlertDispatchService
from .tracking_service import TrackingService

__all__ = [
    "TrendAnalyzer",
    "AlertFilter",
    "AlertPolicy",
    "BuyRecommendationEngine",
    "PriceUpdateService",
    "AlertDispatchService",
    "TrackingService",
]
