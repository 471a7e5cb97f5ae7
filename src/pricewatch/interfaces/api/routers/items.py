# src/pricewatch/interfaces/api/routers/items.py

from fastapi import APIRouter, Depends, Query

from pricewatch.application.services.price_update_service import PriceUpdateService
from pricewatch.application.services.recommendation_service import BuyRecommendationEngine
from pricewatch.application.services.tracking_service import TrackingService
from pricewatch.application.services.trend_service import TrendAnalyzer
from pricewatch.interfaces.api.deps import (
    get_price_update_service,
    get_recommendation_engine,
    get_tracking_service,
    get_trend_analyzer,
    require_api_key,
)
from pricewatch.interfaces.api.schemas import (
    ItemIn,
    ItemOut,
    PriceIn,
    PriceUpdateOut,
    RecommendationOut,
    TrendOut,
)

router = APIRouter(prefix="/items", tags=["items"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=ItemOut, status_code=201)
def add_item(payload: ItemIn, tracking: TrackingService = Depends(get_tracking_service)):
    return tracking.add_item(payload.name, payload.url, payload.category, payload.retailer)


@router.get("/{item_id}", response_model=ItemOut)
def get_item(item_id: int, tracking: TrackingService = Depends(get_tracking_service)):
    return tracking.get_item(item_id)


@router.delete("/{item_id}", status_code=204)
def deactivate_item(item_id: int, tracking: TrackingService = Depends(get_tracking_service)):
    tracking.deactivate_item(item_id)


@router.post("/{item_id}/prices", response_model=PriceUpdateOut)
async def record_price(
    item_id: int,
    payload: PriceIn,
    updates: PriceUpdateService = Depends(get_price_update_service),
):
    result = await updates.update_item(item_id, payload.price, payload.observed_at)
    return PriceUpdateOut(
        item_id=result.item_id,
        old_price=result.old_price,
        new_price=result.new_price,
        alerts_fired=len(result.alerts),
    )


@router.get("/{item_id}/trend", response_model=TrendOut)
def get_trend(
    item_id: int,
    days: int = Query(default=30, ge=1),
    tracking: TrackingService = Depends(get_tracking_service),
    analyzer: TrendAnalyzer = Depends(get_trend_analyzer),
):
    tracking.get_item(item_id)
    return analyzer.analyze_trend(item_id, days)


@router.get("/{item_id}/recommendation", response_model=RecommendationOut)
def get_recommendation(
    item_id: int,
    tracking: TrackingService = Depends(get_tracking_service),
    engine: BuyRecommendationEngine = Depends(get_recommendation_engine),
):
    return engine.recommend(tracking.get_item(item_id))
