# src/pricewatch/interfaces/api/routers/subscriptions.py

from fastapi import APIRouter, Depends

from pricewatch.application.services.tracking_service import TrackingService
from pricewatch.interfaces.api.deps import get_tracking_service, require_api_key
from pricewatch.interfaces.api.schemas import SubscriptionIn, SubscriptionOut, UserIn, UserOut

router = APIRouter(tags=["subscriptions"], dependencies=[Depends(require_api_key)])


@router.post("/users", response_model=UserOut, status_code=201)
def add_user(payload: UserIn, tracking: TrackingService = Depends(get_tracking_service)):
    return tracking.add_user(payload.name, payload.email, payload.telegram_chat_id)


@router.post("/subscriptions", response_model=SubscriptionOut, status_code=201)
def subscribe(payload: SubscriptionIn, tracking: TrackingService = Depends(get_tracking_service)):
    return tracking.subscribe(payload.item_id, payload.user_id, payload.alert_type, payload.target_value)


@router.delete("/subscriptions/{subscription_id}", status_code=204)
def unsubscribe(subscription_id: int, tracking: TrackingService = Depends(get_tracking_service)):
    tracking.unsubscribe(subscription_id)
