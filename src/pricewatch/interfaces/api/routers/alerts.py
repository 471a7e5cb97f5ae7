# src/pricewatch/interfaces/api/routers/alerts.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pricewatch.application.services.alert_filter import AlertFilter
from pricewatch.application.strategy.alert_rules import AlertRuleEvaluator
from pricewatch.infrastructure.db.repository import AlertRepository, SubscriptionRepository
from pricewatch.interfaces.api.deps import (
    get_alert_filter,
    get_rule_evaluator,
    get_session,
    require_api_key,
)
from pricewatch.interfaces.api.schemas import AlertOut, EvaluateIn, EvaluateOut, ShouldSendOut

router = APIRouter(prefix="/alerts", tags=["alerts"], dependencies=[Depends(require_api_key)])


@router.post("/evaluate", response_model=EvaluateOut)
def evaluate(
    payload: EvaluateIn,
    session: Session = Depends(get_session),
    evaluator: AlertRuleEvaluator = Depends(get_rule_evaluator),
):
    """Dry run of a subscription's rule against a price pair. Nothing is persisted."""
    subscription = SubscriptionRepository(session).get(payload.subscription_id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="Subscription not found")
    alert = evaluator.evaluate(subscription, payload.old_price, payload.new_price)
    if alert is None:
        return EvaluateOut(fired=False)
    return EvaluateOut(fired=True, alert=AlertOut.model_validate(alert))


@router.get("/{alert_id}", response_model=AlertOut)
def get_alert(alert_id: int, session: Session = Depends(get_session)):
    alert = AlertRepository(session).get(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.get("/{alert_id}/should-send", response_model=ShouldSendOut)
def should_send(
    alert_id: int,
    session: Session = Depends(get_session),
    alert_filter: AlertFilter = Depends(get_alert_filter),
):
    alert = AlertRepository(session).get(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    reason = alert_filter.suppression_reason(alert)
    return ShouldSendOut(alert_id=alert_id, should_send=reason is None, reason=reason)
