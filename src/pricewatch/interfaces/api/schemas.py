# src/pricewatch/interfaces/api/schemas.py
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

def _to_str(v: Any) -> str | None:
    if v is None: return None
    if hasattr(v, "value"): return str(v.value)
    return str(v)

# --- Items ---

class ItemIn(BaseModel):
    name: str
    url: str
    category: str | None = None
    retailer: str | None = None

class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    url: str
    category: str | None = None
    retailer: str | None = None
    current_price: Decimal | None = None
    is_active: bool
    created_at: datetime

class PriceIn(BaseModel):
    price: Decimal = Field(ge=0)
    observed_at: datetime | None = None

class PriceUpdateOut(BaseModel):
    item_id: int
    old_price: Decimal | None = None
    new_price: Decimal
    alerts_fired: int

class TrendOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    direction: str
    lowest: Decimal
    highest: Decimal
    points: int

    @field_validator("direction", mode="before")
    def _v_direction(cls, v): return _to_str(v) or ""

class RecommendationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    signal: str
    reason: str

    @field_validator("signal", mode="before")
    def _v_signal(cls, v): return _to_str(v) or ""

# --- Users & subscriptions ---

class UserIn(BaseModel):
    name: str
    email: str | None = None
    telegram_chat_id: str | None = None

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    email: str | None = None
    telegram_chat_id: str | None = None

class SubscriptionIn(BaseModel):
    item_id: int
    user_id: int
    alert_type: str
    target_value: Decimal | None = None

class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    item_id: int
    user_id: int
    alert_type: str
    target_value: Decimal | None = None
    is_active: bool

    @field_validator("alert_type", mode="before")
    def _v_alert_type(cls, v): return _to_str(v) or ""

# --- Alerts ---

class EvaluateIn(BaseModel):
    subscription_id: int
    old_price: Decimal = Field(ge=0)
    new_price: Decimal = Field(ge=0)

class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int | None = None
    subscription_id: int
    old_price: Decimal
    new_price: Decimal
    alert_type: str
    status: str
    triggered_at: datetime
    sent_at: datetime | None = None
    delivery_attempts: int = 0
    suppression_reason: str | None = None

    @field_validator("alert_type", "status", mode="before")
    def _v_enum(cls, v): return _to_str(v) or ""

class EvaluateOut(BaseModel):
    fired: bool
    alert: AlertOut | None = None

class ShouldSendOut(BaseModel):
    alert_id: int
    should_send: bool
    reason: str | None = None
