from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PolicyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    description: str | None = None
    max_change_pct: Decimal = Field(default=Decimal("15.00"), gt=0, le=100)
    min_minutes_between_changes: int = Field(default=5, ge=0)
    min_odds: Decimal = Field(default=Decimal("1.01"), gt=1)
    max_odds: Decimal = Field(default=Decimal("50.00"), gt=1)
    volume_weight: Decimal = Field(default=Decimal("0.1000"), ge=0, le=1)
    probability_weight: Decimal = Field(default=Decimal("0.7000"), ge=0, le=1)
    market_weight: Decimal = Field(default=Decimal("0.2000"), ge=0, le=1)
    house_margin_pct: Decimal = Field(default=Decimal("5.00"), ge=0, lt=100)
    notify_threshold_pct: Decimal = Field(default=Decimal("10.00"), ge=0)
    auto_update: bool = True
    refresh_interval_minutes: int = Field(default=15, gt=0)
    freeze_minutes_before_start: int = Field(default=30, ge=0)
    active: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> "PolicyCreate":
        if self.max_odds <= self.min_odds:
            raise ValueError("max_odds must be greater than min_odds")
        return self


class PolicyUpdate(BaseModel):
    description: str | None = None
    max_change_pct: Decimal | None = None
    min_minutes_between_changes: int | None = None
    min_odds: Decimal | None = None
    max_odds: Decimal | None = None
    volume_weight: Decimal | None = None
    probability_weight: Decimal | None = None
    market_weight: Decimal | None = None
    house_margin_pct: Decimal | None = None
    notify_threshold_pct: Decimal | None = None
    auto_update: bool | None = None
    refresh_interval_minutes: int | None = None
    freeze_minutes_before_start: int | None = None


class PolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    max_change_pct: Decimal
    min_minutes_between_changes: int
    min_odds: Decimal
    max_odds: Decimal
    volume_weight: Decimal
    probability_weight: Decimal
    market_weight: Decimal
    house_margin_pct: Decimal
    notify_threshold_pct: Decimal
    auto_update: bool
    refresh_interval_minutes: int
    freeze_minutes_before_start: int
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
