from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from odds_engine.markets import OutcomeType


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    outcome: str
    market: str
    price: Decimal
    implied_probability: Decimal | None = None
    state: str
    revision: int
    updated_at: datetime


class ChangeRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    outcome: str
    previous_price: Decimal
    new_price: Decimal
    pct_change: Decimal
    reason: str
    wager_count: int
    market_wager_count: int
    total_amount: Decimal
    detail: str | None
    revision: int
    changed_at: datetime


class RecalcResponse(BaseModel):
    status: str
    reason: str | None = None
    candidate: Decimal | None = None
    change: ChangeRecordResponse | None = None


class OverrideRequest(BaseModel):
    price: Decimal = Field(gt=1)
    detail: str | None = Field(default=None, max_length=500)


class SeedRequest(BaseModel):
    markets: list[str] | None = None


class TrendResponse(BaseModel):
    event_id: int
    outcome: OutcomeType
    trend: str


class EventStatsResponse(BaseModel):
    event_id: int
    total_changes: int
    mean_abs_pct_change: Decimal | None
    max_abs_pct_change: Decimal | None
