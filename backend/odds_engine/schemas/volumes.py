from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class VolumeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: int
    outcome: str
    market: str
    wager_count: int
    total_amount: Decimal
    average_amount: Decimal
    min_amount: Decimal | None
    max_amount: Decimal | None
    share_pct: Decimal
    trend: str | None
    updated_at: datetime


class TopEventResponse(BaseModel):
    event_id: int
    wager_count: int
    total_amount: Decimal
