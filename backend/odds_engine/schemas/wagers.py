from decimal import Decimal

from pydantic import BaseModel, Field

from odds_engine.markets import OutcomeType
from odds_engine.schemas.quotes import RecalcResponse
from odds_engine.schemas.volumes import VolumeResponse


class WagerRequest(BaseModel):
    event_id: int
    outcome: OutcomeType
    amount: Decimal = Field(gt=0, decimal_places=2)


class WagerResponse(BaseModel):
    volume: VolumeResponse
    recalculation: RecalcResponse | None = None
