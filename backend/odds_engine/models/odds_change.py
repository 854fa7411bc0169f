from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from odds_engine.database import Base


class ChangeReason(str, Enum):
    VOLUME = "volume"
    SCHEDULED_REFRESH = "scheduled_refresh"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    EXTERNAL_FEED = "external_feed"
    RISK_MANAGEMENT = "risk_management"
    MARKET_EVENT = "market_event"


VOLUME_DRIVEN_REASONS = (ChangeReason.VOLUME.value, ChangeReason.SCHEDULED_REFRESH.value)


class OddsChangeRecord(Base):
    __tablename__ = "odds_changes"
    __table_args__ = (
        Index("ix_odds_change_event_outcome_time", "event_id", "outcome", "changed_at"),
        Index("ix_odds_change_event_time", "event_id", "changed_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("odds_quotes.id"), index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"))
    outcome: Mapped[str] = mapped_column(String(32))
    previous_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    new_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    pct_change: Mapped[Decimal] = mapped_column(Numeric(7, 2))
    reason: Mapped[str] = mapped_column(String(32), index=True)
    wager_count: Mapped[int] = mapped_column(Integer, default=0)
    market_wager_count: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0.00"))
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision: Mapped[int] = mapped_column(Integer)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
