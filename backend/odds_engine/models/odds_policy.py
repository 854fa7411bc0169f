from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from odds_engine.database import Base


class OddsPolicy(Base):
    __tablename__ = "odds_policies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    max_change_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("15.00"))
    min_minutes_between_changes: Mapped[int] = mapped_column(Integer, default=5)
    min_odds: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("1.01"))
    max_odds: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("50.00"))

    volume_weight: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=Decimal("0.1000"))
    probability_weight: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=Decimal("0.7000"))
    market_weight: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=Decimal("0.2000"))
    house_margin_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("5.00"))

    notify_threshold_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("10.00"))
    auto_update: Mapped[bool] = mapped_column(Boolean, default=True)
    refresh_interval_minutes: Mapped[int] = mapped_column(Integer, default=15)
    freeze_minutes_before_start: Mapped[int] = mapped_column(Integer, default=30)

    active: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
