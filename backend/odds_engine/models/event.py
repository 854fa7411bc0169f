from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from odds_engine.database import Base


class EventStatus(str, Enum):
    OPEN = "open"
    LIVE = "live"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


WAGERING_STATUSES = (EventStatus.OPEN.value, EventStatus.LIVE.value)


class SportEvent(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    home_team: Mapped[str] = mapped_column(String(128))
    away_team: Mapped[str] = mapped_column(String(128))
    kickoff_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    status: Mapped[str] = mapped_column(String(16), default=EventStatus.OPEN.value, index=True)
