"""SQLAlchemy models for campaigns and their player slots."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class Campaign(BaseModel):
    """One ongoing game, owned by a GM."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    gm_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Imperial calendar, "YYYY-DDD HH:MM"
    current_date: Mapped[str] = mapped_column(String(16), nullable=False, default="1105-001 00:00")
    current_system: Mapped[Optional[str]] = mapped_column(String(255))
    current_sector: Mapped[Optional[str]] = mapped_column(String(255))
    current_hex: Mapped[Optional[str]] = mapped_column(String(8))

    session_started: Mapped[bool] = mapped_column(default=False)
    # GM switch that stops the pilot station from passing time
    time_blocked: Mapped[bool] = mapped_column(default=False)

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name={self.name!r}, date={self.current_date})>"


class PlayerSlot(BaseModel):
    """A named seat in a campaign that one player session can occupy."""

    __tablename__ = "player_slots"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slot_name: Mapped[str] = mapped_column(String(255), nullable=False)
    ship_id: Mapped[Optional[str]] = mapped_column(String(32))
    role: Mapped[Optional[str]] = mapped_column(String(50))
    character_data: Mapped[dict] = mapped_column(JSON, default=dict)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<PlayerSlot(id={self.id}, slot={self.slot_name!r}, role={self.role})>"
