"""SQLAlchemy models for the passenger manifest and passenger demands."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class Passenger(BaseModel):
    """Someone aboard a ship who is not crew."""

    __tablename__ = "passengers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ship_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    passenger_type: Mapped[str] = mapped_column(String(20), default="middle")
    # "stateroom-3", "low-berth-1", "seat-7"...
    cabin: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(20), default="content")
    morale: Mapped[int] = mapped_column(Integer, default=75)
    restraint: Mapped[str] = mapped_column(String(20), default="none")
    vip: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<Passenger(id={self.id}, name={self.name!r}, morale={self.morale})>"


class PassengerDemand(BaseModel):
    __tablename__ = "passenger_demands"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    passenger_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("passengers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    demand_type: Mapped[str] = mapped_column(String(20), default="comfort")
    description: Mapped[Optional[str]] = mapped_column(Text)
    urgency: Mapped[str] = mapped_column(String(20), default="low")
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
