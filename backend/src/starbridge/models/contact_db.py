"""SQLAlchemy model for sensor contacts."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class Contact(BaseModel):
    """A sensor-detected object visible to one campaign."""

    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), default="ship")
    range_band: Mapped[str] = mapped_column(String(20), default="medium")
    bearing: Mapped[int] = mapped_column(Integer, default=0)
    marking: Mapped[str] = mapped_column(String(20), default="unknown")
    # NULL means targetable; only an explicit False blocks fire
    is_targetable: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    scan_level: Mapped[int] = mapped_column(Integer, default=0)
    health: Mapped[Optional[int]] = mapped_column(Integer)
    max_health: Mapped[Optional[int]] = mapped_column(Integer)
    transponder: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name!r}, range={self.range_band})>"
