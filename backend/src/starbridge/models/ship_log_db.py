"""SQLAlchemy model for ship log entries."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class ShipLogEntry(BaseModel):
    """Narrative/audit line attached to a ship.

    ``entry_type`` ``roe_violation`` entries are surfaced to the GM.
    """

    __tablename__ = "ship_log"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    ship_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    game_date: Mapped[Optional[str]] = mapped_column(String(16))
    entry_type: Mapped[str] = mapped_column(String(50), default="event")
    message: Mapped[str] = mapped_column(Text, nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(50))
