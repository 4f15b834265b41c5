"""SQLAlchemy model for captain orders (the command log)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class Order(BaseModel):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ship_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    target: Mapped[str] = mapped_column(String(50), nullable=False, default="all")
    text: Mapped[str] = mapped_column(Text, nullable=False)
    order_type: Mapped[Optional[str]] = mapped_column(String(50))
    contact_id: Mapped[Optional[str]] = mapped_column(String(32))
    issued_by: Mapped[str] = mapped_column(String(50), default="captain")
    requires_ack: Mapped[bool] = mapped_column(Boolean, default=False)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(50))
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, target={self.target}, ack={self.acknowledged})>"
