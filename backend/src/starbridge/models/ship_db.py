"""SQLAlchemy model for ships.

``ship_data`` is the immutable template (tonnage, maxima, turrets) and
``current_state`` the live mutable state (hull, fuel, power, systems...).
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class Ship(BaseModel):
    __tablename__ = "ships"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    template_id: Mapped[Optional[str]] = mapped_column(String(100))
    is_party_ship: Mapped[bool] = mapped_column(Boolean, default=True)
    ship_data: Mapped[dict] = mapped_column(JSON, default=dict)
    current_state: Mapped[dict] = mapped_column(JSON, default=dict)

    def __repr__(self) -> str:
        return f"<Ship(id={self.id}, name={self.name!r}, campaign={self.campaign_id})>"
