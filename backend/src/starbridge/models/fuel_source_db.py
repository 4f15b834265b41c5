"""SQLAlchemy model for refuelling sources (starports, gas giants, tankers)."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class FuelSource(BaseModel):
    __tablename__ = "fuel_sources"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    campaign_id: Mapped[Optional[str]] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    fuel_type: Mapped[str] = mapped_column(String(20), default="refined")
    # NULL means unlimited (e.g. gas giant skimming)
    available_tons: Mapped[Optional[int]] = mapped_column(Integer)
    price_per_ton: Mapped[float] = mapped_column(Float, default=0.0)
