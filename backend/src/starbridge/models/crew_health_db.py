"""SQLAlchemy models for crew health: endurance, wounds and conditions.

A character is a player slot; its health record is created the first time
the medic bay looks at it.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from starbridge.db.base import BaseModel, new_id


class CrewHealth(BaseModel):
    __tablename__ = "crew_health"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    character_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    character_name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_endurance: Mapped[int] = mapped_column(Integer, default=8)
    max_endurance: Mapped[int] = mapped_column(Integer, default=8)
    consciousness: Mapped[str] = mapped_column(String(20), default="alert")

    def __repr__(self) -> str:
        return f"<CrewHealth(character={self.character_id}, end={self.current_endurance}/{self.max_endurance})>"


class CrewWound(BaseModel):
    __tablename__ = "crew_wounds"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    character_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    wound_type: Mapped[str] = mapped_column(String(20), default="impact")
    severity: Mapped[str] = mapped_column(String(20), default="minor")
    location: Mapped[str] = mapped_column(String(20), default="torso")
    dm_penalty: Mapped[int] = mapped_column(Integer, default=-1)
    bleed_rate: Mapped[int] = mapped_column(Integer, default=0)
    treated: Mapped[bool] = mapped_column(Boolean, default=False)
    # Treatment progress in combat rounds
    treatment_time: Mapped[int] = mapped_column(Integer, default=0)
    required_time: Mapped[int] = mapped_column(Integer, default=2)


class CrewCondition(BaseModel):
    """A non-wound status effect (fatigue, poison, sedation...)."""

    __tablename__ = "crew_conditions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    character_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    condition_type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), default="mild")
    dm_penalty: Mapped[int] = mapped_column(Integer, default=-1)
    duration: Mapped[Optional[int]] = mapped_column(Integer)
    source: Mapped[Optional[str]] = mapped_column(String(255))
