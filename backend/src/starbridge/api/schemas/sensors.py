from typing import Literal, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload


class ContactIdPayload(Payload):
    contact_id: str


class MarkContactPayload(Payload):
    contact_id: str
    marking: Literal["hostile", "friendly", "neutral", "unknown"]


class ResetScanPayload(Payload):
    contact_id: str
    level: int = Field(default=0, ge=0, le=3)


class AddContactPayload(Payload):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = "ship"
    range_band: str = "medium"
    bearing: int = Field(default=0, ge=0, lt=360)
    marking: Literal["hostile", "friendly", "neutral", "unknown"] = "unknown"
    is_targetable: Optional[bool] = None
    health: Optional[int] = Field(default=None, ge=0)
    max_health: Optional[int] = Field(default=None, ge=0)
    transponder: Optional[str] = None
    notes: Optional[str] = None


class UpdateContactPayload(Payload):
    contact_id: str
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[str] = None
    range_band: Optional[str] = None
    bearing: Optional[int] = Field(default=None, ge=0, lt=360)
    marking: Optional[Literal["hostile", "friendly", "neutral", "unknown"]] = None
    is_targetable: Optional[bool] = None
    health: Optional[int] = Field(default=None, ge=0)
    max_health: Optional[int] = Field(default=None, ge=0)
    transponder: Optional[str] = None
    notes: Optional[str] = None
