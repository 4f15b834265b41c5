"""Payloads for campaign, roster and bridge events."""

from typing import Any, Dict, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload


class CreateCampaignPayload(Payload):
    name: str = Field(..., min_length=1, max_length=255)
    gm_name: str = Field(..., min_length=1, max_length=255)
    current_date: Optional[str] = None
    current_system: Optional[str] = None
    current_sector: Optional[str] = None
    current_hex: Optional[str] = None


class CampaignIdPayload(Payload):
    campaign_id: str


class UpdateCampaignPayload(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    gm_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    current_date: Optional[str] = None
    current_system: Optional[str] = None
    current_sector: Optional[str] = None
    current_hex: Optional[str] = None


class PlayerSlotPayload(Payload):
    slot_name: str = Field(..., min_length=1, max_length=255)


class SlotIdPayload(Payload):
    slot_id: str


class SelectShipPayload(Payload):
    ship_id: str


class AssignRolePayload(Payload):
    role: str


class AdvanceTimePayload(Payload):
    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0)


class LogEntryPayload(Payload):
    message: str = Field(..., min_length=1)
    entry_type: str = "note"


class ShipLogQueryPayload(Payload):
    limit: int = Field(default=50, ge=1, le=500)


class AddShipPayload(Payload):
    name: str = Field(..., min_length=1, max_length=255)
    template_id: Optional[str] = None
    is_party_ship: bool = True
    ship_data: Dict[str, Any] = Field(default_factory=dict)


class ShipIdPayload(Payload):
    ship_id: str


class JoinAsGuestPayload(Payload):
    campaign_id: str
    guest_name: str = Field(default="Guest", min_length=1, max_length=100)


class ImportCharacterPayload(Payload):
    character_data: Dict[str, Any]
