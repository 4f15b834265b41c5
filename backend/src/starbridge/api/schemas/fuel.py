"""Payloads for fuel events."""

from typing import Literal, Optional, Union

from pydantic import Field

from starbridge.api.schemas.base import Payload


class RefuelPayload(Payload):
    source_id: str
    tons: int = Field(..., gt=0)
    fill_available: bool = False


class FuelProcessingPayload(Payload):
    tons: Union[int, Literal["all"]] = "all"


class JumpFuelPayload(Payload):
    fuel_needed: Optional[int] = Field(default=None, ge=0)
    distance: Optional[int] = Field(default=None, ge=0)
