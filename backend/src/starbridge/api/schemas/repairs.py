from typing import Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload


class SystemDamagePayload(Payload):
    location: str
    severity: int = Field(default=1, ge=1, le=4)
    ship_id: Optional[str] = None


class RepairPayload(Payload):
    location: str
    engineer_skill: int = Field(default=0, ge=-3, le=6)


class ClearDamagePayload(Payload):
    location: str = "all"
    ship_id: Optional[str] = None
