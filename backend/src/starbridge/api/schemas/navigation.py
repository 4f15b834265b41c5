from typing import Literal, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload


class EvasivePayload(Payload):
    enabled: bool


class RangePayload(Payload):
    contact_id: str
    action: Literal["approach", "withdraw", "maintain"]


class CoursePayload(Payload):
    destination: Optional[str] = None
    eta: Optional[str] = None


class JumpPayload(Payload):
    destination: str = Field(..., min_length=1)
    distance: int = Field(..., ge=1, le=6)


class CompleteJumpPayload(Payload):
    force: bool = False


class PassTimePayload(Payload):
    hours: int = Field(..., ge=1, le=168)
    reason: Optional[str] = Field(default=None, max_length=200)


class TimeBlockPayload(Payload):
    blocked: bool
