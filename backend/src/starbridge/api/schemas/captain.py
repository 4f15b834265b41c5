from typing import Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload


class IssueOrderPayload(Payload):
    target: str = "all"
    order: str = Field(..., min_length=1)
    requires_ack: bool = False
    order_type: Optional[str] = None
    contact_id: Optional[str] = None


class AcknowledgeOrderPayload(Payload):
    order_id: str


class OrdersQueryPayload(Payload):
    limit: int = Field(default=50, ge=1, le=50)


class AlertStatusPayload(Payload):
    status: str


class CaptainCheckPayload(Payload):
    skill: int = Field(default=0, ge=-3, le=6)
