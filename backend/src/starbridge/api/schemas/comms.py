from typing import Literal, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload

Channel = Literal["emergency", "military", "civilian", "private", "broadcast"]
Priority = Literal["low", "normal", "high", "critical"]


class SendTransmissionPayload(Payload):
    channel: Channel = "civilian"
    body: str = Field(..., min_length=1, max_length=4000)
    priority: Priority = "normal"
    recipient: Optional[str] = None
    sender: Optional[str] = None


class TransmissionQueryPayload(Payload):
    include_archived: bool = False
    channel: Optional[Channel] = None


class TransmissionIdPayload(Payload):
    transmission_id: str


class ReplyTransmissionPayload(Payload):
    transmission_id: str
    body: str = Field(..., min_length=1, max_length=4000)
    priority: Priority = "normal"
