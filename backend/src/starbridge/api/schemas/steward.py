from typing import Literal, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload

PassengerType = Literal["high", "middle", "low", "working", "refugee"]
PassengerStatus = Literal["content", "anxious", "panicking", "injured", "unconscious"]
Restraint = Literal["none", "seatbelt", "crash-frame", "low-berth"]
DemandType = Literal["comfort", "safety", "information", "medical"]
Urgency = Literal["low", "medium", "high", "critical"]
MoraleEffect = Literal["combat", "maneuver", "delay", "danger", "success"]


class PassengerIdPayload(Payload):
    passenger_id: str


class AddPassengerPayload(Payload):
    name: str = Field(..., min_length=1, max_length=255)
    passenger_type: PassengerType = Field(default="middle", alias="type")
    cabin: Optional[str] = Field(default=None, max_length=50)
    status: PassengerStatus = "content"
    morale: int = Field(default=75, ge=0, le=100)
    vip: bool = False
    notes: Optional[str] = None


class AssignCabinPayload(Payload):
    passenger_id: str
    cabin: Optional[str] = Field(default=None, max_length=50)


class RestraintPayload(Payload):
    passenger_id: str
    restraint: Restraint


class CalmPassengerPayload(Payload):
    passenger_id: str
    skill: int = Field(default=0, ge=-3, le=6)


class DemandIdPayload(Payload):
    demand_id: str


class AddDemandPayload(Payload):
    passenger_id: str
    demand_type: DemandType = Field(default="comfort", alias="type")
    description: Optional[str] = None
    urgency: Urgency = "low"


class UpdateCapacityPayload(Payload):
    ship_id: Optional[str] = None
    staterooms: Optional[int] = Field(default=None, ge=0)
    low_berths: Optional[int] = Field(default=None, ge=0)
    emergency_seats: Optional[int] = Field(default=None, ge=0)


class MoraleEffectPayload(Payload):
    ship_id: Optional[str] = None
    effect: MoraleEffect
    amount: int = Field(default=10, ge=1, le=100)
