from typing import Literal, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload

WoundType = Literal["laceration", "burn", "impact", "internal", "radiation"]
Severity = Literal["minor", "moderate", "severe", "critical"]
Location = Literal["head", "torso", "arm-l", "arm-r", "leg-l", "leg-r"]
ConditionType = Literal["fatigue", "altitude_sickness", "drugged", "sedated", "poisoned", "stunned"]
Consciousness = Literal["alert", "dazed", "unconscious", "dead"]


class CharacterIdPayload(Payload):
    character_id: str


class TreatWoundPayload(Payload):
    wound_id: str
    rounds: int = Field(default=1, ge=1, le=12)


class FirstAidPayload(Payload):
    character_id: str
    amount: int = Field(default=1, ge=1, le=20)


class RemoveConditionPayload(Payload):
    condition_id: str


class AddWoundPayload(Payload):
    character_id: str
    wound_type: WoundType = Field(default="impact", alias="type")
    severity: Severity = "minor"
    location: Location = "torso"
    bleed_rate: int = Field(default=0, ge=0, le=6)


class AddConditionPayload(Payload):
    character_id: str
    condition_type: ConditionType = Field(..., alias="type")
    severity: Literal["mild", "moderate", "severe"] = "mild"
    duration: Optional[int] = Field(default=None, ge=1)
    source: Optional[str] = Field(default=None, max_length=255)


class CrewDamagePayload(Payload):
    character_id: str
    damage: int = Field(..., ge=1, le=100)


class ConsciousnessPayload(Payload):
    character_id: str
    state: Consciousness
