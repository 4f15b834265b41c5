from typing import List, Literal, Union

from pydantic import Field

from starbridge.api.schemas.base import Payload


class FirePayload(Payload):
    turret: Union[int, str]
    target: str = Field(..., min_length=1)
    weapon: Union[int, str]
    gunnery_skill: int = Field(default=0, ge=-3, le=6)


class WeaponsAuthPayload(Payload):
    mode: Literal["free", "hold", "defensive"]
    targets: List[str] = Field(default_factory=list)
