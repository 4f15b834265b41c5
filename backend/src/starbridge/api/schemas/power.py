from typing import Any, Dict

from pydantic import model_validator

from starbridge.api.schemas.base import Payload


class PowerPayload(Payload):
    allocations: Dict[str, Any]

    @model_validator(mode="before")
    @classmethod
    def _bare_mapping(cls, data: Any) -> Any:
        # Clients may send the allocation map itself
        if isinstance(data, dict) and "allocations" not in data:
            return {"allocations": data}
        return data


class PowerPresetPayload(Payload):
    preset: str
