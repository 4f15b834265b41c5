from typing import Any, Optional

from pydantic import Field

from starbridge.api.schemas.base import Payload


class MapViewPayload(Payload):
    center: Optional[Any] = None
    sector: Optional[str] = None
    hex: Optional[str] = None
    zoom: Optional[float] = Field(default=None, gt=0)
