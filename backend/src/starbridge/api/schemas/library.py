from typing import Any

from starbridge.api.schemas.base import Payload


class LibrarySearchPayload(Payload):
    # Non-string values are answered with empty results, not rejected
    query: Any = ""


class DecodeUwpPayload(Payload):
    uwp: Any = ""
