"""Command error taxonomy and the client-safe error envelope.

Handlers raise the typed errors below; the dispatch layer turns any
exception into an :class:`ErrorEnvelope` addressed to the requester only.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Recoverable failure whose message is safe to show the client."""

    code = "command_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class IdentityError(CommandError):
    """The session lacks a campaign, ship or role the action needs."""

    code = "identity"


class AuthorizationError(CommandError):
    code = "forbidden"


class DomainError(CommandError):
    """A game-state precondition failed (insufficient fuel, bad target...)."""

    code = "precondition"


class ErrorEnvelope(BaseModel):
    """Payload of the ``error`` event."""

    model_config = ConfigDict(extra="allow")

    message: str
    code: str = "internal"
    event: Optional[str] = None


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid payload"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"Invalid payload: {location}: {first['msg']}"
    return f"Invalid payload: {first['msg']}"


def normalize_error(exc: BaseException, subsystem: str, event: Optional[str] = None) -> Dict[str, Any]:
    """Convert ``exc`` to an envelope dict, logging it server-side.

    Known command errors keep their message; anything else becomes
    ``"<subsystem> error"`` so internals never reach the client.
    """
    if isinstance(exc, CommandError):
        logger.info("[OPS] %s rejected: %s (%s)", event, exc.message, exc.code)
        envelope = ErrorEnvelope(message=exc.message, code=exc.code, event=event, **exc.context)
    elif isinstance(exc, ValidationError):
        message = _validation_message(exc)
        logger.info("[OPS] %s rejected: %s", event, message)
        envelope = ErrorEnvelope(message=message, code="invalid_payload", event=event)
    else:
        logger.error("[OPS] Error handling %s (%s): %s", event, subsystem, exc, exc_info=exc)
        envelope = ErrorEnvelope(message=f"{subsystem} error", code="internal", event=event)
    return envelope.model_dump(exclude_none=True)
