"""Command dispatch table and the context handlers run with.

Every inbound action is a :class:`CommandSpec` in :data:`COMMANDS`, keyed
by event name and registered with the :func:`command` decorator. Handlers
share one signature::

    async def handler(ctx: CommandContext, session: Session, payload: Model) -> CommandResult

They read and write through ``ctx.store`` and describe what to send in the
returned :class:`CommandResult`; the runtime delivers it after the handler
has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from starbridge.config.settings import Settings
from starbridge.connection.room_router import RoomRouter
from starbridge.connection.session_registry import Session, SessionRegistry
from starbridge.errors import DomainError
from starbridge.infra.storage.state_store import StateStore
from starbridge.mechanics.dice import Roller
from starbridge.security.authorization import ActionKind

if TYPE_CHECKING:
    from starbridge.services.library import Library
    from starbridge.services.shared_map import SharedMapState

logger = logging.getLogger(__name__)


class Requires(str, Enum):
    """How much identity a session must have assembled."""

    NOTHING = "nothing"
    CAMPAIGN = "campaign"
    SHIP = "ship"
    ROLE = "role"

    def flags(self) -> Dict[str, bool]:
        return {
            "campaign": self in (Requires.CAMPAIGN, Requires.SHIP, Requires.ROLE),
            "ship": self in (Requires.SHIP, Requires.ROLE),
            "role": self is Requires.ROLE,
        }


class Scope(str, Enum):
    BRIDGE = "bridge"
    CAMPAIGN = "campaign"
    CONNECTION = "connection"


@dataclass
class Broadcast:
    scope: Scope
    target: str
    event: str
    payload: Dict[str, Any]
    skip_sid: Optional[str] = None


@dataclass
class CommandResult:
    """What a handler wants sent once its mutation has landed.

    ``reply`` goes back to the requester (as ``reply_event`` and in the
    Socket.IO ack); ``broadcasts`` fan out in order afterwards.
    """

    reply_event: Optional[str] = None
    reply: Optional[Dict[str, Any]] = None
    broadcasts: List[Broadcast] = field(default_factory=list)

    def to_bridge(self, ship_id: str, event: str, payload: Dict[str, Any],
                  skip_sid: Optional[str] = None) -> "CommandResult":
        """Queue ``event`` for every session on the bridge of ``ship_id``.

        Args:
            ship_id: Ship whose bridge receives the event
            event: Socket.IO event name
            payload: Event data
            skip_sid: Connection to leave out, usually the requester

        Returns:
            Self, so calls chain
        """
        self.broadcasts.append(Broadcast(Scope.BRIDGE, ship_id, event, payload, skip_sid))
        return self

    def to_campaign(self, campaign_id: str, event: str, payload: Dict[str, Any],
                    skip_sid: Optional[str] = None) -> "CommandResult":
        """Queue ``event`` for every session in the campaign, GM included."""
        self.broadcasts.append(Broadcast(Scope.CAMPAIGN, campaign_id, event, payload, skip_sid))
        return self

    def to_connection(self, sid: str, event: str, payload: Dict[str, Any]) -> "CommandResult":
        self.broadcasts.append(Broadcast(Scope.CONNECTION, sid, event, payload))
        return self


def reply(event: str, payload: Optional[Dict[str, Any]] = None) -> CommandResult:
    """A result that answers only the requester."""
    return CommandResult(reply_event=event, reply=payload or {})


@dataclass
class CommandContext:
    """Collaborators a handler may use. Built once by the runtime."""

    store: StateStore
    sessions: SessionRegistry
    rooms: RoomRouter
    dice: Roller
    settings: Settings
    map_state: "SharedMapState"
    library: "Library"

    # =========================================================================
    # Lookups that fail as recoverable errors
    # =========================================================================

    async def campaign(self, campaign_id: str) -> Dict[str, Any]:
        """Load a campaign.

        Raises:
            DomainError: If the campaign does not exist
        """
        campaign = await self.store.get("campaigns", campaign_id)
        if campaign is None:
            raise DomainError("Campaign not found")
        return campaign

    async def ship(self, ship_id: str, campaign_id: Optional[str] = None) -> Dict[str, Any]:
        """Load a ship, optionally checking it belongs to ``campaign_id``.

        Args:
            ship_id: Ship primary key
            campaign_id: When given, a ship from another campaign counts as missing

        Returns:
            Ship record with ``ship_data`` and ``current_state``

        Raises:
            DomainError: If the ship is missing or belongs elsewhere
        """
        ship = await self.store.get("ships", ship_id)
        if ship is None or (campaign_id is not None and ship["campaign_id"] != campaign_id):
            raise DomainError("Ship not found")
        return ship

    async def target_ship(self, session: Session, ship_id: Optional[str] = None) -> Dict[str, Any]:
        """Resolve the ship a command acts on.

        GM commands may name any ship in the campaign; everyone else acts on
        the ship their session is bound to.

        Args:
            session: The requesting session
            ship_id: Ship named in the payload, if any

        Returns:
            Ship record
        """
        target = ship_id or session.ship_id
        if target is None:
            raise DomainError("No ship selected")
        return await self.ship(target, session.campaign_id)

    async def contact(self, contact_id: str, campaign_id: str) -> Dict[str, Any]:
        """Load a contact of ``campaign_id``.

        Raises:
            DomainError: If the contact is missing or belongs elsewhere
        """
        contact = await self.store.get("contacts", contact_id)
        if contact is None or contact["campaign_id"] != campaign_id:
            raise DomainError("Contact not found", contactId=contact_id)
        return contact

    async def game_date(self, campaign_id: str) -> Optional[str]:
        campaign = await self.store.get("campaigns", campaign_id)
        return campaign["current_date"] if campaign else None

    async def save_state(self, ship: Dict[str, Any], state: Dict[str, Any]) -> Dict[str, Any]:
        """Write a whole ``current_state`` back in one update."""
        updated = await self.store.update("ships", ship["id"], {"current_state": state})
        if updated is None:
            raise DomainError("Ship not found")
        return updated

    async def add_log(self, ship_id: str, campaign_id: str, message: str,
                      entry_type: str = "event", actor: Optional[str] = None) -> Dict[str, Any]:
        """Append a ship log line stamped with the current game date.

        Args:
            ship_id: Ship the entry belongs to
            campaign_id: Campaign whose clock dates the entry
            message: Log text
            entry_type: Category shown in the log view (``roe_violation`` is GM-only)
            actor: Who caused the entry

        Returns:
            The stored log entry
        """
        return await self.store.insert("ship_log", {
            "ship_id": ship_id,
            "campaign_id": campaign_id,
            "game_date": await self.game_date(campaign_id),
            "entry_type": entry_type,
            "message": message,
            "actor": actor,
        })


Handler = Callable[[CommandContext, Session, Any], Awaitable[CommandResult]]


class EmptyPayload(BaseModel):
    """For events that carry no data."""


@dataclass(frozen=True)
class CommandSpec:
    event: str
    action: ActionKind
    handler: Handler
    payload_model: Type[BaseModel]
    subsystem: str
    requires: Requires

    def parse(self, data: Any) -> BaseModel:
        """Validate raw event data; a missing payload counts as empty.

        Raises:
            ValidationError: If the data does not fit the payload model
        """
        return self.payload_model.model_validate({} if data is None else data)


COMMANDS: Dict[str, CommandSpec] = {}


def command(
    action: ActionKind,
    payload: Type[BaseModel] = EmptyPayload,
    subsystem: str = "Operations",
    requires: Requires = Requires.SHIP,
) -> Callable[[Handler], Handler]:
    """Register the decorated coroutine as the handler for ``action``.

    Args:
        action: Action kind; its value is the Socket.IO event name
        payload: Model the raw event data is validated against
        subsystem: Label used in masked error messages ("Fuel error")
        requires: Identity the session must have before authorization

    Returns:
        Decorator that registers the handler and returns it unchanged

    Raises:
        RuntimeError: If the action already has a handler
    """

    def decorator(handler: Handler) -> Handler:
        event = ActionKind(action).value
        if event in COMMANDS:
            raise RuntimeError(f"Duplicate handler for {event}")
        COMMANDS[event] = CommandSpec(
            event=event,
            action=ActionKind(action),
            handler=handler,
            payload_model=payload,
            subsystem=subsystem,
            requires=requires,
        )
        return handler

    return decorator
