"""Coordination runtime: one instance per server process (and per test).

Owns the session registry, room router, broadcaster and state store, and
runs every inbound command through the same pipeline::

    resolve session -> authorize -> parse payload -> handler -> reply/broadcast

All of that happens under a single ``asyncio.Lock`` so a command's reads,
writes and fan-out are never interleaved with another command's.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from starbridge.commands import COMMANDS, CommandContext, CommandResult
from starbridge.commands.base import Scope
from starbridge.config.settings import Settings, get_settings
from starbridge.connection.room_router import RoomRouter
from starbridge.connection.session_registry import Session, SessionRegistry
from starbridge.connection.socketio_broadcaster import BroadcastDispatcher, Transport
from starbridge.db.connection import DatabaseManager
from starbridge.errors import AuthorizationError, CommandError, normalize_error
from starbridge.infra.storage.state_store import StateStore
from starbridge.mechanics.dice import DiceRoller, Roller
from starbridge.security.authorization import can_perform
from starbridge.services.library import Library
from starbridge.services.shared_map import SharedMapState

logger = logging.getLogger(__name__)


class UnknownCommandError(CommandError):
    code = "unknown_event"


class CoordinationRuntime:
    """Everything a connected client's commands run against."""

    def __init__(
        self,
        transport: Transport,
        settings: Optional[Settings] = None,
        db_manager: Optional[DatabaseManager] = None,
        dice: Optional[Roller] = None,
    ):
        self.settings = settings or get_settings()
        self.db_manager = db_manager or DatabaseManager(self.settings.database_url)
        self.store = StateStore(self.db_manager)
        self.sessions = SessionRegistry()
        self.rooms = RoomRouter()
        self.broadcaster = BroadcastDispatcher(transport, self.rooms, self.settings.socketio_namespace)
        self.dice = dice or DiceRoller()
        self.map_state = SharedMapState()
        self.library = Library()
        self.ctx = CommandContext(
            store=self.store,
            sessions=self.sessions,
            rooms=self.rooms,
            dice=self.dice,
            settings=self.settings,
            map_state=self.map_state,
            library=self.library,
        )
        self._lock = asyncio.Lock()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Create the engine and tables.

        A failure is fatal only when ``require_database_on_startup`` is set.
        """
        try:
            self.db_manager.initialize()
            await self.db_manager.create_tables()
        except Exception as e:
            if self.settings.require_database_on_startup:
                logger.error("Database initialization failed: %s", e)
                raise
            logger.warning("Database initialization failed, continuing without it: %s", e)
            return
        logger.info("Coordination runtime started")

    async def close(self) -> None:
        self.sessions.close()
        self.rooms.close()
        self.map_state.close()
        await self.db_manager.dispose()
        logger.info("Coordination runtime closed")

    # =========================================================================
    # Connections
    # =========================================================================

    async def connect(self, sid: str) -> Session:
        async with self._lock:
            session = self.sessions.bind(sid)
        logger.info("[OPS] Connected | sid=%s", sid)
        return session

    async def disconnect(self, sid: str) -> None:
        """Free the connection's seats and tell its bridge it left."""
        async with self._lock:
            session = self.sessions.release(sid)
            self.rooms.leave_all(sid)
            if session is None:
                return
            if session.on_bridge and session.ship_id:
                await self.broadcaster.to_bridge(session.ship_id, "crewLeftBridge", {
                    "role": session.role,
                    "name": session.display_name,
                    "isGM": session.is_gm,
                    "disconnected": True,
                })
        logger.info("[OPS] Disconnected | sid=%s campaign=%s", sid, session.campaign_id)

    # =========================================================================
    # Commands
    # =========================================================================

    async def dispatch(self, sid: str, event: str, data: Any = None) -> Dict[str, Any]:
        """Run one inbound event and return the Socket.IO ack payload."""
        spec = COMMANDS.get(event)
        if spec is None:
            envelope = normalize_error(UnknownCommandError(f"Unknown event: {event}"), "Operations", event)
            await self.broadcaster.to_connection(sid, "error", envelope)
            return {"success": False, "error": envelope["message"]}

        async with self._lock:
            try:
                session = self.sessions.require(sid, **spec.requires.flags())
                decision = can_perform(session, spec.action)
                if not decision:
                    if decision.silent:
                        logger.debug("[OPS] %s silently ignored | sid=%s", event, sid)
                        return {"success": False}
                    raise AuthorizationError(decision.reason, action=event)
                payload = spec.parse(data)
                result = await spec.handler(self.ctx, session, payload)
            except Exception as e:
                envelope = normalize_error(e, spec.subsystem, event)
                await self.broadcaster.to_connection(sid, "error", envelope)
                return {"success": False, "error": envelope["message"]}

            await self._deliver(sid, result)
        return {"success": True, **(result.reply or {})}

    async def _deliver(self, sid: str, result: CommandResult) -> None:
        if result.reply_event:
            await self.broadcaster.to_connection(sid, result.reply_event, result.reply)
        for broadcast in result.broadcasts:
            if broadcast.scope is Scope.BRIDGE:
                await self.broadcaster.to_bridge(broadcast.target, broadcast.event, broadcast.payload,
                                                 skip_sid=broadcast.skip_sid)
            elif broadcast.scope is Scope.CAMPAIGN:
                await self.broadcaster.to_campaign(broadcast.target, broadcast.event, broadcast.payload,
                                                   skip_sid=broadcast.skip_sid)
            else:
                await self.broadcaster.to_connection(broadcast.target, broadcast.event, broadcast.payload)

    def stats(self) -> Dict[str, Any]:
        return {
            "connections": len(self.sessions),
            "topics": self.rooms.stats(),
            "commands": len(COMMANDS),
        }
