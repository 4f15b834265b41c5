"""Socket.IO server for the bridge operations namespace.

Namespaces:
- /ops: crew stations, GM controls and all ship/campaign updates

Every operations event is routed through the :class:`CoordinationRuntime`;
this module only binds Socket.IO events to it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

import socketio

from starbridge.commands import COMMANDS
from starbridge.config.settings import Settings

if TYPE_CHECKING:
    from starbridge.runtime import CoordinationRuntime

logger = logging.getLogger(__name__)


# =============================================================================
# Socket.IO Server Configuration
# =============================================================================

def create_sio(settings: Settings) -> socketio.AsyncServer:
    """Create the async Socket.IO server.

    Handlers run one at a time per connection so a client's events are
    applied in the order it sent them.
    """
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.cors_origins,
        ping_timeout=30,
        ping_interval=25,
        async_handlers=False,
        logger=False,  # Disable socket.io internal logging (too verbose)
        engineio_logger=False,
    )


# =============================================================================
# Event Binding
# =============================================================================

def _command_handler(runtime: "CoordinationRuntime", event: str):
    async def handler(sid: str, data: Optional[Dict[str, Any]] = None):
        return await runtime.dispatch(sid, event, data)

    handler.__name__ = event
    return handler


def register_handlers(sio: socketio.AsyncServer, runtime: "CoordinationRuntime", namespace: str = "/ops") -> None:
    """Bind connect/disconnect and every registered command on ``namespace``."""

    async def connect(sid: str, environ: Dict, auth: Optional[Dict] = None):
        logger.info("[SocketIO] Connection | sid=%s", sid)
        await runtime.connect(sid)
        await sio.emit("connected", {"sid": sid}, to=sid, namespace=namespace)

    async def disconnect(sid: str, reason: Any = None):
        logger.info("[SocketIO] Disconnecting | sid=%s reason=%s", sid, reason)
        await runtime.disconnect(sid)

    sio.on("connect", connect, namespace=namespace)
    sio.on("disconnect", disconnect, namespace=namespace)
    for event in COMMANDS:
        sio.on(event, _command_handler(runtime, event), namespace=namespace)
    logger.info("[SocketIO] Registered %d operations events on %s", len(COMMANDS), namespace)


# =============================================================================
# ASGI App
# =============================================================================

def create_socketio_app(sio: socketio.AsyncServer, other_app):
    """Wrap the FastAPI app so Socket.IO and HTTP share one ASGI server."""
    return socketio.ASGIApp(sio, other_asgi_app=other_app)
