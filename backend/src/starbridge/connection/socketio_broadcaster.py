"""Scoped fan-out of state updates over Socket.IO.

Membership comes from the :class:`RoomRouter`; delivery goes to one sid
at a time through the transport (the ``AsyncServer`` in production).
Delivery is fire-and-forget: a member that fails to receive is logged and
skipped, and nothing is queued for clients that are not connected.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Protocol

from starbridge.connection.room_router import RoomRouter, bridge_topic, campaign_topic

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def emit(self, event: str, data: Any = None, to: Optional[str] = None,
                   namespace: Optional[str] = None, **kwargs: Any) -> None: ...


class BroadcastDispatcher:
    """Deliver an event to a bridge, a campaign, or a single connection."""

    def __init__(self, transport: Transport, router: RoomRouter, namespace: str = "/ops"):
        self.transport = transport
        self.router = router
        self.namespace = namespace

    @staticmethod
    def _stamp(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        data = dict(payload or {})
        data.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        return data

    async def _deliver(self, sids: Iterable[str], event: str, payload: Dict[str, Any],
                       skip_sid: Optional[str] = None) -> int:
        delivered = 0
        for sid in sorted(sids):
            if sid == skip_sid:
                continue
            try:
                await self.transport.emit(event, payload, to=sid, namespace=self.namespace)
                delivered += 1
            except Exception as e:
                logger.warning("[Broadcast] Failed to deliver %s to sid=%s: %s", event, sid, e)
        return delivered

    async def to_topic(self, topic: str, event: str, payload: Optional[Dict[str, Any]] = None,
                       skip_sid: Optional[str] = None) -> int:
        """Send ``event`` to every member of ``topic``.

        A failed delivery to one connection is logged and skipped.

        Args:
            topic: Room name, e.g. ``bridge:S1``
            event: Socket.IO event name
            payload: Event data; a ``timestamp`` is added when absent
            skip_sid: Member to leave out

        Returns:
            Number of connections the event reached
        """
        members = self.router.members_of(topic)
        delivered = await self._deliver(members, event, self._stamp(payload), skip_sid)
        logger.debug("[Broadcast] %s -> %s (%d/%d)", event, topic, delivered, len(members))
        return delivered

    async def to_bridge(self, ship_id: str, event: str, payload: Optional[Dict[str, Any]] = None,
                        skip_sid: Optional[str] = None) -> int:
        return await self.to_topic(bridge_topic(ship_id), event, payload, skip_sid)

    async def to_campaign(self, campaign_id: str, event: str, payload: Optional[Dict[str, Any]] = None,
                          skip_sid: Optional[str] = None) -> int:
        return await self.to_topic(campaign_topic(campaign_id), event, payload, skip_sid)

    async def to_connection(self, sid: str, event: str, payload: Optional[Dict[str, Any]] = None) -> int:
        return await self._deliver([sid], event, self._stamp(payload))
