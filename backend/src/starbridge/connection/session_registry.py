"""Per-connection identity: who a socket is, and which seats it holds.

Identity is assembled in stages (campaign, slot, ship, role) across
several client requests, so :meth:`SessionRegistry.bind` merges partial
updates. Sessions live only as long as the connection.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Dict, List, Optional

from starbridge.errors import DomainError, IdentityError

logger = logging.getLogger(__name__)


@dataclass
class Session:
    sid: str
    campaign_id: Optional[str] = None
    ship_id: Optional[str] = None
    role: Optional[str] = None
    is_gm: bool = False
    account_id: Optional[str] = None
    display_name: Optional[str] = None
    on_bridge: bool = False
    connected_at: Optional[datetime] = None

    def __post_init__(self):
        if self.connected_at is None:
            self.connected_at = datetime.now(timezone.utc)

    @property
    def actor(self) -> str:
        """Label used in log lines and broadcasts."""
        if self.is_gm:
            return "GM"
        return self.role or self.display_name or "crew"

    def to_public(self) -> dict:
        data = asdict(self)
        data["connected_at"] = self.connected_at.isoformat()
        return data


_SESSION_FIELDS = {f.name for f in fields(Session)} - {"sid", "connected_at"}


class SessionRegistry:
    """In-memory map of sid -> Session plus slot and GM seat reservations."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        # account_id -> sid
        self._slot_holders: Dict[str, str] = {}
        # campaign_id -> sid
        self._gm_seats: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, sid: str) -> bool:
        return sid in self._sessions

    def bind(self, sid: str, **changes) -> Session:
        """Merge ``changes`` into the session for ``sid``, creating it if needed.

        ``None`` values leave the current field untouched. Use
        :meth:`clear` to null a field explicitly.

        Args:
            sid: Connection id
            **changes: Session fields to set

        Returns:
            The updated session

        Raises:
            TypeError: If a change names an unknown field
            IdentityError: If the result would hold a role without a ship
        """
        unknown = set(changes) - _SESSION_FIELDS
        if unknown:
            raise TypeError(f"Unknown session fields: {sorted(unknown)}")
        session = self._sessions.get(sid)
        if session is None:
            session = Session(sid=sid)
            self._sessions[sid] = session
        for name, value in changes.items():
            if value is not None:
                setattr(session, name, value)
        self._check_invariant(session)
        return session

    def clear(self, sid: str, *names: str) -> Optional[Session]:
        """Reset fields to their empty value.

        Losing the ship or campaign also drops the role.

        Args:
            sid: Connection id
            *names: Session field names to reset

        Returns:
            The session, or None if ``sid`` is unknown
        """
        session = self._sessions.get(sid)
        if session is None:
            return None
        for name in names:
            if name not in _SESSION_FIELDS:
                raise TypeError(f"Unknown session field: {name}")
            setattr(session, name, False if name in ("is_gm", "on_bridge") else None)
        if "role" not in names and (session.ship_id is None or session.campaign_id is None):
            session.role = None
        return session

    @staticmethod
    def _check_invariant(session: Session) -> None:
        if session.role is not None and (session.ship_id is None or session.campaign_id is None):
            raise IdentityError("Must select a ship before taking a role")

    def resolve(self, sid: str) -> Optional[Session]:
        return self._sessions.get(sid)

    def require(self, sid: str, campaign: bool = False, ship: bool = False, role: bool = False) -> Session:
        """Resolve ``sid`` or raise an :class:`IdentityError` naming the missing step.

        Args:
            sid: Connection id
            campaign: The session must have joined a campaign
            ship: The session must be on a ship (implies ``campaign``)
            role: The session must hold a crew role or be the GM (implies ``ship``)

        Returns:
            The session
        """
        session = self._sessions.get(sid)
        if session is None:
            raise IdentityError("Not connected")
        if (campaign or ship or role) and session.campaign_id is None:
            raise IdentityError("Not in a campaign")
        if (ship or role) and session.ship_id is None:
            raise IdentityError("Not on a ship")
        if role and session.role is None and not session.is_gm:
            raise IdentityError("No role assigned")
        return session

    def release(self, sid: str) -> Optional[Session]:
        """Drop the session and free any seat it held.

        Returns:
            The removed session, or None if ``sid`` was not connected
        """
        self.release_seats(sid)
        session = self._sessions.pop(sid, None)
        if session is None:
            return None
        logger.debug("[Sessions] Released sid=%s", sid)
        return session

    # =========================================================================
    # Seats
    # =========================================================================

    def reserve_slot(self, sid: str, account_id: str) -> Session:
        """Bind a player slot to ``sid``.

        A slot held by a disconnected sid is taken over. Moving to another
        slot frees the previous one.

        Args:
            sid: Connection id, already in a campaign
            account_id: Player slot id

        Returns:
            The updated session

        Raises:
            DomainError: If another live session holds the slot
        """
        holder = self._slot_holders.get(account_id)
        if holder is not None and holder != sid and holder in self._sessions:
            raise DomainError("That player slot is already in use")
        session = self.require(sid, campaign=True)
        if session.account_id and session.account_id != account_id:
            self._slot_holders.pop(session.account_id, None)
        self._slot_holders[account_id] = sid
        return self.bind(sid, account_id=account_id)

    def release_seats(self, sid: str) -> None:
        """Free the player slot and GM seat held by ``sid``, keeping the session."""
        session = self._sessions.get(sid)
        if session is None:
            return
        if session.account_id and self._slot_holders.get(session.account_id) == sid:
            del self._slot_holders[session.account_id]
        if session.campaign_id and self._gm_seats.get(session.campaign_id) == sid:
            del self._gm_seats[session.campaign_id]

    def slot_holder(self, account_id: str) -> Optional[str]:
        return self._slot_holders.get(account_id)

    def claim_gm(self, sid: str, campaign_id: str) -> Session:
        """Make ``sid`` the single GM of ``campaign_id``.

        Args:
            sid: Connection id
            campaign_id: Campaign to take the GM seat of

        Returns:
            The GM session, stripped of any crew identity

        Raises:
            DomainError: If another live session already holds the GM seat
        """
        holder = self._gm_seats.get(campaign_id)
        if holder is not None and holder != sid and holder in self._sessions:
            raise DomainError("Campaign already has a GM connected")
        session = self._sessions.get(sid) or self.bind(sid)
        if session.campaign_id != campaign_id or not session.is_gm:
            # Seats and crew identity do not carry over into a GM seat
            self.release_seats(sid)
            self.clear(sid, "ship_id", "role", "on_bridge", "account_id")
        self._gm_seats[campaign_id] = sid
        return self.bind(sid, campaign_id=campaign_id, is_gm=True)

    # =========================================================================
    # Queries
    # =========================================================================

    def sessions_in_campaign(self, campaign_id: str) -> List[Session]:
        return [s for s in self._sessions.values() if s.campaign_id == campaign_id]

    def crew_on_ship(self, ship_id: str) -> List[Session]:
        return [s for s in self._sessions.values() if s.ship_id == ship_id]

    def role_holder(self, ship_id: str, role: str) -> Optional[Session]:
        """First session on ``ship_id`` holding ``role``, if any."""
        for session in self._sessions.values():
            if session.ship_id == ship_id and session.role == role:
                return session
        return None

    def close(self) -> None:
        count = len(self._sessions)
        self._sessions.clear()
        self._slot_holders.clear()
        self._gm_seats.clear()
        logger.info("[Sessions] Registry closed (%d sessions dropped)", count)
