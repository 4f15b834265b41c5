"""Shared fixtures: an in-memory runtime, a recording transport and fixed dice."""

from collections import deque
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from starbridge.config.settings import Settings
from starbridge.db.connection import DatabaseManager
from starbridge.mechanics.dice import RollResult
from starbridge.mechanics.ship_state import initial_state, ship_data_for
from starbridge.runtime import CoordinationRuntime


class RecordingTransport:
    """Stands in for ``socketio.AsyncServer``; remembers every emit."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for: set = set()

    async def emit(self, event: str, data: Any = None, to: Optional[str] = None,
                   namespace: Optional[str] = None, **kwargs: Any) -> None:
        if to in self.fail_for:
            raise ConnectionError(f"socket {to} is gone")
        self.sent.append({"event": event, "data": data, "to": to, "namespace": namespace})

    def events_for(self, sid: str, event: Optional[str] = None) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["to"] == sid and (event is None or m["event"] == event)]

    def recipients(self, event: str) -> set:
        return {m["to"] for m in self.sent if m["event"] == event}

    def clear(self) -> None:
        self.sent.clear()


class FixedDice:
    """Dice that return queued faces, then ``default`` once the queue runs out."""

    def __init__(self, *faces: int, default: int = 4):
        self.faces = deque(faces)
        self.default = default

    def push(self, *faces: int) -> None:
        self.faces.extend(faces)

    def roll(self, count: int, sides: int) -> RollResult:
        dice = [self.faces.popleft() if self.faces else self.default for _ in range(count)]
        return RollResult(dice=dice, total=sum(dice))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings():
    """Settings pointing at a private in-memory database."""
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        require_database_on_startup=True,
    )


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def dice():
    return FixedDice()


@pytest_asyncio.fixture
async def runtime(settings, transport, dice):
    """A started runtime with empty tables."""
    rt = CoordinationRuntime(
        transport=transport,
        settings=settings,
        db_manager=DatabaseManager(settings.database_url),
        dice=dice,
    )
    await rt.start()
    yield rt
    await rt.close()


@pytest_asyncio.fixture
async def world(runtime):
    """Campaign C1 with ships S1 (fuel 20/40) and S2, contact-9 and station-1.

    No connections are attached; tests seat their own crew with :func:`seat`.
    """
    store = runtime.store
    await store.insert("campaigns", {"id": "C1", "name": "Spinward Run", "gm_name": "Referee"})
    s1_data = ship_data_for("scout", {"fuel_max": 40})
    s1_state = initial_state(s1_data)
    s1_state["fuel"] = {"refined": 20, "unrefined": 0}
    await store.insert("ships", {
        "id": "S1", "campaign_id": "C1", "name": "Far Horizon", "template_id": "scout",
        "is_party_ship": True, "ship_data": s1_data, "current_state": s1_state,
    })
    s2_data = ship_data_for("free_trader")
    await store.insert("ships", {
        "id": "S2", "campaign_id": "C1", "name": "Beowulf", "template_id": "free_trader",
        "is_party_ship": True, "ship_data": s2_data, "current_state": initial_state(s2_data),
    })
    await store.insert("contacts", {
        "id": "contact-9", "campaign_id": "C1", "name": "Corsair", "type": "ship",
        "range_band": "medium", "marking": "unknown", "health": 30, "max_health": 30,
    })
    await store.insert("fuel_sources", {
        "id": "station-1", "campaign_id": "C1", "name": "Highport", "fuel_type": "refined",
        "available_tons": 100, "price_per_ton": 500.0,
    })
    return runtime


async def _seat(runtime, sid: str, role: Optional[str] = None, ship_id: Optional[str] = "S1",
               campaign_id: str = "C1", on_bridge: bool = True):
    """Connect ``sid`` and bind it straight to a campaign, ship and role."""
    await runtime.connect(sid)
    runtime.sessions.bind(sid, campaign_id=campaign_id, display_name=sid)
    runtime.ctx.rooms.join(sid, f"campaign:{campaign_id}")
    if ship_id:
        runtime.sessions.bind(sid, ship_id=ship_id, role=role)
        if on_bridge:
            runtime.sessions.bind(sid, on_bridge=True)
            runtime.ctx.rooms.join(sid, f"bridge:{ship_id}")
    return runtime.sessions.resolve(sid)


async def _seat_gm(runtime, sid: str = "gm", campaign_id: str = "C1"):
    await runtime.connect(sid)
    runtime.sessions.claim_gm(sid, campaign_id)
    runtime.ctx.rooms.join(sid, f"campaign:{campaign_id}")
    return runtime.sessions.resolve(sid)


@pytest.fixture
def seat(runtime):
    """``await seat(sid, role)`` puts a crew member on a bridge."""

    async def _do(sid: str, role: Optional[str] = None, **kwargs):
        return await _seat(runtime, sid, role, **kwargs)

    return _do


@pytest.fixture
def seat_gm(runtime):
    async def _do(sid: str = "gm", campaign_id: str = "C1"):
        return await _seat_gm(runtime, sid, campaign_id)

    return _do
