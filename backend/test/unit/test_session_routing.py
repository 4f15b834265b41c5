"""
Unit tests for connection identity, topic membership and scoped fan-out.
"""

import pytest

from starbridge.connection.room_router import RoomRouter, bridge_topic, campaign_topic
from starbridge.connection.session_registry import SessionRegistry
from starbridge.connection.socketio_broadcaster import BroadcastDispatcher
from starbridge.errors import DomainError, IdentityError


class RecordingTransport:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def emit(self, event, data=None, to=None, namespace=None, **kwargs):
        if to in self.fail_for:
            raise ConnectionError("gone")
        self.sent.append((event, to, data))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def router():
    return RoomRouter()


class TestSessionRegistry:
    def test_bind_merges_partial_identity(self, registry):
        registry.bind("a", campaign_id="C1")
        registry.bind("a", ship_id="S1", role=None)
        session = registry.bind("a", role="pilot")
        assert (session.campaign_id, session.ship_id, session.role) == ("C1", "S1", "pilot")

    def test_role_without_ship_is_rejected(self, registry):
        registry.bind("a", campaign_id="C1")
        with pytest.raises(IdentityError, match="Must select a ship"):
            registry.bind("a", role="pilot")

    def test_unknown_field_is_a_programming_error(self, registry):
        with pytest.raises(TypeError):
            registry.bind("a", rank="admiral")

    @pytest.mark.parametrize("flags, message", [
        ({"campaign": True}, "Not in a campaign"),
        ({"ship": True}, "Not in a campaign"),
        ({"role": True}, "Not in a campaign"),
    ])
    def test_require_names_missing_step(self, registry, flags, message):
        registry.bind("a")
        with pytest.raises(IdentityError, match=message):
            registry.require("a", **flags)

    def test_require_unknown_sid(self, registry):
        with pytest.raises(IdentityError, match="Not connected"):
            registry.require("ghost")

    def test_gm_needs_no_role(self, registry):
        registry.claim_gm("g", "C1")
        registry.bind("g", ship_id="S1")
        assert registry.require("g", role=True).is_gm

    def test_second_gm_is_refused(self, registry):
        registry.claim_gm("g1", "C1")
        with pytest.raises(DomainError, match="already has a GM"):
            registry.claim_gm("g2", "C1")

    def test_gm_seat_frees_on_release(self, registry):
        registry.claim_gm("g1", "C1")
        registry.release("g1")
        assert registry.claim_gm("g2", "C1").is_gm

    def test_slot_held_by_live_session_is_refused(self, registry):
        registry.bind("a", campaign_id="C1")
        registry.bind("b", campaign_id="C1")
        registry.reserve_slot("a", "slot-1")
        with pytest.raises(DomainError, match="already in use"):
            registry.reserve_slot("b", "slot-1")
        registry.release("a")
        assert registry.reserve_slot("b", "slot-1").account_id == "slot-1"

    def test_role_holder_lookup(self, registry):
        registry.bind("a", campaign_id="C1", ship_id="S1")
        registry.bind("a", role="gunner")
        assert registry.role_holder("S1", "gunner").sid == "a"
        assert registry.role_holder("S2", "gunner") is None


class TestRoomRouter:
    def test_join_is_idempotent(self, router):
        assert router.join("a", campaign_topic("C1"))
        assert not router.join("a", campaign_topic("C1"))
        assert router.members_of("campaign:C1") == {"a"}

    def test_leave_all_empties_topics(self, router):
        router.join("a", campaign_topic("C1"))
        router.join("a", bridge_topic("S1"))
        assert router.leave_all("a") == {"campaign:C1", "bridge:S1"}
        assert router.stats() == {}

    def test_leave_prefix_keeps_named_topic(self, router):
        router.join("a", bridge_topic("S1"))
        router.join("a", bridge_topic("S2"))
        router.leave_prefix("a", "bridge:", keep="bridge:S2")
        assert router.topics_of("a") == {"bridge:S2"}


@pytest.mark.asyncio
class TestBroadcastDispatcher:
    async def test_bridge_broadcast_reaches_only_that_bridge(self, router):
        transport = RecordingTransport()
        router.join("a", bridge_topic("S1"))
        router.join("b", bridge_topic("S2"))
        dispatcher = BroadcastDispatcher(transport, router)

        delivered = await dispatcher.to_bridge("S1", "refueled", {"tons": 15})

        assert delivered == 1
        assert [to for _, to, _ in transport.sent] == ["a"]
        assert "timestamp" in transport.sent[0][2]

    async def test_skip_sid_excludes_sender(self, router):
        transport = RecordingTransport()
        router.join("a", campaign_topic("C1"))
        router.join("b", campaign_topic("C1"))
        dispatcher = BroadcastDispatcher(transport, router)

        await dispatcher.to_campaign("C1", "crewUpdate", {}, skip_sid="a")

        assert [to for _, to, _ in transport.sent] == ["b"]

    async def test_failed_member_does_not_stop_fan_out(self, router):
        transport = RecordingTransport(fail_for={"a"})
        router.join("a", campaign_topic("C1"))
        router.join("b", campaign_topic("C1"))
        dispatcher = BroadcastDispatcher(transport, router)

        delivered = await dispatcher.to_campaign("C1", "timeAdvanced", {})

        assert delivered == 1
        assert [to for _, to, _ in transport.sent] == ["b"]
