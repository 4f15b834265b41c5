"""
Weapons fire, rules of engagement and the captain's orders.

Dice default to 4s, so a 2D attack totals 8 and hits at medium range, and
a 2D6 pulse laser deals 8 damage.
"""

from dataclasses import replace

import pytest

pytestmark = pytest.mark.asyncio

FIRE = {"turret": 0, "target": "contact-9", "weapon": 0}


@pytest.fixture
def settings(settings):
    return replace(settings, order_log_cap=3)


async def log_types(runtime, sid):
    ack = await runtime.dispatch(sid, "getShipLog", {"limit": 100})
    return [entry["entry_type"] for entry in ack["entries"]]


class TestFire:
    async def test_gunner_fires_under_hold_and_violation_is_logged(self, world, seat, seat_gm, transport):
        await seat("gun", "gunner")
        await seat("cap", "captain")
        await seat_gm()
        world.sessions.bind("gm", ship_id="S1")

        ack = await world.dispatch("gun", "fire", FIRE)

        assert ack["success"] is True
        fired = transport.events_for("cap", "weaponFired")[0]["data"]
        assert fired["hit"] is True
        assert fired["damage"] == 8
        assert fired["targetHealth"] == 22
        assert fired["weaponsFired"] == ["0:0"]
        contact = await world.store.get("contacts", "contact-9")
        assert contact["health"] == 22
        assert transport.recipients("contactDamaged") == {"gun", "cap", "gm"}

        assert "roe_violation" not in await log_types(world, "gun")
        assert "roe_violation" in await log_types(world, "gm")

    async def test_captain_is_bound_by_hold(self, world, seat, transport):
        await seat("cap", "captain")

        ack = await world.dispatch("cap", "fire", FIRE)

        assert ack["success"] is False
        assert "not authorized" in ack["error"]
        assert transport.recipients("weaponFired") == set()

    async def test_captain_may_fire_when_weapons_free(self, world, seat):
        await seat("cap", "captain")
        await world.dispatch("cap", "setWeaponsAuth", {"mode": "free"})

        ack = await world.dispatch("cap", "fire", FIRE)

        assert ack["success"] is True
        assert "roe_violation" not in await log_types(world, "cap")

    async def test_defensive_allows_listed_targets(self, world, seat):
        await seat("cap", "captain")
        await world.dispatch("cap", "setWeaponsAuth", {"mode": "defensive", "targets": ["contact-9"]})

        ack = await world.dispatch("cap", "fire", FIRE)

        assert ack["success"] is True

    async def test_weapon_fires_once_per_round(self, world, seat, transport):
        await seat("gun", "gunner")

        assert (await world.dispatch("gun", "fire", FIRE))["success"] is True
        again = await world.dispatch("gun", "fire", FIRE)
        assert again == {"success": False, "error": "You already fired this round!"}

        await world.dispatch("gun", "endTurn")
        started = transport.events_for("gun", "turnStarted")[0]["data"]
        assert started["round"] == 2
        assert started["weaponsFired"] == []
        assert (await world.dispatch("gun", "fire", FIRE))["success"] is True

    async def test_contact_destroyed_at_zero_health(self, world, seat, transport):
        await world.store.update("contacts", "contact-9", {"health": 5})
        await seat("gun", "gunner")

        await world.dispatch("gun", "fire", FIRE)

        assert await world.store.get("contacts", "contact-9") is None
        assert transport.recipients("contactDestroyed") == {"gun"}
        assert transport.events_for("gun", "weaponFired")[0]["data"]["destroyed"] is True

    async def test_miss_leaves_contact_untouched(self, world, seat, dice, transport):
        await seat("gun", "gunner")
        dice.push(1, 1)

        ack = await world.dispatch("gun", "fire", FIRE)

        assert ack["success"] is True
        assert transport.events_for("gun", "weaponFired")[0]["data"]["hit"] is False
        assert (await world.store.get("contacts", "contact-9"))["health"] == 30

    async def test_unknown_weapon_rejected(self, world, seat):
        await seat("gun", "gunner")

        ack = await world.dispatch("gun", "fire", {**FIRE, "weapon": 5})

        assert ack == {"success": False, "error": "Weapon not found"}

    async def test_pilot_may_not_fire(self, world, seat, transport):
        await seat("pilot1", "pilot")

        ack = await world.dispatch("pilot1", "fire", FIRE)

        assert ack["success"] is False
        assert transport.events_for("pilot1", "error")[0]["data"]["code"] == "forbidden"


class TestOrders:
    async def test_acknowledgement_is_monotonic(self, world, seat, transport):
        await seat("cap", "captain")
        await seat("gun", "gunner")
        issued = await world.dispatch("cap", "issueOrder", {"target": "gunner", "order": "Track the corsair"})
        assert issued["success"] is True
        order_id = transport.events_for("gun", "orderIssued")[0]["data"]["order"]["id"]

        first = await world.dispatch("gun", "acknowledgeOrder", {"orderId": order_id})
        second = await world.dispatch("gun", "acknowledgeOrder", {"orderId": order_id})

        assert first["success"] is True
        assert second["alreadyAcknowledged"] is True
        broadcasts = transport.events_for("cap", "orderAcknowledged")
        assert len(broadcasts) == 1
        assert broadcasts[0]["data"]["order"]["acknowledged"] is True

    async def test_other_station_cannot_acknowledge(self, world, seat, transport):
        await seat("cap", "captain")
        await seat("pilot1", "pilot")
        await world.dispatch("cap", "issueOrder", {"target": "gunner", "order": "Hold fire"})
        order_id = transport.events_for("cap", "orderIssued")[0]["data"]["order"]["id"]

        ack = await world.dispatch("pilot1", "acknowledgeOrder", {"orderId": order_id})

        assert ack == {"success": False, "error": "This order is not addressed to your station"}

    async def test_order_log_is_capped(self, world, seat):
        await seat("cap", "captain")
        for n in range(5):
            await world.dispatch("cap", "issueOrder", {"order": f"Order {n}"})

        orders = (await world.dispatch("cap", "getOrders"))["orders"]

        assert [o["text"] for o in orders] == ["Order 4", "Order 3", "Order 2"]

    async def test_unknown_target_rejected(self, world, seat):
        await seat("cap", "captain")

        ack = await world.dispatch("cap", "issueOrder", {"target": "cook", "order": "Dinner"})

        assert ack["success"] is False
        assert "Unknown order target" in ack["error"]


class TestAlertStatus:
    async def test_normal_maps_to_green(self, world, seat, transport):
        await seat("cap", "captain")
        await world.dispatch("cap", "setAlertStatus", {"status": "red"})

        await world.dispatch("cap", "setAlertStatus", {"status": "NORMAL"})

        changes = [m["data"] for m in transport.events_for("cap", "alertStatusChanged")]
        assert [(c["previousStatus"], c["status"]) for c in changes] == [("green", "red"), ("red", "green")]
        ship = await world.store.get("ships", "S1")
        assert ship["current_state"]["alert_status"] == "green"

    async def test_unknown_status_rejected(self, world, seat):
        await seat("cap", "captain")

        ack = await world.dispatch("cap", "setAlertStatus", {"status": "purple"})

        assert ack["success"] is False
