"""
Fuel operations through the full dispatch pipeline.

Tests:
1. Refuel beyond free capacity is refused and leaves fuel untouched
2. A valid refuel updates fuel and reaches only the ship's bridge
3. Fuel processing conserves total fuel and completes on the game clock
4. A jump or refuel in the middle of processing never strands the job
"""

import pytest

pytestmark = pytest.mark.asyncio


async def fuel_of(runtime, ship_id="S1"):
    ship = await runtime.store.get("ships", ship_id)
    return ship["current_state"]["fuel"]


async def set_fuel(runtime, refined, unrefined, ship_id="S1"):
    ship = await runtime.store.get("ships", ship_id)
    state = ship["current_state"]
    state["fuel"] = {"refined": refined, "unrefined": unrefined}
    await runtime.store.update("ships", ship_id, {"current_state": state})


class TestRefuel:
    async def test_refuel_over_capacity_is_denied(self, world, seat, transport):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "refuel", {"sourceId": "station-1", "tons": 25})

        assert ack["success"] is False
        assert "20 tons free" in ack["error"]
        errors = transport.events_for("eng", "error")
        assert len(errors) == 1
        assert errors[0]["data"]["code"] == "precondition"
        assert errors[0]["data"]["free"] == 20
        assert await fuel_of(world) == {"refined": 20, "unrefined": 0}
        source = await world.store.get("fuel_sources", "station-1")
        assert source["available_tons"] == 100

    async def test_refuel_updates_fuel_and_notifies_own_bridge_only(self, world, seat, transport):
        await seat("eng", "engineer")
        await seat("pilot1", "pilot")
        await seat("trader", "pilot", ship_id="S2")

        ack = await world.dispatch("eng", "refuel", {"sourceId": "station-1", "tons": 15})

        assert ack["success"] is True
        assert await fuel_of(world) == {"refined": 35, "unrefined": 0}
        assert transport.recipients("refueled") == {"eng", "pilot1"}
        refueled = transport.events_for("pilot1", "refueled")[0]["data"]
        assert refueled["fuelStatus"]["refined"] == 35
        assert refueled["cost"] == 7500.0
        source = await world.store.get("fuel_sources", "station-1")
        assert source["available_tons"] == 85

    async def test_fill_available_clamps_to_free_capacity(self, world, seat):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "refuel", {"sourceId": "station-1", "tons": 25, "fillAvailable": True})

        assert ack["success"] is True
        assert await fuel_of(world) == {"refined": 40, "unrefined": 0}

    async def test_source_shortage_reported_before_capacity(self, world, seat):
        await world.store.update("fuel_sources", "station-1", {"available_tons": 5})
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "refuel", {"sourceId": "station-1", "tons": 10})

        assert ack["success"] is False
        assert "only has 5 tons" in ack["error"]

    async def test_gunner_may_not_refuel(self, world, seat, transport):
        await seat("gun", "gunner")

        ack = await world.dispatch("gun", "refuel", {"sourceId": "station-1", "tons": 5})

        assert ack == {"success": False, "error": "Only engineer or pilot can manage refueling"}
        assert transport.events_for("gun", "error")[0]["data"]["code"] == "forbidden"

    async def test_zero_tons_is_an_invalid_payload(self, world, seat, transport):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "refuel", {"sourceId": "station-1", "tons": 0})

        assert ack["success"] is False
        assert ack["error"].startswith("Invalid payload")
        assert transport.events_for("eng", "error")[0]["data"]["code"] == "invalid_payload"

    async def test_can_refuel_answers_without_changing_state(self, world, seat):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "canRefuel", {"sourceId": "station-1", "tons": 25})

        assert ack["success"] is True
        assert ack["canRefuel"] is False
        assert ack["free"] == 20
        assert await fuel_of(world) == {"refined": 20, "unrefined": 0}

    async def test_refuel_commits_ship_and_source_together(self, world, seat, monkeypatch):
        await seat("eng", "engineer")
        original_update = world.store.update

        async def no_separate_writes(table, record_id, changes):
            assert table not in ("ships", "fuel_sources"), f"separate commit to {table}"
            return await original_update(table, record_id, changes)

        monkeypatch.setattr(world.store, "update", no_separate_writes)

        ack = await world.dispatch("eng", "refuel", {"sourceId": "station-1", "tons": 10})

        assert ack["success"] is True
        assert await fuel_of(world) == {"refined": 30, "unrefined": 0}
        source = await world.store.get("fuel_sources", "station-1")
        assert source["available_tons"] == 90


class TestFuelProcessing:
    async def test_processing_converts_over_game_time(self, world, seat, seat_gm, transport):
        ship = await world.store.get("ships", "S1")
        state = ship["current_state"]
        state["fuel"] = {"refined": 10, "unrefined": 12}
        await world.store.update("ships", "S1", {"current_state": state})
        await seat("eng", "engineer")
        await seat_gm()

        started = await world.dispatch("eng", "startFuelProcessing", {"tons": "all"})
        assert started["success"] is True
        assert transport.recipients("fuelProcessingStarted") == {"eng"}

        await world.dispatch("gm", "advanceTime", {"hours": 5})
        partial = await world.dispatch("eng", "checkFuelProcessing")
        assert partial["processed"] == 5
        assert partial["completed"] is False
        assert await fuel_of(world) == {"refined": 15, "unrefined": 7}

        await world.dispatch("gm", "advanceTime", {"hours": 10})
        done = await world.dispatch("eng", "checkFuelProcessing")
        assert done["completed"] is True
        assert await fuel_of(world) == {"refined": 22, "unrefined": 0}
        assert transport.recipients("fuelProcessingCompleted") == {"eng"}
        ship = await world.store.get("ships", "S1")
        assert ship["current_state"]["fuel_processing"] is None

    async def test_cannot_process_more_than_aboard(self, world, seat):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "startFuelProcessing", {"tons": 5})

        assert ack["success"] is False
        assert "unrefined" in ack["error"]

    async def test_destroyed_processor_blocks_processing(self, world, seat, seat_gm):
        ship = await world.store.get("ships", "S1")
        state = ship["current_state"]
        state["fuel"] = {"refined": 10, "unrefined": 10}
        await world.store.update("ships", "S1", {"current_state": state})
        await seat("eng", "engineer")
        await seat_gm()

        await world.dispatch("gm", "applySystemDamage", {"location": "fuel_processor", "severity": 4, "shipId": "S1"})
        ack = await world.dispatch("eng", "startFuelProcessing", {"tons": 10})

        assert ack == {"success": False, "error": "Fuel processor is destroyed"}

    async def test_all_with_no_unrefined_aboard_is_refused(self, world, seat):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "startFuelProcessing", {"tons": "all"})

        assert ack == {"success": False, "error": "No unrefined fuel to process"}
        ship = await world.store.get("ships", "S1")
        assert ship["current_state"].get("fuel_processing") is None

    async def test_jump_drawing_reserved_fuel_shrinks_the_job(self, world, seat, seat_gm):
        await set_fuel(world, refined=0, unrefined=30)
        await seat("eng", "engineer")
        await seat("pilot1", "pilot")
        await seat_gm()

        started = await world.dispatch("eng", "startFuelProcessing", {"tons": 30})
        assert started["success"] is True
        jumped = await world.dispatch("pilot1", "initiateJump", {"destination": "Regina", "distance": 2})
        assert jumped["success"] is True
        assert await fuel_of(world) == {"refined": 0, "unrefined": 10}

        await world.dispatch("gm", "advanceTime", {"hours": 500})
        done = await world.dispatch("eng", "checkFuelProcessing")

        assert done["completed"] is True
        assert done["tons"] == 10
        assert done["processed"] == 10
        assert await fuel_of(world) == {"refined": 10, "unrefined": 0}

        # The processor is free for the next load
        await set_fuel(world, refined=10, unrefined=5)
        again = await world.dispatch("eng", "startFuelProcessing", {"tons": "all"})
        assert again["success"] is True
        ship = await world.store.get("ships", "S1")
        assert ship["current_state"]["fuel_processing"]["tons"] == 5

    async def test_unrefined_refuel_mid_job_keeps_original_target(self, world, seat, seat_gm):
        await world.store.insert("fuel_sources", {
            "id": "gas-giant", "campaign_id": "C1", "name": "Skim", "fuel_type": "unrefined",
            "available_tons": None, "price_per_ton": 0.0,
        })
        await set_fuel(world, refined=10, unrefined=20)
        await seat("eng", "engineer")
        await seat_gm()

        await world.dispatch("eng", "startFuelProcessing", {"tons": 20})
        await world.dispatch("gm", "advanceTime", {"hours": 5})
        partial = await world.dispatch("eng", "checkFuelProcessing")
        assert partial["processed"] == 5
        assert await fuel_of(world) == {"refined": 15, "unrefined": 15}

        refueled = await world.dispatch("eng", "refuel", {"sourceId": "gas-giant", "tons": 5})
        assert refueled["success"] is True
        assert await fuel_of(world) == {"refined": 15, "unrefined": 20}

        await world.dispatch("gm", "advanceTime", {"hours": 100})
        done = await world.dispatch("eng", "checkFuelProcessing")

        assert done["completed"] is True
        assert done["tons"] == 20
        # Only the refuel added fuel; the freshly skimmed 5 tons stay unrefined
        assert await fuel_of(world) == {"refined": 30, "unrefined": 5}

    async def test_total_fuel_is_conserved_across_checks(self, world, seat, seat_gm):
        await set_fuel(world, refined=10, unrefined=12)
        await seat("eng", "engineer")
        await seat_gm()
        await world.dispatch("eng", "startFuelProcessing", {"tons": "all"})

        for hours in (1, 3, 2, 4, 7):
            await world.dispatch("gm", "advanceTime", {"hours": hours})
            status = await world.dispatch("eng", "checkFuelProcessing")
            fuel = await fuel_of(world)
            assert fuel["refined"] + fuel["unrefined"] == 22
            assert status["processed"] == fuel["refined"] - 10

        assert status["completed"] is True
        assert await fuel_of(world) == {"refined": 22, "unrefined": 0}


class TestJumpFuel:
    async def test_penalties_report_unrefined_draw(self, world, seat):
        ship = await world.store.get("ships", "S1")
        state = ship["current_state"]
        state["fuel"] = {"refined": 15, "unrefined": 10}
        await world.store.update("ships", "S1", {"current_state": state})
        await seat("astro", "astrogator")

        ack = await world.dispatch("astro", "getJumpFuelPenalties", {"fuelNeeded": 20})

        assert ack["refinedUsed"] == 15
        assert ack["unrefinedUsed"] == 5
        assert ack["misjumpDM"] == -2
        assert ack["fuelPerParsec"] == 10

    async def test_jump_consumes_fuel_and_completes_after_a_week(self, world, seat, seat_gm, transport):
        await seat("astro", "astrogator")
        await seat_gm()

        ack = await world.dispatch("astro", "initiateJump", {"destination": "Regina", "distance": 2})
        assert ack["success"] is True
        assert await fuel_of(world) == {"refined": 0, "unrefined": 0}

        early = await world.dispatch("astro", "completeJump")
        assert early["success"] is False

        await world.dispatch("gm", "advanceTime", {"hours": 168})
        arrived = await world.dispatch("astro", "completeJump")
        assert arrived["success"] is True
        campaign = await world.store.get("campaigns", "C1")
        assert campaign["current_system"] == "Regina"
        assert "gm" in transport.recipients("jumpCompleted")

    async def test_jump_beyond_rating_refused(self, world, seat):
        await seat("astro", "astrogator")

        ack = await world.dispatch("astro", "initiateJump", {"destination": "Far", "distance": 3})

        assert ack["success"] is False
        assert "jump rating" in ack["error"]
