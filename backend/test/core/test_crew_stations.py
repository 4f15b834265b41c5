"""
Medic, steward and pilot-time stations through the dispatch pipeline.

Tests:
1. Wounds, bleeding and treatment change a character's endurance and DM
2. The manifest enforces cabin capacity and tracks morale and demands
3. Pilots pass time unless the GM has blocked it
4. Replies are threaded to the transmission they answer
"""

import pytest

pytestmark = pytest.mark.asyncio


async def add_character(runtime, slot_id, name, endurance=None, campaign_id="C1"):
    character = {"name": name}
    if endurance is not None:
        character["endurance"] = endurance
    return await runtime.store.insert("player_slots", {
        "id": slot_id, "campaign_id": campaign_id, "slot_name": slot_id,
        "ship_id": "S1", "character_data": character,
    })


class TestMedic:
    async def test_wound_reaches_whole_campaign(self, world, seat, seat_gm, transport):
        await add_character(world, "ana", "Ana Vell", endurance=9)
        await seat("doc", "medic")
        await seat("trader", "pilot", ship_id="S2")
        await seat_gm()

        ack = await world.dispatch("gm", "addWound", {
            "characterId": "ana", "type": "laceration", "severity": "severe", "bleedRate": 2,
        })

        assert ack["success"] is True
        assert ack["wound"]["dmPenalty"] == -3
        assert ack["health"]["name"] == "Ana Vell"
        assert ack["health"]["totalDM"] == -3
        assert transport.recipients("healthUpdated") == {"doc", "trader", "gm"}

    async def test_bleeding_until_stabilized(self, world, seat, seat_gm, transport):
        await add_character(world, "ana", "Ana Vell", endurance=9)
        await seat("doc", "medic")
        await seat_gm()
        await world.dispatch("gm", "addWound", {"characterId": "ana", "severity": "severe", "bleedRate": 2})

        first = await world.dispatch("gm", "processBleedingRound")
        assert first["affected"][0]["bleedDamage"] == 2
        assert first["affected"][0]["health"]["currentEndurance"] == 7
        assert transport.recipients("bleedingProcessed") == {"doc", "gm"}

        stabilized = await world.dispatch("doc", "stabilize", {"characterId": "ana"})
        assert stabilized["woundsStabilized"] == 1

        second = await world.dispatch("gm", "processBleedingRound")
        assert second["affected"] == []
        health = await world.dispatch("doc", "getCharacterHealth", {"characterId": "ana"})
        assert health["health"]["currentEndurance"] == 7

    async def test_treatment_accumulates_until_wound_closes(self, world, seat, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await seat("doc", "medic")
        await seat_gm()
        added = await world.dispatch("gm", "addWound", {"characterId": "ana", "severity": "severe"})
        wound_id = added["wound"]["id"]

        partial = await world.dispatch("doc", "treatWound", {"woundId": wound_id, "rounds": 4})
        assert partial["wound"]["treated"] is False
        assert partial["health"]["totalDM"] == -3

        done = await world.dispatch("doc", "treatWound", {"woundId": wound_id, "rounds": 4})
        assert done["wound"]["treated"] is True
        assert done["health"]["totalDM"] == 0

        again = await world.dispatch("doc", "treatWound", {"woundId": wound_id})
        assert again == {"success": False, "error": "Wound is already treated"}

    async def test_critical_wound_dazes_and_damage_knocks_out(self, world, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await seat_gm()

        wounded = await world.dispatch("gm", "addWound", {"characterId": "ana", "severity": "critical"})
        assert wounded["health"]["consciousness"] == "dazed"

        hit = await world.dispatch("gm", "applyCrewDamage", {"characterId": "ana", "damage": 20})
        assert hit["health"]["currentEndurance"] == 0
        assert hit["health"]["consciousness"] == "unconscious"

    async def test_first_aid_stops_at_max_endurance(self, world, seat, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await seat("doc", "medic")
        await seat_gm()
        await world.dispatch("gm", "applyCrewDamage", {"characterId": "ana", "damage": 3})

        healed = await world.dispatch("doc", "firstAid", {"characterId": "ana", "amount": 5})
        assert healed["health"]["currentEndurance"] == 8

        full = await world.dispatch("doc", "firstAid", {"characterId": "ana"})
        assert full == {"success": False, "error": "Ana Vell is already at full endurance"}

    async def test_triage_lists_worst_first(self, world, seat, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await add_character(world, "bo", "Bo Harrow")
        await add_character(world, "cy", "Cy Tan")
        await seat("doc", "medic")
        await seat_gm()
        await world.dispatch("gm", "addWound", {"characterId": "bo", "severity": "minor"})
        await world.dispatch("gm", "addWound", {"characterId": "ana", "severity": "severe"})

        ack = await world.dispatch("doc", "triage")

        assert [v["characterId"] for v in ack["injured"]] == ["ana", "bo"]

    async def test_conditions_stack_and_clear(self, world, seat, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await seat("doc", "medic")
        await seat_gm()

        added = await world.dispatch("gm", "addCondition", {
            "characterId": "ana", "type": "poisoned", "severity": "moderate", "source": "spiked drink",
        })
        assert added["health"]["totalDM"] == -2

        cleared = await world.dispatch("doc", "removeCondition", {"conditionId": added["condition"]["id"]})
        assert cleared["health"]["conditions"] == []
        assert cleared["health"]["totalDM"] == 0

    async def test_only_medic_treats(self, world, seat, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await seat("pilot1", "pilot")
        await seat_gm()
        added = await world.dispatch("gm", "addWound", {"characterId": "ana"})

        ack = await world.dispatch("pilot1", "treatWound", {"woundId": added["wound"]["id"]})

        assert ack == {"success": False, "error": "Only medic can treat wounds"}

    async def test_character_from_other_campaign_is_not_found(self, world, seat):
        await world.store.insert("campaigns", {"id": "C2", "name": "Other", "gm_name": "Someone"})
        await add_character(world, "zed", "Zed", campaign_id="C2")
        await seat("doc", "medic")

        ack = await world.dispatch("doc", "getCharacterHealth", {"characterId": "zed"})

        assert ack == {"success": False, "error": "Character not found"}

    async def test_deleting_the_slot_drops_medical_records(self, world, seat_gm):
        await add_character(world, "ana", "Ana Vell")
        await seat_gm()
        await world.dispatch("gm", "addWound", {"characterId": "ana", "severity": "moderate"})

        ack = await world.dispatch("gm", "deletePlayerSlot", {"slotId": "ana"})

        assert ack["success"] is True
        assert await world.store.count("crew_wounds", character_id="ana") == 0
        assert await world.store.count("crew_health", character_id="ana") == 0


class TestSteward:
    async def test_boarding_updates_manifest_on_own_bridge(self, world, seat, transport):
        await seat("stew", "steward")
        await seat("pilot1", "pilot")
        await seat("trader", "steward", ship_id="S2")

        ack = await world.dispatch("stew", "addPassenger", {"name": "Dr. Okafor", "type": "high", "cabin": "stateroom-1"})

        assert ack["success"] is True
        assert ack["passenger"]["morale"] == 75
        assert transport.recipients("manifestUpdated") == {"stew", "pilot1"}
        manifest = await world.dispatch("stew", "getManifest")
        assert [p["name"] for p in manifest["passengers"]] == ["Dr. Okafor"]
        assert manifest["usage"]["staterooms"] == {"used": 1, "total": 4}

    async def test_cabins_respect_occupancy_and_capacity(self, world, seat, seat_gm):
        await seat("stew", "steward")
        await seat_gm()
        await world.dispatch("stew", "addPassenger", {"name": "First", "cabin": "stateroom-1"})

        taken = await world.dispatch("stew", "addPassenger", {"name": "Second", "cabin": "stateroom-1"})
        assert taken == {"success": False, "error": "Cabin stateroom-1 is occupied"}

        no_berths = await world.dispatch("stew", "addPassenger", {"name": "Sleeper", "type": "low", "cabin": "low-berth-1"})
        assert no_berths == {"success": False, "error": "No low berths available"}

        await world.dispatch("gm", "updatePassengerCapacity", {"shipId": "S1", "lowBerths": 2})
        boarded = await world.dispatch("stew", "addPassenger", {"name": "Sleeper", "type": "low", "cabin": "low-berth-1"})
        assert boarded["success"] is True

    async def test_demand_costs_morale_until_resolved(self, world, seat, seat_gm, transport):
        await seat("stew", "steward")
        await seat_gm()
        added = await world.dispatch("stew", "addPassenger", {"name": "Countess Ylva", "vip": True})
        passenger_id = added["passenger"]["id"]

        demand = await world.dispatch("gm", "addDemand", {
            "passengerId": passenger_id, "type": "safety", "urgency": "critical", "description": "Why are we evading?",
        })
        assert demand["passenger"]["morale"] == 60
        assert transport.recipients("newDemand") == {"stew"}

        resolved = await world.dispatch("stew", "resolveDemand", {"demandId": demand["demand"]["id"]})
        assert resolved["passenger"]["morale"] == 70
        assert resolved["passenger"]["demands"] == []
        stored = await world.store.get("passenger_demands", demand["demand"]["id"])
        assert stored["resolved"] is True

    async def test_calming_steps_panic_down(self, world, seat, dice):
        await seat("stew", "steward")
        added = await world.dispatch("stew", "addPassenger", {"name": "Nervous", "status": "panicking", "morale": 20})
        passenger_id = added["passenger"]["id"]

        dice.push(6, 6)
        calmed = await world.dispatch("stew", "calmPassenger", {"passengerId": passenger_id})
        assert calmed["check"]["success"] is True
        assert calmed["passenger"]["status"] == "anxious"
        assert calmed["passenger"]["morale"] == 35

        dice.push(1, 1)
        failed = await world.dispatch("stew", "calmPassenger", {"passengerId": passenger_id})
        assert failed["passenger"]["status"] == "anxious"
        assert failed["passenger"]["morale"] == 30

    async def test_combat_morale_escalates_status(self, world, seat, seat_gm, transport):
        await seat("stew", "steward")
        await seat_gm()
        await world.dispatch("stew", "addPassenger", {"name": "Calm", "morale": 75})
        await world.dispatch("stew", "addPassenger", {"name": "Edgy", "status": "anxious", "morale": 40})

        ack = await world.dispatch("gm", "applyMoraleEffect", {"shipId": "S1", "effect": "combat", "amount": 30})

        assert ack["affected"] == 2
        assert transport.recipients("moraleChanged") == {"stew"}
        manifest = await world.dispatch("stew", "getManifest")
        by_name = {p["name"]: p for p in manifest["passengers"]}
        assert (by_name["Calm"]["status"], by_name["Calm"]["morale"]) == ("anxious", 45)
        assert (by_name["Edgy"]["status"], by_name["Edgy"]["morale"]) == ("panicking", 10)

    async def test_marines_secure_everyone_not_in_a_berth(self, world, seat, seat_gm, transport):
        await seat("stew", "steward")
        await seat("grunt", "marines")
        await seat_gm()
        await world.dispatch("gm", "updatePassengerCapacity", {"shipId": "S1", "lowBerths": 1})
        await world.dispatch("stew", "addPassenger", {"name": "Walker"})
        frozen = await world.dispatch("stew", "addPassenger", {"name": "Frozen", "type": "low", "cabin": "low-berth-1"})
        await world.dispatch("stew", "setRestraint", {"passengerId": frozen["passenger"]["id"], "restraint": "low-berth"})

        ack = await world.dispatch("grunt", "secureAllPassengers")

        assert ack["secured"] == 1
        assert transport.recipients("emergencySecure") == {"stew", "grunt"}
        manifest = await world.dispatch("stew", "getManifest")
        restraints = {p["name"]: p["restraint"] for p in manifest["passengers"]}
        assert restraints == {"Walker": "crash-frame", "Frozen": "low-berth"}

    async def test_disembarking_drops_open_demands(self, world, seat, seat_gm):
        await seat("stew", "steward")
        await seat_gm()
        added = await world.dispatch("stew", "addPassenger", {"name": "Leaving"})
        passenger_id = added["passenger"]["id"]
        await world.dispatch("gm", "addDemand", {"passengerId": passenger_id})

        ack = await world.dispatch("stew", "removePassenger", {"passengerId": passenger_id})

        assert ack["success"] is True
        assert await world.store.count("passenger_demands", passenger_id=passenger_id) == 0

    async def test_other_ships_passengers_are_out_of_reach(self, world, seat):
        await seat("stew", "steward")
        await seat("trader", "steward", ship_id="S2")
        added = await world.dispatch("stew", "addPassenger", {"name": "Mine"})

        ack = await world.dispatch("trader", "getPassenger", {"passengerId": added["passenger"]["id"]})

        assert ack == {"success": False, "error": "Passenger not found"}


class TestPilotTime:
    async def test_pilot_passes_time_for_the_campaign(self, world, seat, transport):
        await seat("pilot1", "pilot")
        await seat("trader", "pilot", ship_id="S2")

        ack = await world.dispatch("pilot1", "passTime", {"hours": 4, "reason": "Transit to the 100D limit"})

        assert ack["success"] is True
        campaign = await world.store.get("campaigns", "C1")
        assert campaign["current_date"] == "1105-001 04:00"
        advanced = transport.events_for("trader", "timeAdvanced")[0]["data"]
        assert advanced["reason"] == "Transit to the 100D limit"
        assert advanced["hoursAdvanced"] == 4

    async def test_gm_block_stops_pilot_clock(self, world, seat, seat_gm, transport):
        await seat("pilot1", "pilot")
        await seat_gm()

        await world.dispatch("gm", "setTimeBlocked", {"blocked": True})
        assert transport.events_for("pilot1", "timeBlockedChanged")[0]["data"]["blocked"] is True

        ack = await world.dispatch("pilot1", "passTime", {"hours": 4})

        assert ack == {"success": False, "error": "GM has blocked time advancement"}
        campaign = await world.store.get("campaigns", "C1")
        assert campaign["current_date"] == "1105-001 00:00"
        status = await world.dispatch("pilot1", "getPilotStatus")
        assert status["timeBlocked"] is True

    async def test_course_can_be_cleared_once(self, world, seat, transport):
        await seat("pilot1", "pilot")
        await seat("eng", "engineer")
        await world.dispatch("pilot1", "setCourse", {"destination": "Regina highport"})

        status = await world.dispatch("pilot1", "getPilotStatus")
        assert status["destination"]["name"] == "Regina highport"

        cleared = await world.dispatch("pilot1", "clearCourse")
        assert cleared["success"] is True
        assert transport.recipients("courseCleared") == {"pilot1", "eng"}

        again = await world.dispatch("pilot1", "clearCourse")
        assert again == {"success": False, "error": "No course is set"}

    async def test_engineer_may_not_pass_time(self, world, seat):
        await seat("eng", "engineer")

        ack = await world.dispatch("eng", "passTime", {"hours": 1})

        assert ack == {"success": False, "error": "Only pilot can pass time"}


class TestTransmissionReplies:
    async def test_reply_goes_back_to_sender_on_same_channel(self, world, seat, seat_gm, transport):
        await seat("comms1", "comms")
        await seat_gm()
        sent = await world.dispatch("gm", "sendTransmission", {
            "channel": "military", "body": "Identify yourself", "sender": "Regina Navy Picket",
        })
        assert sent["success"] is True
        original = (await world.dispatch("comms1", "getTransmissions"))["transmissions"][0]

        ack = await world.dispatch("comms1", "replyToTransmission", {
            "transmissionId": original["id"], "body": "Far Horizon, scout service",
        })

        assert ack["success"] is True
        reply = transport.events_for("gm", "transmissionReceived")[-1]["data"]["transmission"]
        assert reply["recipient"] == "Regina Navy Picket"
        assert reply["channel"] == "military"
        assert reply["sender"] == "Far Horizon (comms)"
        assert reply["inReplyTo"] == original["id"]
        stored = await world.store.get("transmissions", original["id"])
        assert stored["is_read"] is True

    async def test_reply_to_unknown_transmission(self, world, seat):
        await seat("comms1", "comms")

        ack = await world.dispatch("comms1", "replyToTransmission", {"transmissionId": "nope", "body": "Hello?"})

        assert ack == {"success": False, "error": "Transmission not found"}
