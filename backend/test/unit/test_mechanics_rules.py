"""
Unit tests for the pure game rules in starbridge.mechanics.

Covers Imperial date math, fuel capacity/jump/processing arithmetic, power
validation, range bands and scan levels, and system damage.
"""

import pytest

from starbridge.mechanics import fuel, power, sensors, ship_systems
from starbridge.mechanics.dice import DiceRoller, RollResult, skill_check
from starbridge.mechanics.imperial_date import (
    InvalidDateError,
    advance_date,
    hours_between,
    parse_date,
)
from starbridge.mechanics.ship_state import find_weapon, normalize_alert, ship_data_for


class StubDice:
    def __init__(self, *faces):
        self.faces = list(faces)

    def roll(self, count, sides):
        dice = [self.faces.pop(0) for _ in range(count)]
        return RollResult(dice=dice, total=sum(dice))


class TestImperialDate:
    def test_advance_rolls_over_year_end(self):
        assert advance_date("1105-365 23:00", hours=2) == "1106-001 01:00"

    def test_advance_minutes_carry_into_hours(self):
        assert advance_date("1105-001 00:50", minutes=25) == "1105-001 01:15"

    def test_date_without_time_parses_as_midnight(self):
        assert str(parse_date("1105-042")) == "1105-042 00:00"

    @pytest.mark.parametrize("value", ["1105-000", "1105-366", "1105-001 24:00", "garbage", ""])
    def test_invalid_dates_rejected(self, value):
        with pytest.raises(InvalidDateError):
            parse_date(value)

    def test_hours_between_spans_days(self):
        assert hours_between("1105-001 00:00", "1105-008 00:00") == 168


class TestFuelRules:
    def test_fuel_per_parsec_rounds_up(self):
        assert fuel.fuel_per_parsec(100) == 10
        assert fuel.fuel_per_parsec(101) == 11
        assert fuel.fuel_per_parsec(100, carried_tonnage=30) == 13

    def test_jump_plan_prefers_refined(self):
        plan = fuel.plan_jump_fuel({"fuel": {"refined": 15, "unrefined": 10}}, 20)
        assert (plan.refined_used, plan.unrefined_used) == (15, 5)
        assert plan.sufficient
        assert plan.misjump_dm == fuel.UNREFINED_MISJUMP_DM

    def test_jump_plan_refined_only_has_no_penalty(self):
        plan = fuel.plan_jump_fuel({"fuel": {"refined": 40, "unrefined": 10}}, 20)
        assert plan.misjump_dm == 0
        assert plan.warning is None

    def test_jump_plan_reports_shortfall(self):
        plan = fuel.plan_jump_fuel({"fuel": {"refined": 5, "unrefined": 5}}, 20)
        assert not plan.sufficient
        assert "need 20" in plan.warning

    def test_free_capacity_never_negative(self):
        assert fuel.free_capacity({"fuel": {"refined": 50, "unrefined": 0}}, 40) == 0

    def test_processing_conserves_total(self):
        state = {
            "fuel": {"refined": 10, "unrefined": 12},
            "fuel_processing": {"tons": 12, "processed": 0, "rate": 1},
        }
        step = fuel.process_fuel(state, elapsed_hours=5.5)
        assert step.processed == 5
        assert step.fuel == {"refined": 15, "unrefined": 7}
        assert sum(step.fuel.values()) == 22
        assert not step.complete

    def test_processing_resumes_from_previous_progress(self):
        state = {
            "fuel": {"refined": 15, "unrefined": 7},
            "fuel_processing": {"tons": 12, "processed": 5, "rate": 1},
        }
        step = fuel.process_fuel(state, elapsed_hours=30)
        assert step.complete
        assert step.fuel == {"refined": 22, "unrefined": 0}

    def test_processing_shrinks_when_reserved_fuel_is_drawn_off(self):
        # 30 tons reserved, 20 of them later burned by a jump
        state = {
            "fuel": {"refined": 0, "unrefined": 10},
            "fuel_processing": {"tons": 30, "processed": 0, "rate": 1},
        }
        step = fuel.process_fuel(state, elapsed_hours=500)
        assert step.target == 10
        assert step.processed == 10
        assert step.remaining == 0
        assert step.complete
        assert step.fuel == {"refined": 10, "unrefined": 0}

    def test_processing_with_nothing_left_completes_without_converting(self):
        state = {
            "fuel": {"refined": 8, "unrefined": 0},
            "fuel_processing": {"tons": 12, "processed": 8, "rate": 1},
        }
        step = fuel.process_fuel(state, elapsed_hours=9)
        assert step.complete
        assert step.processed == 8
        assert step.fuel == {"refined": 8, "unrefined": 0}


class TestPowerRules:
    def test_valid_vector_is_cleaned(self):
        assert power.validate_allocations({"weapons": 80, "sensors": 40.0}) == {"weapons": 80, "sensors": 40}

    @pytest.mark.parametrize("allocations", [
        {"warp_core": 50},
        {"weapons": 101},
        {"weapons": -1},
        {"weapons": "high"},
        {"weapons": True},
        {},
    ])
    def test_invalid_vectors_rejected(self, allocations):
        with pytest.raises(power.PowerAllocationError):
            power.validate_allocations(allocations)

    def test_presets_cover_every_subsystem(self):
        for preset in power.POWER_PRESETS.values():
            assert set(preset) == set(power.SUBSYSTEMS)


class TestSensorRules:
    def test_step_range_moves_one_band(self):
        assert sensors.step_range("medium", -1) == "short"
        assert sensors.step_range("medium", 1) == "long"

    def test_step_range_stops_at_edges(self):
        assert sensors.step_range("adjacent", -1) is None
        assert sensors.step_range("distant", 1) is None

    def test_scan_level_caps_at_deep(self):
        assert sensors.next_scan_level(sensors.MAX_SCAN_LEVEL) == sensors.MAX_SCAN_LEVEL
        assert sensors.scan_level_name(3) == "deep"

    @pytest.mark.parametrize("flag, expected", [(None, True), (True, True), (False, False)])
    def test_targetable_unless_explicitly_false(self, flag, expected):
        assert sensors.is_targetable({"is_targetable": flag}) is expected

    def test_unscanned_contact_hides_identity_from_crew(self):
        contact = {"id": "c", "name": "Corsair", "type": "ship", "scan_level": 0, "notes": "pirate"}
        crew_view = sensors.visible_contact(contact, is_gm=False)
        assert crew_view["name"] == "Unknown contact"
        assert "notes" not in crew_view
        assert sensors.visible_contact(contact, is_gm=True)["notes"] == "pirate"


class TestShipSystems:
    def test_damage_accumulates_to_destroyed(self):
        table = ship_systems.apply_damage({}, "sensors", 2)
        assert table["sensors"] == {"status": "damaged", "health": 50, "severity": 2}
        table = ship_systems.apply_damage(table, "sensors", 2)
        assert table["sensors"]["status"] == "destroyed"
        assert ship_systems.is_destroyed(table, "sensors")

    def test_repair_success_removes_one_severity(self):
        table = ship_systems.apply_damage({}, "m_drive", 2)
        # 6 + 5 + skill 1 - severity 2 = 10 >= 8
        table, check = ship_systems.repair(table, "m_drive", StubDice(6, 5), skill=1)
        assert check.success
        assert table["m_drive"]["severity"] == 1

    def test_repair_of_intact_system_needs_no_check(self):
        table, check = ship_systems.repair({}, "computer", StubDice())
        assert check is None
        assert table["computer"]["status"] == "operational"

    def test_unknown_location_rejected(self):
        with pytest.raises(ship_systems.SystemDamageError):
            ship_systems.apply_damage({}, "holodeck", 1)


class TestShipStateHelpers:
    def test_normal_alert_is_green(self):
        assert normalize_alert("NORMAL") == "green"
        with pytest.raises(ValueError):
            normalize_alert("purple")

    def test_find_weapon_accepts_string_ids(self):
        data = ship_data_for("free_trader")
        assert find_weapon(data, "0", "1")["name"] == "Sandcaster"
        assert find_weapon(data, 1, 0) is None


class TestDice:
    def test_seeded_roller_is_repeatable(self):
        assert DiceRoller(seed=7).roll(2, 6) == DiceRoller(seed=7).roll(2, 6)

    def test_skill_check_effect(self):
        check = skill_check(StubDice(3, 3), skill=1, dm=-2)
        assert check.total == 5
        assert not check.success
        assert check.effect == -3
