"""
StateStore batch updates against the in-memory database.

Tests:
1. update_many applies every change and returns records in order
2. A missing record rolls the whole batch back
"""

import pytest

pytestmark = pytest.mark.asyncio


class TestUpdateMany:
    async def test_applies_all_changes_in_order(self, world):
        ship = await world.store.get("ships", "S1")
        state = ship["current_state"]
        state["fuel"] = {"refined": 25, "unrefined": 0}

        results = await world.store.update_many([
            ("ships", "S1", {"current_state": state}),
            ("fuel_sources", "station-1", {"available_tons": 95}),
        ])

        assert [r["id"] for r in results] == ["S1", "station-1"]
        assert results[0]["current_state"]["fuel"] == {"refined": 25, "unrefined": 0}
        source = await world.store.get("fuel_sources", "station-1")
        assert source["available_tons"] == 95

    async def test_missing_record_leaves_earlier_updates_unapplied(self, world):
        ship = await world.store.get("ships", "S1")
        state = ship["current_state"]
        state["fuel"] = {"refined": 40, "unrefined": 0}

        results = await world.store.update_many([
            ("ships", "S1", {"current_state": state}),
            ("fuel_sources", "gone", {"available_tons": 0}),
        ])

        assert results is None
        ship = await world.store.get("ships", "S1")
        assert ship["current_state"]["fuel"] == {"refined": 20, "unrefined": 0}

    async def test_protected_columns_are_ignored(self, world):
        results = await world.store.update_many([("contacts", "contact-9", {"id": "other", "health": 12})])

        assert results[0]["id"] == "contact-9"
        assert results[0]["health"] == 12
        assert await world.store.get("contacts", "other") is None
