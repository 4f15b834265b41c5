"""Ship templates and the initial live state derived from them."""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from starbridge.mechanics.passengers import passenger_capacity
from starbridge.mechanics.power import DEFAULT_ALLOCATION
from starbridge.mechanics.ship_systems import system_table

ALERT_STATUSES = ("green", "yellow", "red")
ALERT_ALIASES = {"normal": "green"}

WEAPONS_AUTH_MODES = ("free", "hold", "defensive")
DEFAULT_WEAPONS_AUTH = {"mode": "hold", "targets": []}

SHIP_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "scout": {
        "type": "Type-S Scout/Courier",
        "tonnage": 100,
        "hull_max": 40,
        "armor": 4,
        "fuel_max": 23,
        "jump_rating": 2,
        "thrust": 2,
        "passenger_capacity": {"staterooms": 4, "low_berths": 0, "emergency_seats": 2},
        "turrets": [
            {"id": 0, "name": "Double Turret", "weapons": [
                {"id": 0, "name": "Pulse Laser", "damage": "2d6"},
            ]},
        ],
    },
    "free_trader": {
        "type": "Type-A Free Trader",
        "tonnage": 200,
        "hull_max": 80,
        "armor": 2,
        "fuel_max": 41,
        "jump_rating": 1,
        "thrust": 1,
        "passenger_capacity": {"staterooms": 10, "low_berths": 20, "emergency_seats": 12},
        "turrets": [
            {"id": 0, "name": "Double Turret", "weapons": [
                {"id": 0, "name": "Beam Laser", "damage": "3d6"},
                {"id": 1, "name": "Sandcaster", "damage": "0d6"},
            ]},
        ],
    },
}


def ship_data_for(template_id: Optional[str], overrides: Optional[dict] = None) -> Dict[str, Any]:
    if template_id and template_id not in SHIP_TEMPLATES:
        raise ValueError(f"Unknown ship template: {template_id}")
    data = copy.deepcopy(SHIP_TEMPLATES[template_id or "scout"])
    data.update(overrides or {})
    return data


def initial_state(ship_data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "hull": ship_data.get("hull_max", 0),
        "fuel": {"refined": ship_data.get("fuel_max", 0), "unrefined": 0},
        "fuel_processing": None,
        "power": dict(DEFAULT_ALLOCATION),
        "systems": system_table({}),
        "alert_status": "green",
        "weapons_auth": copy.deepcopy(DEFAULT_WEAPONS_AUTH),
        "weapons_fired": [],
        "combat_round": 1,
        "evasive": False,
        "destination": None,
        "jump": None,
        "passenger_capacity": passenger_capacity(ship_data),
    }


def normalize_alert(status: str) -> str:
    key = (status or "").strip().lower()
    key = ALERT_ALIASES.get(key, key)
    if key not in ALERT_STATUSES:
        raise ValueError(f"Invalid alert status: {status}")
    return key


def find_weapon(ship_data: Dict[str, Any], turret: Any, weapon: Any) -> Optional[Dict[str, Any]]:
    """Locate a weapon by turret/weapon id (or list index)."""
    for t_index, t in enumerate(ship_data.get("turrets") or []):
        if str(t.get("id", t_index)) != str(turret):
            continue
        for w_index, w in enumerate(t.get("weapons") or []):
            if str(w.get("id", w_index)) == str(weapon):
                return w
    return None
