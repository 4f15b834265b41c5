"""System damage and repair.

Each location tracks accumulated severity; health drops 25 per severity
point. Health 0 means destroyed, anything under 100 means damaged.
"""

from __future__ import annotations

from typing import Dict, Optional

from starbridge.mechanics.dice import CheckResult, Roller, skill_check

SYSTEM_LOCATIONS = (
    "m_drive",
    "j_drive",
    "power_plant",
    "sensors",
    "weapons",
    "fuel_processor",
    "computer",
    "life_support",
)

HEALTH_PER_SEVERITY = 25
REPAIR_TARGET = 8

OPERATIONAL = "operational"
DAMAGED = "damaged"
DESTROYED = "destroyed"


class SystemDamageError(ValueError):
    pass


def _entry(severity: int) -> dict:
    health = max(0, 100 - HEALTH_PER_SEVERITY * severity)
    if health == 0:
        status = DESTROYED
    elif health < 100:
        status = DAMAGED
    else:
        status = OPERATIONAL
    return {"status": status, "health": health, "severity": severity}


def system_table(systems: Optional[dict]) -> Dict[str, dict]:
    """Full status table, filling unrecorded locations as operational."""
    systems = systems or {}
    return {loc: _entry(int((systems.get(loc) or {}).get("severity", 0))) for loc in SYSTEM_LOCATIONS}


def damaged_systems(systems: Optional[dict]) -> list:
    return [loc for loc, entry in system_table(systems).items() if entry["status"] != OPERATIONAL]


def is_destroyed(systems: Optional[dict], location: str) -> bool:
    return system_table(systems)[location]["status"] == DESTROYED


def apply_damage(systems: Optional[dict], location: str, severity: int) -> Dict[str, dict]:
    if location not in SYSTEM_LOCATIONS:
        raise SystemDamageError(f"Unknown system: {location}")
    if severity < 1:
        raise SystemDamageError("Severity must be at least 1")
    table = system_table(systems)
    table[location] = _entry(table[location]["severity"] + severity)
    return table


def repair(systems: Optional[dict], location: str, roller: Roller, skill: int = 0):
    """Engineer check at DM -severity; success removes one severity point.

    Returns ``(table, check)``; ``check`` is None when nothing needed repair.
    """
    if location not in SYSTEM_LOCATIONS:
        raise SystemDamageError(f"Unknown system: {location}")
    table = system_table(systems)
    severity = table[location]["severity"]
    if severity == 0:
        return table, None
    check: CheckResult = skill_check(roller, skill=skill, dm=-severity, target=REPAIR_TARGET)
    if check.success:
        table[location] = _entry(severity - 1)
    return table, check


def clear_damage(systems: Optional[dict], location: str) -> Dict[str, dict]:
    table = system_table(systems)
    if location == "all":
        return system_table({})
    if location not in SYSTEM_LOCATIONS:
        raise SystemDamageError(f"Unknown system: {location}")
    table[location] = _entry(0)
    return table
