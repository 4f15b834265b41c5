"""Power allocation per subsystem.

Each allocation is an independent percentage in [0, 100]; they are not
required to sum to anything.
"""

from __future__ import annotations

from typing import Dict, Mapping

SUBSYSTEMS = ("m_drive", "weapons", "sensors", "life_support", "computer")

POWER_PRESETS: Dict[str, Dict[str, int]] = {
    "combat": {"m_drive": 100, "weapons": 100, "sensors": 100, "life_support": 100, "computer": 100},
    "jump": {"m_drive": 50, "weapons": 25, "sensors": 50, "life_support": 100, "computer": 100},
    "silent": {"m_drive": 25, "weapons": 0, "sensors": 25, "life_support": 50, "computer": 50},
    "standard": {"m_drive": 75, "weapons": 50, "sensors": 75, "life_support": 100, "computer": 75},
}

DEFAULT_ALLOCATION = POWER_PRESETS["standard"]


class PowerAllocationError(ValueError):
    pass


def validate_allocations(allocations: Mapping[str, object]) -> Dict[str, int]:
    """Check every entry before any is applied; raise on the first bad one."""
    if not allocations:
        raise PowerAllocationError("No power allocations supplied")
    cleaned: Dict[str, int] = {}
    for subsystem, value in allocations.items():
        if subsystem not in SUBSYSTEMS:
            raise PowerAllocationError(f"Unknown subsystem: {subsystem}")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PowerAllocationError(f"Power for {subsystem} must be a number")
        if not 0 <= value <= 100:
            raise PowerAllocationError(f"Power for {subsystem} must be between 0 and 100")
        cleaned[subsystem] = int(value)
    return cleaned


def merged_allocation(current: Mapping[str, int], changes: Mapping[str, int]) -> Dict[str, int]:
    merged = dict(DEFAULT_ALLOCATION)
    merged.update(current or {})
    merged.update(changes)
    return merged


def power_summary(power: Mapping[str, int]) -> dict:
    values = [int(power.get(s, 0)) for s in SUBSYSTEMS]
    return {
        "allocations": {s: int(power.get(s, 0)) for s in SUBSYSTEMS},
        "averageLoad": round(sum(values) / len(values)),
    }
