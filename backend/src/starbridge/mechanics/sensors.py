"""Range bands and sensor scan levels."""

from __future__ import annotations

from typing import Optional

RANGE_BANDS = ("adjacent", "close", "short", "medium", "long", "very_long", "distant")

RANGE_DMS = {
    "adjacent": 0,
    "close": 0,
    "short": 1,
    "medium": 0,
    "long": -2,
    "very_long": -4,
    "distant": -6,
}

SCAN_LEVELS = ("none", "passive", "active", "deep")
MAX_SCAN_LEVEL = len(SCAN_LEVELS) - 1

MARKINGS = ("hostile", "friendly", "neutral", "unknown")


def normalize_band(band: str) -> str:
    key = (band or "").strip().lower().replace(" ", "_").replace("-", "_")
    if key not in RANGE_BANDS:
        raise ValueError(f"Unknown range band: {band}")
    return key


def step_range(band: str, direction: int) -> Optional[str]:
    """Band one step closer (-1) or further (+1); None at the edge."""
    index = RANGE_BANDS.index(normalize_band(band)) + direction
    if index < 0 or index >= len(RANGE_BANDS):
        return None
    return RANGE_BANDS[index]


def next_scan_level(level: int) -> int:
    return min(MAX_SCAN_LEVEL, max(0, level) + 1)


def scan_level_name(level: int) -> str:
    return SCAN_LEVELS[max(0, min(MAX_SCAN_LEVEL, level))]


def is_targetable(contact: dict) -> bool:
    # Only an explicit False blocks targeting
    return contact.get("is_targetable") is not False


def visible_contact(contact: dict, is_gm: bool) -> dict:
    """Strip details the crew has not scanned yet."""
    level = int(contact.get("scan_level") or 0)
    view = {
        "id": contact["id"],
        "name": contact["name"] if level >= 1 or is_gm else "Unknown contact",
        "type": contact.get("type") if level >= 1 or is_gm else None,
        "rangeBand": contact.get("range_band"),
        "bearing": contact.get("bearing"),
        "marking": contact.get("marking"),
        "isTargetable": is_targetable(contact),
        "scanLevel": level,
        "scanLevelName": scan_level_name(level),
    }
    if level >= 2 or is_gm:
        view["transponder"] = contact.get("transponder")
        view["health"] = contact.get("health")
        view["maxHealth"] = contact.get("max_health")
    if level >= 3 or is_gm:
        view["notes"] = contact.get("notes")
    return view
