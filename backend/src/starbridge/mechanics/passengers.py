"""Passenger manifest rules: capacity, morale and panic."""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

PASSENGER_TYPES = ("high", "middle", "low", "working", "refugee")
PASSENGER_STATUSES = ("content", "anxious", "panicking", "injured", "unconscious")
RESTRAINT_TYPES = ("none", "seatbelt", "crash-frame", "low-berth")
DEMAND_TYPES = ("comfort", "safety", "information", "medical")
URGENCIES = ("low", "medium", "high", "critical")
MORALE_EFFECTS = ("combat", "maneuver", "delay", "danger", "success")

DEFAULT_CAPACITY = {"staterooms": 6, "low_berths": 4, "emergency_seats": 12}

# Cabin name prefix -> capacity bucket
CABIN_PREFIXES = (
    ("stateroom", "staterooms"),
    ("low-berth", "low_berths"),
    ("seat", "emergency_seats"),
)

PANIC_BELOW = 25
ANXIOUS_BELOW = 50


def clamp_morale(value: int) -> int:
    return max(0, min(100, int(value)))


def passenger_capacity(ship_data: dict) -> Dict[str, int]:
    capacity = dict(DEFAULT_CAPACITY)
    capacity.update(ship_data.get("passenger_capacity") or {})
    return capacity


def capacity_of(ship: dict) -> Dict[str, int]:
    """Live capacity, falling back to the ship's template."""
    state = ship.get("current_state") or {}
    return dict(state.get("passenger_capacity") or passenger_capacity(ship.get("ship_data") or {}))


def cabin_bucket(cabin: str) -> str:
    for prefix, bucket in CABIN_PREFIXES:
        if cabin and cabin.startswith(prefix):
            return bucket
    return ""


def capacity_usage(capacity: Dict[str, int], passengers: Iterable[dict]) -> Dict[str, Dict[str, int]]:
    usage = {bucket: {"used": 0, "total": int(capacity.get(bucket, 0))} for _, bucket in CABIN_PREFIXES}
    for passenger in passengers:
        bucket = cabin_bucket(passenger.get("cabin") or "")
        if bucket:
            usage[bucket]["used"] += 1
    return usage


def demand_morale_loss(urgency: str) -> int:
    return {"critical": 15, "high": 10}.get(urgency, 5)


def resolve_morale_gain(urgency: str) -> int:
    return 10 if urgency == "critical" else 5


def calm_outcome(status: str, morale: int, success: bool) -> Tuple[str, int]:
    """A successful calming steps panic down one level; failure costs morale."""
    if not success:
        return status, clamp_morale(morale - 5)
    if status == "panicking":
        return "anxious", clamp_morale(morale + 15)
    if status == "anxious":
        return "content", clamp_morale(morale + 10)
    return status, morale


def morale_shift(status: str, morale: int, effect: str, amount: int) -> Tuple[str, int]:
    """Apply a ship-wide event to one passenger.

    Only ``success`` raises morale. Low morale escalates status; rising
    morale never calms anyone by itself.
    """
    sign = 1 if effect == "success" else -1
    morale = clamp_morale(morale + sign * amount)
    if morale < PANIC_BELOW:
        status = "panicking"
    elif morale < ANXIOUS_BELOW and status == "content":
        status = "anxious"
    return status, morale
