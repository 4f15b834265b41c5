"""Fuel rules: capacity, refuelling, processing, jump consumption."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

JUMP_FUEL_FRACTION = 0.10
UNREFINED_MISJUMP_DM = -2
DEFAULT_PROCESSING_RATE = 1  # tons per in-game hour

FUEL_TYPES = ("refined", "unrefined")

# Offered in every new campaign; available_tons None is unlimited
DEFAULT_FUEL_SOURCES = (
    {"name": "Starport refined fuel", "fuel_type": "refined", "available_tons": None, "price_per_ton": 500.0},
    {"name": "Starport unrefined fuel", "fuel_type": "unrefined", "available_tons": None, "price_per_ton": 100.0},
    {"name": "Gas giant skimming", "fuel_type": "unrefined", "available_tons": None, "price_per_ton": 0.0},
)


def fuel_levels(state: dict) -> dict:
    fuel = state.get("fuel") or {}
    return {
        "refined": int(fuel.get("refined", 0)),
        "unrefined": int(fuel.get("unrefined", 0)),
    }


def total_fuel(state: dict) -> int:
    levels = fuel_levels(state)
    return levels["refined"] + levels["unrefined"]


def free_capacity(state: dict, fuel_max: int) -> int:
    return max(0, fuel_max - total_fuel(state))


def fuel_status(ship: dict) -> dict:
    """Client-facing fuel summary for one ship record."""
    state = ship.get("current_state") or {}
    fuel_max = int((ship.get("ship_data") or {}).get("fuel_max", 0))
    levels = fuel_levels(state)
    total = levels["refined"] + levels["unrefined"]
    return {
        "shipId": ship["id"],
        "refined": levels["refined"],
        "unrefined": levels["unrefined"],
        "total": total,
        "max": fuel_max,
        "free": max(0, fuel_max - total),
        "percent": round(total / fuel_max * 100) if fuel_max else 0,
        "processing": state.get("fuel_processing"),
    }


def effective_tonnage(tonnage: int, carried_tonnage: int = 0) -> int:
    return max(0, tonnage) + max(0, carried_tonnage)


def fuel_per_parsec(tonnage: int, carried_tonnage: int = 0) -> int:
    """Ten percent of effective tonnage, rounded up."""
    return math.ceil(round(effective_tonnage(tonnage, carried_tonnage) * JUMP_FUEL_FRACTION, 6))


def jump_fuel_required(tonnage: int, distance: int, carried_tonnage: int = 0) -> int:
    return fuel_per_parsec(tonnage, carried_tonnage) * max(0, distance)


@dataclass
class JumpFuelPlan:
    needed: int
    refined_used: int
    unrefined_used: int
    sufficient: bool
    misjump_dm: int
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "fuelNeeded": self.needed,
            "refinedUsed": self.refined_used,
            "unrefinedUsed": self.unrefined_used,
            "sufficient": self.sufficient,
            "misjumpDM": self.misjump_dm,
            "warning": self.warning,
        }


def plan_jump_fuel(state: dict, needed: int) -> JumpFuelPlan:
    """Refined fuel is drawn first; any unrefined draw carries a misjump DM."""
    levels = fuel_levels(state)
    refined_used = min(levels["refined"], needed)
    unrefined_used = min(levels["unrefined"], needed - refined_used)
    sufficient = refined_used + unrefined_used >= needed
    misjump_dm = UNREFINED_MISJUMP_DM if unrefined_used > 0 else 0
    warning = None
    if not sufficient:
        warning = f"Insufficient fuel: need {needed} tons, have {levels['refined'] + levels['unrefined']}"
    elif unrefined_used:
        warning = f"Using {unrefined_used} tons of unrefined fuel (DM {UNREFINED_MISJUMP_DM} to jump check)"
    return JumpFuelPlan(needed, refined_used, unrefined_used, sufficient, misjump_dm, warning)


def apply_refuel(state: dict, fuel_type: str, tons: int) -> dict:
    levels = fuel_levels(state)
    levels[fuel_type] += tons
    return levels


@dataclass
class ProcessingStep:
    target: int
    processed: int
    remaining: int
    complete: bool
    fuel: dict


def process_fuel(state: dict, elapsed_hours: float, rate: int = DEFAULT_PROCESSING_RATE) -> ProcessingStep:
    """Convert unrefined fuel to refined for the time elapsed since start.

    Conversion is 1:1, so refined + unrefined is unchanged. Unrefined fuel
    drawn off mid-job (a jump, say) shrinks the job to what is still aboard;
    the job completes once nothing reserved is left to convert.

    Args:
        state: Ship ``current_state`` carrying ``fuel`` and ``fuel_processing``
        elapsed_hours: Game hours since the job started
        rate: Tons per hour, used when the job does not record its own

    Returns:
        ProcessingStep with the new fuel levels and the (possibly reduced) target
    """
    levels = fuel_levels(state)
    job = state.get("fuel_processing") or {}
    already = int(job.get("processed", 0))
    target = min(int(job.get("tons", 0)), already + levels["unrefined"])
    rate = int(job.get("rate", rate))

    by_time = int(math.floor(max(0.0, elapsed_hours) * rate))
    done = max(already, min(target, by_time))
    delta = done - already

    levels["unrefined"] -= delta
    levels["refined"] += delta
    return ProcessingStep(
        target=target,
        processed=done,
        remaining=target - done,
        complete=done >= target,
        fuel=levels,
    )
