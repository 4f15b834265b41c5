"""Crew injury rules: wound penalties, treatment, bleeding and endurance."""

from __future__ import annotations

from typing import Iterable

WOUND_TYPES = ("laceration", "burn", "impact", "internal", "radiation")
SEVERITIES = ("minor", "moderate", "severe", "critical")
LOCATIONS = ("head", "torso", "arm-l", "arm-r", "leg-l", "leg-r")
CONDITION_TYPES = ("fatigue", "altitude_sickness", "drugged", "sedated", "poisoned", "stunned")
CONDITION_SEVERITIES = ("mild", "moderate", "severe")
CONSCIOUSNESS_STATES = ("alert", "dazed", "unconscious", "dead")

DEFAULT_ENDURANCE = 8

# Rounds of treatment needed to close a wound
TREATMENT_TIME = {"minor": 2, "moderate": 4, "severe": 8, "critical": 12}
SEVERITY_DM = {"minor": -1, "moderate": -2, "severe": -3, "critical": -4}
CONDITION_DM = {"mild": -1, "moderate": -2, "severe": -3}


def total_dm(wounds: Iterable[dict], conditions: Iterable[dict]) -> int:
    """Untreated wounds and every active condition stack."""
    dm = sum(w["dm_penalty"] for w in wounds if not w["treated"])
    return dm + sum(c["dm_penalty"] for c in conditions)


def new_wound(severity: str, bleed_rate: int = 0) -> dict:
    return {
        "severity": severity,
        "dm_penalty": SEVERITY_DM[severity],
        "required_time": TREATMENT_TIME[severity],
        "bleed_rate": max(0, bleed_rate),
        "treatment_time": 0,
        "treated": False,
    }


def treat(wound: dict, rounds: int) -> dict:
    """Changes after ``rounds`` more rounds of treatment; a treated wound stops bleeding."""
    time = wound["treatment_time"] + max(0, rounds)
    treated = time >= wound["required_time"]
    return {
        "treatment_time": time,
        "treated": treated,
        "bleed_rate": 0 if treated else wound["bleed_rate"],
    }


def bleed_damage(wounds: Iterable[dict]) -> int:
    return sum(w["bleed_rate"] for w in wounds if w["bleed_rate"] > 0 and not w["treated"])


def after_damage(health: dict, damage: int) -> dict:
    """Endurance at zero knocks a living character unconscious."""
    endurance = max(0, health["current_endurance"] - max(0, damage))
    consciousness = health["consciousness"]
    if endurance == 0 and consciousness != "dead":
        consciousness = "unconscious"
    return {"current_endurance": endurance, "consciousness": consciousness}


def after_healing(health: dict, amount: int) -> dict:
    endurance = min(health["max_endurance"], health["current_endurance"] + max(0, amount))
    return {"current_endurance": endurance}


def is_injured(view: dict) -> bool:
    return bool(view["wounds"] or view["conditions"] or view["currentEndurance"] < view["maxEndurance"])
