"""Dice rolling for Traveller-style 2D6 checks.

The command layer treats dice as a collaborator: anything with ``roll(count,
sides)`` works, so tests can inject fixed results.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

DEFAULT_TARGET = 8


@dataclass
class RollResult:
    dice: List[int]
    total: int


@dataclass
class CheckResult:
    """Outcome of ``2D6 + skill + dm >= target``."""

    roll: RollResult
    skill: int
    dm: int
    target: int
    total: int
    success: bool
    effect: int
    modifiers: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "dice": self.roll.dice,
            "roll": self.roll.total,
            "skill": self.skill,
            "dm": self.dm,
            "target": self.target,
            "total": self.total,
            "success": self.success,
            "effect": self.effect,
        }


class Roller(Protocol):
    def roll(self, count: int, sides: int) -> RollResult: ...


class DiceRoller:
    """Seedable roller; the same seed always yields the same sequence."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def roll(self, count: int, sides: int) -> RollResult:
        if count < 1 or sides < 2:
            raise ValueError(f"Invalid dice: {count}d{sides}")
        dice = [self._rng.randint(1, sides) for _ in range(count)]
        return RollResult(dice=dice, total=sum(dice))


def skill_check(
    roller: Roller,
    skill: int = 0,
    dm: int = 0,
    target: int = DEFAULT_TARGET,
) -> CheckResult:
    roll = roller.roll(2, 6)
    total = roll.total + skill + dm
    return CheckResult(
        roll=roll,
        skill=skill,
        dm=dm,
        target=target,
        total=total,
        success=total >= target,
        effect=total - target,
    )
