"""Weapons fire, turn cycling and rules of engagement.

Gunners may always fire, whatever the captain's weapons authorization; a
shot the authorization did not allow is recorded as an ``roe_violation``
log entry for the GM. A captain firing personally is bound by it.
"""

from __future__ import annotations

import logging
import re

from starbridge.api.schemas.weapons import FirePayload, WeaponsAuthPayload
from starbridge.commands.base import (
    CommandContext,
    CommandResult,
    EmptyPayload,
    Requires,
    command,
)
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError
from starbridge.mechanics.dice import Roller, skill_check
from starbridge.mechanics.sensors import RANGE_DMS, is_targetable, normalize_band
from starbridge.mechanics.ship_state import DEFAULT_WEAPONS_AUTH, find_weapon
from starbridge.mechanics.ship_systems import is_destroyed
from starbridge.security.authorization import ActionKind, CrewRole

logger = logging.getLogger(__name__)

_DAMAGE = re.compile(r"^(\d+)d6$", re.IGNORECASE)


def weapon_key(turret, weapon) -> str:
    return f"{turret}:{weapon}"


def authorized_by_roe(auth: dict, contact: dict) -> bool:
    mode = auth.get("mode", "hold")
    if mode == "free":
        return True
    if mode == "defensive":
        return contact.get("marking") == "hostile" or contact["id"] in (auth.get("targets") or [])
    return False


def roll_damage(roller: Roller, formula: str) -> int:
    match = _DAMAGE.match(formula or "2d6")
    count = int(match.group(1)) if match else 2
    if count == 0:
        return 0
    return roller.roll(count, 6).total


@command(ActionKind.FIRE, FirePayload, subsystem="Weapons", requires=Requires.SHIP)
async def fire(ctx: CommandContext, session: Session, payload: FirePayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]

    if is_destroyed(state.get("systems"), "weapons"):
        raise DomainError("Weapons system is destroyed")
    weapon = find_weapon(ship["ship_data"], payload.turret, payload.weapon)
    if weapon is None:
        raise DomainError("Weapon not found", turret=payload.turret, weapon=payload.weapon)
    contact = await ctx.contact(payload.target, session.campaign_id)
    if not is_targetable(contact):
        raise DomainError(f"{contact['name']} cannot be targeted", contactId=contact["id"])

    key = weapon_key(payload.turret, payload.weapon)
    fired = list(state.get("weapons_fired") or [])
    if key in fired:
        raise DomainError("You already fired this round!", weapon=key)

    auth = state.get("weapons_auth") or DEFAULT_WEAPONS_AUTH
    roe_ok = authorized_by_roe(auth, contact)
    violation = False
    if not roe_ok and not session.is_gm:
        if session.role == CrewRole.GUNNER.value:
            violation = True
        else:
            raise DomainError(f"Weapons {auth.get('mode', 'hold')}: firing on {contact['name']} is not authorized")

    range_band = normalize_band(contact.get("range_band") or "medium")
    check = skill_check(ctx.dice, skill=payload.gunnery_skill, dm=RANGE_DMS[range_band])
    damage = roll_damage(ctx.dice, weapon.get("damage")) if check.success else 0

    fired.append(key)
    state["weapons_fired"] = fired
    ship = await ctx.save_state(ship, state)

    result = CommandResult()
    destroyed = False
    new_health = contact.get("health")
    if check.success and damage > 0 and new_health is not None:
        new_health = max(0, new_health - damage)
        if new_health == 0:
            destroyed = True
            await ctx.store.delete("contacts", contact["id"])
        else:
            await ctx.store.update("contacts", contact["id"], {"health": new_health})

    outcome = f"hit for {damage}" if check.success else "missed"
    await ctx.add_log(ship["id"], session.campaign_id,
                      f"{weapon.get('name', 'Weapon')} fired at {contact['name']}: {outcome}",
                      entry_type="combat", actor=session.actor)
    if violation:
        await ctx.add_log(ship["id"], session.campaign_id,
                          f"ROE violation: gunner fired on {contact['name']} while weapons {auth.get('mode', 'hold')}",
                          entry_type="roe_violation", actor=session.actor)
        logger.warning("[Weapons] ROE violation on ship=%s target=%s", ship["id"], contact["id"])

    result.to_bridge(ship["id"], "weaponFired", {
        "turret": payload.turret,
        "weapon": payload.weapon,
        "weaponName": weapon.get("name"),
        "target": contact["id"],
        "targetName": contact["name"],
        "range": range_band,
        "attack": check.to_dict(),
        "hit": check.success,
        "damage": damage,
        "targetHealth": new_health,
        "destroyed": destroyed,
        "weaponsFired": fired,
        "firedBy": session.actor,
    })
    if destroyed:
        result.to_campaign(session.campaign_id, "contactDestroyed", {"contactId": contact["id"], "name": contact["name"]})
    elif check.success and contact.get("health") is not None:
        result.to_campaign(session.campaign_id, "contactDamaged", {"contactId": contact["id"], "health": new_health})
    logger.info("[Weapons] ship=%s %s -> %s: %s", ship["id"], key, contact["id"], outcome)
    return result


@command(ActionKind.END_TURN, subsystem="Combat", requires=Requires.SHIP)
async def end_turn(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    state["weapons_fired"] = []
    state["combat_round"] = int(state.get("combat_round") or 1) + 1
    ship = await ctx.save_state(ship, state)

    await ctx.add_log(ship["id"], session.campaign_id, f"Round {state['combat_round']} begins",
                      entry_type="combat", actor=session.actor)
    return CommandResult().to_bridge(ship["id"], "turnStarted", {
        "round": state["combat_round"],
        "weaponsFired": [],
        "endedBy": session.actor,
    })


@command(ActionKind.SET_WEAPONS_AUTH, WeaponsAuthPayload, subsystem="Weapons", requires=Requires.SHIP)
async def set_weapons_auth(ctx: CommandContext, session: Session, payload: WeaponsAuthPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    state["weapons_auth"] = {"mode": payload.mode, "targets": payload.targets}
    ship = await ctx.save_state(ship, state)

    await ctx.add_log(ship["id"], session.campaign_id, f"Weapons authorization: {payload.mode}",
                      entry_type="command", actor=session.actor)
    return CommandResult().to_bridge(ship["id"], "weaponsAuthChanged", {
        "mode": payload.mode,
        "targets": payload.targets,
        "setBy": session.actor,
    })
