"""Damage control: system status, GM damage and engineer repairs."""

from __future__ import annotations

import logging

from starbridge.api.schemas.repairs import ClearDamagePayload, RepairPayload, SystemDamagePayload
from starbridge.commands.base import (
    CommandContext,
    CommandResult,
    EmptyPayload,
    Requires,
    command,
    reply,
)
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError
from starbridge.mechanics import ship_systems
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


@command(ActionKind.GET_SYSTEM_STATUS, subsystem="Repairs", requires=Requires.SHIP)
async def get_system_status(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    systems = ship["current_state"].get("systems")
    return reply("systemStatus", {
        "shipId": ship["id"],
        "systems": ship_systems.system_table(systems),
        "damaged": ship_systems.damaged_systems(systems),
    })


@command(ActionKind.REPAIR_SYSTEM, RepairPayload, subsystem="Repairs", requires=Requires.SHIP)
async def repair_system(ctx: CommandContext, session: Session, payload: RepairPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    try:
        table, check = ship_systems.repair(state.get("systems"), payload.location, ctx.dice, payload.engineer_skill)
    except ship_systems.SystemDamageError as e:
        raise DomainError(str(e)) from None
    if check is None:
        raise DomainError(f"{payload.location} does not need repair")

    state["systems"] = table
    ship = await ctx.save_state(ship, state)
    outcome = "succeeded" if check.success else "failed"
    await ctx.add_log(ship["id"], session.campaign_id, f"Repair of {payload.location} {outcome}",
                      entry_type="repair", actor=session.actor)
    logger.info("[Repairs] %s repair %s on ship=%s", payload.location, outcome, ship["id"])
    return CommandResult().to_bridge(ship["id"], "repairAttempted", {
        "location": payload.location,
        "success": check.success,
        "check": check.to_dict(),
        "system": table[payload.location],
        "repairedBy": session.actor,
    })


@command(ActionKind.APPLY_SYSTEM_DAMAGE, SystemDamagePayload, subsystem="Repairs", requires=Requires.CAMPAIGN)
async def apply_system_damage(ctx: CommandContext, session: Session, payload: SystemDamagePayload) -> CommandResult:
    ship = await ctx.target_ship(session, payload.ship_id)
    state = ship["current_state"]
    try:
        state["systems"] = ship_systems.apply_damage(state.get("systems"), payload.location, payload.severity)
    except ship_systems.SystemDamageError as e:
        raise DomainError(str(e)) from None
    ship = await ctx.save_state(ship, state)

    system = state["systems"][payload.location]
    await ctx.add_log(ship["id"], session.campaign_id,
                      f"{payload.location} damaged (severity {payload.severity}): {system['status']}",
                      entry_type="damage", actor=session.actor)
    logger.info("[Repairs] Damage applied to %s on ship=%s", payload.location, ship["id"])
    event = {"shipId": ship["id"], "location": payload.location, "severity": payload.severity, "system": system}
    return reply("systemDamaged", event).to_bridge(ship["id"], "systemDamaged", event, skip_sid=session.sid)


@command(ActionKind.CLEAR_SYSTEM_DAMAGE, ClearDamagePayload, subsystem="Repairs", requires=Requires.CAMPAIGN)
async def clear_system_damage(ctx: CommandContext, session: Session, payload: ClearDamagePayload) -> CommandResult:
    ship = await ctx.target_ship(session, payload.ship_id)
    state = ship["current_state"]
    try:
        state["systems"] = ship_systems.clear_damage(state.get("systems"), payload.location)
    except ship_systems.SystemDamageError as e:
        raise DomainError(str(e)) from None
    ship = await ctx.save_state(ship, state)

    await ctx.add_log(ship["id"], session.campaign_id, f"Damage cleared: {payload.location}",
                      entry_type="repair", actor=session.actor)
    event = {"shipId": ship["id"], "location": payload.location, "systems": state["systems"]}
    return reply("systemDamageCleared", event).to_bridge(ship["id"], "systemDamageCleared", event, skip_sid=session.sid)
