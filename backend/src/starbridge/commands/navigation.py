"""Pilot and astrogation: evasive action, range bands, course, transit time and jumps."""

from __future__ import annotations

import logging

from starbridge.api.schemas.navigation import (
    CompleteJumpPayload,
    CoursePayload,
    EvasivePayload,
    JumpPayload,
    PassTimePayload,
    RangePayload,
    TimeBlockPayload,
)
from starbridge.commands.base import CommandContext, CommandResult, EmptyPayload, Requires, command, reply
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError
from starbridge.mechanics import fuel as fuel_rules
from starbridge.mechanics.imperial_date import advance_date, hours_between
from starbridge.mechanics.sensors import normalize_band, step_range
from starbridge.mechanics.ship_systems import is_destroyed
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)

EVASIVE_ATTACK_DM = -2
JUMP_DURATION_HOURS = 168


@command(ActionKind.SET_EVASIVE, EvasivePayload, subsystem="Pilot", requires=Requires.SHIP)
async def set_evasive(ctx: CommandContext, session: Session, payload: EvasivePayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    if payload.enabled and is_destroyed(state.get("systems"), "m_drive"):
        raise DomainError("M-drive is destroyed")
    state["evasive"] = payload.enabled
    ship = await ctx.save_state(ship, state)

    message = "Evasive maneuvers initiated" if payload.enabled else "Evasive maneuvers ended"
    await ctx.add_log(ship["id"], session.campaign_id, message, entry_type="pilot", actor=session.actor)
    logger.info("[Pilot] %s on ship=%s", message, ship["id"])
    return CommandResult().to_bridge(ship["id"], "evasiveChanged", {
        "enabled": payload.enabled,
        "attackDM": EVASIVE_ATTACK_DM if payload.enabled else 0,
        "setBy": session.actor,
    })


@command(ActionKind.SET_RANGE, RangePayload, subsystem="Pilot", requires=Requires.SHIP)
async def set_range(ctx: CommandContext, session: Session, payload: RangePayload) -> CommandResult:
    contact = await ctx.contact(payload.contact_id, session.campaign_id)
    current = normalize_band(contact["range_band"] or "medium")
    if payload.action == "maintain":
        return reply("rangeMaintained", {"contactId": contact["id"], "range": current})

    new_range = step_range(current, -1 if payload.action == "approach" else 1)
    if new_range is None:
        edge = "closest" if payload.action == "approach" else "maximum"
        return reply("info", {"message": f"Already at {edge} range", "contactId": contact["id"], "range": current})

    await ctx.store.update("contacts", contact["id"], {"range_band": new_range})
    await ctx.add_log(session.ship_id, session.campaign_id,
                      f"Range to {contact['name']}: {current} -> {new_range}", entry_type="pilot", actor=session.actor)
    return CommandResult().to_campaign(session.campaign_id, "rangeChanged", {
        "contactId": contact["id"],
        "newRange": new_range,
        "previousRange": current,
        "action": payload.action,
        "setBy": session.actor,
    })


@command(ActionKind.SET_COURSE, CoursePayload, subsystem="Pilot", requires=Requires.SHIP)
async def set_course(ctx: CommandContext, session: Session, payload: CoursePayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    state["destination"] = {"name": payload.destination, "eta": payload.eta} if payload.destination else None
    ship = await ctx.save_state(ship, state)
    if payload.destination:
        await ctx.add_log(ship["id"], session.campaign_id, f"Course set for {payload.destination}",
                          entry_type="pilot", actor=session.actor)
    return CommandResult().to_bridge(ship["id"], "courseChanged", {
        "destination": payload.destination,
        "eta": payload.eta,
        "setBy": session.actor,
    })


@command(ActionKind.CLEAR_COURSE, subsystem="Pilot", requires=Requires.SHIP)
async def clear_course(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    if not state.get("destination"):
        raise DomainError("No course is set")
    previous = state["destination"]["name"]
    state["destination"] = None
    ship = await ctx.save_state(ship, state)
    await ctx.add_log(ship["id"], session.campaign_id, f"Course to {previous} cleared",
                      entry_type="pilot", actor=session.actor)
    return CommandResult().to_bridge(ship["id"], "courseCleared", {"previousDestination": previous,
                                                                  "clearedBy": session.actor})


@command(ActionKind.GET_PILOT_STATUS, subsystem="Pilot", requires=Requires.SHIP)
async def get_pilot_status(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    campaign = await ctx.campaign(session.campaign_id)
    state = ship["current_state"]
    return reply("pilotStatus", {
        "shipId": ship["id"],
        "evasive": bool(state.get("evasive")),
        "destination": state.get("destination"),
        "jump": state.get("jump"),
        "gameDate": campaign["current_date"],
        "timeBlocked": campaign["time_blocked"],
    })


@command(ActionKind.PASS_TIME, PassTimePayload, subsystem="Pilot", requires=Requires.SHIP)
async def pass_time(ctx: CommandContext, session: Session, payload: PassTimePayload) -> CommandResult:
    """Let the pilot move the clock forward during transit.

    Same effect as the GM's advance, but refused while the GM has blocked time.
    """
    campaign = await ctx.campaign(session.campaign_id)
    if campaign["time_blocked"] and not session.is_gm:
        raise DomainError("GM has blocked time advancement")

    previous = campaign["current_date"]
    new_date = advance_date(previous, hours=payload.hours)
    await ctx.store.update("campaigns", campaign["id"], {"current_date": new_date})
    reason = payload.reason or "Transit"
    for ship in await ctx.store.query("ships", campaign_id=campaign["id"], is_party_ship=True):
        await ctx.add_log(ship["id"], campaign["id"], f"{reason}: +{payload.hours}h",
                          entry_type="time", actor=session.actor)

    logger.info("[Pilot] %s passed %dh (campaign=%s)", session.actor, payload.hours, campaign["id"])
    return CommandResult().to_campaign(campaign["id"], "timeAdvanced", {
        "previousDate": previous,
        "newDate": new_date,
        "hoursAdvanced": payload.hours,
        "minutesAdvanced": 0,
        "reason": reason,
        "passedBy": session.actor,
    })


@command(ActionKind.SET_TIME_BLOCKED, TimeBlockPayload, subsystem="Time", requires=Requires.CAMPAIGN)
async def set_time_blocked(ctx: CommandContext, session: Session, payload: TimeBlockPayload) -> CommandResult:
    campaign = await ctx.campaign(session.campaign_id)
    await ctx.store.update("campaigns", campaign["id"], {"time_blocked": payload.blocked})
    logger.info("[Time] Time advancement %s (campaign=%s)",
                "blocked" if payload.blocked else "unblocked", campaign["id"])
    return CommandResult().to_campaign(campaign["id"], "timeBlockedChanged", {"blocked": payload.blocked})


@command(ActionKind.INITIATE_JUMP, JumpPayload, subsystem="Jump", requires=Requires.SHIP)
async def initiate_jump(ctx: CommandContext, session: Session, payload: JumpPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    data, state = ship["ship_data"], ship["current_state"]

    if state.get("jump"):
        raise DomainError("Ship is already in jump space")
    if is_destroyed(state.get("systems"), "j_drive"):
        raise DomainError("Jump drive is destroyed")
    rating = int(data.get("jump_rating", 0))
    if payload.distance > rating:
        raise DomainError(f"Jump-{payload.distance} exceeds the ship's jump rating of {rating}")

    needed = fuel_rules.jump_fuel_required(int(data.get("tonnage", 0)), payload.distance,
                                           int(data.get("carried_tonnage", 0)))
    plan = fuel_rules.plan_jump_fuel(state, needed)
    if not plan.sufficient:
        raise DomainError(plan.warning, fuelNeeded=needed)

    levels = fuel_rules.fuel_levels(state)
    state["fuel"] = {
        "refined": levels["refined"] - plan.refined_used,
        "unrefined": levels["unrefined"] - plan.unrefined_used,
    }
    now = await ctx.game_date(session.campaign_id)
    state["jump"] = {
        "destination": payload.destination,
        "distance": payload.distance,
        "started_at": now,
        "exit_date": advance_date(now, hours=JUMP_DURATION_HOURS),
        "misjump_dm": plan.misjump_dm,
    }
    state["evasive"] = False
    ship = await ctx.save_state(ship, state)

    await ctx.add_log(ship["id"], session.campaign_id,
                      f"Jump-{payload.distance} to {payload.destination} ({needed} tons fuel)",
                      entry_type="jump", actor=session.actor)
    logger.info("[Jump] Ship=%s jumping to %s", ship["id"], payload.destination)
    return CommandResult().to_bridge(ship["id"], "jumpInitiated", {
        "destination": payload.destination,
        "distance": payload.distance,
        "exitDate": state["jump"]["exit_date"],
        "fuel": plan.to_dict(),
        "fuelStatus": fuel_rules.fuel_status(ship),
    })


@command(ActionKind.COMPLETE_JUMP, CompleteJumpPayload, subsystem="Jump", requires=Requires.SHIP)
async def complete_jump(ctx: CommandContext, session: Session, payload: CompleteJumpPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    jump = state.get("jump")
    if not jump:
        raise DomainError("Ship is not in jump space")

    now = await ctx.game_date(session.campaign_id)
    remaining = hours_between(now, jump["exit_date"])
    if remaining > 0 and not (payload.force and session.is_gm):
        raise DomainError(f"Jump exit in {remaining:g} hours", exitDate=jump["exit_date"])

    state["jump"] = None
    state["destination"] = None
    ship = await ctx.save_state(ship, state)
    if ship["is_party_ship"]:
        await ctx.store.update("campaigns", session.campaign_id, {"current_system": jump["destination"]})

    await ctx.add_log(ship["id"], session.campaign_id, f"Arrived at {jump['destination']}",
                      entry_type="jump", actor=session.actor)
    return CommandResult().to_campaign(session.campaign_id, "jumpCompleted", {
        "shipId": ship["id"],
        "system": jump["destination"],
        "gameDate": now,
    })
