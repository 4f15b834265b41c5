"""Fuel management: status, refuelling, processing and jump fuel planning.

Processing is stored as data (start date, rate, tons processed so far) and
advanced when someone checks it against the campaign clock.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from starbridge.api.schemas.fuel import FuelProcessingPayload, JumpFuelPayload, RefuelPayload
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
from starbridge.mechanics import fuel as rules
from starbridge.mechanics.imperial_date import hours_between
from starbridge.mechanics.ship_systems import is_destroyed
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


async def _sources(ctx: CommandContext, campaign_id: str) -> list:
    # Sources without a campaign (shared starports) are offered everywhere
    local = await ctx.store.query("fuel_sources", campaign_id=campaign_id, order_by="name")
    shared = await ctx.store.query("fuel_sources", campaign_id=None, order_by="name")
    return local + shared


async def _source(ctx: CommandContext, source_id: str, campaign_id: str) -> dict:
    source = await ctx.store.get("fuel_sources", source_id)
    if source is None or source["campaign_id"] not in (None, campaign_id):
        raise DomainError("Fuel source not found", sourceId=source_id)
    return source


def _refuel_amount(ship: dict, source: dict, tons: int, fill_available: bool) -> int:
    """Tons that will be loaded, or raise with the blocking reason.

    Without ``fill_available`` the request is all-or-nothing.
    """
    fuel_max = int(ship["ship_data"].get("fuel_max", 0))
    free = rules.free_capacity(ship["current_state"], fuel_max)
    available = source["available_tons"]

    if fill_available:
        amount = min(tons, free) if available is None else min(tons, free, available)
        if amount <= 0:
            if free <= 0:
                raise DomainError("Fuel tanks are full", free=free)
            raise DomainError(f"{source['name']} has no fuel available", available=available)
        return amount

    if available is not None and available < tons:
        raise DomainError(
            f"{source['name']} only has {available} tons available ({tons} requested)",
            requested=tons, available=available,
        )
    if tons > free:
        raise DomainError(
            f"Insufficient tank capacity: {tons} tons requested but only {free} tons free",
            requested=tons, free=free,
        )
    return tons


@command(ActionKind.GET_FUEL_STATUS, subsystem="Fuel", requires=Requires.SHIP)
async def get_fuel_status(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    return reply("fuelStatus", rules.fuel_status(ship))


@command(ActionKind.GET_REFUEL_OPTIONS, subsystem="Fuel", requires=Requires.CAMPAIGN)
async def get_refuel_options(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    fuel_status: Optional[dict] = None
    if session.ship_id:
        fuel_status = rules.fuel_status(await ctx.ship(session.ship_id))
    return reply("refuelOptions", {
        "sources": await _sources(ctx, session.campaign_id),
        "fuelStatus": fuel_status,
        "fuelTypes": list(rules.FUEL_TYPES),
    })


@command(ActionKind.CAN_REFUEL, RefuelPayload, subsystem="Fuel", requires=Requires.SHIP)
async def can_refuel(ctx: CommandContext, session: Session, payload: RefuelPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    source = await _source(ctx, payload.source_id, session.campaign_id)
    try:
        tons = _refuel_amount(ship, source, payload.tons, payload.fill_available)
    except DomainError as e:
        return reply("canRefuelResult", {"canRefuel": False, "reason": e.message, **e.context})
    return reply("canRefuelResult", {
        "canRefuel": True,
        "tons": tons,
        "fuelType": source["fuel_type"],
        "cost": round(tons * source["price_per_ton"], 2),
    })


@command(ActionKind.REFUEL, RefuelPayload, subsystem="Fuel", requires=Requires.SHIP)
async def refuel(ctx: CommandContext, session: Session, payload: RefuelPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    source = await _source(ctx, payload.source_id, session.campaign_id)
    tons = _refuel_amount(ship, source, payload.tons, payload.fill_available)

    state = ship["current_state"]
    state["fuel"] = rules.apply_refuel(state, source["fuel_type"], tons)
    # Ship tanks and source stock commit together or not at all
    updates = [("ships", ship["id"], {"current_state": state})]
    if source["available_tons"] is not None:
        updates.append(("fuel_sources", source["id"], {"available_tons": source["available_tons"] - tons}))
    results = await ctx.store.update_many(updates)
    if results is None:
        raise DomainError("Ship not found")
    ship = results[0]

    await ctx.add_log(ship["id"], session.campaign_id,
                      f"Refueled {tons} tons of {source['fuel_type']} fuel from {source['name']}",
                      entry_type="fuel", actor=session.actor)
    logger.info("[Fuel] Refueled %d tons of %s from %s (ship=%s)", tons, source["fuel_type"], source["id"], ship["id"])
    return CommandResult().to_bridge(ship["id"], "refueled", {
        "success": True,
        "tons": tons,
        "fuelType": source["fuel_type"],
        "sourceId": source["id"],
        "cost": round(tons * source["price_per_ton"], 2),
        "fuelStatus": rules.fuel_status(ship),
        "initiatedBy": session.actor,
    })


@command(ActionKind.START_FUEL_PROCESSING, FuelProcessingPayload, subsystem="Fuel", requires=Requires.SHIP)
async def start_fuel_processing(ctx: CommandContext, session: Session, payload: FuelProcessingPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    levels = rules.fuel_levels(state)

    if state.get("fuel_processing"):
        raise DomainError("Fuel processing already in progress")
    if is_destroyed(state.get("systems"), "fuel_processor"):
        raise DomainError("Fuel processor is destroyed")
    tons = levels["unrefined"] if payload.tons == "all" else payload.tons
    if tons <= 0:
        raise DomainError("No unrefined fuel to process")
    if tons > levels["unrefined"]:
        raise DomainError(f"Only {levels['unrefined']} tons of unrefined fuel aboard", unrefined=levels["unrefined"])

    started_at = await ctx.game_date(session.campaign_id)
    rate = ctx.settings.fuel_processing_rate
    state["fuel_processing"] = {"tons": tons, "processed": 0, "started_at": started_at, "rate": rate}
    ship = await ctx.save_state(ship, state)

    time_hours = math.ceil(tons / rate)
    await ctx.add_log(ship["id"], session.campaign_id,
                      f"Started processing {tons} tons of fuel ({time_hours}h)",
                      entry_type="fuel", actor=session.actor)
    logger.info("[Fuel] Processing %d tons (%dh) on ship=%s", tons, time_hours, ship["id"])
    return CommandResult().to_bridge(ship["id"], "fuelProcessingStarted", {
        "tons": tons,
        "timeHours": time_hours,
        "startedAt": started_at,
        "fuelStatus": rules.fuel_status(ship),
        "initiatedBy": session.actor,
    })


@command(ActionKind.CHECK_FUEL_PROCESSING, subsystem="Fuel", requires=Requires.SHIP)
async def check_fuel_processing(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    job = state.get("fuel_processing")
    if not job:
        return reply("fuelProcessingStatus", {"active": False, "completed": False, "fuelStatus": rules.fuel_status(ship)})

    now = await ctx.game_date(session.campaign_id)
    step = rules.process_fuel(state, hours_between(job["started_at"], now))
    state["fuel"] = step.fuel
    state["fuel_processing"] = None if step.complete else {**job, "tons": step.target, "processed": step.processed}
    ship = await ctx.save_state(ship, state)

    status = rules.fuel_status(ship)
    result = reply("fuelProcessingStatus", {
        "active": not step.complete,
        "completed": step.complete,
        "tons": step.target,
        "processed": step.processed,
        "remaining": step.remaining,
        "fuelStatus": status,
    })
    if step.complete:
        await ctx.add_log(ship["id"], session.campaign_id, f"Fuel processing complete: {step.target} tons refined",
                          entry_type="fuel", actor="system")
        result.to_bridge(ship["id"], "fuelProcessingCompleted", {"tons": step.target, "newFuelStatus": status})
    return result


@command(ActionKind.GET_JUMP_FUEL_PENALTIES, JumpFuelPayload, subsystem="Fuel", requires=Requires.SHIP)
async def get_jump_fuel_penalties(ctx: CommandContext, session: Session, payload: JumpFuelPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    data = ship["ship_data"]
    per_parsec = rules.fuel_per_parsec(int(data.get("tonnage", 0)), int(data.get("carried_tonnage", 0)))
    if payload.fuel_needed is not None:
        needed = payload.fuel_needed
    elif payload.distance is not None:
        needed = per_parsec * payload.distance
    else:
        raise DomainError("Provide fuelNeeded or distance")
    plan = rules.plan_jump_fuel(ship["current_state"], needed)
    return reply("jumpFuelPenalties", {**plan.to_dict(), "fuelPerParsec": per_parsec})
