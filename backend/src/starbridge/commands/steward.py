"""Steward station: passenger manifest, cabins, restraints and morale."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from starbridge.api.schemas.steward import (
    AddDemandPayload,
    AddPassengerPayload,
    AssignCabinPayload,
    CalmPassengerPayload,
    DemandIdPayload,
    MoraleEffectPayload,
    PassengerIdPayload,
    RestraintPayload,
    UpdateCapacityPayload,
)
from starbridge.commands.base import (
    CommandContext,
    CommandResult,
    EmptyPayload,
    Requires,
    command,
    reply,
)
from starbridge.connection.session_registry import Session
from starbridge.db import utcnow
from starbridge.errors import DomainError
from starbridge.mechanics import passengers as rules
from starbridge.mechanics.dice import skill_check
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


def _demand_view(demand: dict) -> dict:
    return {
        "id": demand["id"],
        "passengerId": demand["passenger_id"],
        "type": demand["demand_type"],
        "description": demand["description"],
        "urgency": demand["urgency"],
        "resolved": demand["resolved"],
        "createdAt": demand["created_at"],
    }


def _passenger_view(passenger: dict, demands: Optional[List[dict]] = None) -> dict:
    return {
        "id": passenger["id"],
        "shipId": passenger["ship_id"],
        "name": passenger["name"],
        "type": passenger["passenger_type"],
        "cabin": passenger["cabin"],
        "status": passenger["status"],
        "morale": passenger["morale"],
        "restraint": passenger["restraint"],
        "vip": passenger["vip"],
        "notes": passenger["notes"],
        "demands": [_demand_view(d) for d in demands or []],
    }


async def _open_demands(ctx: CommandContext, passenger_id: str) -> List[dict]:
    return await ctx.store.query("passenger_demands", passenger_id=passenger_id, resolved=False,
                                 order_by="created_at")


async def _passenger(ctx: CommandContext, session: Session, passenger_id: str) -> dict:
    """Load a passenger aboard the session's ship (any ship in the campaign for the GM)."""
    passenger = await ctx.store.get("passengers", passenger_id)
    if passenger is None or passenger["campaign_id"] != session.campaign_id:
        raise DomainError("Passenger not found", passengerId=passenger_id)
    if not session.is_gm and passenger["ship_id"] != session.ship_id:
        raise DomainError("Passenger not found", passengerId=passenger_id)
    return passenger


async def _manifest(ctx: CommandContext, ship: dict) -> Dict[str, Any]:
    aboard = await ctx.store.query("passengers", ship_id=ship["id"], order_by="name")
    capacity = rules.capacity_of(ship)
    return {
        "shipId": ship["id"],
        "passengers": [_passenger_view(p, await _open_demands(ctx, p["id"])) for p in aboard],
        "capacity": capacity,
        "usage": rules.capacity_usage(capacity, aboard),
    }


async def _check_cabin(ctx: CommandContext, ship: dict, cabin: Optional[str], passenger_id: Optional[str] = None) -> None:
    """A cabin is free when no one else holds it and its bucket has room."""
    if not cabin:
        return
    others = [p for p in await ctx.store.query("passengers", ship_id=ship["id"]) if p["id"] != passenger_id]
    if any(p["cabin"] == cabin for p in others):
        raise DomainError(f"Cabin {cabin} is occupied")
    bucket = rules.cabin_bucket(cabin)
    if not bucket:
        raise DomainError(f"Unknown cabin {cabin}")
    usage = rules.capacity_usage(rules.capacity_of(ship), others)[bucket]
    if usage["used"] >= usage["total"]:
        raise DomainError(f"No {bucket.replace('_', ' ')} available")


def _manifest_changed(result: CommandResult, ship_id: str, manifest: Dict[str, Any], skip_sid: Optional[str] = None) -> CommandResult:
    return result.to_bridge(ship_id, "manifestUpdated", manifest, skip_sid=skip_sid)


# =============================================================================
# Manifest
# =============================================================================

@command(ActionKind.GET_MANIFEST, subsystem="Steward", requires=Requires.SHIP)
async def get_manifest(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    return reply("manifest", await _manifest(ctx, ship))


@command(ActionKind.GET_PASSENGER, PassengerIdPayload, subsystem="Steward", requires=Requires.CAMPAIGN)
async def get_passenger(ctx: CommandContext, session: Session, payload: PassengerIdPayload) -> CommandResult:
    passenger = await _passenger(ctx, session, payload.passenger_id)
    return reply("passenger", {"passenger": _passenger_view(passenger, await _open_demands(ctx, passenger["id"]))})


@command(ActionKind.ADD_PASSENGER, AddPassengerPayload, subsystem="Steward", requires=Requires.SHIP)
async def add_passenger(ctx: CommandContext, session: Session, payload: AddPassengerPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    await _check_cabin(ctx, ship, payload.cabin)
    passenger = await ctx.store.insert("passengers", {
        "campaign_id": session.campaign_id,
        "ship_id": ship["id"],
        "name": payload.name,
        "passenger_type": payload.passenger_type,
        "cabin": payload.cabin,
        "status": payload.status,
        "morale": payload.morale,
        "vip": payload.vip,
        "notes": payload.notes,
    })
    await ctx.add_log(ship["id"], session.campaign_id, f"Passenger boarded: {passenger['name']}",
                      entry_type="passenger", actor=session.actor)
    logger.info("[Steward] %s boarded ship=%s", passenger["name"], ship["id"])
    manifest = await _manifest(ctx, ship)
    return _manifest_changed(reply("passengerAdded", {"passenger": _passenger_view(passenger)}),
                             ship["id"], manifest)


@command(ActionKind.REMOVE_PASSENGER, PassengerIdPayload, subsystem="Steward", requires=Requires.SHIP)
async def remove_passenger(ctx: CommandContext, session: Session, payload: PassengerIdPayload) -> CommandResult:
    passenger = await _passenger(ctx, session, payload.passenger_id)
    ship = await ctx.ship(passenger["ship_id"])
    await ctx.store.delete_where("passenger_demands", passenger_id=passenger["id"])
    await ctx.store.delete("passengers", passenger["id"])
    await ctx.add_log(ship["id"], session.campaign_id, f"Passenger disembarked: {passenger['name']}",
                      entry_type="passenger", actor=session.actor)
    manifest = await _manifest(ctx, ship)
    return _manifest_changed(reply("passengerRemoved", {"passengerId": passenger["id"]}), ship["id"], manifest)


@command(ActionKind.ASSIGN_CABIN, AssignCabinPayload, subsystem="Steward", requires=Requires.SHIP)
async def assign_cabin(ctx: CommandContext, session: Session, payload: AssignCabinPayload) -> CommandResult:
    passenger = await _passenger(ctx, session, payload.passenger_id)
    ship = await ctx.ship(passenger["ship_id"])
    await _check_cabin(ctx, ship, payload.cabin, passenger_id=passenger["id"])
    passenger = await ctx.store.update("passengers", passenger["id"], {"cabin": payload.cabin})
    manifest = await _manifest(ctx, ship)
    return _manifest_changed(reply("cabinAssigned", {"passenger": _passenger_view(passenger)}), ship["id"], manifest)


# =============================================================================
# Safety
# =============================================================================

@command(ActionKind.SET_RESTRAINT, RestraintPayload, subsystem="Steward", requires=Requires.SHIP)
async def set_restraint(ctx: CommandContext, session: Session, payload: RestraintPayload) -> CommandResult:
    passenger = await _passenger(ctx, session, payload.passenger_id)
    passenger = await ctx.store.update("passengers", passenger["id"], {"restraint": payload.restraint})
    view = _passenger_view(passenger)
    return reply("restraintSet", {"passenger": view}).to_bridge(
        passenger["ship_id"], "passengerUpdated", {"passenger": view}, skip_sid=session.sid,
    )


@command(ActionKind.SECURE_ALL_PASSENGERS, subsystem="Steward", requires=Requires.SHIP)
async def secure_all_passengers(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    # Passengers in low berths are already secured
    loose = [p for p in await ctx.store.query("passengers", ship_id=ship["id"])
             if p["restraint"] not in ("crash-frame", "low-berth")]
    if loose:
        await ctx.store.update_many([("passengers", p["id"], {"restraint": "crash-frame"}) for p in loose])

    await ctx.add_log(ship["id"], session.campaign_id, f"All passengers secured ({len(loose)} strapped in)",
                      entry_type="passenger", actor=session.actor)
    logger.info("[Steward] Secured %d passengers on ship=%s", len(loose), ship["id"])
    manifest = await _manifest(ctx, ship)
    return (
        reply("passengersSecured", {"secured": len(loose)})
        .to_bridge(ship["id"], "emergencySecure", {"shipId": ship["id"], "secured": len(loose), "by": session.actor})
        .to_bridge(ship["id"], "manifestUpdated", manifest)
    )


# =============================================================================
# Morale and demands
# =============================================================================

@command(ActionKind.CALM_PASSENGER, CalmPassengerPayload, subsystem="Steward", requires=Requires.SHIP)
async def calm_passenger(ctx: CommandContext, session: Session, payload: CalmPassengerPayload) -> CommandResult:
    passenger = await _passenger(ctx, session, payload.passenger_id)
    if passenger["status"] not in ("anxious", "panicking"):
        raise DomainError(f"{passenger['name']} does not need calming")

    check = skill_check(ctx.dice, skill=payload.skill)
    status, morale = rules.calm_outcome(passenger["status"], passenger["morale"], check.success)
    passenger = await ctx.store.update("passengers", passenger["id"], {"status": status, "morale": morale})
    view = _passenger_view(passenger)
    return reply("passengerCalmed", {"passenger": view, "check": check.to_dict()}).to_bridge(
        passenger["ship_id"], "passengerUpdated", {"passenger": view}, skip_sid=session.sid,
    )


@command(ActionKind.RESOLVE_DEMAND, DemandIdPayload, subsystem="Steward", requires=Requires.SHIP)
async def resolve_demand(ctx: CommandContext, session: Session, payload: DemandIdPayload) -> CommandResult:
    demand = await ctx.store.get("passenger_demands", payload.demand_id)
    if demand is None or demand["campaign_id"] != session.campaign_id:
        raise DomainError("Demand not found", demandId=payload.demand_id)
    if demand["resolved"]:
        raise DomainError("Demand is already resolved")
    passenger = await _passenger(ctx, session, demand["passenger_id"])

    morale = rules.clamp_morale(passenger["morale"] + rules.resolve_morale_gain(demand["urgency"]))
    results = await ctx.store.update_many([
        ("passenger_demands", demand["id"], {"resolved": True, "resolved_at": utcnow()}),
        ("passengers", passenger["id"], {"morale": morale}),
    ])
    if results is None:
        raise DomainError("Demand not found", demandId=demand["id"])
    passenger = results[1]
    view = _passenger_view(passenger, await _open_demands(ctx, passenger["id"]))
    return reply("demandResolved", {"demandId": demand["id"], "passenger": view}).to_bridge(
        passenger["ship_id"], "passengerUpdated", {"passenger": view}, skip_sid=session.sid,
    )


@command(ActionKind.ADD_DEMAND, AddDemandPayload, subsystem="Steward", requires=Requires.CAMPAIGN)
async def add_demand(ctx: CommandContext, session: Session, payload: AddDemandPayload) -> CommandResult:
    passenger = await _passenger(ctx, session, payload.passenger_id)
    demand = await ctx.store.insert("passenger_demands", {
        "campaign_id": session.campaign_id,
        "passenger_id": passenger["id"],
        "demand_type": payload.demand_type,
        "description": payload.description,
        "urgency": payload.urgency,
    })
    morale = rules.clamp_morale(passenger["morale"] - rules.demand_morale_loss(payload.urgency))
    passenger = await ctx.store.update("passengers", passenger["id"], {"morale": morale})
    event = {"demand": _demand_view(demand), "passenger": _passenger_view(passenger)}
    return reply("demandAdded", event).to_bridge(passenger["ship_id"], "newDemand", event)


@command(ActionKind.UPDATE_PASSENGER_CAPACITY, UpdateCapacityPayload, subsystem="Steward", requires=Requires.CAMPAIGN)
async def update_passenger_capacity(ctx: CommandContext, session: Session, payload: UpdateCapacityPayload) -> CommandResult:
    ship = await ctx.target_ship(session, payload.ship_id)
    state = ship["current_state"]
    capacity = rules.capacity_of(ship)
    for bucket in ("staterooms", "low_berths", "emergency_seats"):
        value = getattr(payload, bucket)
        if value is not None:
            capacity[bucket] = value
    state["passenger_capacity"] = capacity
    ship = await ctx.save_state(ship, state)
    manifest = await _manifest(ctx, ship)
    return _manifest_changed(reply("capacityUpdated", {"shipId": ship["id"], "capacity": capacity}),
                             ship["id"], manifest)


@command(ActionKind.APPLY_MORALE_EFFECT, MoraleEffectPayload, subsystem="Steward", requires=Requires.CAMPAIGN)
async def apply_morale_effect(ctx: CommandContext, session: Session, payload: MoraleEffectPayload) -> CommandResult:
    ship = await ctx.target_ship(session, payload.ship_id)
    aboard = await ctx.store.query("passengers", ship_id=ship["id"])
    updates = []
    for passenger in aboard:
        status, morale = rules.morale_shift(passenger["status"], passenger["morale"], payload.effect, payload.amount)
        updates.append(("passengers", passenger["id"], {"status": status, "morale": morale}))
    if updates:
        await ctx.store.update_many(updates)

    logger.info("[Steward] Morale effect %s (%d) on %d passengers, ship=%s",
                payload.effect, payload.amount, len(aboard), ship["id"])
    manifest = await _manifest(ctx, ship)
    event = {"shipId": ship["id"], "effect": payload.effect, "amount": payload.amount, "affected": len(aboard)}
    return (
        reply("moraleEffectApplied", event)
        .to_bridge(ship["id"], "moraleChanged", event)
        .to_bridge(ship["id"], "manifestUpdated", manifest)
    )
