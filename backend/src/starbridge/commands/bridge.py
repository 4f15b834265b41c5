"""Ship and role selection, bridge membership, ship log and fleet management."""

from __future__ import annotations

import logging

from starbridge.api.schemas.campaign import (
    AddShipPayload,
    AssignRolePayload,
    LogEntryPayload,
    SelectShipPayload,
    ShipIdPayload,
    ShipLogQueryPayload,
)
from starbridge.commands.base import (
    CommandContext,
    CommandResult,
    EmptyPayload,
    Requires,
    command,
    reply,
)
from starbridge.connection.room_router import bridge_topic
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError, IdentityError
from starbridge.mechanics.ship_state import initial_state, ship_data_for
from starbridge.security.authorization import ALL_ROLES, ActionKind

logger = logging.getLogger(__name__)

SHIP_LOG_LIMIT = 50


def crew_listing(ctx: CommandContext, ship_id: str) -> list:
    return [
        {
            "sid": s.sid,
            "role": s.role,
            "name": s.display_name,
            "slotId": s.account_id,
            "isGM": s.is_gm,
            "onBridge": s.on_bridge,
        }
        for s in ctx.sessions.crew_on_ship(ship_id)
    ]


def leave_ship(ctx: CommandContext, session: Session) -> None:
    """Drop the session's ship, role and bridge membership."""
    if session.ship_id:
        ctx.rooms.leave(session.sid, bridge_topic(session.ship_id))
    ctx.sessions.clear(session.sid, "ship_id", "role", "on_bridge")


async def _role_taken(ctx: CommandContext, session: Session, role: str) -> bool:
    holder = ctx.sessions.role_holder(session.ship_id, role)
    if holder is not None and holder.sid != session.sid:
        return True
    # Slots keep their role while the player is offline
    for slot in await ctx.store.query("player_slots", ship_id=session.ship_id, role=role):
        if slot["id"] != session.account_id:
            return True
    return False


# =============================================================================
# Ship and role selection
# =============================================================================

@command(ActionKind.SELECT_SHIP, SelectShipPayload, subsystem="Ship", requires=Requires.CAMPAIGN)
async def select_ship(ctx: CommandContext, session: Session, payload: SelectShipPayload) -> CommandResult:
    ship = await ctx.ship(payload.ship_id, session.campaign_id)
    if session.ship_id != ship["id"]:
        leave_ship(ctx, session)
        ctx.sessions.bind(session.sid, ship_id=ship["id"])
    if session.account_id:
        await ctx.store.update("player_slots", session.account_id, {"ship_id": ship["id"], "role": None})

    crew = crew_listing(ctx, ship["id"])
    logger.info("[OPS] Ship selected: %s %r | sid=%s", ship["id"], ship["name"], session.sid)
    return reply("shipSelected", {
        "ship": ship,
        "crew": crew,
        "takenRoles": sorted({c["role"] for c in crew if c["role"] and c["sid"] != session.sid}),
    })


@command(ActionKind.ASSIGN_ROLE, AssignRolePayload, subsystem="Role", requires=Requires.SHIP)
async def assign_role(ctx: CommandContext, session: Session, payload: AssignRolePayload) -> CommandResult:
    role = payload.role.strip().lower()
    if role not in ALL_ROLES:
        raise DomainError(f'Unknown role "{payload.role}"')
    if session.is_gm:
        raise DomainError("GM does not take a crew role")
    if await _role_taken(ctx, session, role):
        raise DomainError(f'Role "{role}" is already taken on this ship')

    ctx.sessions.bind(session.sid, role=role)
    if session.account_id:
        await ctx.store.update("player_slots", session.account_id, {"ship_id": session.ship_id, "role": role})

    logger.info("[OPS] Role assigned: %s on ship=%s | sid=%s", role, session.ship_id, session.sid)
    result = reply("roleAssigned", {"role": role, "shipId": session.ship_id})
    return result.to_campaign(session.campaign_id, "crewUpdate", {
        "shipId": session.ship_id,
        "slotId": session.account_id,
        "name": session.display_name,
        "role": role,
    }, skip_sid=session.sid)


# =============================================================================
# Bridge
# =============================================================================

@command(ActionKind.JOIN_BRIDGE, subsystem="Bridge", requires=Requires.SHIP)
async def join_bridge(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    if session.role is None and not session.is_gm:
        raise IdentityError("Must select ship and role before joining bridge")
    ship = await ctx.ship(session.ship_id, session.campaign_id)
    campaign = await ctx.campaign(session.campaign_id)
    logs = await ctx.store.query("ship_log", ship_id=ship["id"], order_by="created_at",
                                 descending=True, limit=SHIP_LOG_LIMIT)

    ctx.rooms.join(session.sid, bridge_topic(ship["id"]))
    ctx.sessions.bind(session.sid, on_bridge=True)

    logger.info("[OPS] Joined bridge: %s as %s | sid=%s", ship["id"], session.actor, session.sid)
    result = reply("bridgeJoined", {
        "ship": ship,
        "crew": crew_listing(ctx, ship["id"]),
        "campaign": campaign,
        "logs": logs,
        "role": session.role,
        "isGM": session.is_gm,
        "alertStatus": ship["current_state"].get("alert_status", "green"),
    })
    return result.to_bridge(ship["id"], "crewOnBridge", {
        "slotId": session.account_id,
        "role": session.role,
        "name": session.display_name,
        "isGM": session.is_gm,
    })


@command(ActionKind.LEAVE_BRIDGE, subsystem="Bridge", requires=Requires.SHIP)
async def leave_bridge(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship_id = session.ship_id
    ctx.rooms.leave(session.sid, bridge_topic(ship_id))
    ctx.sessions.bind(session.sid, on_bridge=False)
    result = reply("bridgeLeft", {"shipId": ship_id})
    return result.to_bridge(ship_id, "crewLeftBridge", {"role": session.role, "name": session.display_name})


# =============================================================================
# Ship log
# =============================================================================

@command(ActionKind.ADD_LOG_ENTRY, LogEntryPayload, subsystem="Log", requires=Requires.SHIP)
async def add_log_entry(ctx: CommandContext, session: Session, payload: LogEntryPayload) -> CommandResult:
    entry = await ctx.add_log(session.ship_id, session.campaign_id, payload.message,
                              entry_type=payload.entry_type, actor=session.actor)
    logger.info("[OPS] Log entry added: %s", payload.message[:50])
    return CommandResult().to_bridge(session.ship_id, "logEntry", {"entry": entry})


@command(ActionKind.GET_SHIP_LOG, ShipLogQueryPayload, subsystem="Log", requires=Requires.SHIP)
async def get_ship_log(ctx: CommandContext, session: Session, payload: ShipLogQueryPayload) -> CommandResult:
    entries = await ctx.store.query("ship_log", ship_id=session.ship_id, order_by="created_at",
                                    descending=True, limit=payload.limit)
    if not session.is_gm:
        entries = [e for e in entries if e["entry_type"] != "roe_violation"]
    return reply("shipLog", {"entries": entries})


# =============================================================================
# Fleet management (GM)
# =============================================================================

@command(ActionKind.ADD_SHIP, AddShipPayload, subsystem="Ship", requires=Requires.CAMPAIGN)
async def add_ship(ctx: CommandContext, session: Session, payload: AddShipPayload) -> CommandResult:
    try:
        ship_data = ship_data_for(payload.template_id, payload.ship_data)
    except ValueError as e:
        raise DomainError(str(e)) from None
    ship = await ctx.store.insert("ships", {
        "campaign_id": session.campaign_id,
        "name": payload.name,
        "template_id": payload.template_id or "scout",
        "is_party_ship": payload.is_party_ship,
        "ship_data": ship_data,
        "current_state": initial_state(ship_data),
    })
    logger.info("[OPS] Ship added: %s %r", ship["id"], ship["name"])
    return CommandResult().to_campaign(session.campaign_id, "shipAdded", {"ship": ship})


@command(ActionKind.DELETE_SHIP, ShipIdPayload, subsystem="Ship", requires=Requires.CAMPAIGN)
async def delete_ship(ctx: CommandContext, session: Session, payload: ShipIdPayload) -> CommandResult:
    ship = await ctx.ship(payload.ship_id, session.campaign_id)
    await ctx.store.delete_where("orders", ship_id=ship["id"])
    await ctx.store.delete_where("ship_log", ship_id=ship["id"])
    for passenger in await ctx.store.query("passengers", ship_id=ship["id"]):
        await ctx.store.delete_where("passenger_demands", passenger_id=passenger["id"])
    await ctx.store.delete_where("passengers", ship_id=ship["id"])
    await ctx.store.delete("ships", ship["id"])

    for slot in await ctx.store.query("player_slots", ship_id=ship["id"]):
        await ctx.store.update("player_slots", slot["id"], {"ship_id": None, "role": None})
    for crew in ctx.sessions.crew_on_ship(ship["id"]):
        leave_ship(ctx, crew)

    logger.info("[OPS] Ship deleted: %s", ship["id"])
    return CommandResult().to_campaign(session.campaign_id, "shipDeleted", {"shipId": ship["id"]})
