"""Campaign lifecycle, player slots and game time.

A GM selects a campaign and holds its single GM seat; players join a
campaign, then claim one player slot each.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from starbridge.api.schemas.campaign import (
    AdvanceTimePayload,
    CampaignIdPayload,
    CreateCampaignPayload,
    ImportCharacterPayload,
    JoinAsGuestPayload,
    PlayerSlotPayload,
    SlotIdPayload,
    UpdateCampaignPayload,
)
from starbridge.commands.base import (
    CommandContext,
    CommandResult,
    EmptyPayload,
    Requires,
    command,
    reply,
)
from starbridge.connection.room_router import campaign_topic
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError, IdentityError
from starbridge.mechanics.fuel import DEFAULT_FUEL_SOURCES
from starbridge.mechanics.imperial_date import InvalidDateError, advance_date, parse_date
from starbridge.security.authorization import ALL_ROLES, ActionKind

logger = logging.getLogger(__name__)

_CAMPAIGN_TABLES = (
    "contacts", "orders", "transmissions", "ship_log", "fuel_sources",
    "crew_wounds", "crew_conditions", "crew_health", "passenger_demands", "passengers",
    "player_slots", "ships",
)


def enter_campaign(ctx: CommandContext, session: Session, campaign_id: str) -> None:
    """Bind the campaign and move the connection into its topic."""
    if session.campaign_id and session.campaign_id != campaign_id:
        ctx.rooms.leave_all(session.sid)
        ctx.sessions.release_seats(session.sid)
        ctx.sessions.clear(session.sid, "ship_id", "role", "on_bridge", "account_id")
    ctx.sessions.bind(session.sid, campaign_id=campaign_id)
    ctx.rooms.join(session.sid, campaign_topic(campaign_id))


def _validated_date(value):
    if value is None:
        return None
    try:
        return str(parse_date(value))
    except InvalidDateError as e:
        raise DomainError(str(e)) from None


def _slot_is_free(ctx: CommandContext, slot: dict) -> bool:
    holder = ctx.sessions.slot_holder(slot["id"])
    return holder is None or ctx.sessions.resolve(holder) is None


async def full_campaign_data(ctx: CommandContext, campaign_id: str) -> dict:
    campaign = await ctx.campaign(campaign_id)
    return {
        "campaign": campaign,
        "playerSlots": await ctx.store.query("player_slots", campaign_id=campaign_id, order_by="created_at"),
        "ships": await ctx.store.query("ships", campaign_id=campaign_id, order_by="created_at"),
        "contacts": await ctx.store.query("contacts", campaign_id=campaign_id, order_by="created_at"),
        "connected": [s.to_public() for s in ctx.sessions.sessions_in_campaign(campaign_id)],
    }


# =============================================================================
# Campaign management (GM)
# =============================================================================

@command(ActionKind.GET_CAMPAIGNS, subsystem="Campaign", requires=Requires.NOTHING)
async def get_campaigns(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    campaigns = await ctx.store.query("campaigns", order_by="updated_at", descending=True)
    logger.info("[OPS] Retrieved %d campaigns | sid=%s", len(campaigns), session.sid)
    return reply("campaigns", {"campaigns": campaigns})


@command(ActionKind.CREATE_CAMPAIGN, CreateCampaignPayload, subsystem="Campaign", requires=Requires.NOTHING)
async def create_campaign(ctx: CommandContext, session: Session, payload: CreateCampaignPayload) -> CommandResult:
    record = payload.model_dump(exclude_none=True)
    if "current_date" in record:
        record["current_date"] = _validated_date(record["current_date"])
    campaign = await ctx.store.insert("campaigns", record)
    for source in DEFAULT_FUEL_SOURCES:
        await ctx.store.insert("fuel_sources", {"campaign_id": campaign["id"], **source})
    logger.info("[OPS] Campaign created: %s %r by %s", campaign["id"], campaign["name"], campaign["gm_name"])
    return reply("campaignCreated", {"campaign": campaign})


@command(ActionKind.SELECT_CAMPAIGN, CampaignIdPayload, subsystem="Campaign", requires=Requires.NOTHING)
async def select_campaign(ctx: CommandContext, session: Session, payload: CampaignIdPayload) -> CommandResult:
    data = await full_campaign_data(ctx, payload.campaign_id)
    ctx.sessions.claim_gm(session.sid, payload.campaign_id)
    ctx.rooms.leave_all(session.sid)
    ctx.rooms.join(session.sid, campaign_topic(payload.campaign_id))
    logger.info("[OPS] GM selected campaign: %s | sid=%s", payload.campaign_id, session.sid)
    return reply("campaignData", data)


@command(ActionKind.UPDATE_CAMPAIGN, UpdateCampaignPayload, subsystem="Campaign", requires=Requires.CAMPAIGN)
async def update_campaign(ctx: CommandContext, session: Session, payload: UpdateCampaignPayload) -> CommandResult:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise DomainError("No campaign changes supplied")
    if "current_date" in changes:
        changes["current_date"] = _validated_date(changes["current_date"])
    campaign = await ctx.store.update("campaigns", session.campaign_id, changes)
    if campaign is None:
        raise DomainError("Campaign not found")
    logger.info("[OPS] Campaign updated: %s (%s)", session.campaign_id, ", ".join(sorted(changes)))
    return CommandResult().to_campaign(session.campaign_id, "campaignUpdated", {"campaign": campaign})


@command(ActionKind.DELETE_CAMPAIGN, subsystem="Campaign", requires=Requires.CAMPAIGN)
async def delete_campaign(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    campaign_id = session.campaign_id
    await ctx.campaign(campaign_id)
    for table in _CAMPAIGN_TABLES:
        await ctx.store.delete_where(table, campaign_id=campaign_id)
    await ctx.store.delete("campaigns", campaign_id)

    result = reply("campaignDeleted", {"campaignId": campaign_id})
    for sid in ctx.rooms.members_of(campaign_topic(campaign_id)) - {session.sid}:
        result.to_connection(sid, "campaignDeleted", {"campaignId": campaign_id})
    for member in ctx.sessions.sessions_in_campaign(campaign_id):
        ctx.rooms.leave_all(member.sid)
        ctx.sessions.release_seats(member.sid)
        ctx.sessions.clear(member.sid, "campaign_id", "ship_id", "role", "on_bridge", "account_id", "is_gm")
    logger.info("[OPS] Campaign deleted: %s", campaign_id)
    return result


# =============================================================================
# Player slots
# =============================================================================

@command(ActionKind.CREATE_PLAYER_SLOT, PlayerSlotPayload, subsystem="Campaign", requires=Requires.CAMPAIGN)
async def create_player_slot(ctx: CommandContext, session: Session, payload: PlayerSlotPayload) -> CommandResult:
    slot = await ctx.store.insert("player_slots", {
        "campaign_id": session.campaign_id,
        "slot_name": payload.slot_name,
    })
    logger.info("[OPS] Player slot created: %s %r", slot["id"], slot["slot_name"])
    return CommandResult().to_campaign(session.campaign_id, "playerSlotCreated", {"slot": slot})


@command(ActionKind.DELETE_PLAYER_SLOT, SlotIdPayload, subsystem="Campaign", requires=Requires.CAMPAIGN)
async def delete_player_slot(ctx: CommandContext, session: Session, payload: SlotIdPayload) -> CommandResult:
    slot = await ctx.store.get("player_slots", payload.slot_id)
    if slot is None or slot["campaign_id"] != session.campaign_id:
        raise DomainError("Player slot not found")
    holder = ctx.sessions.slot_holder(slot["id"])
    if holder is not None and ctx.sessions.resolve(holder) is not None:
        raise DomainError("Player slot is in use")
    # The slot is the character; its medical record goes with it
    for table in ("crew_wounds", "crew_conditions", "crew_health"):
        await ctx.store.delete_where(table, character_id=slot["id"])
    await ctx.store.delete("player_slots", slot["id"])
    logger.info("[OPS] Player slot deleted: %s", slot["id"])
    return CommandResult().to_campaign(session.campaign_id, "playerSlotDeleted", {"slotId": slot["id"]})


@command(ActionKind.JOIN_CAMPAIGN_AS_PLAYER, CampaignIdPayload, subsystem="Campaign", requires=Requires.NOTHING)
async def join_campaign_as_player(ctx: CommandContext, session: Session, payload: CampaignIdPayload) -> CommandResult:
    campaign = await ctx.store.get("campaigns", payload.campaign_id)
    if campaign is None:
        raise DomainError("Campaign not found. Check the code and try again.")
    if session.is_gm:
        raise DomainError("Already connected as GM")
    enter_campaign(ctx, session, campaign["id"])
    slots = await ctx.store.query("player_slots", campaign_id=campaign["id"], order_by="created_at")
    logger.info("[OPS] Player viewing campaign: %s | sid=%s", campaign["id"], session.sid)
    return reply("campaignJoined", {
        "campaign": campaign,
        "availableSlots": [slot for slot in slots if _slot_is_free(ctx, slot)],
    })


@command(ActionKind.JOIN_AS_GUEST, JoinAsGuestPayload, subsystem="Campaign", requires=Requires.NOTHING)
async def join_as_guest(ctx: CommandContext, session: Session, payload: JoinAsGuestPayload) -> CommandResult:
    campaign = await ctx.store.get("campaigns", payload.campaign_id)
    if campaign is None:
        raise DomainError("Campaign not found")
    if session.is_gm:
        raise DomainError("Already connected as GM")
    enter_campaign(ctx, session, campaign["id"])
    ctx.sessions.bind(session.sid, display_name=payload.guest_name)
    ships = await ctx.store.query("ships", campaign_id=campaign["id"], is_party_ship=True)
    logger.info("[OPS] Guest %r joined campaign: %s", payload.guest_name, campaign["id"])
    return reply("guestJoined", {
        "campaign": campaign,
        "ships": ships,
        "availableRoles": sorted(ALL_ROLES),
        "guestName": payload.guest_name,
        "defaultSkill": 0,
    })


@command(ActionKind.SELECT_PLAYER_SLOT, SlotIdPayload, subsystem="Campaign", requires=Requires.CAMPAIGN)
async def select_player_slot(ctx: CommandContext, session: Session, payload: SlotIdPayload) -> CommandResult:
    slot = await ctx.store.get("player_slots", payload.slot_id)
    if slot is None or slot["campaign_id"] != session.campaign_id:
        raise DomainError("Player slot not found")
    ctx.sessions.reserve_slot(session.sid, slot["id"])
    slot = await ctx.store.update("player_slots", slot["id"], {"last_login": datetime.now(timezone.utc)})
    ctx.sessions.bind(session.sid, display_name=slot["slot_name"])
    ships = await ctx.store.query("ships", campaign_id=session.campaign_id, is_party_ship=True)
    logger.info("[OPS] Player selected slot: %s %r", slot["id"], slot["slot_name"])
    result = reply("playerSlotSelected", {
        "slot": slot,
        "ships": ships,
        "availableRoles": sorted(ALL_ROLES),
    })
    return result.to_campaign(session.campaign_id, "playerJoined",
                              {"slotId": slot["id"], "slotName": slot["slot_name"]}, skip_sid=session.sid)


@command(ActionKind.IMPORT_CHARACTER, ImportCharacterPayload, subsystem="Campaign", requires=Requires.CAMPAIGN)
async def import_character(ctx: CommandContext, session: Session, payload: ImportCharacterPayload) -> CommandResult:
    if session.account_id is None:
        if session.display_name is None:
            raise IdentityError("Must select a player slot first")
        # Guests keep their character for the connection only
        return reply("characterImported", {"character": payload.character_data})
    slot = await ctx.store.update("player_slots", session.account_id, {"character_data": payload.character_data})
    if slot is None:
        raise DomainError("Player slot not found")
    logger.info("[OPS] Character imported for slot %s", session.account_id)
    return reply("characterImported", {"character": slot["character_data"]})


# =============================================================================
# Session and time (GM)
# =============================================================================

@command(ActionKind.START_SESSION, subsystem="Session", requires=Requires.CAMPAIGN)
async def start_session(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    campaign = await ctx.store.update("campaigns", session.campaign_id, {"session_started": True})
    if campaign is None:
        raise DomainError("Campaign not found")
    for ship in await ctx.store.query("ships", campaign_id=session.campaign_id, is_party_ship=True):
        await ctx.add_log(ship["id"], session.campaign_id, "Session started", entry_type="session", actor="GM")
    logger.info("[OPS] Session started for campaign: %s", session.campaign_id)
    return CommandResult().to_campaign(session.campaign_id, "sessionStarted", {
        "gameDate": campaign["current_date"],
        "currentSystem": campaign["current_system"],
    })


@command(ActionKind.ADVANCE_TIME, AdvanceTimePayload, subsystem="Time", requires=Requires.CAMPAIGN)
async def advance_time(ctx: CommandContext, session: Session, payload: AdvanceTimePayload) -> CommandResult:
    if payload.hours == 0 and payload.minutes == 0:
        raise DomainError("Nothing to advance")
    campaign = await ctx.campaign(session.campaign_id)
    previous = campaign["current_date"]
    new_date = advance_date(previous, hours=payload.hours, minutes=payload.minutes)
    await ctx.store.update("campaigns", campaign["id"], {"current_date": new_date})

    for ship in await ctx.store.query("ships", campaign_id=campaign["id"], is_party_ship=True):
        await ctx.add_log(ship["id"], campaign["id"], f"Time advanced: +{payload.hours}h {payload.minutes}m",
                          entry_type="time", actor="GM")

    logger.info("[OPS] Time advanced to %s (campaign=%s)", new_date, campaign["id"])
    return CommandResult().to_campaign(campaign["id"], "timeAdvanced", {
        "previousDate": previous,
        "newDate": new_date,
        "hoursAdvanced": payload.hours,
        "minutesAdvanced": payload.minutes,
    })
