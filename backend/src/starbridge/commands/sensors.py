"""Sensor contacts: crew scans and markings, GM contact management."""

from __future__ import annotations

import logging

from starbridge.api.schemas.sensors import (
    AddContactPayload,
    ContactIdPayload,
    MarkContactPayload,
    ResetScanPayload,
    UpdateContactPayload,
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
from starbridge.errors import DomainError
from starbridge.mechanics.sensors import (
    MAX_SCAN_LEVEL,
    next_scan_level,
    normalize_band,
    scan_level_name,
    visible_contact,
)
from starbridge.mechanics.ship_systems import is_destroyed
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


def _band(value: str) -> str:
    try:
        return normalize_band(value)
    except ValueError as e:
        raise DomainError(str(e)) from None


@command(ActionKind.GET_CONTACTS, subsystem="Sensors", requires=Requires.CAMPAIGN)
async def get_contacts(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    contacts = await ctx.store.query("contacts", campaign_id=session.campaign_id, order_by="created_at")
    return reply("contacts", {"contacts": [visible_contact(c, session.is_gm) for c in contacts]})


@command(ActionKind.SCAN_CONTACT, ContactIdPayload, subsystem="Sensors", requires=Requires.SHIP)
async def scan_contact(ctx: CommandContext, session: Session, payload: ContactIdPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    if is_destroyed(ship["current_state"].get("systems"), "sensors"):
        raise DomainError("Sensors are destroyed")
    contact = await ctx.contact(payload.contact_id, session.campaign_id)

    level = int(contact["scan_level"] or 0)
    if level >= MAX_SCAN_LEVEL:
        return reply("scanResult", {
            "contact": visible_contact(contact, session.is_gm),
            "scanLevel": level,
            "message": "Contact already fully scanned",
        })

    level = next_scan_level(level)
    contact = await ctx.store.update("contacts", contact["id"], {"scan_level": level})
    await ctx.add_log(ship["id"], session.campaign_id,
                      f"{scan_level_name(level).capitalize()} scan of {contact['name']}",
                      entry_type="sensor", actor=session.actor)
    return CommandResult().to_campaign(session.campaign_id, "contactScanned", {
        "contact": visible_contact(contact, False),
        "scanLevel": level,
        "scannedBy": session.actor,
    })


@command(ActionKind.MARK_CONTACT, MarkContactPayload, subsystem="Sensors", requires=Requires.SHIP)
async def mark_contact(ctx: CommandContext, session: Session, payload: MarkContactPayload) -> CommandResult:
    contact = await ctx.contact(payload.contact_id, session.campaign_id)
    contact = await ctx.store.update("contacts", contact["id"], {"marking": payload.marking})
    return CommandResult().to_campaign(session.campaign_id, "contactMarked", {
        "contactId": contact["id"],
        "marking": payload.marking,
        "markedBy": session.actor,
    })


@command(ActionKind.RESET_SCAN, ResetScanPayload, subsystem="Sensors", requires=Requires.CAMPAIGN)
async def reset_scan(ctx: CommandContext, session: Session, payload: ResetScanPayload) -> CommandResult:
    contact = await ctx.contact(payload.contact_id, session.campaign_id)
    contact = await ctx.store.update("contacts", contact["id"], {"scan_level": payload.level})
    return CommandResult().to_campaign(session.campaign_id, "contactUpdated", {
        "contact": visible_contact(contact, False),
    })


# =============================================================================
# GM contact management
# =============================================================================

@command(ActionKind.ADD_CONTACT, AddContactPayload, subsystem="Sensors", requires=Requires.CAMPAIGN)
async def add_contact(ctx: CommandContext, session: Session, payload: AddContactPayload) -> CommandResult:
    record = payload.model_dump()
    record["range_band"] = _band(payload.range_band)
    if record["health"] is not None and record["max_health"] is None:
        record["max_health"] = record["health"]
    contact = await ctx.store.insert("contacts", {"campaign_id": session.campaign_id, "scan_level": 0, **record})
    logger.info("[Sensors] Contact added: %s %r", contact["id"], contact["name"])
    return CommandResult().to_campaign(session.campaign_id, "contactAdded", {
        "contact": visible_contact(contact, False),
    })


@command(ActionKind.UPDATE_CONTACT, UpdateContactPayload, subsystem="Sensors", requires=Requires.CAMPAIGN)
async def update_contact(ctx: CommandContext, session: Session, payload: UpdateContactPayload) -> CommandResult:
    contact = await ctx.contact(payload.contact_id, session.campaign_id)
    changes = payload.model_dump(exclude={"contact_id"}, exclude_unset=True)
    for required in ("name", "type", "range_band", "bearing", "marking"):
        if required in changes and changes[required] is None:
            del changes[required]
    if "range_band" in changes:
        changes["range_band"] = _band(changes["range_band"])
    if not changes:
        raise DomainError("Nothing to update", contactId=contact["id"])
    contact = await ctx.store.update("contacts", contact["id"], changes)
    return CommandResult().to_campaign(session.campaign_id, "contactUpdated", {
        "contact": visible_contact(contact, False),
    })


@command(ActionKind.DELETE_CONTACT, ContactIdPayload, subsystem="Sensors", requires=Requires.CAMPAIGN)
async def delete_contact(ctx: CommandContext, session: Session, payload: ContactIdPayload) -> CommandResult:
    contact = await ctx.contact(payload.contact_id, session.campaign_id)
    await ctx.store.delete("contacts", contact["id"])
    logger.info("[Sensors] Contact deleted: %s", contact["id"])
    return CommandResult().to_campaign(session.campaign_id, "contactRemoved", {"contactId": contact["id"]})
