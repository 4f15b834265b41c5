"""Ship-to-ship communications and the campaign transmission log."""

from __future__ import annotations

import logging
from typing import Optional

from starbridge.api.schemas.comms import (
    ReplyTransmissionPayload,
    SendTransmissionPayload,
    TransmissionIdPayload,
    TransmissionQueryPayload,
)
from starbridge.commands.base import CommandContext, CommandResult, Requires, command, reply
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


def _view(record: dict) -> dict:
    return {
        "id": record["id"],
        "channel": record["channel"],
        "sender": record["sender"],
        "recipient": record["recipient"],
        "body": record["body"],
        "priority": record["priority"],
        "gameDate": record["game_date"],
        "isRead": record["is_read"],
        "isArchived": record["is_archived"],
        "inReplyTo": record["in_reply_to"],
        "createdAt": record["created_at"],
    }


async def _transmission(ctx: CommandContext, session: Session, transmission_id: str) -> dict:
    record = await ctx.store.get("transmissions", transmission_id)
    if record is None or record["campaign_id"] != session.campaign_id:
        raise DomainError("Transmission not found", transmissionId=transmission_id)
    return record


async def _sender(ctx: CommandContext, session: Session, requested: Optional[str] = None) -> str:
    # Only the GM may speak as someone else (NPC traffic)
    if session.is_gm:
        return requested or session.actor
    if session.ship_id:
        ship = await ctx.ship(session.ship_id)
        return f"{ship['name']} ({session.actor})"
    return session.actor


@command(ActionKind.SEND_TRANSMISSION, SendTransmissionPayload, subsystem="Comms", requires=Requires.CAMPAIGN)
async def send_transmission(ctx: CommandContext, session: Session, payload: SendTransmissionPayload) -> CommandResult:
    sender = await _sender(ctx, session, payload.sender)

    record = await ctx.store.insert("transmissions", {
        "campaign_id": session.campaign_id,
        "channel": payload.channel,
        "sender": sender,
        "recipient": payload.recipient,
        "body": payload.body,
        "priority": payload.priority,
        "game_date": await ctx.game_date(session.campaign_id),
    })
    logger.info("[Comms] %s transmission on %s from %s", payload.priority, payload.channel, sender)
    return CommandResult().to_campaign(session.campaign_id, "transmissionReceived", {"transmission": _view(record)})


@command(ActionKind.GET_TRANSMISSIONS, TransmissionQueryPayload, subsystem="Comms", requires=Requires.CAMPAIGN)
async def get_transmissions(ctx: CommandContext, session: Session, payload: TransmissionQueryPayload) -> CommandResult:
    filters = {"campaign_id": session.campaign_id}
    if payload.channel:
        filters["channel"] = payload.channel
    if not payload.include_archived:
        filters["is_archived"] = False
    records = await ctx.store.query("transmissions", order_by="created_at", descending=True, **filters)
    return reply("transmissions", {"transmissions": [_view(r) for r in records]})


@command(ActionKind.MARK_TRANSMISSION_READ, TransmissionIdPayload, subsystem="Comms", requires=Requires.CAMPAIGN)
async def mark_transmission_read(ctx: CommandContext, session: Session, payload: TransmissionIdPayload) -> CommandResult:
    record = await _transmission(ctx, session, payload.transmission_id)
    record = await ctx.store.update("transmissions", record["id"], {"is_read": True})
    return reply("transmissionUpdated", {"transmission": _view(record)})


@command(ActionKind.ARCHIVE_TRANSMISSION, TransmissionIdPayload, subsystem="Comms", requires=Requires.CAMPAIGN)
async def archive_transmission(ctx: CommandContext, session: Session, payload: TransmissionIdPayload) -> CommandResult:
    record = await _transmission(ctx, session, payload.transmission_id)
    record = await ctx.store.update("transmissions", record["id"], {"is_archived": True, "is_read": True})
    return reply("transmissionUpdated", {"transmission": _view(record)})


@command(ActionKind.REPLY_TO_TRANSMISSION, ReplyTransmissionPayload, subsystem="Comms", requires=Requires.CAMPAIGN)
async def reply_to_transmission(ctx: CommandContext, session: Session, payload: ReplyTransmissionPayload) -> CommandResult:
    """Answer a transmission on its own channel, addressed back to its sender."""
    original = await _transmission(ctx, session, payload.transmission_id)
    record = await ctx.store.insert("transmissions", {
        "campaign_id": session.campaign_id,
        "channel": original["channel"],
        "sender": await _sender(ctx, session),
        "recipient": original["sender"],
        "body": payload.body,
        "priority": payload.priority,
        "game_date": await ctx.game_date(session.campaign_id),
        "in_reply_to": original["id"],
    })
    await ctx.store.update("transmissions", original["id"], {"is_read": True})
    logger.info("[Comms] Reply to %s from %s", original["id"], record["sender"])
    return CommandResult().to_campaign(session.campaign_id, "transmissionReceived", {"transmission": _view(record)})
