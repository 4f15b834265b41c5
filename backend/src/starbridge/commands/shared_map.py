"""GM-shared star map view."""

from __future__ import annotations

import logging

from starbridge.api.schemas.shared_map import MapViewPayload
from starbridge.commands.base import (
    CommandContext,
    CommandResult,
    EmptyPayload,
    Requires,
    command,
    reply,
)
from starbridge.connection.session_registry import Session
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


@command(ActionKind.SHARE_MAP, MapViewPayload, subsystem="Map", requires=Requires.CAMPAIGN)
async def share_map(ctx: CommandContext, session: Session, payload: MapViewPayload) -> CommandResult:
    state = ctx.map_state.share(session.campaign_id, payload.model_dump(), shared_by=session.actor)
    logger.info("[Map] Map shared in campaign=%s | sid=%s", session.campaign_id, session.sid)
    return CommandResult().to_campaign(session.campaign_id, "mapShared", {**state, "autoSwitch": True})


@command(ActionKind.UNSHARE_MAP, subsystem="Map", requires=Requires.CAMPAIGN)
async def unshare_map(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ctx.map_state.unshare(session.campaign_id)
    logger.info("[Map] Map unshared in campaign=%s | sid=%s", session.campaign_id, session.sid)
    return CommandResult().to_campaign(session.campaign_id, "mapUnshared", {"shared": False})


@command(ActionKind.UPDATE_MAP_VIEW, MapViewPayload, subsystem="Map", requires=Requires.CAMPAIGN)
async def update_map_view(ctx: CommandContext, session: Session, payload: MapViewPayload) -> CommandResult:
    state = ctx.map_state.update_view(session.campaign_id, payload.model_dump())
    return CommandResult().to_campaign(session.campaign_id, "mapViewUpdated", state, skip_sid=session.sid)


@command(ActionKind.GET_MAP_STATE, subsystem="Map", requires=Requires.NOTHING)
async def get_map_state(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    return reply("mapState", ctx.map_state.get(session.campaign_id))
