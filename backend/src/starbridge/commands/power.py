"""Engineer power allocation.

A whole allocation (or preset) is validated first and written in a single
state update, so no client ever sees a half-applied change.
"""

from __future__ import annotations

import logging
from typing import Optional

from starbridge.api.schemas.power import PowerPayload, PowerPresetPayload
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
from starbridge.mechanics.power import (
    POWER_PRESETS,
    PowerAllocationError,
    merged_allocation,
    power_summary,
    validate_allocations,
)
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


async def _apply(ctx: CommandContext, session: Session, changes: dict, preset: Optional[str] = None) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    state["power"] = merged_allocation(state.get("power") or {}, changes)
    ship = await ctx.save_state(ship, state)

    summary = power_summary(ship["current_state"]["power"])
    if preset:
        await ctx.add_log(ship["id"], session.campaign_id, f"Power preset applied: {preset}",
                          entry_type="power", actor=session.actor)
    logger.info("[Power] ship=%s allocations=%s", ship["id"], summary["allocations"])
    return CommandResult().to_bridge(ship["id"], "powerChanged", {
        **summary,
        "preset": preset,
        "setBy": session.actor,
    })


@command(ActionKind.GET_POWER_STATUS, subsystem="Power", requires=Requires.SHIP)
async def get_power_status(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    ship = await ctx.ship(session.ship_id)
    summary = power_summary(merged_allocation(ship["current_state"].get("power") or {}, {}))
    return reply("powerStatus", {**summary, "presets": sorted(POWER_PRESETS)})


@command(ActionKind.SET_POWER, PowerPayload, subsystem="Power", requires=Requires.SHIP)
async def set_power(ctx: CommandContext, session: Session, payload: PowerPayload) -> CommandResult:
    try:
        changes = validate_allocations(payload.allocations)
    except PowerAllocationError as e:
        raise DomainError(str(e)) from None
    return await _apply(ctx, session, changes)


@command(ActionKind.SET_POWER_PRESET, PowerPresetPayload, subsystem="Power", requires=Requires.SHIP)
async def set_power_preset(ctx: CommandContext, session: Session, payload: PowerPresetPayload) -> CommandResult:
    preset = payload.preset.strip().lower()
    if preset not in POWER_PRESETS:
        raise DomainError(f"Unknown power preset: {payload.preset}")
    return await _apply(ctx, session, POWER_PRESETS[preset], preset=preset)
