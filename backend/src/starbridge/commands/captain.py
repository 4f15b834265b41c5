"""Captain's orders, alert status and command checks."""

from __future__ import annotations

import logging

from starbridge.api.schemas.captain import (
    AcknowledgeOrderPayload,
    AlertStatusPayload,
    CaptainCheckPayload,
    IssueOrderPayload,
    OrdersQueryPayload,
)
from starbridge.commands.base import CommandContext, CommandResult, Requires, command, reply
from starbridge.connection.session_registry import Session
from starbridge.db.base import utcnow
from starbridge.errors import DomainError
from starbridge.mechanics.dice import skill_check
from starbridge.mechanics.ship_state import normalize_alert
from starbridge.security.authorization import ALL_ROLES, ActionKind

logger = logging.getLogger(__name__)

ALERT_MESSAGES = {
    "green": "Alert status: GREEN. Normal operations",
    "yellow": "Alert status: YELLOW. All hands to stations",
    "red": "Alert status: RED. Battle stations",
}


async def _trim_orders(ctx: CommandContext, ship_id: str) -> int:
    """Drop the oldest orders beyond the per-ship cap."""
    cap = ctx.settings.order_log_cap
    if await ctx.store.count("orders", ship_id=ship_id) <= cap:
        return 0
    orders = await ctx.store.query("orders", ship_id=ship_id, order_by="created_at", descending=True)
    stale = orders[cap:]
    for order in stale:
        await ctx.store.delete("orders", order["id"])
    return len(stale)


def _order_view(order: dict) -> dict:
    return {
        "id": order["id"],
        "target": order["target"],
        "text": order["text"],
        "orderType": order["order_type"],
        "contactId": order["contact_id"],
        "issuedBy": order["issued_by"],
        "requiresAck": order["requires_ack"],
        "acknowledged": order["acknowledged"],
        "acknowledgedBy": order["acknowledged_by"],
        "acknowledgedAt": order["acknowledged_at"],
        "createdAt": order["created_at"],
    }


# =============================================================================
# Orders
# =============================================================================

@command(ActionKind.ISSUE_ORDER, IssueOrderPayload, subsystem="Captain", requires=Requires.SHIP)
async def issue_order(ctx: CommandContext, session: Session, payload: IssueOrderPayload) -> CommandResult:
    target = payload.target.strip().lower()
    if target != "all" and target not in ALL_ROLES:
        raise DomainError(f'Unknown order target "{payload.target}"')
    if payload.contact_id:
        await ctx.contact(payload.contact_id, session.campaign_id)

    order = await ctx.store.insert("orders", {
        "campaign_id": session.campaign_id,
        "ship_id": session.ship_id,
        "target": target,
        "text": payload.order,
        "order_type": payload.order_type,
        "contact_id": payload.contact_id,
        "issued_by": session.actor,
        "requires_ack": payload.requires_ack,
        "acknowledged": False,
    })
    trimmed = await _trim_orders(ctx, session.ship_id)
    if trimmed:
        logger.debug("[Captain] Trimmed %d old orders on ship=%s", trimmed, session.ship_id)

    await ctx.add_log(session.ship_id, session.campaign_id, f"Order to {target}: {payload.order}",
                      entry_type="order", actor=session.actor)
    logger.info("[Captain] Order %s issued to %s on ship=%s", order["id"], target, session.ship_id)
    return CommandResult().to_bridge(session.ship_id, "orderIssued", {"order": _order_view(order)})


@command(ActionKind.ACKNOWLEDGE_ORDER, AcknowledgeOrderPayload, subsystem="Captain", requires=Requires.SHIP)
async def acknowledge_order(ctx: CommandContext, session: Session, payload: AcknowledgeOrderPayload) -> CommandResult:
    order = await ctx.store.get("orders", payload.order_id)
    if order is None or order["ship_id"] != session.ship_id:
        raise DomainError("Order not found", orderId=payload.order_id)
    if not session.is_gm and order["target"] not in ("all", session.role):
        raise DomainError("This order is not addressed to your station", orderId=order["id"])

    if order["acknowledged"]:
        return reply("orderAcknowledged", {"order": _order_view(order), "alreadyAcknowledged": True})

    order = await ctx.store.update("orders", order["id"], {
        "acknowledged": True,
        "acknowledged_by": session.actor,
        "acknowledged_at": utcnow(),
    })
    return CommandResult().to_bridge(session.ship_id, "orderAcknowledged", {"order": _order_view(order)})


@command(ActionKind.GET_ORDERS, OrdersQueryPayload, subsystem="Captain", requires=Requires.SHIP)
async def get_orders(ctx: CommandContext, session: Session, payload: OrdersQueryPayload) -> CommandResult:
    orders = await ctx.store.query("orders", ship_id=session.ship_id, order_by="created_at",
                                   descending=True, limit=payload.limit)
    return reply("orders", {"orders": [_order_view(o) for o in orders]})


# =============================================================================
# Alert status and checks
# =============================================================================

@command(ActionKind.SET_ALERT_STATUS, AlertStatusPayload, subsystem="Captain", requires=Requires.SHIP)
async def set_alert_status(ctx: CommandContext, session: Session, payload: AlertStatusPayload) -> CommandResult:
    try:
        status = normalize_alert(payload.status)
    except ValueError as e:
        raise DomainError(str(e)) from None

    ship = await ctx.ship(session.ship_id)
    state = ship["current_state"]
    previous = state.get("alert_status", "green")
    state["alert_status"] = status
    ship = await ctx.save_state(ship, state)

    await ctx.add_log(ship["id"], session.campaign_id, ALERT_MESSAGES[status],
                      entry_type="alert", actor=session.actor)
    logger.info("[Captain] Alert %s -> %s on ship=%s", previous, status, ship["id"])
    return CommandResult().to_bridge(ship["id"], "alertStatusChanged", {
        "status": status,
        "previousStatus": previous,
        "setBy": session.actor,
    })


async def _captain_check(ctx: CommandContext, session: Session, skill: int, kind: str) -> CommandResult:
    check = skill_check(ctx.dice, skill=skill)
    outcome = "succeeded" if check.success else "failed"
    await ctx.add_log(session.ship_id, session.campaign_id,
                      f"{kind.capitalize()} check {outcome} (effect {check.effect:+d})",
                      entry_type="command", actor=session.actor)
    return CommandResult().to_bridge(session.ship_id, f"{kind}Check", {
        **check.to_dict(),
        "checkType": kind,
        "rolledBy": session.actor,
    })


@command(ActionKind.LEADERSHIP_CHECK, CaptainCheckPayload, subsystem="Captain", requires=Requires.SHIP)
async def leadership_check(ctx: CommandContext, session: Session, payload: CaptainCheckPayload) -> CommandResult:
    return await _captain_check(ctx, session, payload.skill, "leadership")


@command(ActionKind.TACTICS_CHECK, CaptainCheckPayload, subsystem="Captain", requires=Requires.SHIP)
async def tactics_check(ctx: CommandContext, session: Session, payload: CaptainCheckPayload) -> CommandResult:
    return await _captain_check(ctx, session, payload.skill, "tactics")
