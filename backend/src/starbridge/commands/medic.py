"""Medical bay: crew endurance, wounds, conditions and treatment.

Characters are player slots. Reads never create health records; the first
mutation for a character does, with endurance taken from its imported
character sheet when present.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from starbridge.api.schemas.medic import (
    AddConditionPayload,
    AddWoundPayload,
    CharacterIdPayload,
    ConsciousnessPayload,
    CrewDamagePayload,
    FirstAidPayload,
    RemoveConditionPayload,
    TreatWoundPayload,
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
from starbridge.mechanics import crew_health
from starbridge.security.authorization import ActionKind

logger = logging.getLogger(__name__)


# =============================================================================
# Records and views
# =============================================================================

async def _character(ctx: CommandContext, session: Session, character_id: str) -> dict:
    slot = await ctx.store.get("player_slots", character_id)
    if slot is None or slot["campaign_id"] != session.campaign_id:
        raise DomainError("Character not found", characterId=character_id)
    return slot


def _character_name(slot: dict) -> str:
    return (slot.get("character_data") or {}).get("name") or slot["slot_name"]


def _max_endurance(slot: dict) -> int:
    value = (slot.get("character_data") or {}).get("endurance")
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return crew_health.DEFAULT_ENDURANCE


async def _health_record(ctx: CommandContext, slot: dict, create: bool = True) -> Optional[dict]:
    records = await ctx.store.query("crew_health", campaign_id=slot["campaign_id"], character_id=slot["id"])
    if records:
        return records[0]
    if not create:
        return None
    endurance = _max_endurance(slot)
    return await ctx.store.insert("crew_health", {
        "campaign_id": slot["campaign_id"],
        "character_id": slot["id"],
        "character_name": _character_name(slot),
        "current_endurance": endurance,
        "max_endurance": endurance,
    })


def _wound_view(wound: dict) -> dict:
    return {
        "id": wound["id"],
        "characterId": wound["character_id"],
        "type": wound["wound_type"],
        "severity": wound["severity"],
        "location": wound["location"],
        "dmPenalty": wound["dm_penalty"],
        "bleedRate": wound["bleed_rate"],
        "treated": wound["treated"],
        "treatmentTime": wound["treatment_time"],
        "requiredTime": wound["required_time"],
        "createdAt": wound["created_at"],
    }


def _condition_view(condition: dict) -> dict:
    return {
        "id": condition["id"],
        "characterId": condition["character_id"],
        "type": condition["condition_type"],
        "severity": condition["severity"],
        "dmPenalty": condition["dm_penalty"],
        "duration": condition["duration"],
        "source": condition["source"],
        "createdAt": condition["created_at"],
    }


async def _wounds(ctx: CommandContext, slot: dict) -> List[dict]:
    return await ctx.store.query("crew_wounds", campaign_id=slot["campaign_id"], character_id=slot["id"],
                                 order_by="created_at", descending=True)


async def _health_view(ctx: CommandContext, slot: dict, record: Optional[dict] = None) -> Dict[str, Any]:
    if record is None:
        record = await _health_record(ctx, slot, create=False)
    wounds = await _wounds(ctx, slot)
    conditions = await ctx.store.query("crew_conditions", campaign_id=slot["campaign_id"],
                                       character_id=slot["id"], order_by="created_at")
    endurance = _max_endurance(slot)
    return {
        "characterId": slot["id"],
        "name": _character_name(slot),
        "currentEndurance": record["current_endurance"] if record else endurance,
        "maxEndurance": record["max_endurance"] if record else endurance,
        "consciousness": record["consciousness"] if record else "alert",
        "wounds": [_wound_view(w) for w in wounds],
        "conditions": [_condition_view(c) for c in conditions],
        "totalDM": crew_health.total_dm(wounds, conditions),
    }


def _health_changed(session: Session, event: str, payload: Dict[str, Any], health: Dict[str, Any]) -> CommandResult:
    """Reply to the medic and tell the whole campaign."""
    return reply(event, {**payload, "health": health}).to_campaign(
        session.campaign_id, "healthUpdated", {"characterId": health["characterId"], "health": health},
    )


# =============================================================================
# Read-only views
# =============================================================================

@command(ActionKind.GET_CREW_HEALTH, subsystem="Medic", requires=Requires.CAMPAIGN)
async def get_crew_health(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    slots = await ctx.store.query("player_slots", campaign_id=session.campaign_id, order_by="slot_name")
    return reply("crewHealth", {"health": [await _health_view(ctx, slot) for slot in slots]})


@command(ActionKind.GET_CHARACTER_HEALTH, CharacterIdPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def get_character_health(ctx: CommandContext, session: Session, payload: CharacterIdPayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    return reply("characterHealth", {"health": await _health_view(ctx, slot)})


@command(ActionKind.TRIAGE, subsystem="Medic", requires=Requires.CAMPAIGN)
async def triage(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    slots = await ctx.store.query("player_slots", campaign_id=session.campaign_id, order_by="slot_name")
    views = [await _health_view(ctx, slot) for slot in slots]
    # Most negative DM first
    injured = sorted((v for v in views if crew_health.is_injured(v)), key=lambda v: v["totalDM"])
    return reply("triageList", {"injured": injured})


# =============================================================================
# Treatment (medic)
# =============================================================================

@command(ActionKind.TREAT_WOUND, TreatWoundPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def treat_wound(ctx: CommandContext, session: Session, payload: TreatWoundPayload) -> CommandResult:
    wound = await ctx.store.get("crew_wounds", payload.wound_id)
    if wound is None or wound["campaign_id"] != session.campaign_id:
        raise DomainError("Wound not found", woundId=payload.wound_id)
    if wound["treated"]:
        raise DomainError("Wound is already treated", woundId=wound["id"])

    wound = await ctx.store.update("crew_wounds", wound["id"], crew_health.treat(wound, payload.rounds))
    slot = await _character(ctx, session, wound["character_id"])
    logger.info("[Medic] Treated wound %s (%d/%d rounds)", wound["id"], wound["treatment_time"], wound["required_time"])
    return _health_changed(session, "woundTreated", {"wound": _wound_view(wound)}, await _health_view(ctx, slot))


@command(ActionKind.STABILIZE, CharacterIdPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def stabilize(ctx: CommandContext, session: Session, payload: CharacterIdPayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    bleeding = [w for w in await _wounds(ctx, slot) if w["bleed_rate"] > 0]
    if not bleeding:
        raise DomainError(f"{_character_name(slot)} is not bleeding")

    await ctx.store.update_many([("crew_wounds", w["id"], {"bleed_rate": 0}) for w in bleeding])
    logger.info("[Medic] Stabilized %s (%d wounds)", slot["id"], len(bleeding))
    return _health_changed(session, "stabilized", {"woundsStabilized": len(bleeding)}, await _health_view(ctx, slot))


@command(ActionKind.FIRST_AID, FirstAidPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def first_aid(ctx: CommandContext, session: Session, payload: FirstAidPayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    record = await _health_record(ctx, slot)
    name = _character_name(slot)
    if record["consciousness"] == "dead":
        raise DomainError(f"{name} is beyond first aid")
    changes = crew_health.after_healing(record, payload.amount)
    if changes["current_endurance"] == record["current_endurance"]:
        raise DomainError(f"{name} is already at full endurance")

    record = await ctx.store.update("crew_health", record["id"], changes)
    return _health_changed(session, "firstAidApplied", {"healed": payload.amount},
                           await _health_view(ctx, slot, record))


@command(ActionKind.REMOVE_CONDITION, RemoveConditionPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def remove_condition(ctx: CommandContext, session: Session, payload: RemoveConditionPayload) -> CommandResult:
    condition = await ctx.store.get("crew_conditions", payload.condition_id)
    if condition is None or condition["campaign_id"] != session.campaign_id:
        raise DomainError("Condition not found", conditionId=payload.condition_id)
    await ctx.store.delete("crew_conditions", condition["id"])
    slot = await _character(ctx, session, condition["character_id"])
    return _health_changed(session, "conditionRemoved", {"conditionId": condition["id"]},
                           await _health_view(ctx, slot))


# =============================================================================
# GM injuries
# =============================================================================

@command(ActionKind.ADD_WOUND, AddWoundPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def add_wound(ctx: CommandContext, session: Session, payload: AddWoundPayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    record = await _health_record(ctx, slot)
    wound = await ctx.store.insert("crew_wounds", {
        "campaign_id": session.campaign_id,
        "character_id": slot["id"],
        "wound_type": payload.wound_type,
        "location": payload.location,
        **crew_health.new_wound(payload.severity, payload.bleed_rate),
    })
    if payload.severity == "critical" and record["consciousness"] == "alert":
        record = await ctx.store.update("crew_health", record["id"], {"consciousness": "dazed"})

    logger.info("[Medic] %s %s wound to %s", payload.severity, payload.wound_type, slot["id"])
    return _health_changed(session, "woundAdded", {"wound": _wound_view(wound)},
                           await _health_view(ctx, slot, record))


@command(ActionKind.ADD_CONDITION, AddConditionPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def add_condition(ctx: CommandContext, session: Session, payload: AddConditionPayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    await _health_record(ctx, slot)
    condition = await ctx.store.insert("crew_conditions", {
        "campaign_id": session.campaign_id,
        "character_id": slot["id"],
        "condition_type": payload.condition_type,
        "severity": payload.severity,
        "dm_penalty": crew_health.CONDITION_DM[payload.severity],
        "duration": payload.duration,
        "source": payload.source or "unknown",
    })
    return _health_changed(session, "conditionAdded", {"condition": _condition_view(condition)},
                           await _health_view(ctx, slot))


@command(ActionKind.APPLY_CREW_DAMAGE, CrewDamagePayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def apply_crew_damage(ctx: CommandContext, session: Session, payload: CrewDamagePayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    record = await _health_record(ctx, slot)
    record = await ctx.store.update("crew_health", record["id"], crew_health.after_damage(record, payload.damage))
    logger.info("[Medic] %d endurance damage to %s", payload.damage, slot["id"])
    return _health_changed(session, "crewDamaged", {"damage": payload.damage}, await _health_view(ctx, slot, record))


@command(ActionKind.SET_CONSCIOUSNESS, ConsciousnessPayload, subsystem="Medic", requires=Requires.CAMPAIGN)
async def set_consciousness(ctx: CommandContext, session: Session, payload: ConsciousnessPayload) -> CommandResult:
    slot = await _character(ctx, session, payload.character_id)
    record = await _health_record(ctx, slot)
    record = await ctx.store.update("crew_health", record["id"], {"consciousness": payload.state})
    return _health_changed(session, "consciousnessSet", {"state": payload.state},
                           await _health_view(ctx, slot, record))


@command(ActionKind.PROCESS_BLEEDING_ROUND, subsystem="Medic", requires=Requires.CAMPAIGN)
async def process_bleeding_round(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    affected = []
    for slot in await ctx.store.query("player_slots", campaign_id=session.campaign_id, order_by="slot_name"):
        damage = crew_health.bleed_damage(await _wounds(ctx, slot))
        if damage <= 0:
            continue
        record = await _health_record(ctx, slot)
        record = await ctx.store.update("crew_health", record["id"], crew_health.after_damage(record, damage))
        affected.append({"characterId": slot["id"], "bleedDamage": damage,
                         "health": await _health_view(ctx, slot, record)})

    result = reply("bleedingRoundComplete", {"affected": affected})
    if affected:
        logger.info("[Medic] Bleeding round: %d characters lost endurance", len(affected))
        result.to_campaign(session.campaign_id, "bleedingProcessed", {
            "affected": [{"characterId": a["characterId"], "bleedDamage": a["bleedDamage"]} for a in affected],
        })
        for entry in affected:
            result.to_campaign(session.campaign_id, "healthUpdated",
                               {"characterId": entry["characterId"], "health": entry["health"]})
    return result
