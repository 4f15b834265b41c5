"""Role permissions for every client action.

All permission rules live in :data:`ACTION_RULES`; handlers never check
roles themselves. A GM session is allowed everything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)


class CrewRole(str, Enum):
    CAPTAIN = "captain"
    PILOT = "pilot"
    ASTROGATOR = "astrogator"
    ENGINEER = "engineer"
    SENSOR_OPERATOR = "sensor_operator"
    GUNNER = "gunner"
    DAMAGE_CONTROL = "damage_control"
    MARINES = "marines"
    MEDIC = "medic"
    STEWARD = "steward"
    CARGO_MASTER = "cargo_master"
    COMMS = "comms"
    OBSERVER = "observer"


ALL_ROLES: FrozenSet[str] = frozenset(r.value for r in CrewRole)


class ActionKind(str, Enum):
    """Every inbound client action; values are the Socket.IO event names."""

    # Campaign and roster
    GET_CAMPAIGNS = "getCampaigns"
    CREATE_CAMPAIGN = "createCampaign"
    SELECT_CAMPAIGN = "selectCampaign"
    UPDATE_CAMPAIGN = "updateCampaign"
    DELETE_CAMPAIGN = "deleteCampaign"
    CREATE_PLAYER_SLOT = "createPlayerSlot"
    DELETE_PLAYER_SLOT = "deletePlayerSlot"
    JOIN_CAMPAIGN_AS_PLAYER = "joinCampaignAsPlayer"
    JOIN_AS_GUEST = "joinAsGuest"
    IMPORT_CHARACTER = "importCharacter"
    SELECT_PLAYER_SLOT = "selectPlayerSlot"
    SELECT_SHIP = "selectShip"
    ASSIGN_ROLE = "assignRole"
    JOIN_BRIDGE = "joinBridge"
    LEAVE_BRIDGE = "leaveBridge"
    START_SESSION = "startSession"
    ADVANCE_TIME = "advanceTime"
    ADD_LOG_ENTRY = "addLogEntry"
    GET_SHIP_LOG = "getShipLog"
    ADD_SHIP = "addShip"
    DELETE_SHIP = "deleteShip"

    # Fuel
    GET_FUEL_STATUS = "getFuelStatus"
    GET_REFUEL_OPTIONS = "getRefuelOptions"
    CAN_REFUEL = "canRefuel"
    REFUEL = "refuel"
    START_FUEL_PROCESSING = "startFuelProcessing"
    CHECK_FUEL_PROCESSING = "checkFuelProcessing"
    GET_JUMP_FUEL_PENALTIES = "getJumpFuelPenalties"

    # Navigation
    SET_EVASIVE = "setEvasive"
    SET_RANGE = "setRange"
    SET_COURSE = "setCourse"
    INITIATE_JUMP = "initiateJump"
    COMPLETE_JUMP = "completeJump"
    GET_PILOT_STATUS = "getPilotStatus"
    CLEAR_COURSE = "clearCourse"
    PASS_TIME = "passTime"
    SET_TIME_BLOCKED = "setTimeBlocked"

    # Power
    GET_POWER_STATUS = "getPowerStatus"
    SET_POWER = "setPower"
    SET_POWER_PRESET = "setPowerPreset"

    # Weapons
    FIRE = "fire"
    END_TURN = "endTurn"
    SET_WEAPONS_AUTH = "setWeaponsAuth"

    # Captain
    ISSUE_ORDER = "issueOrder"
    ACKNOWLEDGE_ORDER = "acknowledgeOrder"
    GET_ORDERS = "getOrders"
    SET_ALERT_STATUS = "setAlertStatus"
    LEADERSHIP_CHECK = "leadershipCheck"
    TACTICS_CHECK = "tacticsCheck"

    # Sensors and contacts
    GET_CONTACTS = "getContacts"
    SCAN_CONTACT = "scanContact"
    MARK_CONTACT = "markContact"
    RESET_SCAN = "resetScan"
    ADD_CONTACT = "addContact"
    UPDATE_CONTACT = "updateContact"
    DELETE_CONTACT = "deleteContact"

    # Repairs
    GET_SYSTEM_STATUS = "getSystemStatus"
    REPAIR_SYSTEM = "repairSystem"
    APPLY_SYSTEM_DAMAGE = "applySystemDamage"
    CLEAR_SYSTEM_DAMAGE = "clearSystemDamage"

    # Medical bay
    GET_CREW_HEALTH = "getCrewHealth"
    GET_CHARACTER_HEALTH = "getCharacterHealth"
    TRIAGE = "triage"
    TREAT_WOUND = "treatWound"
    STABILIZE = "stabilize"
    FIRST_AID = "firstAid"
    REMOVE_CONDITION = "removeCondition"
    ADD_WOUND = "addWound"
    ADD_CONDITION = "addCondition"
    APPLY_CREW_DAMAGE = "applyCrewDamage"
    SET_CONSCIOUSNESS = "setConsciousness"
    PROCESS_BLEEDING_ROUND = "processBleedingRound"

    # Passengers
    GET_MANIFEST = "getManifest"
    GET_PASSENGER = "getPassenger"
    ADD_PASSENGER = "addPassenger"
    REMOVE_PASSENGER = "removePassenger"
    ASSIGN_CABIN = "assignCabin"
    SET_RESTRAINT = "setRestraint"
    SECURE_ALL_PASSENGERS = "secureAllPassengers"
    CALM_PASSENGER = "calmPassenger"
    RESOLVE_DEMAND = "resolveDemand"
    ADD_DEMAND = "addDemand"
    UPDATE_PASSENGER_CAPACITY = "updatePassengerCapacity"
    APPLY_MORALE_EFFECT = "applyMoraleEffect"

    # Comms
    SEND_TRANSMISSION = "sendTransmission"
    GET_TRANSMISSIONS = "getTransmissions"
    MARK_TRANSMISSION_READ = "markTransmissionRead"
    ARCHIVE_TRANSMISSION = "archiveTransmission"
    REPLY_TO_TRANSMISSION = "replyToTransmission"

    # Shared map
    SHARE_MAP = "shareMap"
    UNSHARE_MAP = "unshareMap"
    UPDATE_MAP_VIEW = "updateMapView"
    GET_MAP_STATE = "getMapState"

    # Library
    LIBRARY_SEARCH = "librarySearch"
    DECODE_UWP = "decodeUWP"
    GET_TRADE_CODES = "getTradeCodes"
    GET_STARPORTS = "getStarports"
    GET_GLOSSARY = "getGlossary"


@dataclass(frozen=True)
class Rule:
    """Who may perform an action.

    ``allow_unassigned`` admits sessions with no crew role yet (login
    steps, read-only queries). ``silent`` denials send nothing back.
    """

    roles: FrozenSet[str]
    reason: str
    gm_only: bool = False
    allow_unassigned: bool = False
    silent: bool = False


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    silent: bool = False

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def _roles(*roles: CrewRole) -> FrozenSet[str]:
    return frozenset(r.value for r in roles)


def _open() -> Rule:
    return Rule(roles=ALL_ROLES, reason="Not permitted", allow_unassigned=True)


def _gm(reason: str, silent: bool = False) -> Rule:
    return Rule(roles=frozenset(), reason=reason, gm_only=True, silent=silent)


R = CrewRole

ACTION_RULES: Dict[ActionKind, Rule] = {
    # Campaign and roster
    ActionKind.GET_CAMPAIGNS: _open(),
    ActionKind.CREATE_CAMPAIGN: _open(),
    ActionKind.SELECT_CAMPAIGN: _open(),
    ActionKind.UPDATE_CAMPAIGN: _gm("Only GM can update the campaign"),
    ActionKind.DELETE_CAMPAIGN: _gm("Only GM can delete the campaign"),
    ActionKind.CREATE_PLAYER_SLOT: _gm("Only GM can create player slots"),
    ActionKind.DELETE_PLAYER_SLOT: _gm("Only GM can delete player slots"),
    ActionKind.JOIN_CAMPAIGN_AS_PLAYER: _open(),
    ActionKind.JOIN_AS_GUEST: _open(),
    ActionKind.IMPORT_CHARACTER: _open(),
    ActionKind.SELECT_PLAYER_SLOT: _open(),
    ActionKind.SELECT_SHIP: _open(),
    ActionKind.ASSIGN_ROLE: _open(),
    ActionKind.JOIN_BRIDGE: _open(),
    ActionKind.LEAVE_BRIDGE: _open(),
    ActionKind.START_SESSION: _gm("Only GM can start the session"),
    ActionKind.ADVANCE_TIME: _gm("Only GM can advance time"),
    ActionKind.ADD_LOG_ENTRY: Rule(ALL_ROLES, "Only crew can add log entries"),
    ActionKind.GET_SHIP_LOG: _open(),
    ActionKind.ADD_SHIP: _gm("Only GM can add ships"),
    ActionKind.DELETE_SHIP: _gm("Only GM can delete ships"),

    # Fuel
    ActionKind.GET_FUEL_STATUS: _open(),
    ActionKind.GET_REFUEL_OPTIONS: _open(),
    ActionKind.CAN_REFUEL: Rule(_roles(R.ENGINEER, R.PILOT), "Only engineer or pilot can manage refueling"),
    ActionKind.REFUEL: Rule(_roles(R.ENGINEER, R.PILOT), "Only engineer or pilot can manage refueling"),
    ActionKind.START_FUEL_PROCESSING: Rule(_roles(R.ENGINEER), "Only engineer can process fuel"),
    ActionKind.CHECK_FUEL_PROCESSING: _open(),
    ActionKind.GET_JUMP_FUEL_PENALTIES: _open(),

    # Navigation
    ActionKind.SET_EVASIVE: Rule(_roles(R.PILOT), "Only pilot can set evasive action"),
    ActionKind.SET_RANGE: Rule(_roles(R.PILOT), "Only pilot can change range"),
    ActionKind.SET_COURSE: Rule(_roles(R.PILOT, R.ASTROGATOR), "Only pilot or astrogator can set course"),
    ActionKind.INITIATE_JUMP: Rule(_roles(R.ASTROGATOR, R.PILOT), "Only astrogator or pilot can initiate a jump"),
    ActionKind.COMPLETE_JUMP: Rule(_roles(R.ASTROGATOR, R.PILOT), "Only astrogator or pilot can complete a jump"),
    ActionKind.GET_PILOT_STATUS: _open(),
    ActionKind.CLEAR_COURSE: Rule(_roles(R.PILOT, R.ASTROGATOR), "Only pilot or astrogator can clear course"),
    ActionKind.PASS_TIME: Rule(_roles(R.PILOT), "Only pilot can pass time"),
    ActionKind.SET_TIME_BLOCKED: _gm("Only GM can toggle time block"),

    # Power
    ActionKind.GET_POWER_STATUS: _open(),
    ActionKind.SET_POWER: Rule(_roles(R.ENGINEER), "Only engineer can allocate power"),
    ActionKind.SET_POWER_PRESET: Rule(_roles(R.ENGINEER), "Only engineer can allocate power"),

    # Weapons
    ActionKind.FIRE: Rule(_roles(R.GUNNER, R.CAPTAIN), "Only gunner or captain can fire weapons"),
    ActionKind.END_TURN: Rule(_roles(R.CAPTAIN, R.GUNNER, R.PILOT), "Only captain, gunner or pilot can end the turn"),
    ActionKind.SET_WEAPONS_AUTH: Rule(_roles(R.CAPTAIN, R.GUNNER), "Only captain or gunner can change weapons authorization"),

    # Captain
    ActionKind.ISSUE_ORDER: Rule(_roles(R.CAPTAIN), "Only captain can issue orders"),
    ActionKind.ACKNOWLEDGE_ORDER: Rule(ALL_ROLES, "Only crew can acknowledge orders"),
    ActionKind.GET_ORDERS: _open(),
    ActionKind.SET_ALERT_STATUS: Rule(_roles(R.CAPTAIN), "Only Captain or GM can change alert status"),
    ActionKind.LEADERSHIP_CHECK: Rule(_roles(R.CAPTAIN), "Only captain can make leadership checks"),
    ActionKind.TACTICS_CHECK: Rule(_roles(R.CAPTAIN), "Only captain can make tactics checks"),

    # Sensors and contacts
    ActionKind.GET_CONTACTS: _open(),
    ActionKind.SCAN_CONTACT: Rule(_roles(R.SENSOR_OPERATOR, R.CAPTAIN), "Only sensor operator or captain can scan contacts"),
    ActionKind.MARK_CONTACT: Rule(_roles(R.CAPTAIN, R.SENSOR_OPERATOR), "Only captain or sensor operator can mark contacts"),
    ActionKind.RESET_SCAN: _gm("Only GM can reset scan data"),
    ActionKind.ADD_CONTACT: _gm("Only GM can add contacts"),
    ActionKind.UPDATE_CONTACT: _gm("Only GM can update contacts"),
    ActionKind.DELETE_CONTACT: _gm("Only GM can delete contacts"),

    # Repairs
    ActionKind.GET_SYSTEM_STATUS: _open(),
    ActionKind.REPAIR_SYSTEM: Rule(_roles(R.ENGINEER, R.DAMAGE_CONTROL), "Only engineers can repair systems"),
    ActionKind.APPLY_SYSTEM_DAMAGE: _gm("Only GM can apply damage"),
    ActionKind.CLEAR_SYSTEM_DAMAGE: _gm("Only GM can clear damage"),

    # Medical bay
    ActionKind.GET_CREW_HEALTH: _open(),
    ActionKind.GET_CHARACTER_HEALTH: _open(),
    ActionKind.TRIAGE: _open(),
    ActionKind.TREAT_WOUND: Rule(_roles(R.MEDIC), "Only medic can treat wounds"),
    ActionKind.STABILIZE: Rule(_roles(R.MEDIC), "Only medic can stabilize crew"),
    ActionKind.FIRST_AID: Rule(_roles(R.MEDIC), "Only medic can apply first aid"),
    ActionKind.REMOVE_CONDITION: Rule(_roles(R.MEDIC), "Only medic can treat conditions"),
    ActionKind.ADD_WOUND: _gm("Only GM can add wounds"),
    ActionKind.ADD_CONDITION: _gm("Only GM can add conditions"),
    ActionKind.APPLY_CREW_DAMAGE: _gm("Only GM can apply damage"),
    ActionKind.SET_CONSCIOUSNESS: _gm("Only GM can set consciousness"),
    ActionKind.PROCESS_BLEEDING_ROUND: _gm("Only GM can process bleeding"),

    # Passengers
    ActionKind.GET_MANIFEST: _open(),
    ActionKind.GET_PASSENGER: _open(),
    ActionKind.ADD_PASSENGER: Rule(_roles(R.STEWARD, R.CARGO_MASTER), "Only steward or cargo master can board passengers"),
    ActionKind.REMOVE_PASSENGER: Rule(_roles(R.STEWARD, R.CARGO_MASTER), "Only steward or cargo master can disembark passengers"),
    ActionKind.ASSIGN_CABIN: Rule(_roles(R.STEWARD), "Only steward can assign cabins"),
    ActionKind.SET_RESTRAINT: Rule(_roles(R.STEWARD, R.MARINES), "Only steward or marines can restrain passengers"),
    ActionKind.SECURE_ALL_PASSENGERS: Rule(_roles(R.STEWARD, R.MARINES, R.CAPTAIN), "Only steward, marines or captain can secure passengers"),
    ActionKind.CALM_PASSENGER: Rule(_roles(R.STEWARD), "Only steward can calm passengers"),
    ActionKind.RESOLVE_DEMAND: Rule(_roles(R.STEWARD), "Only steward can resolve passenger demands"),
    ActionKind.ADD_DEMAND: _gm("Only GM can add demands"),
    ActionKind.UPDATE_PASSENGER_CAPACITY: _gm("Only GM can update capacity"),
    ActionKind.APPLY_MORALE_EFFECT: _gm("Only GM can apply morale effects"),

    # Comms
    ActionKind.SEND_TRANSMISSION: Rule(_roles(R.COMMS, R.CAPTAIN), "Only comms officer or captain can transmit"),
    ActionKind.GET_TRANSMISSIONS: _open(),
    ActionKind.MARK_TRANSMISSION_READ: _open(),
    ActionKind.ARCHIVE_TRANSMISSION: _open(),
    ActionKind.REPLY_TO_TRANSMISSION: Rule(ALL_ROLES, "Only crew can reply to transmissions"),

    # Shared map
    ActionKind.SHARE_MAP: _gm("Only GM can share the map"),
    ActionKind.UNSHARE_MAP: _gm("Only GM can unshare the map"),
    ActionKind.UPDATE_MAP_VIEW: _gm("Only GM can update the map view", silent=True),
    ActionKind.GET_MAP_STATE: _open(),

    # Library
    ActionKind.LIBRARY_SEARCH: _open(),
    ActionKind.DECODE_UWP: _open(),
    ActionKind.GET_TRADE_CODES: _open(),
    ActionKind.GET_STARPORTS: _open(),
    ActionKind.GET_GLOSSARY: _open(),
}

_missing = set(ActionKind) - set(ACTION_RULES)
if _missing:
    raise RuntimeError(f"No permission rule for actions: {sorted(a.value for a in _missing)}")


def rule_for(action: ActionKind) -> Rule:
    return ACTION_RULES[ActionKind(action)]


def can_perform(session, action: ActionKind) -> Decision:
    """Decide whether ``session`` may perform ``action``.

    ``session`` needs ``is_gm`` and ``role`` attributes.
    """
    rule = rule_for(action)
    if session.is_gm:
        return ALLOW
    if rule.gm_only:
        return Decision(False, rule.reason, rule.silent)
    if session.role is None:
        if rule.allow_unassigned:
            return ALLOW
        return Decision(False, rule.reason, rule.silent)
    if session.role in rule.roles:
        return ALLOW
    return Decision(False, rule.reason, rule.silent)
