"""Command handlers, registered into :data:`starbridge.commands.base.COMMANDS` on import."""

from starbridge.commands import (  # noqa: F401
    bridge,
    campaign,
    captain,
    comms,
    fuel,
    library,
    medic,
    navigation,
    power,
    repairs,
    sensors,
    shared_map,
    steward,
    weapons,
)
from starbridge.commands.base import COMMANDS, CommandContext, CommandResult, CommandSpec

__all__ = ["COMMANDS", "CommandContext", "CommandResult", "CommandSpec"]
