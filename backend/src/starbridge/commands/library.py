"""Read-only reference lookups. Answered to the requester only."""

from __future__ import annotations

from starbridge.api.schemas.library import DecodeUwpPayload, LibrarySearchPayload
from starbridge.commands.base import CommandContext, CommandResult, EmptyPayload, Requires, command, reply
from starbridge.connection.session_registry import Session
from starbridge.errors import DomainError
from starbridge.security.authorization import ActionKind


@command(ActionKind.LIBRARY_SEARCH, LibrarySearchPayload, subsystem="Library", requires=Requires.NOTHING)
async def library_search(ctx: CommandContext, session: Session, payload: LibrarySearchPayload) -> CommandResult:
    query = payload.query if isinstance(payload.query, str) else ""
    if not query.strip():
        return reply("libraryResults", {"results": [], "query": ""})
    return reply("libraryResults", {"results": ctx.library.search(query), "query": query})


@command(ActionKind.DECODE_UWP, DecodeUwpPayload, subsystem="Library", requires=Requires.NOTHING)
async def decode_uwp(ctx: CommandContext, session: Session, payload: DecodeUwpPayload) -> CommandResult:
    uwp = payload.uwp if isinstance(payload.uwp, str) else ""
    decoded = ctx.library.decode_uwp(uwp)
    if decoded is None:
        raise DomainError(f"Invalid UWP: {uwp!r}")
    return reply("uwpDecoded", {"uwp": uwp.strip().upper(), "decoded": decoded})


@command(ActionKind.GET_TRADE_CODES, subsystem="Library", requires=Requires.NOTHING)
async def get_trade_codes(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    return reply("tradeCodes", {"tradeCodes": ctx.library.trade_codes()})


@command(ActionKind.GET_STARPORTS, subsystem="Library", requires=Requires.NOTHING)
async def get_starports(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    return reply("starports", {"starports": ctx.library.starports()})


@command(ActionKind.GET_GLOSSARY, subsystem="Library", requires=Requires.NOTHING)
async def get_glossary(ctx: CommandContext, session: Session, payload: EmptyPayload) -> CommandResult:
    return reply("glossary", {"glossary": ctx.library.glossary()})
