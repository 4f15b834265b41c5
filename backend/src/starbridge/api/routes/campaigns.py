"""HTTP endpoints for campaign data and server status.

Socket.IO carries all game traffic; these routes let a reconnecting client
fetch a full snapshot and let monitoring inspect the server.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from starbridge.commands.campaign import full_campaign_data
from starbridge.errors import DomainError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["campaigns"])


def _runtime(request: Request):
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Runtime not initialized")
    return runtime


@router.get("/socketio/stats")
async def socketio_stats(request: Request) -> Dict[str, Any]:
    """Connection and topic counts."""
    return _runtime(request).stats()


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: str, request: Request) -> Dict[str, Any]:
    """Full campaign data for clients rebuilding their view after a reconnect."""
    runtime = _runtime(request)
    try:
        return await full_campaign_data(runtime.ctx, campaign_id)
    except DomainError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except SQLAlchemyError as e:
        logger.error("Failed to load campaign %s: %s", campaign_id, e)
        raise HTTPException(status_code=500, detail="Failed to load campaign")
