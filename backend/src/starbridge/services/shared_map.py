"""Per-campaign shared map view, held in memory by the runtime.

The GM can push a map view to every client in a campaign; late joiners ask
for the current state instead of relying on replay.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_VIEW_FIELDS = ("center", "sector", "hex", "zoom")


class SharedMapState:
    def __init__(self):
        self._maps: Dict[str, Dict[str, Any]] = {}

    def share(self, campaign_id: str, view: Dict[str, Any], shared_by: Optional[str] = None) -> Dict[str, Any]:
        state = {field: view.get(field) for field in _VIEW_FIELDS}
        state.update({
            "shared": True,
            "sharedBy": shared_by,
            "sharedAt": datetime.now(timezone.utc).isoformat(),
        })
        self._maps[campaign_id] = state
        logger.debug("[Map] Shared for campaign=%s", campaign_id)
        return dict(state)

    def unshare(self, campaign_id: str) -> None:
        self._maps.pop(campaign_id, None)

    def update_view(self, campaign_id: str, view: Dict[str, Any]) -> Dict[str, Any]:
        """Merge non-null view fields; updating an unshared map shares it."""
        state = self._maps.get(campaign_id) or {"shared": True, "sharedBy": None, "sharedAt": None}
        for field in _VIEW_FIELDS:
            if view.get(field) is not None:
                state[field] = view[field]
        self._maps[campaign_id] = state
        return dict(state)

    def get(self, campaign_id: Optional[str]) -> Dict[str, Any]:
        if campaign_id is None or campaign_id not in self._maps:
            return {"shared": False}
        return dict(self._maps[campaign_id])

    def close(self) -> None:
        self._maps.clear()
