"""Topic membership for scoped broadcasts.

Topics are ``campaign:{campaign_id}`` and ``bridge:{ship_id}``. The router
is the authority on who receives what; the Socket.IO transport is only
used to deliver to individual sids.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


def campaign_topic(campaign_id: str) -> str:
    return f"campaign:{campaign_id}"


def bridge_topic(ship_id: str) -> str:
    return f"bridge:{ship_id}"


class RoomRouter:
    def __init__(self):
        self._members: Dict[str, Set[str]] = defaultdict(set)
        self._topics: Dict[str, Set[str]] = defaultdict(set)

    def join(self, sid: str, topic: str) -> bool:
        """Subscribe ``sid``; returns False if it was already a member."""
        if sid in self._members[topic]:
            return False
        self._members[topic].add(sid)
        self._topics[sid].add(topic)
        logger.debug("[Rooms] sid=%s joined %s", sid, topic)
        return True

    def leave(self, sid: str, topic: str) -> bool:
        members = self._members.get(topic)
        if not members or sid not in members:
            return False
        members.discard(sid)
        if not members:
            del self._members[topic]
        topics = self._topics.get(sid)
        if topics is not None:
            topics.discard(topic)
            if not topics:
                del self._topics[sid]
        logger.debug("[Rooms] sid=%s left %s", sid, topic)
        return True

    def leave_all(self, sid: str) -> Set[str]:
        topics = set(self._topics.get(sid, ()))
        for topic in topics:
            self.leave(sid, topic)
        return topics

    def leave_prefix(self, sid: str, prefix: str, keep: Optional[str] = None) -> None:
        """Leave every topic starting with ``prefix`` except ``keep``."""
        for topic in list(self._topics.get(sid, ())):
            if topic.startswith(prefix) and topic != keep:
                self.leave(sid, topic)

    def members_of(self, topic: str) -> Set[str]:
        return set(self._members.get(topic, ()))

    def topics_of(self, sid: str) -> Set[str]:
        return set(self._topics.get(sid, ()))

    def stats(self) -> Dict[str, int]:
        return {topic: len(members) for topic, members in self._members.items()}

    def close(self) -> None:
        self._members.clear()
        self._topics.clear()
