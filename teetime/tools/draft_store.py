"""
In-memory draft snapshot store.

In production, this would be the golfer's server-side session record
(for example a Redis key per session). Snapshots are stored serialized,
exactly as they would cross the wire, so a restore never shares state
with the live draft.
"""

import logging
from typing import Optional

from teetime.schemas.draft_schema import DraftSnapshot

logger = logging.getLogger(__name__)


class InMemoryDraftStore:
    """One JSON snapshot per session key."""

    def __init__(self) -> None:
        self._snapshots: dict[str, str] = {}

    async def save(self, snapshot: DraftSnapshot) -> None:
        self._snapshots[snapshot.session_key] = snapshot.model_dump_json()

    async def load(self, session_key: str) -> Optional[DraftSnapshot]:
        raw = self._snapshots.get(session_key)
        if raw is None:
            return None
        return DraftSnapshot.model_validate_json(raw)

    async def clear(self, session_key: str) -> None:
        if self._snapshots.pop(session_key, None) is not None:
            logger.debug("Draft snapshot cleared for %s", session_key)
