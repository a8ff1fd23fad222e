"""In-memory SessionStore for tests, demos and single-process deployments."""

from __future__ import annotations

import copy
from typing import Any, Optional

from progressive_dx.interfaces import SessionStore


class InMemorySessionStore(SessionStore):
    """Dict-backed store.  States are deep-copied in and out."""

    def __init__(self) -> None:
        self._states: dict[str, dict[str, Any]] = {}

    async def get(self, session_id: str) -> Optional[dict[str, Any]]:
        state = self._states.get(session_id)
        return copy.deepcopy(state) if state is not None else None

    async def put(self, session_id: str, state: dict[str, Any]) -> None:
        self._states[session_id] = copy.deepcopy(state)

    async def delete(self, session_id: str) -> bool:
        return self._states.pop(session_id, None) is not None

    async def list_states(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        rows = [
            s for s in self._states.values()
            if (user_id is None or s.get("user_id") == user_id)
            and (status is None or s.get("status") == status)
        ]
        rows.sort(key=lambda s: s.get("created_at", ""), reverse=True)
        end = None if limit is None else offset + limit
        return [copy.deepcopy(s) for s in rows[offset:end]]

    def __len__(self) -> int:
        return len(self._states)
