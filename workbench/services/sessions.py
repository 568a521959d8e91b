"""Registry of mounted dashboard sessions."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from workbench.errors import NotFound
from workbench.reporting.session import DashboardSession
from workbench.services.api_client import ApiClient
from workbench.services.row_counts import make_counter

logger = logging.getLogger("workbench")


class DashboardSessionStore:
    """Create a session when a reporting tab mounts, drop it on unmount."""

    def __init__(self, config: Mapping[str, Any], api: ApiClient):
        self.config = config
        self.api = api
        self._sessions: Dict[str, DashboardSession] = {}
        self._lock = threading.Lock()

    def open(self, project_id: str, token: Optional[str] = None) -> DashboardSession:
        metadata = self.api.project_metadata(project_id, token)
        counter = make_counter(self.config, self.api, project_id, token)
        session = DashboardSession(project_id, metadata, self.api, counter, token, self.config)
        with self._lock:
            self._sessions[session.id] = session
        logger.info("Mounted dashboard %s for project %s", session.id, project_id)
        return session

    def get(self, session_id: str) -> DashboardSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(f"Unknown dashboard {session_id!r}.")
        return session

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise NotFound(f"Unknown dashboard {session_id!r}.")
        session.close()
        logger.info("Unmounted dashboard %s", session_id)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["DashboardSessionStore"]
