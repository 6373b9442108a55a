"""
In-memory registry of analysis sessions owned by the HTTP host.

Created in the app lifespan and attached to app.state.sessions; routes
receive it via Depends(get_registry). Nothing is persisted.
"""

import logging
import uuid
from typing import Dict, Optional, Tuple

from formcoach.config import get_settings
from formcoach.cv.session_aggregator import SessionAggregator

logger = logging.getLogger(__name__)


class SessionLimitError(RuntimeError):
    """Raised when the registry already holds max_sessions sessions."""


class SessionRegistry:
    """Maps session ids to their SessionAggregator."""

    def __init__(self, max_sessions: Optional[int] = None):
        settings = get_settings()
        self.max_sessions = settings.max_sessions if max_sessions is None else max_sessions
        self._sessions: Dict[str, SessionAggregator] = {}

    def create(self) -> Tuple[str, SessionAggregator]:
        if len(self._sessions) >= self.max_sessions:
            raise SessionLimitError(f"Session limit reached ({self.max_sessions})")
        session_id = str(uuid.uuid4())
        session = SessionAggregator()
        self._sessions[session_id] = session
        logger.info(f"Session {session_id} created ({len(self._sessions)} active)")
        return session_id, session

    def get(self, session_id: str) -> Optional[SessionAggregator]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Session {session_id} removed")
        return True

    def clear(self) -> None:
        self._sessions.clear()
