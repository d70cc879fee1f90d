"""Registry of open SSE sessions keyed by session id."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a session id does not belong to an open stream."""

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


@dataclass
class Session:
    """One open streaming connection."""

    session_id: str
    writer: Any
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionRegistry:
    """Maps session ids to their open stream.

    All mutations happen on the event loop thread, so no locking is needed.
    Entries are only dropped when the stream reports that it closed.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def create(self, writer: Any) -> str:
        """Register a stream under a fresh session id and return the id."""
        session_id = uuid.uuid4().hex
        while session_id in self._sessions:
            session_id = uuid.uuid4().hex

        self._sessions[session_id] = Session(session_id=session_id, writer=writer)
        logger.info("Session created: %s (%d open)", session_id, len(self._sessions))
        return session_id

    def resolve(self, session_id: str) -> Session:
        """Return the open session for ``session_id``.

        Raises:
            SessionNotFoundError: the id is unknown or its stream has closed.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def remove(self, session_id: str) -> None:
        """Forget a session. Removing an unknown id is a no-op."""
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Session removed: %s (%d open)", session_id, len(self._sessions))

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
