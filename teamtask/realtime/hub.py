"""Per-team broadcast groups of live sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from ..errors import ValidationError

__all__ = ["Outbox", "RealtimeHub", "RealtimeSession", "SessionState", "DATA_UPDATED"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

DATA_UPDATED = "data-updated"


class Outbox(Protocol):
    def put_nowait(self, item: dict[str, Any]) -> None: ...


class SessionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


@dataclass(slots=True, eq=False)
class RealtimeSession:
    """One live connection. Messages are queued on *outbox* for its writer."""

    session_id: str
    outbox: Outbox
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    state: SessionState = SessionState.CONNECTED

    def deliver(self, message: dict[str, Any]) -> None:
        self.outbox.put_nowait(message)


class RealtimeHub:
    """Tracks sessions per team and fans out field updates.

    ``broadcast`` only enqueues, so every peer sees updates in the order
    the writes were accepted.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, RealtimeSession] = {}
        self._teams: dict[str, dict[str, RealtimeSession]] = {}

    def connect(self, session: RealtimeSession) -> None:
        if session.state is not SessionState.CONNECTED:
            raise ValidationError("Session is not in the connected state")
        self._sessions[session.session_id] = session

    def join(self, session_id: str, team_id: str) -> RealtimeSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise ValidationError("Unknown session")
        if session.state is SessionState.JOINED:
            if session.team_id == team_id:
                return session
            raise ValidationError("Session already joined another team")
        session.team_id = team_id
        session.state = SessionState.JOINED
        self._teams.setdefault(team_id, {})[session_id] = session
        logger.debug("session_joined", extra={"session_id": session_id, "team_id": team_id})
        return session

    def leave(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        if session.team_id is not None:
            members = self._teams.get(session.team_id)
            if members is not None:
                members.pop(session_id, None)
                if not members:
                    del self._teams[session.team_id]
        session.state = SessionState.DISCONNECTED

    def sessions(self, team_id: str) -> list[RealtimeSession]:
        return list(self._teams.get(team_id, {}).values())

    def broadcast(
        self,
        team_id: str,
        field: str,
        records: list[Any],
        origin_session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> int:
        """Queue a field update for every team session except the origin.

        Returns the number of sessions the update was queued for. A failing
        peer is logged and skipped.
        """

        message = {"event": DATA_UPDATED, "dataType": field, "data": records, "userId": user_id}
        delivered = 0
        for session in self.sessions(team_id):
            if session.session_id == origin_session_id:
                continue
            try:
                session.deliver(message)
            except Exception:
                logger.warning(
                    "realtime_delivery_failed",
                    extra={"session_id": session.session_id, "team_id": team_id},
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered
