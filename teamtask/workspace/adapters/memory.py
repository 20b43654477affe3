"""Process-local workspace backend used when no database is configured."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import replace
from typing import Any, Mapping

from ...errors import ConflictError, ValidationError
from ..entities import DOCUMENT_FIELDS, Team, TeamDocument, User, empty_fields, next_updated_at

__all__ = ["MemoryAdapter"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class MemoryAdapter:
    """Dictionary-backed repository with the same contract as the relational adapter.

    Everything lives in this object; nothing survives a process restart.
    Stored values are copied on the way in and out so callers never share
    mutable state with the repository. Request handlers call in from worker
    threads, so every operation holds one re-entrant lock.
    """

    name = "memory"

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._user_ids_by_email: dict[str, str] = {}
        self._teams: dict[str, Team] = {}
        self._team_ids_by_code: dict[str, str] = {}
        self._documents: dict[str, TeamDocument] = {}
        self._lock = threading.RLock()
        self._warned = False

    def init_schema(self) -> None:
        if not self._warned:
            logger.warning(
                "memory_backend_selected",
                extra={"detail": "data is kept in process memory and lost on restart"},
            )
            self._warned = True

    # ------------------------------------------------------------------ users
    def find_user_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._user_ids_by_email.get(email)
            return self.find_user_by_id(user_id) if user_id else None

    def find_user_by_id(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def insert_user(self, user: User) -> None:
        with self._lock:
            if user.id in self._users:
                raise ConflictError(f"User {user.id} already exists")
            if user.email in self._user_ids_by_email:
                raise ConflictError("Email address already registered")
            self._users[user.id] = replace(user)
            self._user_ids_by_email[user.email] = user.id

    def delete_user(self, user_id: str) -> None:
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is not None:
                self._user_ids_by_email.pop(user.email, None)

    def update_user_team(self, user_id: str, team_id: str, team_name: str) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is not None:
                user.team_id = team_id
                user.team_name = team_name

    def count_users(self) -> int:
        with self._lock:
            return len(self._users)

    # ------------------------------------------------------------------ teams
    def find_team_by_id(self, team_id: str) -> Team | None:
        with self._lock:
            team = self._teams.get(team_id)
            return replace(team, members=list(team.members)) if team else None

    def find_team_by_code(self, code: str) -> Team | None:
        with self._lock:
            team_id = self._team_ids_by_code.get(code.upper())
            return self.find_team_by_id(team_id) if team_id else None

    def insert_team(self, team: Team) -> None:
        code = team.join_code.upper()
        with self._lock:
            if team.id in self._teams:
                raise ConflictError(f"Team {team.id} already exists")
            if code in self._team_ids_by_code:
                raise ConflictError("Join code already in use")
            self._teams[team.id] = replace(team, join_code=code, members=list(team.members))
            self._team_ids_by_code[code] = team.id

    def append_team_member(self, team_id: str, user_id: str) -> None:
        with self._lock:
            team = self._teams.get(team_id)
            if team is not None and user_id not in team.members:
                team.members.append(user_id)

    # -------------------------------------------------------------- documents
    def get_document(self, team_id: str) -> TeamDocument | None:
        with self._lock:
            document = self._documents.get(team_id)
            if document is None:
                return None
            return TeamDocument(
                team_id=document.team_id,
                fields=copy.deepcopy(document.fields),
                updated_at=document.updated_at,
            )

    def upsert_document(self, team_id: str, fields: Mapping[str, list[Any]]) -> None:
        unknown = set(fields) - set(DOCUMENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown data type: {sorted(unknown)[0]}")
        records = {name: copy.deepcopy(list(value)) for name, value in fields.items()}

        with self._lock:
            document = self._documents.get(team_id)
            if document is None:
                document = TeamDocument(team_id=team_id, fields=empty_fields())
                self._documents[team_id] = document
                previous = None
            else:
                previous = document.updated_at
            document.fields.update(records)
            document.updated_at = next_updated_at(previous)
