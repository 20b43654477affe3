"""Storage contract implemented by every workspace backend."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from ..entities import Team, TeamDocument, User

__all__ = ["BackendAdapter"]


@runtime_checkable
class BackendAdapter(Protocol):
    """Uniform storage interface consumed by the store and the registry.

    Implementations hold no business rules beyond the uniqueness of user
    emails and team join codes. Uniqueness violations raise
    :class:`~teamtask.errors.ConflictError`; storage failures raise
    :class:`~teamtask.errors.BackendUnavailableError`.
    """

    name: str

    def init_schema(self) -> None:
        """Create storage structures if absent. Safe to call on every start."""

    def find_user_by_email(self, email: str) -> User | None: ...

    def find_user_by_id(self, user_id: str) -> User | None: ...

    def find_team_by_id(self, team_id: str) -> Team | None: ...

    def find_team_by_code(self, code: str) -> Team | None:
        """Look up a team by join code, ignoring case."""

    def get_document(self, team_id: str) -> TeamDocument | None: ...

    def insert_user(self, user: User) -> None: ...

    def delete_user(self, user_id: str) -> None:
        """Remove a user; used to undo a registration that could not finish."""

    def insert_team(self, team: Team) -> None: ...

    def upsert_document(self, team_id: str, fields: Mapping[str, list[Any]]) -> None:
        """Create the document if absent, else replace only the supplied fields."""

    def update_user_team(self, user_id: str, team_id: str, team_name: str) -> None: ...

    def append_team_member(self, team_id: str, user_id: str) -> None:
        """Add *user_id* to the member list unless already present."""

    def count_users(self) -> int: ...
