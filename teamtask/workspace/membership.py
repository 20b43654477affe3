"""Users, teams and join codes."""

from __future__ import annotations

import logging
import random
import secrets
import string
from typing import Optional

from ..errors import (
    BackendUnavailableError,
    ConflictError,
    DuplicateEmailError,
    InvalidCredentialsError,
    NotMemberError,
    TeamNotFoundError,
    UserNotFoundError,
    TeamTaskError,
    ValidationError,
)
from .adapters import BackendAdapter
from .entities import Team, User
from .security import PasswordHasher
from .store import WorkspaceStore

__all__ = ["MembershipRegistry", "TEAM_NAME_SUFFIX"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

ID_ALPHABET = string.digits + string.ascii_lowercase
CODE_ALPHABET = string.digits + string.ascii_uppercase
ID_LENGTH = 9
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10
TEAM_NAME_SUFFIX = "のチーム"

DEMO_EMAIL = "test@example.com"
DEMO_PASSWORD = "password"
DEMO_USERNAME = "テストユーザー"
DEMO_TEAM_NAME = "テストチーム"


class MembershipRegistry:
    """Registration, login and team membership on top of a backend adapter."""

    def __init__(
        self,
        adapter: BackendAdapter,
        store: WorkspaceStore,
        hasher: PasswordHasher | None = None,
        rng: Optional[random.Random] = None,
    ):
        self.adapter = adapter
        self.store = store
        self.hasher = hasher or PasswordHasher()
        self._rng = rng or secrets.SystemRandom()

    # ------------------------------------------------------------ identifiers
    def generate_id(self) -> str:
        return "".join(self._rng.choice(ID_ALPHABET) for _ in range(ID_LENGTH))

    def generate_join_code(self) -> str:
        return "".join(self._rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))

    # ----------------------------------------------------------- registration
    def register(self, username: str, email: str, password: str) -> tuple[User, Team]:
        """Create a user together with a personal team and its empty document."""

        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password:
            raise ValidationError("Username, email and password are required")
        if self.adapter.find_user_by_email(email) is not None:
            raise DuplicateEmailError()

        return self._create_owner(username, email, password, f"{username}{TEAM_NAME_SUFFIX}")

    def _create_owner(
        self, username: str, email: str, password: str, team_name: str
    ) -> tuple[User, Team]:
        user = User(
            id=self.generate_id(),
            username=username,
            email=email,
            password_secret=self.hasher.hash(password),
            team_id=self.generate_id(),
            team_name=team_name,
            role="owner",
        )
        try:
            self.adapter.insert_user(user)
        except ConflictError:
            raise DuplicateEmailError() from None

        try:
            team = self._create_team(user.team_id, team_name, owner_id=user.id)
        except TeamTaskError:
            self.adapter.delete_user(user.id)
            logger.warning("registration_rolled_back", extra={"user_id": user.id})
            raise

        try:
            self.store.create_empty(team.id)
        except BackendUnavailableError:
            # A team without a document reads as an empty document.
            logger.warning("team_document_create_failed", extra={"team_id": team.id})

        logger.info("team_registered", extra={"user_id": user.id, "team_id": team.id})
        return user, team

    def _create_team(self, team_id: str, name: str, owner_id: str) -> Team:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.generate_join_code()
            if self.adapter.find_team_by_code(code) is not None:
                continue
            team = Team(
                id=team_id,
                name=name,
                join_code=code,
                owner_id=owner_id,
                members=[owner_id],
            )
            try:
                self.adapter.insert_team(team)
            except ConflictError:
                continue
            return team
        raise ConflictError("Could not allocate a unique team join code")

    # ------------------------------------------------------------------ login
    def authenticate(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Email address and password are required")
        user = self.adapter.find_user_by_email(email.strip())
        if user is None or not self.hasher.verify(password, user.password_secret):
            raise InvalidCredentialsError()
        return user

    def get_user(self, user_id: str) -> User:
        user = self.adapter.find_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    # ------------------------------------------------------------- membership
    def join_team(self, user_id: str, code: str) -> Team:
        """Move *user_id* into the team owning *code*; joining twice is a no-op."""

        code = (code or "").strip()
        if not code:
            raise ValidationError("Team code is required")
        team = self.adapter.find_team_by_code(code)
        if team is None:
            raise TeamNotFoundError()
        user = self.adapter.find_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        self.adapter.update_user_team(user.id, team.id, team.name)
        if user.id not in team.members:
            self.adapter.append_team_member(team.id, user.id)
            team.members.append(user.id)

        logger.info("team_joined", extra={"user_id": user.id, "team_id": team.id})
        return team

    def team_for_user(self, user_id: str) -> Team:
        """Return the user's current team or raise :class:`NotMemberError`."""

        user = self.get_user(user_id)
        if not user.team_id:
            raise NotMemberError()
        team = self.adapter.find_team_by_id(user.team_id)
        if team is None or user.id not in team.members:
            raise NotMemberError()
        return team

    # ------------------------------------------------------------------- demo
    def seed_demo_team(self) -> Optional[tuple[User, Team]]:
        """Create the demo account and sample data unless it already exists."""

        if self.adapter.find_user_by_email(DEMO_EMAIL) is not None:
            return None

        user, team = self._create_owner(DEMO_USERNAME, DEMO_EMAIL, DEMO_PASSWORD, DEMO_TEAM_NAME)
        self.store.write(
            team.id,
            "tasks",
            [
                {
                    "id": self.generate_id(),
                    "title": "テストタスク1",
                    "description": "これはテストタスク1です。",
                    "status": "todo",
                    "assignedTo": user.id,
                    "dueDate": "2025-12-01",
                },
                {
                    "id": self.generate_id(),
                    "title": "テストタスク2",
                    "description": "これはテストタスク2です。",
                    "status": "in-progress",
                    "assignedTo": user.id,
                    "dueDate": "2025-12-05",
                },
            ],
        )
        self.store.write(
            team.id,
            "projects",
            [
                {
                    "id": self.generate_id(),
                    "name": "テストプロジェクトA",
                    "description": "プロジェクトAの説明",
                    "status": "active",
                    "startDate": "2025-10-01",
                    "endDate": "2026-03-31",
                    "members": [user.id],
                }
            ],
        )
        self.store.write(
            team.id,
            "sales",
            [
                {
                    "id": self.generate_id(),
                    "customerName": "テスト顧客X",
                    "amount": 100000,
                    "status": "pending",
                    "contactDate": "2025-10-15",
                }
            ],
        )
        logger.info("demo_team_seeded", extra={"email": DEMO_EMAIL, "join_code": team.join_code})
        return user, team
