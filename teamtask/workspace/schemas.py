"""Pydantic schemas for workspace API requests/responses."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .entities import Team, User

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "JoinTeamRequest",
    "UserResponse",
    "AuthResponse",
    "TeamSummary",
    "JoinTeamResponse",
    "MeResponse",
    "DataResponse",
    "SaveResponse",
    "HealthResponse",
]


class CamelModel(BaseModel):
    """Serializes snake_case attributes as camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========================================================================
# Requests
# ========================================================================

# Missing fields default to "" so the registry reports them as a 400.


class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class JoinTeamRequest(CamelModel):
    team_code: str = ""


# ========================================================================
# Responses
# ========================================================================


class UserResponse(CamelModel):
    """Public view of a user; never includes the password secret."""

    id: str
    username: str
    email: str
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    role: str
    created_at: dt.datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            team_id=user.team_id,
            team_name=user.team_name,
            role=user.role,
            created_at=user.created_at,
        )


class AuthResponse(CamelModel):
    success: bool = True
    token: str
    user: UserResponse


class TeamSummary(CamelModel):
    id: str
    name: str
    code: str

    @classmethod
    def from_team(cls, team: Team) -> "TeamSummary":
        return cls(id=team.id, name=team.name, code=team.join_code)


class JoinTeamResponse(CamelModel):
    success: bool = True
    message: str = "Joined the team"
    team: TeamSummary


class MeResponse(CamelModel):
    success: bool = True
    user: UserResponse


class DataResponse(BaseModel):
    data: Any = Field(default_factory=list)


class SaveResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
    backend: str
