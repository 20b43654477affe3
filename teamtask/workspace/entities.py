"""Storage-neutral domain records shared by both backend adapters."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "DOCUMENT_FIELDS",
    "Record",
    "User",
    "Team",
    "TeamDocument",
    "empty_fields",
    "next_updated_at",
    "utcnow",
]

Record = dict[str, Any]

# API field name -> storage column name. Order is the canonical document order.
DOCUMENT_FIELDS: dict[str, str] = {
    "tasks": "tasks",
    "projects": "projects",
    "sales": "sales",
    "teamMembers": "team_members",
    "meetings": "meetings",
    "activities": "activities",
    "documents": "documents",
    "meetingMinutes": "meeting_minutes",
    "leads": "leads",
    "serviceMaterials": "service_materials",
}


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def next_updated_at(previous: dt.datetime | None) -> dt.datetime:
    """Return a timestamp strictly after *previous* (naive values are read as UTC)."""

    now = utcnow()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=dt.timezone.utc)
    if now <= previous:
        return previous + dt.timedelta(microseconds=1)
    return now


def empty_fields() -> dict[str, list[Any]]:
    """Return a document body with every field set to an empty list."""

    return {name: [] for name in DOCUMENT_FIELDS}


@dataclass(slots=True)
class User:
    id: str
    username: str
    email: str
    password_secret: str
    team_id: str | None = None
    team_name: str | None = None
    role: str = "owner"
    created_at: dt.datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Team:
    id: str
    name: str
    join_code: str
    owner_id: str
    members: list[str] = field(default_factory=list)
    created_at: dt.datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class TeamDocument:
    """Workspace data owned by one team, keyed by API field name."""

    team_id: str
    fields: dict[str, list[Any]] = field(default_factory=empty_fields)
    updated_at: dt.datetime = field(default_factory=utcnow)
