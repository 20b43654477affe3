"""SQLAlchemy models for the relational workspace backend."""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, func, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

__all__ = ["Base", "UserRow", "TeamRow", "TeamDataRow", "document_column_type"]

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in development and tests).
JSONList = JSON().with_variant(JSONB(), "postgresql")
MemberList = JSON().with_variant(ARRAY(Text), "postgresql")


def document_column_type(dialect_name: str) -> str:
    """DDL type used when adding a missing document column."""

    return "JSONB" if dialect_name == "postgresql" else "JSON"


class Base(DeclarativeBase):
    """Declarative base class shared by all workspace models."""


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_secret: Mapped[str] = mapped_column(String(255), nullable=False)
    team_id: Mapped[str | None] = mapped_column(String(50))
    team_name: Mapped[str | None] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), nullable=False, server_default="owner")
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class TeamRow(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    join_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    owner_id: Mapped[str] = mapped_column(String(50), nullable=False)
    members: Mapped[list[str]] = mapped_column(MemberList, nullable=False, default=list)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class TeamDataRow(Base):
    """One row per team; one JSON column per document field."""

    __tablename__ = "team_data"

    team_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    tasks: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    projects: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    sales: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    team_members: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    meetings: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    activities: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    documents: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    meeting_minutes: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    leads: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    service_materials: Mapped[list[Any]] = mapped_column(
        JSONList, nullable=False, default=list, server_default=text("'[]'")
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
