"""Durable workspace backend on top of SQLAlchemy."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from sqlalchemy import func, inspect, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...errors import BackendUnavailableError, ConflictError, ValidationError
from ..entities import DOCUMENT_FIELDS, Team, TeamDocument, User, next_updated_at
from ..models import Base, TeamDataRow, TeamRow, UserRow, document_column_type

__all__ = ["RelationalAdapter"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Dialects with a native INSERT ... ON CONFLICT DO UPDATE clause.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class RelationalAdapter:
    """Backend adapter issuing parameterized statements through SQLAlchemy."""

    name = "relational"

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError(_constraint_message(exc)) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("relational_backend_error", exc_info=exc)
            raise BackendUnavailableError() from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ----------------------------------------------------------------- schema
    def init_schema(self) -> None:
        """Create missing tables, then add any document columns older tables lack."""

        try:
            Base.metadata.create_all(self.engine)
            existing = {
                column["name"]
                for column in inspect(self.engine).get_columns(TeamDataRow.__tablename__)
            }
            missing = [c for c in DOCUMENT_FIELDS.values() if c not in existing]
            if missing:
                column_type = document_column_type(self.engine.dialect.name)
                with self.engine.begin() as conn:
                    for column in missing:
                        conn.execute(
                            text(
                                f"ALTER TABLE {TeamDataRow.__tablename__} "
                                f"ADD COLUMN {column} {column_type} DEFAULT '[]'"
                            )
                        )
                logger.info("team_data_columns_added", extra={"columns": missing})
        except SQLAlchemyError as exc:
            logger.error("relational_schema_init_failed", exc_info=exc)
            raise BackendUnavailableError("Could not initialize database schema") from exc

    # ------------------------------------------------------------------ users
    def find_user_by_email(self, email: str) -> User | None:
        with self._session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email)
            ).scalar_one_or_none()
            return _user_from_row(row) if row else None

    def find_user_by_id(self, user_id: str) -> User | None:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            return _user_from_row(row) if row else None

    def insert_user(self, user: User) -> None:
        with self._session() as session:
            session.add(
                UserRow(
                    id=user.id,
                    username=user.username,
                    email=user.email,
                    password_secret=user.password_secret,
                    team_id=user.team_id,
                    team_name=user.team_name,
                    role=user.role,
                    created_at=user.created_at,
                )
            )

    def delete_user(self, user_id: str) -> None:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            if row is not None:
                session.delete(row)

    def update_user_team(self, user_id: str, team_id: str, team_name: str) -> None:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            if row is not None:
                row.team_id = team_id
                row.team_name = team_name

    def count_users(self) -> int:
        with self._session() as session:
            return session.execute(select(func.count()).select_from(UserRow)).scalar_one()

    # ------------------------------------------------------------------ teams
    def find_team_by_id(self, team_id: str) -> Team | None:
        with self._session() as session:
            row = session.get(TeamRow, team_id)
            return _team_from_row(row) if row else None

    def find_team_by_code(self, code: str) -> Team | None:
        with self._session() as session:
            row = session.execute(
                select(TeamRow).where(TeamRow.join_code == code.upper())
            ).scalar_one_or_none()
            return _team_from_row(row) if row else None

    def insert_team(self, team: Team) -> None:
        with self._session() as session:
            session.add(
                TeamRow(
                    id=team.id,
                    name=team.name,
                    join_code=team.join_code.upper(),
                    owner_id=team.owner_id,
                    members=list(team.members),
                    created_at=team.created_at,
                )
            )

    def append_team_member(self, team_id: str, user_id: str) -> None:
        with self._session() as session:
            row = session.get(TeamRow, team_id)
            if row is not None and user_id not in (row.members or []):
                # Reassign so the change is flushed for both JSON and ARRAY columns.
                row.members = [*(row.members or []), user_id]

    # -------------------------------------------------------------- documents
    def get_document(self, team_id: str) -> TeamDocument | None:
        with self._session() as session:
            row = session.get(TeamDataRow, team_id)
            if row is None:
                return None
            return TeamDocument(
                team_id=row.team_id,
                fields={
                    name: list(getattr(row, column) or [])
                    for name, column in DOCUMENT_FIELDS.items()
                },
                updated_at=row.updated_at,
            )

    def upsert_document(self, team_id: str, fields: Mapping[str, list[Any]]) -> None:
        unknown = set(fields) - set(DOCUMENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown data type: {sorted(unknown)[0]}")

        values = {DOCUMENT_FIELDS[name]: list(records) for name, records in fields.items()}
        insert = _UPSERT_INSERTS.get(self.engine.dialect.name)

        with self._session() as session:
            # Row lock on PostgreSQL keeps updated_at strictly increasing per team.
            previous = session.execute(
                select(TeamDataRow.updated_at)
                .where(TeamDataRow.team_id == team_id)
                .with_for_update()
            ).scalar_one_or_none()
            values["updated_at"] = next_updated_at(previous)

            if insert is not None:
                stmt = insert(TeamDataRow).values(team_id=team_id, **values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[TeamDataRow.team_id],
                    set_=values,
                )
                session.execute(stmt)
                return

            row = session.get(TeamDataRow, team_id, with_for_update=True)
            if row is None:
                row = TeamDataRow(team_id=team_id)
                session.add(row)
            for column, value in values.items():
                setattr(row, column, value)


def _user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password_secret=row.password_secret,
        team_id=row.team_id,
        team_name=row.team_name,
        role=row.role,
        created_at=row.created_at,
    )


def _team_from_row(row: TeamRow) -> Team:
    return Team(
        id=row.id,
        name=row.name,
        join_code=row.join_code,
        owner_id=row.owner_id,
        members=list(row.members or []),
        created_at=row.created_at,
    )


def _constraint_message(exc: IntegrityError) -> str:
    detail = str(exc.orig).lower()
    if "email" in detail:
        return "Email address already registered"
    if "join_code" in detail:
        return "Join code already in use"
    return "Resource already exists"
