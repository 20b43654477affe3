"""Settings, engine setup and the per-process service graph."""

from __future__ import annotations

import datetime as dt
import logging
import os
import random
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine, make_url
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from ..realtime.hub import RealtimeHub
from .adapters import BackendAdapter, MemoryAdapter, RelationalAdapter
from .membership import MembershipRegistry
from .security import IdentityGate, PasswordHasher
from .store import WorkspaceStore

__all__ = [
    "TeamTaskSettings",
    "WorkspaceServices",
    "build_services",
    "init_engine",
    "normalize_database_url",
    "select_adapter",
    "DEFAULT_PRODUCTION_URL",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

DEFAULT_PRODUCTION_URL = "postgresql://localhost:5432/teamtask"
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(slots=True)
class TeamTaskSettings:
    """Runtime configuration for the workspace service."""

    database_url: Optional[str] = None
    environment: str = "development"
    jwt_secret: str = "change-me"
    token_ttl_hours: int = 24
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    seed_demo: bool = False
    password_iterations: int = 260_000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def uses_relational_backend(self) -> bool:
        return bool(self.database_url) or self.is_production

    @classmethod
    def from_env(cls) -> "TeamTaskSettings":
        origins = os.getenv("TEAMTASK_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            database_url=os.getenv("TEAMTASK_DATABASE_URL") or os.getenv("DATABASE_URL") or None,
            environment=os.getenv("TEAMTASK_ENV") or os.getenv("NODE_ENV") or "development",
            jwt_secret=os.getenv("TEAMTASK_JWT_SECRET", "change-me"),
            token_ttl_hours=int(os.getenv("TEAMTASK_TOKEN_TTL_HOURS", "24")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            seed_demo=_env_flag("TEAMTASK_SEED_DEMO"),
            password_iterations=int(os.getenv("TEAMTASK_PASSWORD_ITERATIONS", "260000")),
        )


def normalize_database_url(database_url: str) -> str:
    """Pin PostgreSQL URLs to the psycopg (v3) driver."""

    if database_url.startswith("postgres://"):
        return "postgresql+psycopg://" + database_url[len("postgres://") :]
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def init_engine(settings: TeamTaskSettings) -> Engine:
    """Create an SQLAlchemy engine for the configured (or default) database."""

    database_url = normalize_database_url(settings.database_url or DEFAULT_PRODUCTION_URL)

    engine_kwargs: dict = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        # Handlers reach the engine from worker threads.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 20
        if settings.is_production:
            engine_kwargs["connect_args"] = {"sslmode": "require"}
    return create_engine(database_url, **engine_kwargs)


def _is_memory_sqlite(database_url: str) -> bool:
    return make_url(database_url).database in (None, "", ":memory:")


def select_adapter(settings: TeamTaskSettings) -> BackendAdapter:
    """Pick the backend once per process: relational when configured, else memory."""

    if settings.uses_relational_backend:
        return RelationalAdapter(init_engine(settings))
    return MemoryAdapter()


@dataclass(slots=True)
class WorkspaceServices:
    """Everything request handlers need, owned by the application."""

    settings: TeamTaskSettings
    adapter: BackendAdapter
    store: WorkspaceStore
    registry: MembershipRegistry
    gate: IdentityGate
    hub: RealtimeHub


def build_services(
    settings: TeamTaskSettings,
    *,
    adapter: Optional[BackendAdapter] = None,
    rng: Optional[random.Random] = None,
) -> WorkspaceServices:
    """Wire adapter, store, registry, identity gate and hub for one process.

    Schema setup runs here; a backend that cannot be initialized raises
    :class:`~teamtask.errors.BackendUnavailableError` and the process
    should not start.
    """

    if adapter is None:
        adapter = select_adapter(settings)
    adapter.init_schema()
    logger.info("workspace_backend_ready", extra={"backend": adapter.name})

    store = WorkspaceStore(adapter)
    registry = MembershipRegistry(
        adapter,
        store,
        hasher=PasswordHasher(iterations=settings.password_iterations),
        rng=rng,
    )
    gate = IdentityGate(
        secret=settings.jwt_secret,
        ttl=dt.timedelta(hours=settings.token_ttl_hours),
    )
    if settings.seed_demo:
        registry.seed_demo_team()

    return WorkspaceServices(
        settings=settings,
        adapter=adapter,
        store=store,
        registry=registry,
        gate=gate,
        hub=RealtimeHub(),
    )
