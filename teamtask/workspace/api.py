"""FastAPI application for team workspaces.

- Registration, login and joining teams by code
- Reading and replacing workspace fields
- Realtime fan-out of written fields over ``/ws``
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import TeamTaskError
from ..realtime.socket import register_socket
from . import schemas
from .entities import Team
from .security import Identity, parse_bearer
from .service import TeamTaskSettings, WorkspaceServices, build_services

__all__ = ["create_app", "TeamTaskSettings"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def create_app(
    settings: TeamTaskSettings | None = None,
    *,
    services: WorkspaceServices | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application for team workspaces."""

    if services is None:
        services = build_services(settings or TeamTaskSettings.from_env())
    settings = services.settings

    app = FastAPI(
        title="TeamTask Workspace API",
        version=__version__,
        description="Team-scoped workspace documents with realtime updates",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_services(request: Request) -> WorkspaceServices:
        return request.app.state.services

    def get_identity(
        authorization: Optional[str] = Header(None),
        services: WorkspaceServices = Depends(get_services),
    ) -> Identity:
        return services.gate.authenticate(parse_bearer(authorization))

    def get_team(
        identity: Identity = Depends(get_identity),
        services: WorkspaceServices = Depends(get_services),
    ) -> Team:
        return services.registry.team_for_user(identity.user_id)

    @app.exception_handler(TeamTaskError)
    async def _handle_domain_errors(request: Request, exc: TeamTaskError):
        if exc.status_code >= 500:
            logger.error("request_failed", extra={"path": request.url.path, "error": exc.code})
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.code},
        )

    @app.exception_handler(Exception)
    async def _handle_errors(request: Request, exc: Exception):
        logger.exception("unhandled_error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "error": "internal_error"},
        )

    # ========================================================================
    # Auth
    # ========================================================================

    @app.post("/api/auth/register", response_model=schemas.AuthResponse)
    async def register(
        request: schemas.RegisterRequest,
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.AuthResponse:
        user, _team = await run_in_threadpool(
            services.registry.register, request.username, request.email, request.password
        )
        return schemas.AuthResponse(
            token=services.gate.issue(user),
            user=schemas.UserResponse.from_user(user),
        )

    @app.post("/api/auth/login", response_model=schemas.AuthResponse)
    async def login(
        request: schemas.LoginRequest,
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.AuthResponse:
        user = await run_in_threadpool(services.registry.authenticate, request.email, request.password)
        return schemas.AuthResponse(
            token=services.gate.issue(user),
            user=schemas.UserResponse.from_user(user),
        )

    @app.post("/api/auth/join-team", response_model=schemas.JoinTeamResponse)
    async def join_team(
        request: schemas.JoinTeamRequest,
        identity: Identity = Depends(get_identity),
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.JoinTeamResponse:
        team = await run_in_threadpool(services.registry.join_team, identity.user_id, request.team_code)
        return schemas.JoinTeamResponse(team=schemas.TeamSummary.from_team(team))

    @app.get("/api/auth/me", response_model=schemas.MeResponse)
    async def me(
        identity: Identity = Depends(get_identity),
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.MeResponse:
        user = await run_in_threadpool(services.registry.get_user, identity.user_id)
        return schemas.MeResponse(user=schemas.UserResponse.from_user(user))

    # ========================================================================
    # Workspace data
    # ========================================================================

    @app.get("/api/data/all", response_model=schemas.DataResponse)
    async def read_all(
        team: Team = Depends(get_team),
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.DataResponse:
        return schemas.DataResponse(data=await run_in_threadpool(services.store.read, team.id))

    @app.get("/api/data/{field}", response_model=schemas.DataResponse)
    async def read_field(
        field: str,
        team: Team = Depends(get_team),
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.DataResponse:
        return schemas.DataResponse(data=await run_in_threadpool(services.store.read, team.id, field))

    @app.post("/api/data/{field}", response_model=schemas.SaveResponse)
    async def write_field(
        field: str,
        records: Any = Body(None),
        x_session_id: Optional[str] = Header(None),
        identity: Identity = Depends(get_identity),
        team: Team = Depends(get_team),
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.SaveResponse:
        await run_in_threadpool(services.store.write, team.id, field, records)
        # Back on the event loop: broadcast only enqueues onto session outboxes.
        services.hub.broadcast(
            team.id,
            field,
            records,
            origin_session_id=x_session_id,
            user_id=identity.user_id,
        )
        return schemas.SaveResponse()

    @app.get("/api/health", response_model=schemas.HealthResponse)
    async def health(
        services: WorkspaceServices = Depends(get_services),
    ) -> schemas.HealthResponse:
        return schemas.HealthResponse(backend=services.adapter.name)

    register_socket(app)
    return app
