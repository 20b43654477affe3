"""WebSocket endpoint carrying the realtime wire protocol.

Client events::

    {"event": "join-team", "teamId": "<team>"}
    {"event": "data-update", "teamId": "<team>", "dataType": "tasks", "data": [...]}

Server events::

    {"event": "connected", "sessionId": "<session>"}
    {"event": "joined", "teamId": "<team>", "sessionId": "<session>"}
    {"event": "data-updated", "dataType": "tasks", "data": [...], "userId": "<user>"}
    {"event": "error", "error": "<code>", "message": "<text>"}
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from ..errors import InvalidTokenError, NotMemberError, TeamTaskError, ValidationError
from .hub import RealtimeSession, SessionState

if TYPE_CHECKING:  # pragma: no cover
    from ..workspace.service import WorkspaceServices

__all__ = ["register_socket", "handle_event", "UNAUTHORIZED_CLOSE_CODE"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

UNAUTHORIZED_CLOSE_CODE = 4401
OUTBOX_SIZE = 256


def register_socket(app: FastAPI, path: str = "/ws") -> None:
    """Attach the realtime endpoint to *app*."""

    @app.websocket(path)
    async def team_socket(websocket: WebSocket) -> None:
        services: WorkspaceServices = websocket.app.state.services
        try:
            identity = services.gate.authenticate(websocket.query_params.get("token"))
        except InvalidTokenError:
            await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
            return

        await websocket.accept()
        session = RealtimeSession(
            session_id=uuid.uuid4().hex,
            outbox=asyncio.Queue(maxsize=OUTBOX_SIZE),
            user_id=identity.user_id,
        )
        services.hub.connect(session)
        writer = asyncio.create_task(_pump(websocket, session.outbox))
        _reply(session, {"event": "connected", "sessionId": session.session_id})
        logger.info("session_connected", extra={"session_id": session.session_id})

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    _reply_error(session, ValidationError("Messages must be JSON text frames"))
                    continue
                try:
                    payload = json.loads(text)
                except ValueError:
                    _reply_error(session, ValidationError("Messages must be JSON objects"))
                    continue
                await handle_event(services, session, payload)
        finally:
            services.hub.leave(session.session_id)
            writer.cancel()
            with suppress(asyncio.CancelledError):
                await writer
            logger.info("session_disconnected", extra={"session_id": session.session_id})


async def _pump(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    while True:
        message = await outbox.get()
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("session_send_failed", exc_info=True)
            return


async def handle_event(services: "WorkspaceServices", session: RealtimeSession, payload: Any) -> None:
    """Apply one client event; failures are reported back on the same session.

    Registry and store calls run in the threadpool. Events of one session are
    handled one at a time, so its writes are accepted in the order sent.
    """

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Messages must be JSON objects")
        event = payload.get("event")
        if event == "join-team":
            await _join_team(services, session, payload.get("teamId"))
        elif event == "data-update":
            await _data_update(services, session, payload)
        else:
            raise ValidationError(f"Unknown event: {event}")
    except TeamTaskError as exc:
        _reply_error(session, exc)


async def _join_team(services: "WorkspaceServices", session: RealtimeSession, team_id: Any) -> None:
    team = await run_in_threadpool(services.registry.team_for_user, session.user_id)
    if team_id != team.id:
        raise NotMemberError("Cannot join another team's channel")
    services.hub.join(session.session_id, team.id)
    _reply(session, {"event": "joined", "teamId": team.id, "sessionId": session.session_id})


async def _data_update(services: "WorkspaceServices", session: RealtimeSession, payload: dict) -> None:
    if session.state is not SessionState.JOINED:
        raise NotMemberError("Join a team before sending updates")
    team_id = payload.get("teamId", session.team_id)
    if team_id != session.team_id:
        raise NotMemberError("Cannot update another team's data")

    field = payload.get("dataType")
    records = payload.get("data")
    await run_in_threadpool(_write_as_member, services, session, field, records)
    services.hub.broadcast(
        session.team_id,
        field,
        records,
        origin_session_id=session.session_id,
        user_id=session.user_id,
    )


def _write_as_member(services: "WorkspaceServices", session: RealtimeSession, field: Any, records: Any) -> None:
    # The user may have moved to another team since the socket joined.
    current = services.registry.team_for_user(session.user_id)
    if current.id != session.team_id:
        raise NotMemberError("No longer a member of this team")
    services.store.write(session.team_id, field, records)


def _reply(session: RealtimeSession, message: dict[str, Any]) -> None:
    try:
        session.deliver(message)
    except asyncio.QueueFull:
        logger.warning("session_outbox_full", extra={"session_id": session.session_id})


def _reply_error(session: RealtimeSession, exc: TeamTaskError) -> None:
    _reply(session, {"event": "error", "error": exc.code, "message": exc.message})
