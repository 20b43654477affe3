"""Shared fixtures for the workspace and realtime tests."""

from __future__ import annotations

import random
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from teamtask.workspace.adapters import MemoryAdapter, RelationalAdapter
from teamtask.workspace.api import create_app
from teamtask.workspace.entities import Team
from teamtask.workspace.service import TeamTaskSettings, build_services, init_engine
from teamtask.workspace.store import WorkspaceStore

TEST_SECRET = "test-secret"


def make_settings(**overrides) -> TeamTaskSettings:
    values = {"jwt_secret": TEST_SECRET, "password_iterations": 1_000}
    values.update(overrides)
    return TeamTaskSettings(**values)


def sqlite_adapter(db_path: Path) -> RelationalAdapter:
    engine = init_engine(make_settings(database_url=f"sqlite:///{db_path}"))
    return RelationalAdapter(engine)


@pytest.fixture(params=["memory", "sqlite"])
def adapter(request, tmp_path: Path):
    if request.param == "memory":
        backend = MemoryAdapter()
        backend.init_schema()
        yield backend
        return

    backend = sqlite_adapter(tmp_path / "teamtask.db")
    backend.init_schema()
    try:
        yield backend
    finally:
        backend.engine.dispose()


@pytest.fixture()
def store(adapter) -> WorkspaceStore:
    return WorkspaceStore(adapter)


@pytest.fixture()
def make_team(adapter):
    def _make(team_id: str = "team00001", code: str = "ABCD1234", owner_id: str = "owner0001"):
        team = Team(id=team_id, name="Team", join_code=code, owner_id=owner_id, members=[owner_id])
        adapter.insert_team(team)
        return team

    return _make


@pytest.fixture()
def services(adapter):
    return build_services(make_settings(), adapter=adapter, rng=random.Random(1234))


@pytest.fixture()
def client(services):
    app = create_app(services=services)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, username: str, email: str, password: str = "secret") -> dict:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
