"""Integration tests for the workspace FastAPI application."""

from __future__ import annotations

import asyncio
import threading

import httpx
from fastapi.testclient import TestClient

from teamtask.workspace.api import create_app
from teamtask.workspace.entities import DOCUMENT_FIELDS

from conftest import auth_headers, register


def test_health_reports_backend(client: TestClient, adapter):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": adapter.name}


def test_register_returns_token_and_public_user(client: TestClient):
    body = register(client, "alice", "a@x", "pw")

    assert body["success"] is True
    assert body["token"]
    user = body["user"]
    assert user["username"] == "alice"
    assert user["email"] == "a@x"
    assert user["teamName"] == "aliceのチーム"
    assert user["role"] == "owner"
    assert "passwordSecret" not in user
    assert "password_secret" not in user
    assert "password" not in user


def test_register_validation_and_duplicates(client: TestClient):
    missing = client.post("/api/auth/register", json={"username": "alice", "email": "a@x"})
    assert missing.status_code == 400
    assert missing.json()["error"] == "validation_error"

    register(client, "alice", "a@x", "pw")
    duplicate = client.post(
        "/api/auth/register",
        json={"username": "alice2", "email": "a@x", "password": "other"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "duplicate_email"


def test_login(client: TestClient):
    registered = register(client, "alice", "a@x", "pw")

    ok = client.post("/api/auth/login", json={"email": "a@x", "password": "pw"})
    assert ok.status_code == 200
    assert ok.json()["user"]["id"] == registered["user"]["id"]

    wrong = client.post("/api/auth/login", json={"email": "a@x", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "b@x", "password": "pw"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()

    missing = client.post("/api/auth/login", json={"email": "a@x"})
    assert missing.status_code == 400


def test_me_requires_valid_token(client: TestClient):
    body = register(client, "alice", "a@x", "pw")

    assert client.get("/api/auth/me").status_code == 401
    bad = client.get("/api/auth/me", headers=auth_headers("garbage"))
    assert bad.status_code == 401
    assert bad.json()["error"] == "invalid_token"

    me = client.get("/api/auth/me", headers=auth_headers(body["token"]))
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "a@x"


def test_new_team_reads_all_fields_empty(client: TestClient):
    token = register(client, "alice", "a@x", "pw")["token"]

    response = client.get("/api/data/all", headers=auth_headers(token))

    assert response.status_code == 200
    assert response.json() == {"data": {name: [] for name in DOCUMENT_FIELDS}}


def test_write_and_read_field(client: TestClient):
    headers = auth_headers(register(client, "alice", "a@x", "pw")["token"])
    tasks = [{"id": "t1", "title": "Ship it", "status": "todo"}]

    saved = client.post("/api/data/tasks", json=tasks, headers=headers)
    assert saved.status_code == 200
    assert saved.json() == {"success": True}

    assert client.get("/api/data/tasks", headers=headers).json() == {"data": tasks}
    everything = client.get("/api/data/all", headers=headers).json()["data"]
    assert everything["tasks"] == tasks
    assert everything["projects"] == []


def test_write_rejects_bad_input(client: TestClient):
    headers = auth_headers(register(client, "alice", "a@x", "pw")["token"])

    unknown = client.post("/api/data/secrets", json=[], headers=headers)
    assert unknown.status_code == 400
    not_a_list = client.post("/api/data/tasks", json={"id": "t1"}, headers=headers)
    assert not_a_list.status_code == 400
    assert not_a_list.json()["error"] == "validation_error"

    assert client.get("/api/data/secrets", headers=headers).json() == {"data": []}


def test_data_requires_authentication(client: TestClient):
    assert client.get("/api/data/all").status_code == 401
    assert client.post("/api/data/tasks", json=[]).status_code == 401


def test_alice_and_bob_share_workspace(client: TestClient):
    alice = register(client, "alice", "a@x", "pw")
    bob = register(client, "bob", "b@x", "pw")
    alice_headers = auth_headers(alice["token"])
    bob_headers = auth_headers(bob["token"])

    me = client.get("/api/auth/me", headers=alice_headers).json()["user"]
    alice_team = client.app.state.services.registry.team_for_user(me["id"])

    joined = client.post(
        "/api/auth/join-team",
        json={"teamCode": alice_team.join_code.lower()},
        headers=bob_headers,
    )
    assert joined.status_code == 200
    assert joined.json()["success"] is True
    assert joined.json()["team"] == {
        "id": alice_team.id,
        "name": "aliceのチーム",
        "code": alice_team.join_code,
    }

    tasks = [{"id": "t1", "title": "From bob"}]
    assert client.post("/api/data/tasks", json=tasks, headers=bob_headers).status_code == 200
    assert client.get("/api/data/tasks", headers=alice_headers).json() == {"data": tasks}

    bob_me = client.get("/api/auth/me", headers=bob_headers).json()["user"]
    assert bob_me["teamId"] == alice_team.id
    assert bob_me["teamName"] == "aliceのチーム"


def test_join_team_errors(client: TestClient):
    headers = auth_headers(register(client, "alice", "a@x", "pw")["token"])

    unknown = client.post("/api/auth/join-team", json={"teamCode": "NOPE0000"}, headers=headers)
    assert unknown.status_code == 404
    assert unknown.json()["error"] == "team_not_found"

    empty = client.post("/api/auth/join-team", json={}, headers=headers)
    assert empty.status_code == 400


def test_teams_are_isolated(client: TestClient):
    alice_headers = auth_headers(register(client, "alice", "a@x", "pw")["token"])
    carol_headers = auth_headers(register(client, "carol", "c@x", "pw")["token"])

    client.post("/api/data/sales", json=[{"id": "s1", "amount": 100}], headers=alice_headers)

    assert client.get("/api/data/sales", headers=carol_headers).json() == {"data": []}


def test_unexpected_errors_are_hidden(services):
    def explode(team_id, field=None):
        raise RuntimeError("database password is hunter2")

    services.store.read = explode
    app_client = TestClient(create_app(services=services), raise_server_exceptions=False)
    token = register(app_client, "alice", "a@x", "pw")["token"]

    response = app_client.get("/api/data/all", headers=auth_headers(token))

    assert response.status_code == 500
    assert "hunter2" not in response.text


def test_slow_write_does_not_block_other_requests(services, monkeypatch):
    app = create_app(services=services)
    with TestClient(app) as setup_client:
        token = register(setup_client, "alice", "a@x", "pw")["token"]

    entered = threading.Event()
    release = threading.Event()
    upsert = services.adapter.upsert_document

    def slow_upsert(team_id, fields):
        entered.set()
        release.wait(timeout=5)
        upsert(team_id, fields)

    monkeypatch.setattr(services.adapter, "upsert_document", slow_upsert)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            write = asyncio.create_task(
                http.post("/api/data/tasks", json=[{"id": "t1"}], headers=auth_headers(token))
            )
            while not entered.is_set():
                await asyncio.sleep(0.01)

            health = await http.get("/api/health")
            assert health.status_code == 200
            assert not write.done()

            release.set()
            assert (await write).status_code == 200

    asyncio.run(scenario())
    assert services.store.read(services.registry.authenticate("a@x", "pw").team_id, "tasks") == [{"id": "t1"}]
