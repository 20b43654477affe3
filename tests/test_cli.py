from __future__ import annotations

import logging
from argparse import Namespace
from pathlib import Path

import pytest
import structlog

from teamtask.cli import runner
from teamtask.cli.commands import init_db, serve
from teamtask.cli.runner import build_parser

from conftest import make_settings


@pytest.fixture()
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_parser_registers_known_commands() -> None:
    parser = build_parser()
    subparsers_action = parser._subparsers._group_actions[0]  # type: ignore[attr-defined]

    assert {"serve", "init-db"}.issubset(subparsers_action.choices.keys())


def test_serve_arguments_have_defaults() -> None:
    args = build_parser().parse_args(["serve"])

    assert (args.host, args.port, args.reload) == ("127.0.0.1", 3001, False)
    assert args.handler is serve.run


def test_serve_starts_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {}
    monkeypatch.setattr(serve.uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))

    args = Namespace(host="0.0.0.0", port=9000, reload=False, log_level="INFO")
    serve.run(args, make_settings())

    assert calls["host"] == "0.0.0.0"
    assert calls["port"] == 9000
    assert calls["log_level"] == "info"
    assert calls["app"].state.services.adapter.name == "memory"


def test_init_db_creates_schema_and_seeds(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    settings = make_settings(database_url=f"sqlite:///{tmp_path / 'cli.db'}")

    init_db.run(Namespace(seed_demo=True), settings)
    first = capsys.readouterr().out
    init_db.run(Namespace(seed_demo=True), settings)
    second = capsys.readouterr().out

    assert "Schema ready (relational backend)" in first
    assert "Seeded demo team テストチーム" in first
    assert "Demo team already present" in second


def test_main_dispatches_with_env_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}
    monkeypatch.setenv("TEAMTASK_JWT_SECRET", "from-env")
    monkeypatch.setattr(runner, "configure_logging", lambda level: captured.update(level=level))
    monkeypatch.setattr(
        init_db, "run", lambda args, settings: captured.update(args=args, settings=settings)
    )

    runner.main(["--log-level", "debug", "init-db"])

    assert captured["level"] == "DEBUG"
    assert captured["settings"].jwt_secret == "from-env"
    assert captured["args"].seed_demo is False


def test_configure_logging_installs_structlog_formatter(restore_logging) -> None:
    runner.configure_logging("warning")

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
