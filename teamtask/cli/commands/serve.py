"""CLI command for the workspace API server."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

import uvicorn

from ...workspace.service import TeamTaskSettings

__all__ = ["register", "run"]


def run(args: Namespace, settings: TeamTaskSettings) -> None:
    """Start the workspace API server."""
    from ...workspace.api import create_app

    host = args.host or "127.0.0.1"
    port = args.port or 3001

    print(f"Starting TeamTask API server on http://{host}:{port}")
    print(f"API docs at http://{host}:{port}/docs")

    if args.reload:
        # Reload needs an import string; the factory re-reads settings from the environment.
        uvicorn.run(
            "teamtask.workspace.api:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_level=args.log_level.lower(),
        )
        return

    uvicorn.run(create_app(settings), host=host, port=port, log_level=args.log_level.lower())


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("serve", help="Start the workspace API server")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3001,
        help="Port to bind (default: 3001)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.set_defaults(handler=run)
