"""Create or evolve the workspace schema."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

from ...workspace.service import TeamTaskSettings, build_services

__all__ = ["register", "run"]


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "init-db",
        help="Create missing tables and columns for the configured backend",
    )
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Insert the demo account and team if they do not exist",
    )
    parser.set_defaults(handler=run)


def run(args: Namespace, settings: TeamTaskSettings) -> None:
    services = build_services(settings)
    print(f"Schema ready ({services.adapter.name} backend)")

    if not args.seed_demo or settings.seed_demo:
        return
    seeded = services.registry.seed_demo_team()
    if seeded is None:
        print("Demo team already present")
    else:
        user, team = seeded
        print(f"Seeded demo team {team.name} (code {team.join_code}) for {user.email}")
