"""Team workspaces: accounts, membership and per-team documents."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    # Entities
    "DOCUMENT_FIELDS",
    "Team",
    "TeamDocument",
    "User",
    # Components
    "IdentityGate",
    "MembershipRegistry",
    "WorkspaceStore",
    # API
    "create_app",
    # Service
    "TeamTaskSettings",
    "WorkspaceServices",
    "build_services",
    "init_engine",
]

_MODULES = {
    "DOCUMENT_FIELDS": ".entities",
    "Team": ".entities",
    "TeamDocument": ".entities",
    "User": ".entities",
    "IdentityGate": ".security",
    "MembershipRegistry": ".membership",
    "WorkspaceStore": ".store",
    "create_app": ".api",
    "TeamTaskSettings": ".service",
    "WorkspaceServices": ".service",
    "build_services": ".service",
    "init_engine": ".service",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - thin import shim
    if name not in _MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_MODULES[name], __name__)
    value = getattr(module, name)
    globals()[name] = value
    return value
