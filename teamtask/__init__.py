"""Team workspace store with realtime propagation."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .env import load_env

__all__ = ["__version__", "load_env"]

try:  # pragma: no cover - fallback for editable installs
    __version__ = version("teamtask")
except PackageNotFoundError:  # pragma: no cover - local development
    __version__ = "0.0.0"
