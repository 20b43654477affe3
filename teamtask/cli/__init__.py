"""Command-line tools for the TeamTask workspace service."""

from __future__ import annotations

from .. import __version__

__all__ = ["__version__"]
