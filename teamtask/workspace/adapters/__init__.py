"""Interchangeable storage backends for team workspaces."""

from .base import BackendAdapter
from .memory import MemoryAdapter
from .relational import RelationalAdapter

__all__ = ["BackendAdapter", "MemoryAdapter", "RelationalAdapter"]
