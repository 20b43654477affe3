"""Realtime propagation of team workspace updates."""

from .hub import RealtimeHub, RealtimeSession, SessionState
from .socket import register_socket

__all__ = ["RealtimeHub", "RealtimeSession", "SessionState", "register_socket"]
