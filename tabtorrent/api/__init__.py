"""
Engine API Layer.

This package defines the command interface expected from a download engine
and the HTTP client that talks to the local engine daemon.
"""

from .backend import TaskBackend
from .engine_client import EngineClient

__all__ = ["EngineClient", "TaskBackend"]
