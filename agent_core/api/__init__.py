"""
API module for agent core.

Provides:
- SessionServer exposing an orchestrator over HTTP
- Health check endpoints
"""

from .server import SessionServer, SessionService, create_app

__all__ = ["SessionServer", "SessionService", "create_app"]
