"""
Connector Orchestrator Agent

Drives a group chat of specialist agents through the Sentinel AWS
connector setup, one speaker per turn.

Conversation Loop:
    START -> check_termination -> select_speaker -> invoke_agent -> check_termination ...

    Exits:
    - check_termination -> END (stop: iteration cap, critical error,
      stuck error loop, legitimate completion)
    - check_termination -> END (yield: coordinator waits for the user)
"""

from .workflow import OrchestrationDriver
from .fallback import FallbackRunner
from .service import (
    ConnectorOrchestrator,
    SessionBusyError,
    SessionNotFoundError,
    SubmitResult,
    ERROR_STATUS,
    build_roster,
)
from .schemas.state import DriverState, Session, create_initial_state

__version__ = "1.0.0"

__all__ = [
    "OrchestrationDriver",
    "FallbackRunner",
    "ConnectorOrchestrator",
    "SessionBusyError",
    "SessionNotFoundError",
    "SubmitResult",
    "ERROR_STATUS",
    "build_roster",
    "DriverState",
    "Session",
    "create_initial_state",
]
