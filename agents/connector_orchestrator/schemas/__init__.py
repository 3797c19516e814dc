"""
Connector Orchestrator Schemas
"""

from .transcript import Turn, TranscriptStore, SequenceConflict, USER_AUTHOR
from .state import (
    Phase,
    AgentRole,
    AgentDescriptor,
    Roster,
    UnknownAgentError,
    ErrorState,
    Session,
    DriverState,
    create_initial_state,
)
from .lexicons import Lexicons, PhaseRule, DEFAULT_PHASE_RULES
from .decisions import (
    ErrorSignals,
    RoutingDecision,
    TerminationDecision,
    RunResult,
    DelegationDirective,
    DelegationPlan,
    SetupArtifacts,
)

__all__ = [
    "Turn",
    "TranscriptStore",
    "SequenceConflict",
    "USER_AUTHOR",
    "Phase",
    "AgentRole",
    "AgentDescriptor",
    "Roster",
    "UnknownAgentError",
    "ErrorState",
    "Session",
    "DriverState",
    "create_initial_state",
    "Lexicons",
    "PhaseRule",
    "DEFAULT_PHASE_RULES",
    "ErrorSignals",
    "RoutingDecision",
    "TerminationDecision",
    "RunResult",
    "DelegationDirective",
    "DelegationPlan",
    "SetupArtifacts",
]
