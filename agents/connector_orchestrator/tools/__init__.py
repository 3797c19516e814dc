"""
Connector Orchestrator Tools

Heuristics (phase classification, error detection, speaker selection,
termination), agent invocation, delegation and session persistence.
"""

from .phase_classifier import PhaseClassifier, get_phase_classifier
from .error_detector import ErrorDetector, AGENT_FAILURE_TAG
from .selection import SelectionStrategy
from .termination import (
    TerminationStrategy,
    REASON_ITERATION_CAP,
    REASON_CRITICAL_ERROR,
    REASON_STUCK_LOOP,
    REASON_COMPLETION,
    REASON_AWAITING_USER,
)
from .agent_caller import (
    AgentInvoker,
    AgentInvocationError,
    A2AAgentInvoker,
    LLMAgentInvoker,
    first_utterance,
)
from .delegation import DelegationPipeline, parse_delegations
from .intent import (
    Intent,
    analyze_user_intent,
    build_status_report,
    extract_setup_artifacts,
)
from .session_store import (
    SessionStore,
    InMemorySessionStore,
    RedisSessionStore,
    create_session_store,
)

__all__ = [
    "PhaseClassifier",
    "get_phase_classifier",
    "ErrorDetector",
    "AGENT_FAILURE_TAG",
    "SelectionStrategy",
    "TerminationStrategy",
    "REASON_ITERATION_CAP",
    "REASON_CRITICAL_ERROR",
    "REASON_STUCK_LOOP",
    "REASON_COMPLETION",
    "REASON_AWAITING_USER",
    "AgentInvoker",
    "AgentInvocationError",
    "A2AAgentInvoker",
    "LLMAgentInvoker",
    "first_utterance",
    "DelegationPipeline",
    "parse_delegations",
    "Intent",
    "analyze_user_intent",
    "build_status_report",
    "extract_setup_artifacts",
    "SessionStore",
    "InMemorySessionStore",
    "RedisSessionStore",
    "create_session_store",
]
