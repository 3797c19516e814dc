"""
Pydantic schemas for agent input/output and A2A task definitions.
"""

from .state import WorkflowState
from .tasks import (
    TaskInput,
    TaskOutput,
    TaskStatus,
    AgentCard,
    AgentCapability,
    AgentTurnInput,
    AgentTurnOutput,
    SubmitMessageInput,
)

__all__ = [
    "WorkflowState",
    "TaskInput",
    "TaskOutput",
    "TaskStatus",
    "AgentCard",
    "AgentCapability",
    "AgentTurnInput",
    "AgentTurnOutput",
    "SubmitMessageInput",
]
