"""
A2A Task Schemas

Defines input/output schemas for A2A protocol communication between agents.
Based on Google A2A (Agent-to-Agent) specification.
"""

from typing import Any, Optional, Literal
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from uuid import uuid4


class TaskStatus(BaseModel):
    """Status of an A2A task"""
    state: Literal["pending", "running", "completed", "failed", "cancelled"]
    progress: Optional[int] = Field(None, ge=0, le=100, description="Progress percentage")
    message: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TaskInput(BaseModel):
    """
    A2A Task Input Schema

    This is what an agent receives when called via A2A protocol.
    """
    # Task identification
    task_id: str = Field(default_factory=lambda: str(uuid4()))
    task_type: str = Field(..., description="Type of task to perform")

    # Context
    session_id: Optional[str] = Field(None, description="Related orchestration session")
    correlation_id: Optional[str] = Field(None, description="For distributed tracing")

    # Payload
    payload: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    priority: int = Field(default=5, ge=1, le=10, description="1=highest, 10=lowest")
    timeout_seconds: int = Field(default=300)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "task_id": "task-123-456",
                "task_type": "agent_turn",
                "session_id": "sess-42",
                "payload": {
                    "agent_id": "aws",
                    "phase": "aws_setup",
                    "transcript": [
                        {"author_id": "user", "content": "Connect CloudTrail", "sequence_number": 1}
                    ],
                },
                "priority": 5,
                "timeout_seconds": 60,
            }
        }
    )


class TaskOutput(BaseModel):
    """
    A2A Task Output Schema

    This is what an agent returns after processing a task.
    """
    # Task identification
    task_id: str
    task_type: str

    # Status
    status: TaskStatus

    # Result
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    # Metadata
    agent_name: str
    agent_version: str

    # Timing
    started_at: datetime
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: Optional[int] = None


class AgentCapability(BaseModel):
    """Describes a single agent capability"""
    name: str
    description: str
    input_schema: dict[str, Any] = Field(default_factory=dict)
    output_schema: dict[str, Any] = Field(default_factory=dict)


class AgentCard(BaseModel):
    """
    A2A Agent Card

    Describes the agent's capabilities for service discovery.
    """
    # Identity
    name: str
    version: str
    description: str

    # Endpoint
    url: str
    protocol: Literal["a2a", "grpc", "http"] = "a2a"

    # Capabilities
    capabilities: list[AgentCapability]

    # Task types this agent handles
    supported_task_types: list[str]

    # Metadata
    tags: list[str] = Field(default_factory=list)
    owner: Optional[str] = None


# ============== Orchestration Task Types ==============


class AgentTurnInput(BaseModel):
    """Payload of an `agent_turn` task sent to a roster agent"""
    agent_id: str
    phase: str
    transcript: list[dict[str, Any]]
    instructions: Optional[str] = None


class AgentTurnOutput(BaseModel):
    """Result of an `agent_turn` task"""
    content: str


class SubmitMessageInput(BaseModel):
    """Payload of a `submit_message` task sent to the orchestrator"""
    session_id: str
    text: str
