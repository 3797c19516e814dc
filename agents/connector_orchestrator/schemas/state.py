"""
Connector Orchestrator State Schema

Session state, the fixed agent roster and the LangGraph driver state for
one AWS -> Microsoft Sentinel connector setup conversation.
"""

from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from agent_core.schemas.state import WorkflowState

from .transcript import TranscriptStore, Turn, USER_AUTHOR


class Phase(str, Enum):
    """Symbolic stage of the setup workflow, inferred from recent turns."""

    INIT = "init"
    VALIDATION = "validation"
    PLANNING = "planning"
    AWS_SETUP = "aws_setup"          # specialist A
    AZURE_SETUP = "azure_setup"      # specialist B
    INTEGRATION = "integration"
    MONITORING = "monitoring"
    COMPLETION = "completion"
    ERROR_RECOVERY = "error_recovery"


class AgentRole(str, Enum):
    """Closed set of roles an agent can play in the roster."""

    COORDINATOR = "coordinator"
    SPECIALIST = "specialist"
    SYNTHESIZER = "synthesizer"


class UnknownAgentError(LookupError):
    """Raised when an agent id is not part of the session roster"""
    pass


class AgentDescriptor(BaseModel):
    """
    One named worker in the roster.

    Lower priority numbers win tie-breaks; the coordinator is normally 1.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    role: AgentRole = AgentRole.SPECIALIST
    priority: int = 10
    capabilities: frozenset[str] = Field(default_factory=frozenset)
    url: Optional[str] = None
    instructions: Optional[str] = None

    def has_capability(self, tag: str) -> bool:
        return tag.lower() in {c.lower() for c in self.capabilities}


class Roster:
    """
    Fixed, ordered set of agents for one workflow instance.

    Agents are kept sorted by priority so iteration order is the
    tie-break order used by the router.
    """

    def __init__(self, agents: List[AgentDescriptor]):
        if not agents:
            raise ValueError("Roster must contain at least one agent")

        ids = [a.id for a in agents]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate agent ids in roster: {ids}")

        self._agents = sorted(agents, key=lambda a: (a.priority, a.id))
        self._by_id = {a.id: a for a in self._agents}

    def __len__(self) -> int:
        return len(self._agents)

    def __iter__(self):
        return iter(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._by_id

    @property
    def ids(self) -> List[str]:
        return [a.id for a in self._agents]

    def get(self, agent_id: str) -> AgentDescriptor:
        """Look up an agent, failing fast on ids outside the roster"""
        try:
            return self._by_id[agent_id]
        except KeyError:
            raise UnknownAgentError(
                f"Agent '{agent_id}' is not in the roster {self.ids}"
            ) from None

    @property
    def coordinator(self) -> AgentDescriptor:
        """Best-priority coordinator, or the best-priority agent overall"""
        for agent in self._agents:
            if agent.role == AgentRole.COORDINATOR:
                return agent
        return self._agents[0]

    def with_capability(self, tag: str) -> Optional[AgentDescriptor]:
        """Best-priority non-coordinator agent carrying a capability tag"""
        for agent in self._agents:
            if agent.role != AgentRole.COORDINATOR and agent.has_capability(tag):
                return agent
        return None

    def excluding(self, agent_id: Optional[str]) -> List[AgentDescriptor]:
        return [a for a in self._agents if a.id != agent_id]


class ErrorState(BaseModel):
    """
    Per-session error bookkeeping.

    in_error_recovery only ever moves from False to True.
    """

    agent_error_counts: dict[str, int] = Field(default_factory=dict)
    in_error_recovery: bool = False
    stuck_loop: bool = False
    last_turn_had_error: bool = False

    @property
    def total_errors(self) -> int:
        return sum(self.agent_error_counts.values())

    def errors_for(self, agent_id: Optional[str]) -> int:
        if agent_id is None:
            return 0
        return self.agent_error_counts.get(agent_id, 0)

    def escalate(self) -> None:
        self.in_error_recovery = True


class Session(BaseModel):
    """
    One workflow instance.

    Mutated only by the driver run that currently holds the session lock.
    """

    session_id: str
    transcript: TranscriptStore = Field(default_factory=TranscriptStore)
    iteration_count: int = Field(default=0, ge=0)
    max_iterations: int = Field(default=20, ge=1)
    error_state: ErrorState = Field(default_factory=ErrorState)
    last_speaker: Optional[str] = None
    terminal: bool = False
    termination_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def add_user_message(self, content: str) -> Turn:
        """Append a user turn; routing after it starts without a last speaker"""
        turn = self.transcript.next_turn(USER_AUTHOR, content)
        self.last_speaker = None
        self.touch()
        return turn

    def add_agent_turn(self, agent_id: str, content: str) -> Turn:
        """Append an agent turn and count it as one loop iteration"""
        if self.iteration_count >= self.max_iterations:
            raise ValueError(
                f"Session {self.session_id} already reached {self.max_iterations} iterations"
            )
        turn = self.transcript.next_turn(agent_id, content)
        self.iteration_count += 1
        self.last_speaker = agent_id
        self.touch()
        return turn

    def mark_terminal(self, reason: str) -> None:
        """Write-once: the first reason is kept"""
        if self.terminal:
            return
        self.terminal = True
        self.termination_reason = reason
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


class DriverState(WorkflowState, total=False):
    """
    LangGraph state flowing through the driver nodes for one run.

    The Session object is shared by reference; nodes mutate it in place
    and report run-local bookkeeping through the other keys.
    """

    # ============== Session ==============
    session: Session
    session_id: str

    # ============== Routing ==============
    phase: Phase
    next_agent_id: Optional[str]
    containment: Optional[str]

    # ============== Loop Control ==============
    route: str                            # "continue", "stop", "yield"
    reason: Optional[str]
    turns_produced: List[int]             # sequence numbers appended in this run


def create_initial_state(session: Session) -> DriverState:
    """
    Create initial driver state for one run over a session.

    Args:
        session: Session to advance

    Returns:
        Initial DriverState
    """
    return DriverState(
        session=session,
        session_id=session.session_id,
        phase=Phase.INIT,
        next_agent_id=None,
        containment=None,
        route="continue",
        reason=None,
        turns_produced=[],
        current_node="start",
        nodes_executed=[],
        started_at=datetime.now(timezone.utc).isoformat(),
    )
