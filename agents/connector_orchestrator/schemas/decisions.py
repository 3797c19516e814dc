"""
Decision Schemas

Value objects returned by the heuristics and the driver. All frozen so a
decision can be logged and compared without defensive copies.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .state import ErrorState, Phase
from .transcript import Turn


class ErrorSignals(BaseModel):
    """Error detector output for the newest turn"""

    model_config = ConfigDict(frozen=True)

    turn_has_error: bool
    error_state: ErrorState
    in_error_recovery: bool
    stuck_loop: bool
    misdirected_call: bool = False
    critical: bool = False


class RoutingDecision(BaseModel):
    """Who speaks next, and whether the choice escalated the session"""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    phase: Phase
    force_error_recovery: bool = False
    containment: Optional[str] = None


class TerminationDecision(BaseModel):
    """Stop / continue verdict for one loop iteration"""

    model_config = ConfigDict(frozen=True)

    stop: bool
    reason: Optional[str] = None
    enter_recovery: bool = False


class RunResult(BaseModel):
    """Outcome of one driver run over a session"""

    session_id: str
    response: str
    terminal: bool
    reason: Optional[str] = None
    turns: List[Turn] = Field(default_factory=list)
    degraded: bool = False
    phase: Phase = Phase.INIT


class DelegationDirective(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent_id: str
    task: str


class DelegationPlan(BaseModel):
    """Lead agent output split into narrative text and delegate directives"""

    model_config = ConfigDict(frozen=True)

    narrative: str
    directives: List[DelegationDirective] = Field(default_factory=list)


class SetupArtifacts(BaseModel):
    """Identifiers produced by the setup so far"""

    role_arn: Optional[str] = None
    sqs_urls: List[str] = Field(default_factory=list)
    connector_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.role_arn or self.sqs_urls or self.connector_id)
