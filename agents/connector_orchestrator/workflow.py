"""
Connector Orchestrator Workflow

LangGraph state machine driving one conversation run over a session:

    START -> check_termination -> select_speaker -> invoke_agent -> check_termination ...
                    |
                    +-> END (stop: session terminal / yield: awaiting user input)
"""

from typing import Optional

import structlog
from langgraph.graph import StateGraph, START, END

from agent_core.workflow import BaseWorkflow

from .schemas.state import Phase, Roster, Session, DriverState, create_initial_state
from .schemas.decisions import RunResult
from .schemas.lexicons import Lexicons
from .tools.agent_caller import AgentInvoker
from .tools.error_detector import ErrorDetector
from .tools.phase_classifier import PhaseClassifier
from .tools.selection import SelectionStrategy
from .tools.termination import TerminationStrategy
from .nodes import (
    DriverContext,
    ProgressCallback,
    termination_node,
    select_node,
    invoke_node,
    check_termination_route,
)

logger = structlog.get_logger(__name__)


class OrchestrationDriver(BaseWorkflow):
    """
    Connector Orchestrator Workflow

    Owns the heuristics for one roster and advances a session until the
    termination strategy stops it or the coordinator yields to the user.
    Different sessions may run concurrently; one session must only be
    driven by one run at a time.
    """

    def __init__(
        self,
        roster: Roster,
        invoker: AgentInvoker,
        lexicons: Optional[Lexicons] = None,
        classifier: Optional[PhaseClassifier] = None,
        detector: Optional[ErrorDetector] = None,
        router: Optional[SelectionStrategy] = None,
        termination: Optional[TerminationStrategy] = None,
        history_window: int = 10,
        phase_window: int = 5,
        agent_name: str = "connector_orchestrator",
        agent_version: str = "1.0.0",
        max_iterations: int = 20,
    ):
        """
        Initialize the driver.

        Args:
            roster: Fixed agent roster
            invoker: Produces agent utterances
            lexicons: Phrase lists shared by the heuristics
            classifier: Phase classifier (default table if omitted)
            detector: Error detector shared by router and termination
            router: Selection strategy
            termination: Termination strategy
            history_window: Turns given to agents and the error detector
            phase_window: Turns used for phase, routing and termination
            max_iterations: Default iteration cap for new sessions
        """
        super().__init__(
            agent_name=agent_name,
            agent_version=agent_version,
            max_iterations=max_iterations,
        )
        self.roster = roster
        self.invoker = invoker
        self.lexicons = lexicons or Lexicons()
        self.detector = detector or ErrorDetector(lexicons=self.lexicons)
        self.classifier = classifier or PhaseClassifier(window_size=phase_window)
        self.router = router or SelectionStrategy(detector=self.detector)
        self.termination = termination or TerminationStrategy(
            detector=self.detector, lexicons=self.lexicons
        )
        self.history_window = history_window
        self.phase_window = phase_window

    def get_state_class(self) -> type:
        """Return DriverState TypedDict"""
        return DriverState

    def build_graph(self, graph: StateGraph) -> None:
        """Build the conversation loop graph"""
        graph.add_node("check_termination", termination_node)
        graph.add_node("select_speaker", select_node)
        graph.add_node("invoke_agent", invoke_node)

        # Entry point
        graph.add_edge(START, "check_termination")

        # check_termination -> select_speaker | END
        graph.add_conditional_edges(
            "check_termination",
            check_termination_route,
            {
                "select_speaker": "select_speaker",
                "stop": END,
                "yield": END,
            },
        )

        graph.add_edge("select_speaker", "invoke_agent")
        graph.add_edge("invoke_agent", "check_termination")

    def recursion_limit_for(self, session: Session) -> int:
        """Graph steps for the iterations this session has left (3 nodes each)"""
        remaining = max(session.max_iterations - session.iteration_count, 0)
        return remaining * 3 + 10

    def new_session(self, session_id: str) -> Session:
        return Session(session_id=session_id, max_iterations=self.max_iterations)

    def current_phase(self, session: Session) -> Phase:
        return self.classifier.classify(
            session.transcript.window(self.phase_window),
            in_error_recovery=session.error_state.in_error_recovery,
            transcript_length=len(session.transcript),
        )

    async def run(
        self,
        session: Session,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> RunResult:
        """
        Drive the session until it stops or yields.

        The session is mutated in place. Structural errors
        (SequenceConflict, UnknownAgentError) propagate to the caller.

        Args:
            session: Session whose newest turn is normally the user message
            progress_callback: Called as (phase, agent_id, content) per turn

        Returns:
            RunResult for this run
        """
        context = DriverContext(
            roster=self.roster,
            invoker=self.invoker,
            classifier=self.classifier,
            detector=self.detector,
            router=self.router,
            termination=self.termination,
            history_window=self.history_window,
            phase_window=self.phase_window,
            progress_callback=progress_callback,
        )

        logger.info(
            "Starting driver run",
            session_id=session.session_id,
            turns=len(session.transcript),
            iteration_count=session.iteration_count,
        )

        final_state = await self.execute(
            create_initial_state(session),
            configurable={"driver": context},
            recursion_limit=self.recursion_limit_for(session),
        )

        return self.build_result(session, final_state)

    def build_result(self, session: Session, final_state: dict) -> RunResult:
        produced = set(final_state.get("turns_produced", []))
        turns = [t for t in session.transcript.all() if t.sequence_number in produced]

        coordinator_id = self.roster.coordinator.id
        coordinator_turns = [t.content for t in turns if t.author_id == coordinator_id]
        if coordinator_turns:
            response = "\n".join(coordinator_turns)
        elif turns:
            response = turns[-1].content
        else:
            response = f"Workflow stopped: {final_state.get('reason') or 'no agent turn'}"

        result = RunResult(
            session_id=session.session_id,
            response=response,
            terminal=session.terminal,
            reason=session.termination_reason if session.terminal else final_state.get("reason"),
            turns=turns,
            phase=self.current_phase(session),
        )

        logger.info(
            "Driver run finished",
            session_id=session.session_id,
            terminal=result.terminal,
            reason=result.reason,
            turns_produced=len(turns),
        )
        return result
