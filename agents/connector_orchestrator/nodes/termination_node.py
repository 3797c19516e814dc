"""
Termination Node

Runs before every speaker selection: stop, yield to the user, or continue.
From the loop design: check_termination -> select_speaker | END
"""

from typing import Any

import structlog
from langchain_core.runnables import RunnableConfig

from agent_core.workflow import track_node_execution

from ..tools.termination import REASON_AWAITING_USER
from .context import get_context

logger = structlog.get_logger(__name__)


async def termination_node(state: dict[str, Any], config: RunnableConfig) -> dict[str, Any]:
    """
    Termination Node - Evaluate stop rules for the session.

    Actions:
    1. Evaluate should_stop; a stop marks the session terminal
    2. Escalate the session to error recovery when requested
    3. After an agent turn in this run, yield if the coordinator asked the user

    Args:
        state: Current driver state
        config: Run configuration carrying the DriverContext

    Returns:
        Updated state with route and reason
    """
    ctx = get_context(config)
    session = state["session"]
    updates = track_node_execution(state, "check_termination")

    decision = ctx.termination.should_stop(
        window=session.transcript.window(ctx.phase_window),
        error_state=session.error_state,
        iteration_count=session.iteration_count,
        max_iterations=session.max_iterations,
    )

    if decision.stop:
        session.mark_terminal(decision.reason)
        logger.info(
            "Session terminated",
            session_id=session.session_id,
            reason=decision.reason,
            iterations=session.iteration_count,
        )
        return {**updates, "route": "stop", "reason": decision.reason}

    if decision.enter_recovery and not session.error_state.in_error_recovery:
        session.error_state.escalate()
        logger.warning(
            "Session escalated to error recovery",
            session_id=session.session_id,
            total_errors=session.error_state.total_errors,
        )

    if state.get("turns_produced") and ctx.termination.should_yield(
        session.transcript.window(1), ctx.roster
    ):
        logger.info("Coordinator awaiting user input", session_id=session.session_id)
        return {**updates, "route": "yield", "reason": REASON_AWAITING_USER}

    return {**updates, "route": "continue", "reason": None}
