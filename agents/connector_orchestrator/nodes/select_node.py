"""
Select Node

Classify the phase and pick the next speaker.
"""

from typing import Any

import structlog
from langchain_core.runnables import RunnableConfig

from agent_core.workflow import track_node_execution

from .context import get_context

logger = structlog.get_logger(__name__)


async def select_node(state: dict[str, Any], config: RunnableConfig) -> dict[str, Any]:
    """
    Select Node - Phase classification and routing.

    A premature completion claim forces the session into error recovery
    before the coordinator is invoked.
    """
    ctx = get_context(config)
    session = state["session"]
    window = session.transcript.window(ctx.phase_window)

    phase = ctx.classifier.classify(
        window,
        in_error_recovery=session.error_state.in_error_recovery,
        transcript_length=len(session.transcript),
    )

    decision = ctx.router.select_next(
        roster=ctx.roster,
        window=window,
        phase=phase,
        error_state=session.error_state,
        last_speaker=session.last_speaker,
    )

    if decision.force_error_recovery and not session.error_state.in_error_recovery:
        session.error_state.escalate()
        logger.warning(
            "Premature completion, session escalated to error recovery",
            session_id=session.session_id,
        )

    logger.info(
        "Selected speaker",
        session_id=session.session_id,
        phase=phase.value,
        agent_id=decision.agent_id,
        iteration=session.iteration_count + 1,
    )

    return {
        **track_node_execution(state, "select_speaker"),
        "phase": phase,
        "next_agent_id": decision.agent_id,
        "containment": decision.containment,
    }
