"""
Invoke Node

Call the selected agent, append its turn and update the error state. The
agent call is the only suspension point of the loop.
"""

from typing import Any

import structlog
from langchain_core.runnables import RunnableConfig

from agent_core.workflow import track_node_execution

from ..tools.agent_caller import first_utterance
from ..tools.error_detector import AGENT_FAILURE_TAG
from .context import get_context

logger = structlog.get_logger(__name__)


def failure_content(error: Exception) -> str:
    """Synthesised turn text for an agent call that raised"""
    return f'{AGENT_FAILURE_TAG} {{"success": false}} Error: {type(error).__name__}: {error}'


async def invoke_node(state: dict[str, Any], config: RunnableConfig) -> dict[str, Any]:
    """
    Invoke Node - One agent turn.

    Actions:
    1. Invoke the selected agent with the recent transcript
    2. Convert a failed call into an error turn authored by that agent
    3. Append the turn and run the error detector over the new window
    4. Report progress

    Args:
        state: Current driver state
        config: Run configuration carrying the DriverContext

    Returns:
        Updated state with the appended sequence number
    """
    ctx = get_context(config)
    session = state["session"]
    phase = state["phase"]

    # Unknown ids are a configuration error and propagate
    agent = ctx.roster.get(state["next_agent_id"])
    window = session.transcript.window(ctx.history_window)

    try:
        content = await first_utterance(await ctx.invoker.invoke(agent, window, phase))
    except Exception as e:
        logger.warning(
            "Agent invocation failed, recording error turn",
            session_id=session.session_id,
            agent_id=agent.id,
            error=str(e),
        )
        content = failure_content(e)

    turn = session.add_agent_turn(agent.id, content)

    signals = ctx.detector.detect(
        session.transcript.window(ctx.history_window),
        session.error_state,
    )
    session.error_state = signals.error_state

    await ctx.report_progress(phase, agent.id, content)

    logger.info(
        "Agent turn recorded",
        session_id=session.session_id,
        agent_id=agent.id,
        sequence_number=turn.sequence_number,
        turn_has_error=signals.turn_has_error,
        in_error_recovery=signals.in_error_recovery,
    )

    return {
        **track_node_execution(state, "invoke_agent"),
        "turns_produced": state.get("turns_produced", []) + [turn.sequence_number],
    }
