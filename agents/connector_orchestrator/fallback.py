"""
Fallback Layer

Wraps a driver run with a deadline. When the run overruns, the
coordinator answers directly from the last few turns and the result is
flagged degraded. If that fails too, the session ends with an apology.
"""

import asyncio
from typing import Optional

import structlog

from agent_core.chains.prompts import COORDINATOR_PROMPT, FALLBACK_PROMPT

from .schemas.state import Session
from .schemas.decisions import RunResult
from .tools.agent_caller import first_utterance
from .nodes.context import ProgressCallback
from .workflow import OrchestrationDriver

logger = structlog.get_logger(__name__)

REASON_FALLBACK_FAILURE = "fallback failure"

APOLOGY_MESSAGE = (
    "I'm sorry, the setup assistants could not complete your request right now. "
    "Please try again in a few minutes."
)


class FallbackRunner:
    """
    Deadline guard around OrchestrationDriver.run.

    Cancellation of the run is the only cancellation signal; the
    in-flight agent call is abandoned and a degraded answer substituted.
    """

    def __init__(
        self,
        driver: OrchestrationDriver,
        deadline_seconds: float = 30.0,
        fallback_window: int = 5,
    ):
        self.driver = driver
        self.deadline_seconds = deadline_seconds
        self.fallback_window = fallback_window

    async def run(
        self,
        session: Session,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> RunResult:
        """
        Run the driver under the deadline.

        Args:
            session: Session to advance (mutated in place)
            progress_callback: Forwarded to the driver

        Returns:
            RunResult, degraded when the deadline expired
        """
        try:
            return await asyncio.wait_for(
                self.driver.run(session, progress_callback=progress_callback),
                timeout=self.deadline_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Driver run exceeded deadline, falling back to coordinator",
                session_id=session.session_id,
                deadline_seconds=self.deadline_seconds,
            )

        return await self._direct_response(session)

    async def _direct_response(self, session: Session) -> RunResult:
        coordinator = self.driver.roster.coordinator
        phase = self.driver.current_phase(session)
        window = session.transcript.window(self.fallback_window)
        base_instructions = coordinator.instructions or COORDINATOR_PROMPT
        agent = coordinator.model_copy(
            update={"instructions": f"{base_instructions}\n\n{FALLBACK_PROMPT}"}
        )

        try:
            content = await asyncio.wait_for(
                self._invoke(agent, window, phase),
                timeout=self.deadline_seconds,
            )
        except Exception as e:
            logger.error(
                "Fallback call failed, ending session",
                session_id=session.session_id,
                error=str(e),
            )
            session.mark_terminal(REASON_FALLBACK_FAILURE)
            return RunResult(
                session_id=session.session_id,
                response=APOLOGY_MESSAGE,
                terminal=True,
                reason=REASON_FALLBACK_FAILURE,
                degraded=True,
                phase=phase,
            )

        # Not a loop iteration: the iteration counter is left alone
        turn = session.transcript.next_turn(coordinator.id, content)
        session.last_speaker = coordinator.id
        session.touch()

        logger.info(
            "Degraded response recorded",
            session_id=session.session_id,
            sequence_number=turn.sequence_number,
        )

        return RunResult(
            session_id=session.session_id,
            response=content,
            terminal=session.terminal,
            reason=session.termination_reason,
            turns=[turn],
            degraded=True,
            phase=phase,
        )

    async def _invoke(self, agent, window, phase) -> str:
        return await first_utterance(await self.driver.invoker.invoke(agent, window, phase))
