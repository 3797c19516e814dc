"""
Termination Strategy

Decides after every turn whether the conversation loop stops. Success is
never accepted while the session is in error recovery.
"""

from typing import Optional, Sequence

import structlog

from ..schemas.state import ErrorState, Roster
from ..schemas.transcript import Turn
from ..schemas.decisions import TerminationDecision
from ..schemas.lexicons import Lexicons, contains_any
from .error_detector import ErrorDetector

logger = structlog.get_logger(__name__)

REASON_ITERATION_CAP = "iteration cap"
REASON_CRITICAL_ERROR = "critical error"
REASON_STUCK_LOOP = "stuck error loop"
REASON_COMPLETION = "legitimate completion"
REASON_AWAITING_USER = "awaiting user input"

CONTINUE = TerminationDecision(stop=False)


class TerminationStrategy:
    """
    Ordered stop rules.

    a. iteration cap
    b. critical error phrase in the last `critical_window` turns
    c. stuck error loop
    d. error total >= recovery_threshold without completion -> escalate
    e. completion by an agent, not in recovery -> stop
    f. completion while in recovery -> suppressed
    g. continue
    """

    def __init__(
        self,
        detector: Optional[ErrorDetector] = None,
        lexicons: Optional[Lexicons] = None,
        critical_window: int = 5,
        recovery_threshold: int = 3,
    ):
        self.detector = detector or ErrorDetector(lexicons=lexicons)
        self.lexicons = lexicons or self.detector.lexicons
        self.critical_window = critical_window
        self.recovery_threshold = recovery_threshold

    def should_stop(
        self,
        window: Sequence[Turn],
        error_state: ErrorState,
        iteration_count: int,
        max_iterations: int,
    ) -> TerminationDecision:
        """
        Evaluate the stop rules in precedence order.

        Args:
            window: Recent turns, oldest first
            error_state: Current error bookkeeping (read only)
            iteration_count: Agent turns taken so far in the session
            max_iterations: Session iteration cap

        Returns:
            TerminationDecision
        """
        if iteration_count >= max_iterations:
            logger.warning(
                "Maximum iterations reached, stopping",
                iteration_count=iteration_count,
                max_iterations=max_iterations,
            )
            return TerminationDecision(stop=True, reason=REASON_ITERATION_CAP)

        recent = list(window)[-self.critical_window:]
        if any(not t.is_user and self.detector.is_critical(t.content) for t in recent):
            logger.error("Critical error detected, stopping")
            return TerminationDecision(stop=True, reason=REASON_CRITICAL_ERROR)

        if error_state.stuck_loop:
            logger.error("Stuck in error loop, stopping")
            return TerminationDecision(stop=True, reason=REASON_STUCK_LOOP)

        completed = any(
            not t.is_user and self.detector.is_completion(t.content) for t in window
        )

        if error_state.total_errors >= self.recovery_threshold and not completed:
            if not error_state.in_error_recovery:
                logger.warning(
                    "Multiple errors detected, entering recovery",
                    total_errors=error_state.total_errors,
                )
            return TerminationDecision(stop=False, enter_recovery=True)

        if completed:
            if error_state.in_error_recovery:
                logger.warning("Completion claimed during error recovery, ignoring")
                return CONTINUE
            logger.info("Setup completed successfully, stopping")
            return TerminationDecision(stop=True, reason=REASON_COMPLETION)

        return CONTINUE

    def should_yield(self, window: Sequence[Turn], roster: Roster) -> bool:
        """
        True when the coordinator has handed the conversation back to the user.

        The caller only consults this after at least one agent turn in the
        current run.
        """
        if not window:
            return False
        last = window[-1]
        if last.author_id != roster.coordinator.id:
            return False
        content = last.content.rstrip()
        return content.endswith("?") or contains_any(content, self.lexicons.user_handoff_phrases)
