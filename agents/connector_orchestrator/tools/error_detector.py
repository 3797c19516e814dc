"""
Error Detector

Scans agent turns for failure signals and maintains the per-session error
counters. Also serves as the read-only error view used by the router and
the termination strategy.
"""

import re
from collections import Counter
from typing import List, Optional, Sequence

import structlog

from ..schemas.state import ErrorState
from ..schemas.transcript import Turn
from ..schemas.decisions import ErrorSignals
from ..schemas.lexicons import Lexicons, contains_any

logger = structlog.get_logger(__name__)

AGENT_FAILURE_TAG = "[AGENT_FAILURE]"

STACK_TRACE_RE = re.compile(r"^\s*at\s+[\w$]+\.[\w$.<>]+\(.*\)", re.MULTILINE)
STRUCTURED_FAILURE_RE = re.compile(r'"success"\s*:\s*false', re.IGNORECASE)
ERROR_MESSAGE_RE = re.compile(r"(exception|error):\s*(.+?)(?:\r?\n|$)", re.IGNORECASE)


class ErrorDetector:
    """
    Heuristic failure detection over transcript windows.

    From the error-handling rules:
    - Only the newest turn of a window is counted, and never a user turn.
    - Recovery mode is entered on a critical phrase or when the error
      total reaches recovery_threshold; it never reverts.
    - The same extracted error message stuck_repeat times within the last
      stuck_window turns marks a stuck loop.
    """

    def __init__(
        self,
        lexicons: Optional[Lexicons] = None,
        recovery_threshold: int = 5,
        stuck_window: int = 10,
        stuck_repeat: int = 3,
    ):
        self.lexicons = lexicons or Lexicons()
        self.recovery_threshold = recovery_threshold
        self.stuck_window = stuck_window
        self.stuck_repeat = stuck_repeat
        self._misdirected = [
            re.compile(p, re.IGNORECASE) for p in self.lexicons.misdirected_call_patterns
        ]

    # ============== Read-only Views ==============

    def is_error_content(self, content: str) -> bool:
        """True when text carries any failure signal"""
        if AGENT_FAILURE_TAG in content or STRUCTURED_FAILURE_RE.search(content):
            return True
        if STACK_TRACE_RE.search(content):
            return True
        return contains_any(content, self.lexicons.error_indicators) and not contains_any(
            content, self.lexicons.safe_context_phrases
        )

    def turn_has_error(self, turn: Turn) -> bool:
        """Flag an agent turn; user turns are never flagged"""
        if turn.is_user:
            return False
        return self.is_error_content(turn.content)

    def window_has_errors(self, window: Sequence[Turn]) -> bool:
        return any(self.turn_has_error(t) for t in window)

    def is_critical(self, content: str) -> bool:
        return contains_any(content, self.lexicons.critical_error_phrases)

    def is_completion(self, content: str) -> bool:
        return contains_any(content, self.lexicons.completion_phrases)

    def is_misdirected_call(self, content: str) -> bool:
        """Agent tried to invoke another agent as if it were a function"""
        return any(p.search(content) for p in self._misdirected)

    def extract_error_message(self, content: str) -> Optional[str]:
        match = ERROR_MESSAGE_RE.search(content)
        if not match:
            return None
        message = match.group(2).strip()
        return message or None

    def is_stuck(self, window: Sequence[Turn]) -> bool:
        """Same error message repeated in the recent flagged turns"""
        recent = list(window)[-self.stuck_window:]
        messages: List[str] = []
        for turn in recent:
            if not self.turn_has_error(turn):
                continue
            message = self.extract_error_message(turn.content)
            if message:
                messages.append(message)

        if not messages:
            return False
        _, count = Counter(messages).most_common(1)[0]
        return count >= self.stuck_repeat

    # ============== Detection ==============

    def detect(self, window: Sequence[Turn], error_state: ErrorState) -> ErrorSignals:
        """
        Examine the newest turn and return updated error bookkeeping.

        Args:
            window: Recent turns, oldest first
            error_state: Current session error state (not mutated)

        Returns:
            ErrorSignals carrying a fresh ErrorState
        """
        state = error_state.model_copy(deep=True)
        state.last_turn_had_error = False

        if not window:
            return self._signals(state, turn_has_error=False)

        newest = window[-1]
        if newest.is_user:
            return self._signals(state, turn_has_error=False)

        flagged = self.turn_has_error(newest)
        critical = self.is_critical(newest.content)
        misdirected = self.is_misdirected_call(newest.content)

        if misdirected:
            logger.warning(
                "Agent attempted to call another agent as a function",
                agent_id=newest.author_id,
                sequence_number=newest.sequence_number,
            )

        if flagged:
            state.agent_error_counts[newest.author_id] = state.errors_for(newest.author_id) + 1
            state.last_turn_had_error = True
            logger.warning(
                "Error detected in agent turn",
                agent_id=newest.author_id,
                agent_errors=state.agent_error_counts[newest.author_id],
                total_errors=state.total_errors,
            )

        if critical and not state.in_error_recovery:
            logger.error(
                "Critical error phrase detected, entering error recovery",
                agent_id=newest.author_id,
            )
            state.escalate()
        elif state.total_errors >= self.recovery_threshold and not state.in_error_recovery:
            logger.error(
                "Too many errors detected, entering error recovery",
                total_errors=state.total_errors,
            )
            state.escalate()

        if not state.stuck_loop and self.is_stuck(window):
            logger.error("Stuck error loop detected", agent_id=newest.author_id)
            state.stuck_loop = True

        return self._signals(
            state,
            turn_has_error=flagged,
            misdirected_call=misdirected,
            critical=critical,
        )

    @staticmethod
    def _signals(
        state: ErrorState,
        turn_has_error: bool,
        misdirected_call: bool = False,
        critical: bool = False,
    ) -> ErrorSignals:
        return ErrorSignals(
            turn_has_error=turn_has_error,
            error_state=state,
            in_error_recovery=state.in_error_recovery,
            stuck_loop=state.stuck_loop,
            misdirected_call=misdirected_call,
            critical=critical,
        )
