"""
Phase Classifier

Infers the current workflow phase from the most recent turns. Pure and
deterministic: the same window always yields the same phase.
"""

from typing import List, Optional, Sequence, Tuple

import structlog

from ..schemas.state import Phase
from ..schemas.transcript import Turn
from ..schemas.lexicons import (
    PhaseRule,
    DEFAULT_PHASE_RULES,
    MESSAGE_COUNT_BUCKETS,
    MESSAGE_COUNT_DEFAULT,
)

logger = structlog.get_logger(__name__)


class PhaseClassifier:
    """
    Ordered predicate table with a message-count fallback.

    Predicates are evaluated over the last `window_size` turns joined and
    case-folded. When nothing matches, the transcript length picks a
    bucket.
    """

    def __init__(
        self,
        rules: Optional[List[PhaseRule]] = None,
        window_size: int = 5,
        buckets: Optional[List[Tuple[int, Phase]]] = None,
        default_phase: Phase = MESSAGE_COUNT_DEFAULT,
    ):
        self.rules = list(rules) if rules is not None else list(DEFAULT_PHASE_RULES)
        self.window_size = window_size
        self.buckets = list(buckets) if buckets is not None else list(MESSAGE_COUNT_BUCKETS)
        self.default_phase = default_phase

    def classify(
        self,
        window: Sequence[Turn],
        in_error_recovery: bool = False,
        transcript_length: Optional[int] = None,
    ) -> Phase:
        """
        Classify the phase for a transcript window.

        Args:
            window: Recent turns, oldest first
            in_error_recovery: Session recovery flag (short-circuits)
            transcript_length: Full transcript length; defaults to len(window)

        Returns:
            Inferred Phase
        """
        if in_error_recovery:
            return Phase.ERROR_RECOVERY

        length = len(window) if transcript_length is None else transcript_length
        recent = list(window)[-self.window_size:] if self.window_size > 0 else []
        text = " ".join(t.content for t in recent).casefold()

        if text:
            for rule in self.rules:
                if rule.matches(text, length):
                    return rule.phase

        return self._phase_for_length(length)

    def _phase_for_length(self, length: int) -> Phase:
        for upper, phase in self.buckets:
            if length < upper:
                return phase
        return self.default_phase


# Singleton instance
_classifier: Optional[PhaseClassifier] = None


def get_phase_classifier() -> PhaseClassifier:
    """Get singleton classifier with the default phase table"""
    global _classifier
    if _classifier is None:
        _classifier = PhaseClassifier()
    return _classifier
