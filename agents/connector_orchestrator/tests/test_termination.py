"""
Tests for TerminationStrategy
"""

import pytest

from ..schemas.state import ErrorState, Phase
from ..schemas.transcript import USER_AUTHOR
from ..tools.phase_classifier import PhaseClassifier
from ..tools.selection import SelectionStrategy
from ..tools.termination import (
    TerminationStrategy,
    REASON_ITERATION_CAP,
    REASON_CRITICAL_ERROR,
    REASON_STUCK_LOOP,
    REASON_COMPLETION,
)
from .conftest import make_window


@pytest.fixture
def termination(detector):
    return TerminationStrategy(detector=detector)


class TestShouldStop:
    """Stop rules in precedence order"""

    def test_iteration_cap_first(self, termination):
        window = make_window(("coordinator", "SETUP COMPLETE"))
        decision = termination.should_stop(window, ErrorState(stuck_loop=True), 20, 20)

        assert decision.stop
        assert decision.reason == REASON_ITERATION_CAP

    def test_critical_phrase(self, termination, clean_errors):
        window = make_window(("aws", "CRITICAL ERROR: account suspended"), ("coordinator", "ok"))
        decision = termination.should_stop(window, clean_errors, 2, 20)

        assert decision.stop
        assert decision.reason == REASON_CRITICAL_ERROR

    def test_user_quoting_critical_phrase_ignored(self, termination, clean_errors):
        window = make_window((USER_AUTHOR, "My previous attempt said Setup failed, can you retry it?"))
        assert not termination.should_stop(window, clean_errors, 0, 20).stop

    def test_critical_phrase_outside_window_ignored(self, detector, clean_errors):
        termination = TerminationStrategy(detector=detector, critical_window=2)
        window = make_window(
            ("aws", "CRITICAL ERROR: account suspended"),
            ("coordinator", "retrying"),
            ("aws", "done"),
        )
        assert not termination.should_stop(window, clean_errors, 3, 20).stop

    def test_stuck_loop(self, termination):
        window = make_window(("aws", "KeyNotFoundException: Bucket not found"))
        decision = termination.should_stop(window, ErrorState(stuck_loop=True), 3, 20)

        assert decision.stop
        assert decision.reason == REASON_STUCK_LOOP

    def test_legitimate_completion(self, termination, clean_errors):
        window = make_window((USER_AUTHOR, "go"), ("coordinator", "SETUP COMPLETE"))
        decision = termination.should_stop(window, clean_errors, 1, 20)

        assert decision.stop
        assert decision.reason == REASON_COMPLETION

    def test_user_cannot_complete(self, termination, clean_errors):
        window = make_window((USER_AUTHOR, "SETUP COMPLETE"))
        assert not termination.should_stop(window, clean_errors, 0, 20).stop

    def test_completion_during_recovery_continues(self, termination, roster):
        errors = ErrorState(in_error_recovery=True)
        window = make_window(("aws", "SETUP COMPLETE"))

        decision = termination.should_stop(window, errors, 4, 20)
        assert not decision.stop

        # The loop continues with the coordinator
        phase = PhaseClassifier().classify(window, in_error_recovery=True)
        routed = SelectionStrategy().select_next(
            roster, window, phase, errors, "aws"
        )
        assert phase == Phase.ERROR_RECOVERY
        assert routed.agent_id == "coordinator"

    def test_many_errors_request_recovery(self, termination):
        errors = ErrorState(agent_error_counts={"aws": 2, "azure": 1})
        window = make_window(("azure", "Access denied"))

        decision = termination.should_stop(window, errors, 3, 20)

        assert not decision.stop
        assert decision.enter_recovery

    def test_completion_beats_error_total(self, termination):
        errors = ErrorState(agent_error_counts={"aws": 3})
        window = make_window(("coordinator", "Setup completed successfully"))

        decision = termination.should_stop(window, errors, 5, 20)

        assert decision.stop
        assert decision.reason == REASON_COMPLETION

    def test_continue(self, termination, clean_errors):
        window = make_window((USER_AUTHOR, "hi"), ("coordinator", "Hello"))
        decision = termination.should_stop(window, clean_errors, 1, 20)
        assert not decision.stop
        assert not decision.enter_recovery


class TestShouldYield:
    """Coordinator hand-back to the user"""

    def test_question_yields(self, termination, roster):
        window = make_window(("coordinator", "Which AWS region should I use?"))
        assert termination.should_yield(window, roster)

    def test_handoff_phrase_yields(self, termination, roster):
        window = make_window(("coordinator", "Please provide the workspace name."))
        assert termination.should_yield(window, roster)

    def test_specialist_question_does_not_yield(self, termination, roster):
        window = make_window(("aws", "Which region?"))
        assert not termination.should_yield(window, roster)

    def test_statement_does_not_yield(self, termination, roster):
        window = make_window(("coordinator", "Creating the plan now."))
        assert not termination.should_yield(window, roster)