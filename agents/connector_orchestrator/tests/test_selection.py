"""
Tests for SelectionStrategy
"""

import pytest

from ..schemas.state import AgentDescriptor, AgentRole, ErrorState, Phase, Roster
from ..schemas.transcript import USER_AUTHOR
from ..tools.selection import SelectionStrategy
from .conftest import make_window


@pytest.fixture
def router(detector):
    return SelectionStrategy(detector=detector)


class TestPhaseRouting:
    """Phase table"""

    def test_init_goes_to_coordinator(self, router, roster, clean_errors):
        decision = router.select_next(roster, [], Phase.INIT, clean_errors, None)
        assert decision.agent_id == "coordinator"
        assert decision.containment is None

    @pytest.mark.parametrize(
        "phase,expected",
        [
            (Phase.AWS_SETUP, "aws"),
            (Phase.AZURE_SETUP, "azure"),
            (Phase.MONITORING, "monitor"),
            (Phase.VALIDATION, "coordinator"),
            (Phase.PLANNING, "coordinator"),
        ],
    )
    def test_phase_owner(self, router, roster, clean_errors, phase, expected):
        window = make_window((USER_AUTHOR, "continue"))
        decision = router.select_next(roster, window, phase, clean_errors, None)
        assert decision.agent_id == expected

    def test_capped_specialist_contained(self, router, roster):
        errors = ErrorState(agent_error_counts={"aws": 3})
        window = make_window((USER_AUTHOR, "Create the S3 bucket"))

        decision = router.select_next(roster, window, Phase.AWS_SETUP, errors, None)

        assert decision.agent_id == "coordinator"
        assert "aws" in decision.containment

    def test_recovery_routes_to_coordinator(self, router, roster):
        errors = ErrorState(in_error_recovery=True)
        decision = router.select_next(roster, [], Phase.ERROR_RECOVERY, errors, "aws")
        assert decision.agent_id == "coordinator"

    def test_integration_alternates(self, router, roster, clean_errors):
        window = make_window(("aws", "Role ARN configuration done"))

        assert router.select_next(roster, window, Phase.INTEGRATION, clean_errors, None).agent_id == "aws"
        assert router.select_next(roster, window, Phase.INTEGRATION, clean_errors, "aws").agent_id == "azure"
        assert (
            router.select_next(roster, window, Phase.INTEGRATION, clean_errors, "azure").agent_id
            == "coordinator"
        )

    def test_completion_with_errors_forces_recovery(self, router, roster, clean_errors):
        window = make_window(("aws", "Access denied"), ("azure", "SETUP COMPLETE"))

        decision = router.select_next(roster, window, Phase.COMPLETION, clean_errors, "azure")

        assert decision.agent_id == "coordinator"
        assert decision.force_error_recovery


class TestNoRepeat:
    """The last speaker is never chosen twice in a row"""

    def test_coordinator_plan_hands_to_aws(self, router, roster, clean_errors):
        window = make_window(("coordinator", "Plan generated. Phase 1: AWS resources"))

        decision = router.select_next(roster, window, Phase.PLANNING, clean_errors, "coordinator")

        assert decision.agent_id == "aws"

    def test_aws_resources_hand_to_azure(self, router, roster, clean_errors):
        window = make_window(("aws", "IAM role created: arn:aws:iam::123456789012:role/sentinel"))

        decision = router.select_next(roster, window, Phase.AWS_SETUP, clean_errors, "aws")

        assert decision.agent_id == "azure"

    def test_errors_in_window_go_to_coordinator(self, router, roster, clean_errors):
        window = make_window(("aws", "Access denied creating bucket"))

        decision = router.select_next(roster, window, Phase.AWS_SETUP, clean_errors, "aws")

        assert decision.agent_id == "coordinator"

    def test_capped_specialist_not_reselected(self, router, roster):
        errors = ErrorState(agent_error_counts={"aws": 3})
        window = make_window(("coordinator", "Let us continue"))

        decision = router.select_next(roster, window, Phase.AWS_SETUP, errors, "coordinator")

        assert decision.agent_id not in ("coordinator", "aws")

    @pytest.mark.parametrize("phase", list(Phase))
    def test_never_repeats_any_phase(self, router, roster, clean_errors, phase):
        window = make_window(("coordinator", "Working on it."))
        decision = router.select_next(roster, window, phase, clean_errors, "coordinator")
        assert decision.agent_id != "coordinator"
        assert decision.agent_id in roster

    def test_single_agent_roster_may_repeat(self, router, clean_errors):
        roster = Roster(
            [AgentDescriptor(id="solo", display_name="Solo", role=AgentRole.COORDINATOR)]
        )
        decision = router.select_next(roster, [], Phase.AWS_SETUP, clean_errors, "solo")
        assert decision.agent_id == "solo"
