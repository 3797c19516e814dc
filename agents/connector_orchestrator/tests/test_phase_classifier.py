"""
Tests for PhaseClassifier
"""

from ..schemas.state import Phase
from ..schemas.transcript import USER_AUTHOR
from ..tools.phase_classifier import PhaseClassifier, get_phase_classifier
from .conftest import make_window


class TestPhaseClassifier:
    """Phase inference from recent turns"""

    def setup_method(self):
        self.classifier = PhaseClassifier()

    def test_empty_transcript_is_init(self):
        assert self.classifier.classify([]) == Phase.INIT

    def test_plan_and_setup_is_planning(self):
        window = make_window((USER_AUTHOR, "Please plan the connector setup"))
        assert self.classifier.classify(window) == Phase.PLANNING

    def test_plan_without_setup_uses_length(self):
        window = make_window((USER_AUTHOR, "What is the plan?"))
        assert self.classifier.classify(window) == Phase.INIT

    def test_recovery_short_circuits(self):
        window = make_window(("coordinator", "SETUP COMPLETE"))
        assert self.classifier.classify(window, in_error_recovery=True) == Phase.ERROR_RECOVERY

    def test_completion_beats_aws_terms(self):
        window = make_window(
            ("aws", "IAM role created with role ARN arn:aws:iam::123456789012:role/x"),
            ("coordinator", "Final report attached."),
        )
        assert self.classifier.classify(window) == Phase.COMPLETION

    def test_aws_terms(self):
        window = make_window(("coordinator", "Next, create the OIDC provider"))
        assert self.classifier.classify(window) == Phase.AWS_SETUP

    def test_azure_beats_aws(self):
        window = make_window(
            ("aws", "SQS queue ready"),
            ("coordinator", "Install the content hub solution"),
        )
        assert self.classifier.classify(window) == Phase.AZURE_SETUP

    def test_integration_terms(self):
        window = make_window(("coordinator", "Configuring connection between AWS and Sentinel"))
        assert self.classifier.classify(window) == Phase.INTEGRATION

    def test_monitoring_needs_long_transcript(self):
        window = make_window(("monitor", "Verify ingestion in the workspace"))

        assert self.classifier.classify(window, transcript_length=10) != Phase.MONITORING
        assert self.classifier.classify(window, transcript_length=30) == Phase.MONITORING

    def test_only_recent_turns_count(self):
        window = make_window(
            ("coordinator", "SETUP COMPLETE"),
            *[(USER_AUTHOR, "ok") for _ in range(5)],
        )
        assert self.classifier.classify(window) != Phase.COMPLETION

    def test_message_count_buckets(self):
        window = make_window((USER_AUTHOR, "hi"))
        expected = [
            (1, Phase.INIT),
            (4, Phase.VALIDATION),
            (8, Phase.PLANNING),
            (12, Phase.AWS_SETUP),
            (20, Phase.AZURE_SETUP),
            (40, Phase.INTEGRATION),
        ]
        for length, phase in expected:
            assert self.classifier.classify(window, transcript_length=length) == phase

    def test_deterministic(self):
        window = make_window(("aws", "S3 bucket created"), ("coordinator", "Good"))
        results = {self.classifier.classify(window) for _ in range(5)}
        assert results == {Phase.AWS_SETUP}

    def test_singleton(self):
        assert get_phase_classifier() is get_phase_classifier()
