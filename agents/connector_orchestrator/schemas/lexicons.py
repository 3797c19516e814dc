"""
Heuristic Lexicons and Phase Table

Phrase lists and phase predicates used by the phase classifier, error
detector and termination strategy. Kept as data so a deployment can
override any list from config.yaml without touching code.
"""

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .state import Phase


# ============== Default Phrase Lists ==============

COMPLETION_PHRASES = [
    "SETUP COMPLETE",
    "FINAL REPORT GENERATED",
    "Setup completed successfully",
    "All tasks completed",
]

CRITICAL_ERROR_PHRASES = [
    "CRITICAL ERROR",
    "FATAL ERROR",
    "Setup failed",
    "Unhandled exception",
    "AmazonServiceException",
    "Unable to get IAM security credentials",
]

ERROR_INDICATORS = [
    "error",
    "failed",
    "exception",
    "not found",
    "unable to",
    "could not",
    "cannot",
    "invalid",
    "unauthorized",
    "forbidden",
    "denied",
    "fail:",
]

SAFE_CONTEXT_PHRASES = [
    "no errors",
    "without error",
    "error-free",
    "error handling",
    "in case of error",
    "if error",
    "handle error",
]

USER_HANDOFF_PHRASES = [
    "please provide",
    "please confirm",
    "waiting for your",
    "let me know",
    "your input",
]

MISDIRECTED_CALL_PATTERNS = [
    r"AwsAgent\s*\(",
    r"AzureAgent\s*\(",
    r"CoordinatorAgent\s*\(",
    r"IntegrationAgent\s*\(",
    r"MonitorAgent\s*\(",
    r'"function"\s*:\s*"(Aws|Azure|Coordinator|Integration|Monitor)Agent"',
    r'{\s*"name"\s*:\s*"(Aws|Azure|Coordinator)Agent"',
]


class Lexicons(BaseModel):
    """
    Phrase lists consumed by the heuristics.

    All matching is case-insensitive substring matching except
    misdirected_call_patterns, which are regular expressions.
    """

    model_config = ConfigDict(frozen=True)

    completion_phrases: List[str] = Field(default_factory=lambda: list(COMPLETION_PHRASES))
    critical_error_phrases: List[str] = Field(default_factory=lambda: list(CRITICAL_ERROR_PHRASES))
    error_indicators: List[str] = Field(default_factory=lambda: list(ERROR_INDICATORS))
    safe_context_phrases: List[str] = Field(default_factory=lambda: list(SAFE_CONTEXT_PHRASES))
    user_handoff_phrases: List[str] = Field(default_factory=lambda: list(USER_HANDOFF_PHRASES))
    misdirected_call_patterns: List[str] = Field(default_factory=lambda: list(MISDIRECTED_CALL_PATTERNS))

    @classmethod
    def from_overrides(cls, overrides: Optional[dict[str, Any]] = None) -> "Lexicons":
        """Build lexicons, replacing any list named in overrides"""
        overrides = {k: v for k, v in (overrides or {}).items() if v}
        return cls(**overrides)


def contains_any(text: str, phrases: List[str]) -> bool:
    """Case-insensitive substring match against any phrase"""
    folded = text.casefold()
    return any(p.casefold() in folded for p in phrases)


# ============== Phase Table ==============


class PhaseRule(BaseModel):
    """
    One row of the phase table.

    patterns is a disjunction of conjunctions: the rule matches when every
    term of at least one group occurs in the case-folded window text.
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase
    patterns: List[List[str]]
    min_transcript_length: int = 0

    def matches(self, folded_text: str, transcript_length: int) -> bool:
        if transcript_length < self.min_transcript_length:
            return False
        return any(
            all(term.casefold() in folded_text for term in group)
            for group in self.patterns
        )


# Later workflow phases first; first match wins
DEFAULT_PHASE_RULES: List[PhaseRule] = [
    PhaseRule(
        phase=Phase.COMPLETION,
        patterns=[["final report"], ["setup complete"], ["all phases completed"]],
    ),
    PhaseRule(
        phase=Phase.MONITORING,
        patterns=[["monitor", "ingestion"], ["verify", "ingestion"]],
        min_transcript_length=25,
    ),
    PhaseRule(
        phase=Phase.INTEGRATION,
        patterns=[
            ["configuring connection"],
            ["role arn configuration"],
            ["sqs url configuration"],
        ],
    ),
    PhaseRule(
        phase=Phase.AZURE_SETUP,
        patterns=[
            ["content hub"],
            ["connector solution"],
            ["sentinel workspace"],
            ["azure preparation"],
            ["data connector"],
        ],
    ),
    PhaseRule(
        phase=Phase.AWS_SETUP,
        patterns=[
            ["role arn"],
            ["sqs"],
            ["oidc"],
            ["iam role"],
            ["s3 bucket"],
            ["cloudtrail"],
            ["aws infrastructure"],
        ],
    ),
    PhaseRule(
        phase=Phase.PLANNING,
        patterns=[["plan generated"], ["plan", "setup"]],
    ),
    PhaseRule(
        phase=Phase.VALIDATION,
        patterns=[["validat"], ["prerequisite"]],
    ),
]

# (exclusive upper bound on transcript length, phase)
MESSAGE_COUNT_BUCKETS: List[Tuple[int, Phase]] = [
    (3, Phase.INIT),
    (6, Phase.VALIDATION),
    (10, Phase.PLANNING),
    (15, Phase.AWS_SETUP),
    (25, Phase.AZURE_SETUP),
]

MESSAGE_COUNT_DEFAULT = Phase.INTEGRATION
