"""
Selection Strategy

Picks the next speaker from the roster given the phase, the error state
and the last speaker. Never raises for a valid roster and never picks the
last speaker when another agent exists.
"""

from typing import List, Optional, Sequence

import structlog

from ..schemas.state import AgentDescriptor, ErrorState, Phase, Roster
from ..schemas.transcript import Turn
from ..schemas.decisions import RoutingDecision
from ..schemas.lexicons import contains_any
from .error_detector import ErrorDetector

logger = structlog.get_logger(__name__)

# Phase -> capability tag of the specialist that owns it
PHASE_CAPABILITIES = {
    Phase.AWS_SETUP: "aws",
    Phase.AZURE_SETUP: "azure",
    Phase.MONITORING: "monitoring",
}

PLAN_CUES = [
    "plan generated",
    "setup plan",
    "phase 1",
    "prerequisites validated",
]

RESOURCE_CUES = [
    "arn:aws:iam::",
    "sqs.",
    "oidc provider created",
    "iam role created",
    "s3 bucket created",
    "sqs queue created",
    "role arn",
]

AZURE_DONE_CUES = [
    "connector configured",
    "data connector configured",
    "azure preparation complete",
    "solution deployed",
    "connection established",
    "sentinel workspace ready",
]

RECENT_ERROR_WINDOW = 5


class SelectionStrategy:
    """
    Phase-driven router with error containment.

    Order of evaluation:
    1. Recovery mode -> coordinator
    2. Phase table (with per-specialist error cap)
    3. No-repeat reselection using content cues
    4. Unresolved -> coordinator, or best-priority other agent
    """

    def __init__(
        self,
        detector: Optional[ErrorDetector] = None,
        specialist_error_cap: int = 3,
    ):
        self.detector = detector or ErrorDetector()
        self.specialist_error_cap = specialist_error_cap

    def select_next(
        self,
        roster: Roster,
        window: Sequence[Turn],
        phase: Phase,
        error_state: ErrorState,
        last_speaker: Optional[str],
    ) -> RoutingDecision:
        """
        Select the next agent.

        Args:
            roster: Session roster
            window: Recent turns, oldest first
            phase: Phase from the classifier
            error_state: Current error bookkeeping (read only)
            last_speaker: Agent id of the previous speaker, if any

        Returns:
            RoutingDecision naming a roster member
        """
        coordinator = roster.coordinator
        containment: Optional[str] = None
        force_recovery = False

        if error_state.in_error_recovery:
            candidate: Optional[AgentDescriptor] = coordinator
            logger.info("Error recovery mode, selecting coordinator", agent_id=coordinator.id)
        else:
            candidate, containment, force_recovery = self._by_phase(
                roster, window, phase, error_state, last_speaker
            )

        if candidate is not None and candidate.id == last_speaker and len(roster) > 1:
            others = [
                a for a in roster.excluding(last_speaker)
                if a.id == coordinator.id
                or error_state.errors_for(a.id) < self.specialist_error_cap
            ]
            candidate = self._by_context(others, window, phase, roster)

        if candidate is None:
            if coordinator.id != last_speaker or len(roster) == 1:
                candidate = coordinator
            else:
                eligible = [
                    a for a in roster.excluding(last_speaker)
                    if error_state.errors_for(a.id) < self.specialist_error_cap
                ]
                candidate = (eligible or roster.excluding(last_speaker))[0]
            containment = containment or f"no agent resolved for phase {phase.value}"
            logger.warning(
                "Could not select agent for phase, using fallback",
                phase=phase.value,
                agent_id=candidate.id,
                last_speaker=last_speaker,
            )

        if containment:
            logger.warning(
                "Routing containment applied",
                agent_id=candidate.id,
                phase=phase.value,
                containment=containment,
            )

        logger.debug(
            "Selected next agent",
            agent_id=candidate.id,
            phase=phase.value,
            errors=error_state.errors_for(candidate.id),
        )

        return RoutingDecision(
            agent_id=candidate.id,
            phase=phase,
            force_error_recovery=force_recovery,
            containment=containment,
        )

    # ============== Phase Table ==============

    def _by_phase(
        self,
        roster: Roster,
        window: Sequence[Turn],
        phase: Phase,
        error_state: ErrorState,
        last_speaker: Optional[str],
    ) -> tuple[Optional[AgentDescriptor], Optional[str], bool]:
        coordinator = roster.coordinator

        if phase in (Phase.AWS_SETUP, Phase.AZURE_SETUP):
            specialist = roster.with_capability(PHASE_CAPABILITIES[phase])
            if specialist is None:
                return coordinator, f"no specialist for {phase.value}", False
            errors = error_state.errors_for(specialist.id)
            if errors >= self.specialist_error_cap:
                return (
                    coordinator,
                    f"{specialist.id} has {errors} errors, routing to coordinator",
                    False,
                )
            return specialist, None, False

        if phase == Phase.INTEGRATION:
            aws = roster.with_capability("aws")
            azure = roster.with_capability("azure")
            if aws is not None and last_speaker == aws.id:
                return azure or coordinator, None, False
            if azure is not None and last_speaker == azure.id:
                return coordinator, None, False
            return aws or coordinator, None, False

        if phase == Phase.MONITORING:
            return roster.with_capability("monitoring") or coordinator, None, False

        if phase == Phase.COMPLETION:
            if self.detector.window_has_errors(window):
                logger.warning("Errors in window, preventing premature completion")
                return coordinator, "completion claimed with errors in window", True
            return coordinator, None, False

        # init, validation, planning, error_recovery
        return coordinator, None, False

    # ============== Content Cues ==============

    def _by_context(
        self,
        candidates: List[AgentDescriptor],
        window: Sequence[Turn],
        phase: Phase,
        roster: Roster,
    ) -> Optional[AgentDescriptor]:
        """Reselect among candidates from what the last speaker said"""
        by_id = {a.id: a for a in candidates}
        coordinator = roster.coordinator
        aws = roster.with_capability("aws")
        azure = roster.with_capability("azure")

        def pick(agent: Optional[AgentDescriptor]) -> Optional[AgentDescriptor]:
            if agent is None:
                return None
            return by_id.get(agent.id)

        last = window[-1] if window else None
        if last is not None:
            if last.author_id == coordinator.id and contains_any(last.content, PLAN_CUES):
                chosen = pick(aws)
                if chosen:
                    return chosen
            if aws is not None and last.author_id == aws.id and contains_any(
                last.content, RESOURCE_CUES
            ):
                chosen = pick(azure)
                if chosen:
                    return chosen
            if azure is not None and last.author_id == azure.id and contains_any(
                last.content, AZURE_DONE_CUES
            ):
                chosen = pick(coordinator)
                if chosen:
                    return chosen

        if self.detector.window_has_errors(list(window)[-RECENT_ERROR_WINDOW:]):
            chosen = pick(coordinator)
            if chosen:
                return chosen

        tag = PHASE_CAPABILITIES.get(phase)
        designated = roster.with_capability(tag) if tag else None
        return pick(designated) or pick(coordinator)
