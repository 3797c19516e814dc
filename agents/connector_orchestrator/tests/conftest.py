"""
Shared fixtures for Connector Orchestrator tests
"""

from typing import Optional, Sequence

import pytest

from ..schemas.state import AgentDescriptor, ErrorState, Phase, Roster, Session
from ..schemas.transcript import Turn, TranscriptStore
from ..service import build_roster
from ..tools.error_detector import ErrorDetector
from ..workflow import OrchestrationDriver


class ScriptedInvoker:
    """
    Test invoker returning queued responses per agent id.

    A queued Exception is raised instead of returned. Once an agent's
    queue is empty it answers with `default`.
    """

    def __init__(self, responses: Optional[dict] = None, default: str = "Working on it."):
        self.responses = {k: list(v) for k, v in (responses or {}).items()}
        self.default = default
        self.calls: list[dict] = []

    async def invoke(self, agent: AgentDescriptor, window: Sequence[Turn], phase: Phase):
        self.calls.append(
            {
                "agent_id": agent.id,
                "phase": phase,
                "window": [t.content for t in window],
                "instructions": agent.instructions,
            }
        )
        queue = self.responses.get(agent.id)
        item = queue.pop(0) if queue else self.default
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def speakers(self) -> list[str]:
        return [c["agent_id"] for c in self.calls]


def make_window(*entries: tuple[str, str]) -> list[Turn]:
    """Build turns from (author_id, content) pairs"""
    store = TranscriptStore()
    for author_id, content in entries:
        store.next_turn(author_id, content)
    return store.all()


@pytest.fixture
def roster() -> Roster:
    """Default four-agent roster"""
    return build_roster()


@pytest.fixture
def detector() -> ErrorDetector:
    return ErrorDetector()


@pytest.fixture
def clean_errors() -> ErrorState:
    return ErrorState()


@pytest.fixture
def invoker() -> ScriptedInvoker:
    return ScriptedInvoker()


@pytest.fixture
def make_driver(roster):
    """Driver factory bound to the default roster"""

    def _make(invoker, **kwargs) -> OrchestrationDriver:
        return OrchestrationDriver(roster=roster, invoker=invoker, **kwargs)

    return _make


@pytest.fixture
def session() -> Session:
    return Session(session_id="sess-1")
