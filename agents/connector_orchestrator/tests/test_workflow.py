"""
Tests for OrchestrationDriver
"""

import pytest

from ..schemas.state import Phase, Session, UnknownAgentError
from ..schemas.decisions import RoutingDecision
from ..tools.error_detector import AGENT_FAILURE_TAG
from ..tools.termination import (
    REASON_ITERATION_CAP,
    REASON_STUCK_LOOP,
    REASON_COMPLETION,
    REASON_AWAITING_USER,
)
from .conftest import ScriptedInvoker


BUCKET_ERROR = "KeyNotFoundException: Bucket not found"


class TestDriverBasics:
    """Graph wiring and session helpers"""

    def test_compile(self, make_driver, invoker):
        driver = make_driver(invoker)
        assert driver.compile() is not None

    def test_recursion_limit_follows_session_budget(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=4)
        session = Session(session_id="s-1", max_iterations=12, iteration_count=2)
        assert driver.recursion_limit_for(session) == 40

    def test_new_session_inherits_cap(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=7)
        session = driver.new_session("s-1")
        assert session.max_iterations == 7
        assert len(session.transcript) == 0


class TestConversationRuns:
    """End-to-end runs against a scripted roster"""

    @pytest.mark.asyncio
    async def test_first_message_goes_to_coordinator_and_yields(self, make_driver):
        invoker = ScriptedInvoker(
            {"coordinator": ["Please provide your Azure subscription ID."]}
        )
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("Hi, I want my AWS logs in Sentinel")

        result = await driver.run(session)

        assert invoker.speakers == ["coordinator"]
        assert invoker.calls[0]["phase"] == Phase.INIT
        assert result.response == "Please provide your Azure subscription ID."
        assert not result.terminal
        assert result.reason == REASON_AWAITING_USER
        assert [t.sequence_number for t in result.turns] == [2]

    @pytest.mark.asyncio
    async def test_user_quoting_failure_does_not_end_session(self, make_driver):
        invoker = ScriptedInvoker({"coordinator": ["Which step went wrong last time?"]})
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("My previous attempt said Setup failed, can you retry it for me")

        result = await driver.run(session)

        assert invoker.speakers == ["coordinator"]
        assert not result.terminal
        assert not session.terminal
        assert result.response == "Which step went wrong last time?"

    @pytest.mark.asyncio
    async def test_stuck_error_loop_stops(self, make_driver):
        invoker = ScriptedInvoker(default=BUCKET_ERROR)
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("Create the S3 bucket for CloudTrail logs")

        result = await driver.run(session)

        assert result.terminal
        assert result.reason == REASON_STUCK_LOOP
        assert session.termination_reason == REASON_STUCK_LOOP
        assert len(result.turns) == 3
        assert invoker.speakers[0] == "aws"

    @pytest.mark.asyncio
    async def test_completion_stops(self, make_driver):
        invoker = ScriptedInvoker(
            {"coordinator": ["All resources verified. SETUP COMPLETE"]}
        )
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("Finish up")

        result = await driver.run(session)

        assert result.terminal
        assert result.reason == REASON_COMPLETION
        assert result.response == "All resources verified. SETUP COMPLETE"
        assert result.phase == Phase.COMPLETION

    @pytest.mark.asyncio
    async def test_completion_in_recovery_keeps_going(self, make_driver):
        invoker = ScriptedInvoker(
            {"coordinator": ["SETUP COMPLETE", "What went wrong with the role?"]}
        )
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.error_state.escalate()
        session.add_user_message("Are we done")

        result = await driver.run(session)

        assert not result.terminal
        assert result.reason == REASON_AWAITING_USER
        assert invoker.speakers[0] == "coordinator"
        assert all(c["phase"] == Phase.ERROR_RECOVERY for c in invoker.calls)

    @pytest.mark.asyncio
    async def test_iteration_cap(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=3)
        session = driver.new_session("s-1")
        session.add_user_message("Start")

        result = await driver.run(session)

        assert result.terminal
        assert result.reason == REASON_ITERATION_CAP
        assert session.iteration_count == 3
        assert invoker.speakers == ["coordinator", "aws", "coordinator"]

    @pytest.mark.asyncio
    async def test_stored_session_cap_above_driver_cap(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=2)
        session = Session(session_id="s-1", max_iterations=10)
        session.add_user_message("Start")

        result = await driver.run(session)

        assert result.terminal
        assert result.reason == REASON_ITERATION_CAP
        assert session.iteration_count == 10

    @pytest.mark.asyncio
    async def test_no_agent_speaks_twice_in_a_row(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=8)
        session = driver.new_session("s-1")
        session.add_user_message("Start")

        await driver.run(session)

        speakers = invoker.speakers
        assert len(speakers) == 8
        assert all(a != b for a, b in zip(speakers, speakers[1:]))

    @pytest.mark.asyncio
    async def test_capped_session_stops_without_turns(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=1)
        session = driver.new_session("s-1")
        session.add_user_message("Start")
        session.add_agent_turn("coordinator", "Hello")
        session.add_user_message("Again")

        result = await driver.run(session)

        assert invoker.calls == []
        assert result.terminal
        assert result.response == f"Workflow stopped: {REASON_ITERATION_CAP}"

    @pytest.mark.asyncio
    async def test_failed_call_becomes_error_turn(self, make_driver):
        invoker = ScriptedInvoker(
            {
                "aws": [RuntimeError("connection reset")],
                "coordinator": ["Please confirm the AWS account ID."],
            }
        )
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("Create the IAM role for Sentinel")

        result = await driver.run(session)

        failure = result.turns[0]
        assert failure.author_id == "aws"
        assert failure.content.startswith(AGENT_FAILURE_TAG)
        assert "RuntimeError: connection reset" in failure.content
        assert session.error_state.errors_for("aws") == 1
        assert invoker.speakers == ["aws", "coordinator"]
        assert result.response == "Please confirm the AWS account ID."

    @pytest.mark.asyncio
    async def test_critical_phrase_enters_recovery_and_stops(self, make_driver):
        invoker = ScriptedInvoker({"aws": ["FATAL ERROR: credentials revoked"]})
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("Set up the OIDC provider")

        result = await driver.run(session)

        assert result.terminal
        assert result.reason == "critical error"
        assert session.error_state.in_error_recovery

    @pytest.mark.asyncio
    async def test_sequence_numbers_stay_contiguous(self, make_driver, invoker):
        driver = make_driver(invoker, max_iterations=5)
        session = driver.new_session("s-1")
        session.add_user_message("Start")

        await driver.run(session)

        numbers = [t.sequence_number for t in session.transcript]
        assert numbers == list(range(1, len(numbers) + 1))


class TestProgressAndStreaming:
    """Progress callbacks and streamed agent output"""

    @pytest.mark.asyncio
    async def test_sync_progress_callback(self, make_driver):
        invoker = ScriptedInvoker({"coordinator": ["Which region?"]})
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("hello")
        seen = []

        await driver.run(session, progress_callback=lambda *args: seen.append(args))

        assert seen == [(Phase.INIT, "coordinator", "Which region?")]

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, make_driver):
        invoker = ScriptedInvoker({"coordinator": ["Which region?"]})
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("hello")
        seen = []

        async def on_progress(phase, agent_id, content):
            seen.append(agent_id)

        await driver.run(session, progress_callback=on_progress)

        assert seen == ["coordinator"]

    @pytest.mark.asyncio
    async def test_streamed_response_uses_first_item(self, make_driver):
        class StreamingInvoker(ScriptedInvoker):
            async def invoke(self, agent, window, phase):
                await super().invoke(agent, window, phase)

                async def stream():
                    yield "Please provide the region."
                    yield "ignored"

                return stream()

        invoker = StreamingInvoker()
        driver = make_driver(invoker)
        session = driver.new_session("s-1")
        session.add_user_message("hello")

        result = await driver.run(session)

        assert result.response == "Please provide the region."
        assert session.transcript.last.content == "Please provide the region."

    @pytest.mark.asyncio
    async def test_unknown_agent_propagates(self, make_driver, invoker):
        driver = make_driver(invoker)

        class BrokenRouter:
            def select_next(self, **kwargs):
                return RoutingDecision(agent_id="gcp", phase=Phase.INIT)

        driver.router = BrokenRouter()
        session = Session(session_id="s-1")
        session.add_user_message("hello")

        with pytest.raises(UnknownAgentError):
            await driver.run(session)
