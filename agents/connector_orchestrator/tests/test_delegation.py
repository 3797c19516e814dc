"""
Tests for the delegation pipeline
"""

import pytest

from ..schemas.state import UnknownAgentError
from ..tools.delegation import DelegationPipeline, parse_delegations
from .conftest import ScriptedInvoker


LEAD_OUTPUT = """Here is the plan.
[DELEGATE:aws] Create the IAM role
[DELEGATE:azure] Deploy the connector solution"""


class TestParseDelegations:
    def test_splits_narrative_and_directives(self):
        plan = parse_delegations(LEAD_OUTPUT)

        assert plan.narrative == "Here is the plan."
        assert [(d.agent_id, d.task) for d in plan.directives] == [
            ("aws", "Create the IAM role"),
            ("azure", "Deploy the connector solution"),
        ]

    def test_no_directives(self):
        plan = parse_delegations("Nothing to hand off.")
        assert plan.directives == []
        assert plan.narrative == "Nothing to hand off."


class TestDelegationPipeline:
    """Lead -> delegates -> labelled sections"""

    @pytest.mark.asyncio
    async def test_sections_in_directive_order(self, roster):
        invoker = ScriptedInvoker(
            {
                "coordinator": [LEAD_OUTPUT],
                "aws": ["Role created"],
                "azure": [RuntimeError("workspace locked")],
            }
        )
        pipeline = DelegationPipeline(roster, invoker)

        output = await pipeline.run("coordinator", "Set everything up")

        assert output == (
            "Here is the plan.\n\n"
            "### AWS Specialist\nRole created\n\n"
            "### Azure Specialist\nError: RuntimeError: workspace locked"
        )

    @pytest.mark.asyncio
    async def test_lead_sees_directive_syntax_and_roster(self, roster):
        invoker = ScriptedInvoker({"coordinator": ["Done."]})
        pipeline = DelegationPipeline(roster, invoker)

        output = await pipeline.run("coordinator", "hello")

        instructions = invoker.calls[0]["instructions"]
        assert output == "Done."
        assert "[DELEGATE:<agent_id>]" in instructions
        assert "- aws: AWS Specialist" in instructions
        assert "- coordinator:" not in instructions

    @pytest.mark.asyncio
    async def test_delegates_receive_only_their_task(self, roster):
        invoker = ScriptedInvoker({"coordinator": [LEAD_OUTPUT]})
        pipeline = DelegationPipeline(roster, invoker)

        await pipeline.run("coordinator", "Set everything up")

        by_agent = {c["agent_id"]: c["window"] for c in invoker.calls}
        assert by_agent["aws"] == ["Create the IAM role"]
        assert by_agent["azure"] == ["Deploy the connector solution"]

    @pytest.mark.asyncio
    async def test_unknown_delegate_fails_before_running_any(self, roster):
        invoker = ScriptedInvoker(
            {"coordinator": ["Plan\n[DELEGATE:aws] Role\n[DELEGATE:gcp] Bucket"]}
        )
        pipeline = DelegationPipeline(roster, invoker)

        with pytest.raises(UnknownAgentError):
            await pipeline.run("coordinator", "go")

        assert invoker.speakers == ["coordinator"]
