"""
Delegation Pipeline

Alternate single-pass mode: a lead agent answers and may hand tasks to
other agents with `[DELEGATE:<agentId>] <task>` lines. No phase, error or
termination machinery runs here.
"""

import asyncio
import re
from typing import List

import structlog

from agent_core.chains.prompts import COORDINATOR_PROMPT, DELEGATION_LEAD_PROMPT

from ..schemas.state import AgentDescriptor, Phase, Roster
from ..schemas.transcript import Turn, USER_AUTHOR
from ..schemas.decisions import DelegationDirective, DelegationPlan
from .agent_caller import AgentInvoker, first_utterance

logger = structlog.get_logger(__name__)

DIRECTIVE_RE = re.compile(r"^\s*\[DELEGATE:([\w\-]+)\]\s*(.+)$")


def parse_delegations(text: str) -> DelegationPlan:
    """
    Split lead agent output into narrative and directives.

    Args:
        text: Raw lead agent output

    Returns:
        DelegationPlan; directives keep their order of appearance
    """
    narrative_lines: List[str] = []
    directives: List[DelegationDirective] = []

    for line in text.splitlines():
        match = DIRECTIVE_RE.match(line)
        if match:
            directives.append(
                DelegationDirective(agent_id=match.group(1), task=match.group(2).strip())
            )
        else:
            narrative_lines.append(line)

    return DelegationPlan(
        narrative="\n".join(narrative_lines).strip(),
        directives=directives,
    )


class DelegationPipeline:
    """
    Lead agent -> parse -> delegates in parallel -> labelled sections.

    Unknown delegate ids raise UnknownAgentError before any delegate runs.
    A delegate that fails contributes an error line to its own section.
    """

    def __init__(self, roster: Roster, invoker: AgentInvoker):
        self.roster = roster
        self.invoker = invoker

    def lead_instructions(self, lead: AgentDescriptor) -> str:
        """Lead instructions extended with the directive syntax and roster"""
        specialists = "\n".join(
            f"- {a.id}: {a.display_name} ({', '.join(sorted(a.capabilities))})"
            for a in self.roster.excluding(lead.id)
        )
        base = lead.instructions or COORDINATOR_PROMPT
        return f"{base}\n\n{DELEGATION_LEAD_PROMPT.format(agent_capabilities=specialists)}"

    async def run(self, lead_agent_id: str, message: str) -> str:
        lead = self.roster.get(lead_agent_id)
        lead = lead.model_copy(update={"instructions": self.lead_instructions(lead)})
        window = [Turn(author_id=USER_AUTHOR, content=message, sequence_number=1)]

        logger.info("Running delegation pipeline", lead_agent=lead.id)
        lead_output = await first_utterance(
            await self.invoker.invoke(lead, window, Phase.INIT)
        )

        plan = parse_delegations(lead_output)
        if not plan.directives:
            return plan.narrative

        delegates = [self.roster.get(d.agent_id) for d in plan.directives]

        results = await asyncio.gather(
            *(self._run_delegate(d.agent_id, d.task) for d in plan.directives),
            return_exceptions=True,
        )

        sections = [plan.narrative] if plan.narrative else []
        for agent, directive, result in zip(delegates, plan.directives, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Delegate failed",
                    agent_id=agent.id,
                    error=str(result),
                )
                body = f"Error: {type(result).__name__}: {result}"
            elif isinstance(result, BaseException):
                raise result
            else:
                body = result
            sections.append(f"### {agent.display_name}\n{body}")

        return "\n\n".join(sections)

    async def _run_delegate(self, agent_id: str, task: str) -> str:
        agent = self.roster.get(agent_id)
        window = [Turn(author_id=USER_AUTHOR, content=task, sequence_number=1)]
        logger.info("Invoking delegate", agent_id=agent_id)
        return await first_utterance(await self.invoker.invoke(agent, window, Phase.INIT))

