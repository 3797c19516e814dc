"""
Agent Caller Tool

Invokers that produce one agent utterance for a transcript window, either
over A2A or from a LangChain chat model.
"""

from typing import Any, AsyncIterable, Optional, Protocol, Sequence, Union, runtime_checkable

import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import ValidationError

from agent_core.chains.llm_factory import LLMConfig, get_llm
from agent_core.chains.prompts import PHASE_HINT_PROMPT, ROLE_PROMPTS, COORDINATOR_PROMPT
from agent_core.schemas.tasks import AgentTurnInput, AgentTurnOutput
from agent_core.tools.a2a_client import A2AClient, A2AClientError, get_a2a_client

from ..schemas.state import AgentDescriptor, AgentRole, Phase, Roster
from ..schemas.transcript import Turn

logger = structlog.get_logger(__name__)

AgentResponse = Union[str, AsyncIterable[str]]


class AgentInvocationError(Exception):
    """An agent could not produce a response"""

    def __init__(self, agent_id: str, message: str):
        super().__init__(message)
        self.agent_id = agent_id


@runtime_checkable
class AgentInvoker(Protocol):
    """Produces the next utterance of one agent"""

    async def invoke(
        self,
        agent: AgentDescriptor,
        window: Sequence[Turn],
        phase: Phase,
    ) -> AgentResponse:
        ...


async def first_utterance(response: AgentResponse) -> str:
    """
    Reduce an agent response to one complete utterance.

    Streaming responses are truncated to their first item.
    """
    if isinstance(response, str):
        return response

    iterator = response.__aiter__()
    try:
        return str(await iterator.__anext__())
    except StopAsyncIteration:
        return ""
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


def serialize_window(window: Sequence[Turn]) -> list[dict[str, Any]]:
    return [
        {
            "author_id": t.author_id,
            "content": t.content,
            "sequence_number": t.sequence_number,
        }
        for t in window
    ]


class A2AAgentInvoker:
    """
    Calls roster agents through the A2A client.

    Each agent's url is registered with the client; the agent receives an
    `agent_turn` task and must answer with {"content": "..."}.
    """

    TASK_TYPE = "agent_turn"

    def __init__(
        self,
        roster: Optional[Roster] = None,
        a2a_client: Optional[A2AClient] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize agent caller.

        Args:
            roster: Roster whose agent urls are registered with the client
            a2a_client: A2A client instance (uses singleton if not provided)
            timeout: Per-call timeout in seconds
        """
        self.client = a2a_client or get_a2a_client()
        self.timeout = timeout
        if roster is not None:
            for agent in roster:
                if agent.url:
                    self.client.register_agent(agent.id, agent.url)

    async def invoke(
        self,
        agent: AgentDescriptor,
        window: Sequence[Turn],
        phase: Phase,
        session_id: Optional[str] = None,
    ) -> str:
        """
        Call an agent via A2A.

        Raises:
            AgentInvocationError: on transport failure or a non-completed task
        """
        logger.info("Calling agent via A2A", agent_id=agent.id, phase=phase.value)

        try:
            response = await self.client.send_task(
                agent_name=agent.id,
                task_type=self.TASK_TYPE,
                payload=AgentTurnInput(
                    agent_id=agent.id,
                    phase=phase.value,
                    transcript=serialize_window(window),
                    instructions=agent.instructions,
                ).model_dump(),
                session_id=session_id,
                timeout=self.timeout,
            )
        except A2AClientError as e:
            raise AgentInvocationError(agent.id, str(e)) from e

        if response.status.state != "completed":
            logger.warning(
                "Agent call returned non-completed status",
                agent_id=agent.id,
                status=response.status.state,
            )
            raise AgentInvocationError(
                agent.id, response.error or response.status.message or "task not completed"
            )

        try:
            output = AgentTurnOutput(**(response.result or {}))
        except ValidationError as e:
            raise AgentInvocationError(agent.id, "response carried no content") from e

        return output.content


class LLMAgentInvoker:
    """
    Produces agent turns from a LangChain chat model.

    The agent's own instructions (or its role prompt) become the system
    message; the transcript is replayed with the agent's own turns as
    assistant messages and everyone else's as named user messages.
    """

    def __init__(self, llm: Any = None, llm_config: Optional[LLMConfig] = None):
        self._llm = llm
        self._llm_config = llm_config

    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = get_llm(self._llm_config)
        return self._llm

    def build_messages(
        self,
        agent: AgentDescriptor,
        window: Sequence[Turn],
        phase: Phase,
    ) -> list[BaseMessage]:
        system = agent.instructions or self._role_prompt(agent)
        hint = PHASE_HINT_PROMPT.format(
            phase=phase.value,
            display_name=agent.display_name,
            agent_id=agent.id,
        )
        messages: list[BaseMessage] = [SystemMessage(content=f"{system}\n\n{hint}")]

        for turn in window:
            if turn.author_id == agent.id:
                messages.append(AIMessage(content=turn.content))
            elif turn.is_user:
                messages.append(HumanMessage(content=turn.content))
            else:
                messages.append(HumanMessage(content=f"[{turn.author_id}] {turn.content}"))

        return messages

    @staticmethod
    def _role_prompt(agent: AgentDescriptor) -> str:
        if agent.role == AgentRole.COORDINATOR:
            return COORDINATOR_PROMPT
        for tag in sorted(agent.capabilities):
            if tag in ROLE_PROMPTS:
                return ROLE_PROMPTS[tag]
        return COORDINATOR_PROMPT

    async def invoke(
        self,
        agent: AgentDescriptor,
        window: Sequence[Turn],
        phase: Phase,
    ) -> str:
        messages = self.build_messages(agent, window, phase)
        logger.info(
            "Invoking LLM agent",
            agent_id=agent.id,
            phase=phase.value,
            messages=len(messages),
        )

        result = await self.llm.ainvoke(messages)
        content = result.content
        if isinstance(content, list):
            # Anthropic-style content blocks
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return str(content)
