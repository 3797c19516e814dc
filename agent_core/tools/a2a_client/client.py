"""
A2A (Agent-to-Agent) Client Implementation

Provides async client for calling roster agents using the A2A protocol
over HTTP.
"""

from typing import Any, Optional
from uuid import uuid4

import httpx
import structlog
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from ...schemas.tasks import TaskInput, TaskOutput

logger = structlog.get_logger(__name__)


class A2AClientError(Exception):
    """Base exception for A2A client errors"""
    pass


class A2ATimeoutError(A2AClientError):
    """Timeout when calling another agent"""
    pass


class A2AConnectionError(A2AClientError):
    """Connection error when calling another agent"""
    pass


class A2AClient:
    """
    A2A Client for inter-agent communication.

    Supports:
    - Sending tasks to other agents
    - Health checks
    - Retry with exponential backoff on timeouts and connection errors
    """

    def __init__(
        self,
        agent_registry: dict[str, str] = None,
        default_timeout: float = 30.0,
        max_retries: int = 3,
        retry_wait: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize A2A client.

        Args:
            agent_registry: Dict mapping agent names to their base URLs
            default_timeout: Default timeout in seconds for requests
            max_retries: Maximum number of attempts for failed requests
            retry_wait: Backoff multiplier in seconds (0 disables waiting)
            transport: Optional httpx transport (used by tests)
        """
        self.agent_registry = {
            name: url.rstrip("/") for name, url in (agent_registry or {}).items()
        }
        self.default_timeout = default_timeout
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "A2AClient":
        """Async context manager entry"""
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit"""
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.default_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def register_agent(self, agent_name: str, base_url: str) -> None:
        """Register an agent's base URL"""
        self.agent_registry[agent_name] = base_url.rstrip("/")
        logger.info("Registered agent", agent_name=agent_name, base_url=base_url)

    def get_agent_url(self, agent_name: str) -> str:
        """Get base URL for an agent"""
        if agent_name not in self.agent_registry:
            raise A2AClientError(f"Agent '{agent_name}' not registered")
        return self.agent_registry[agent_name]

    async def send_task(
        self,
        agent_name: str,
        task_type: str,
        payload: dict[str, Any],
        session_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
        priority: int = 5,
        timeout: Optional[float] = None,
    ) -> TaskOutput:
        """
        Send a task to another agent and wait for response.

        Timeouts and connection failures are retried with exponential
        backoff; HTTP status errors are not.

        Args:
            agent_name: Target agent name
            task_type: Type of task (must be in agent's supported_task_types)
            payload: Task payload data
            session_id: Related orchestration session
            correlation_id: Correlation ID for tracing
            priority: Task priority (1=highest, 10=lowest)
            timeout: Request timeout (uses default if not specified)

        Returns:
            TaskOutput from the target agent
        """
        task_input = TaskInput(
            task_id=str(uuid4()),
            task_type=task_type,
            session_id=session_id,
            correlation_id=correlation_id or str(uuid4()),
            payload=payload,
            priority=priority,
            timeout_seconds=int(timeout or self.default_timeout),
        )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_wait, min=0, max=10),
            retry=retry_if_exception_type((A2ATimeoutError, A2AConnectionError)),
            reraise=True,
        ):
            with attempt:
                return await self._post_task(agent_name, task_input, timeout)

    async def _post_task(
        self,
        agent_name: str,
        task_input: TaskInput,
        timeout: Optional[float],
    ) -> TaskOutput:
        base_url = self.get_agent_url(agent_name)
        client = self._get_client()

        logger.info(
            "Sending A2A task",
            target_agent=agent_name,
            task_id=task_input.task_id,
            task_type=task_input.task_type,
            session_id=task_input.session_id,
        )

        try:
            response = await client.post(
                f"{base_url}/a2a/tasks",
                json=task_input.model_dump(mode="json"),
                timeout=timeout or self.default_timeout,
            )
            response.raise_for_status()

            output = TaskOutput(**response.json())
            logger.info(
                "Received A2A response",
                target_agent=agent_name,
                task_id=task_input.task_id,
                status=output.status.state,
            )
            return output

        except httpx.TimeoutException:
            raise A2ATimeoutError(
                f"Timeout sending task to {agent_name} (task_id={task_input.task_id})"
            )
        except httpx.ConnectError as e:
            raise A2AConnectionError(f"Cannot connect to agent {agent_name}: {e}")
        except httpx.HTTPStatusError as e:
            raise A2AClientError(
                f"HTTP error from {agent_name}: {e.response.status_code} - {e.response.text}"
            )

    async def health_check(self, agent_name: str) -> bool:
        """
        Check if an agent is healthy.

        Args:
            agent_name: Agent to check

        Returns:
            True if healthy, False otherwise
        """
        base_url = self.get_agent_url(agent_name)
        client = self._get_client()

        try:
            response = await client.get(f"{base_url}/health", timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False


# Singleton instance
_a2a_client: Optional[A2AClient] = None


def get_a2a_client() -> A2AClient:
    """Get singleton A2A client instance"""
    global _a2a_client
    if _a2a_client is None:
        _a2a_client = A2AClient()
    return _a2a_client


def configure_a2a_client(
    agent_registry: dict[str, str] = None,
    default_timeout: float = 30.0,
    max_retries: int = 3,
) -> A2AClient:
    """Configure the singleton A2A client"""
    global _a2a_client
    _a2a_client = A2AClient(
        agent_registry=agent_registry,
        default_timeout=default_timeout,
        max_retries=max_retries,
    )
    return _a2a_client
