"""
Session Server Implementation

HTTP surface for a conversational orchestrator: session message and
transcript routes, an A2A task endpoint, agent card and health checks.
"""

from typing import Any, Optional, Protocol
from datetime import datetime, timezone
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ValidationError

from ..schemas.tasks import (
    TaskInput,
    TaskOutput,
    TaskStatus,
    AgentCard,
    AgentCapability,
    SubmitMessageInput,
)

logger = structlog.get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    agent_name: str
    version: str
    timestamp: str


class MessageRequest(BaseModel):
    """Body of POST /sessions/{session_id}/messages"""
    text: str


class SessionService(Protocol):
    """What the server needs from the orchestrator"""

    async def submit_message(self, session_id: str, text: str) -> BaseModel:
        ...

    async def get_transcript(self, session_id: str) -> list[BaseModel]:
        ...

    def list_agents(self) -> list[BaseModel]:
        ...


class SessionServer:
    """
    HTTP server wrapping a SessionService.

    Routes:
    - POST /sessions/{session_id}/messages
    - GET /sessions/{session_id}/transcript
    - GET /agents
    - POST /a2a/tasks (task_type "submit_message")
    - GET /.well-known/agent.json
    - GET /health, GET /ready

    error_status maps domain exception types to HTTP status codes; the
    first matching entry (in insertion order) wins.
    """

    SUBMIT_TASK_TYPE = "submit_message"

    def __init__(
        self,
        service: SessionService,
        agent_name: str,
        agent_version: str,
        agent_description: str,
        error_status: Optional[dict[type, int]] = None,
        tags: list[str] = None,
    ):
        """
        Initialize Session Server.

        Args:
            service: Orchestrator service
            agent_name: Name of this agent
            agent_version: Version string
            agent_description: Human-readable description
            error_status: Exception type -> HTTP status code
            tags: Tags for the agent card
        """
        self.service = service
        self.agent_name = agent_name
        self.agent_version = agent_version
        self.agent_description = agent_description
        self.error_status = error_status or {}
        self.tags = tags or []

        # Health state
        self._ready = False
        self._started_at = datetime.now(timezone.utc)

        # Create FastAPI app
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes"""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Lifecycle management"""
            logger.info(
                "Session server starting",
                agent=self.agent_name,
                version=self.agent_version,
            )
            self._ready = True
            yield
            logger.info("Session server shutting down")
            self._ready = False

        app = FastAPI(
            title=f"{self.agent_name} Server",
            version=self.agent_version,
            description=self.agent_description,
            lifespan=lifespan,
        )

        # Register routes
        self._register_routes(app)
        return app

    def _http_error(self, error: Exception) -> HTTPException:
        for exc_type, status_code in self.error_status.items():
            if isinstance(error, exc_type):
                return HTTPException(status_code=status_code, detail=str(error))
        logger.exception("Unhandled service error", error=str(error))
        return HTTPException(status_code=500, detail=str(error))

    def _register_routes(self, app: FastAPI) -> None:
        """Register all API routes"""

        # ============== Health Endpoints ==============

        @app.get("/health", response_model=HealthResponse)
        async def health_check():
            """Basic health check"""
            return HealthResponse(
                status="healthy",
                agent_name=self.agent_name,
                version=self.agent_version,
                timestamp=datetime.now(timezone.utc).isoformat(),
            )

        @app.get("/ready")
        async def readiness_check():
            """Readiness check for orchestration"""
            if not self._ready:
                raise HTTPException(status_code=503, detail="Not ready")
            return {"status": "ready"}

        # ============== Sessions ==============

        @app.post("/sessions/{session_id}/messages")
        async def submit_message(session_id: str, request: MessageRequest) -> dict[str, Any]:
            """Submit a user message and run the agents"""
            logger.info("Received message", session_id=session_id)
            try:
                result = await self.service.submit_message(session_id, request.text)
            except Exception as e:
                raise self._http_error(e)
            return result.model_dump(mode="json")

        @app.get("/sessions/{session_id}/transcript")
        async def get_transcript(session_id: str) -> dict[str, Any]:
            """Ordered turns of a session"""
            try:
                turns = await self.service.get_transcript(session_id)
            except Exception as e:
                raise self._http_error(e)
            return {
                "session_id": session_id,
                "turns": [t.model_dump(mode="json") for t in turns],
            }

        @app.get("/agents")
        async def list_agents() -> list[dict[str, Any]]:
            """Roster of this orchestrator"""
            return [a.model_dump(mode="json") for a in self.service.list_agents()]

        # ============== A2A ==============

        @app.get("/.well-known/agent.json", response_model=AgentCard)
        async def get_agent_card():
            """Return agent card for capability discovery"""
            return AgentCard(
                name=self.agent_name,
                version=self.agent_version,
                description=self.agent_description,
                url="",
                protocol="a2a",
                capabilities=[
                    AgentCapability(
                        name=self.SUBMIT_TASK_TYPE,
                        description="Submit a user message to an orchestration session",
                        input_schema=SubmitMessageInput.model_json_schema(),
                    )
                ],
                supported_task_types=[self.SUBMIT_TASK_TYPE],
                tags=self.tags,
            )

        @app.post("/a2a/tasks", response_model=TaskOutput)
        async def execute_task(task: TaskInput):
            """Execute a submit_message task synchronously"""
            logger.info(
                "Received A2A task",
                task_id=task.task_id,
                task_type=task.task_type,
                session_id=task.session_id,
            )

            if task.task_type != self.SUBMIT_TASK_TYPE:
                raise HTTPException(
                    status_code=400,
                    detail=f"Unsupported task type: {task.task_type}. "
                    f"Supported: {[self.SUBMIT_TASK_TYPE]}",
                )

            try:
                message = SubmitMessageInput(**task.payload)
            except ValidationError as e:
                raise HTTPException(
                    status_code=422,
                    detail=f"Invalid {self.SUBMIT_TASK_TYPE} payload: {e}",
                )

            started_at = datetime.now(timezone.utc)
            try:
                result = await self.service.submit_message(message.session_id, message.text)
            except Exception as e:
                raise self._http_error(e)

            completed_at = datetime.now(timezone.utc)
            return TaskOutput(
                task_id=task.task_id,
                task_type=task.task_type,
                status=TaskStatus(state="completed", progress=100),
                result=result.model_dump(mode="json"),
                agent_name=self.agent_name,
                agent_version=self.agent_version,
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=int((completed_at - started_at).total_seconds() * 1000),
            )


def create_app(
    service: SessionService,
    agent_name: str,
    agent_version: str,
    agent_description: str,
    **kwargs,
) -> FastAPI:
    """
    Create FastAPI app for a session service.

    Convenience function for creating the server.
    """
    server = SessionServer(
        service=service,
        agent_name=agent_name,
        agent_version=agent_version,
        agent_description=agent_description,
        **kwargs,
    )
    return server.app
