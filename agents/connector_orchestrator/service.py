"""
Connector Orchestrator Service

Caller-facing surface: submit a user message to a session and read its
transcript. Serialises requests per session and persists sessions around
each run.
"""

import asyncio
from typing import List, Optional

import structlog
from pydantic import BaseModel

from agent_core.config_loader import Config, RosterEntry
from agent_core.chains.llm_factory import LLMConfig
from agent_core.tools.a2a_client import A2AClient

from .schemas.state import AgentDescriptor, AgentRole, Phase, Roster, Session, UnknownAgentError
from .schemas.transcript import SequenceConflict, Turn
from .schemas.lexicons import Lexicons
from .tools.agent_caller import AgentInvoker, A2AAgentInvoker, LLMAgentInvoker
from .tools.delegation import DelegationPipeline
from .tools.error_detector import ErrorDetector
from .tools.intent import Intent, HELP_TEXT, analyze_user_intent, build_status_report
from .tools.phase_classifier import PhaseClassifier
from .tools.selection import SelectionStrategy
from .tools.session_store import SessionStore, create_session_store
from .tools.termination import TerminationStrategy
from .nodes.context import ProgressCallback
from .fallback import APOLOGY_MESSAGE, FallbackRunner
from .workflow import OrchestrationDriver

logger = structlog.get_logger(__name__)

REASON_DELEGATION_FAILURE = "delegation failure"
REASON_DELEGATION_TIMEOUT = "delegation timeout"


class SessionBusyError(RuntimeError):
    """Another request is already driving this session"""
    pass


class SessionNotFoundError(LookupError):
    """No session with this id exists in the store"""
    pass


# HTTP status per service exception; used by the session server
ERROR_STATUS: dict[type, int] = {
    SessionBusyError: 409,
    SessionNotFoundError: 404,
    UnknownAgentError: 500,
    SequenceConflict: 500,
}


class SubmitResult(BaseModel):
    """Response to one submitted user message"""
    session_id: str
    response: str
    terminal: bool
    reason: Optional[str] = None
    degraded: bool = False
    phase: Phase
    intent: Intent = Intent.CONVERSE


DEFAULT_ROSTER: List[AgentDescriptor] = [
    AgentDescriptor(
        id="coordinator",
        display_name="Coordinator",
        role=AgentRole.COORDINATOR,
        priority=1,
        capabilities=frozenset({"planning", "validation", "reporting"}),
    ),
    AgentDescriptor(
        id="aws",
        display_name="AWS Specialist",
        priority=2,
        capabilities=frozenset({"aws", "oidc", "iam", "s3", "sqs"}),
    ),
    AgentDescriptor(
        id="azure",
        display_name="Azure Specialist",
        priority=3,
        capabilities=frozenset({"azure", "sentinel", "arm"}),
    ),
    AgentDescriptor(
        id="monitor",
        display_name="Monitoring Specialist",
        priority=4,
        capabilities=frozenset({"monitoring"}),
    ),
]


def build_roster(entries: Optional[List[RosterEntry]] = None) -> Roster:
    """Roster from config entries, or the default four-agent roster"""
    if not entries:
        return Roster(list(DEFAULT_ROSTER))
    return Roster(
        [
            AgentDescriptor(
                id=e.id,
                display_name=e.display_name,
                role=AgentRole(e.role),
                priority=e.priority,
                capabilities=frozenset(c.lower() for c in e.capabilities),
                url=e.url,
                instructions=e.instructions,
            )
            for e in entries
        ]
    )


class ConnectorOrchestrator:
    """
    Session-level entry point.

    busy_policy "reject" raises SessionBusyError when a session is already
    running; "queue" waits for the running request to finish.
    """

    def __init__(
        self,
        driver: OrchestrationDriver,
        store: SessionStore,
        deadline_seconds: float = 30.0,
        fallback_window: int = 5,
        busy_policy: str = "reject",
        mode: str = "group_chat",
        lead_agent: Optional[str] = None,
    ):
        if busy_policy not in ("reject", "queue"):
            raise ValueError(f"Unknown busy policy: {busy_policy}")
        if mode not in ("group_chat", "delegation"):
            raise ValueError(f"Unknown orchestration mode: {mode}")

        self.driver = driver
        self.store = store
        self.busy_policy = busy_policy
        self.mode = mode
        self.lead_agent = lead_agent or driver.roster.coordinator.id
        self.fallback = FallbackRunner(
            driver,
            deadline_seconds=deadline_seconds,
            fallback_window=fallback_window,
        )
        self.delegation = DelegationPipeline(driver.roster, driver.invoker)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

        # Fail fast on a misconfigured lead agent
        driver.roster.get(self.lead_agent)

    @property
    def roster(self) -> Roster:
        return self.driver.roster

    def list_agents(self) -> List[AgentDescriptor]:
        return list(self.driver.roster)

    def _acquire_lock(self, session_id: str) -> asyncio.Lock:
        """Lock for a session, counted so the entry can be dropped when idle"""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        return lock

    def _release_lock(self, session_id: str) -> None:
        remaining = self._lock_users.get(session_id, 0) - 1
        if remaining > 0:
            self._lock_users[session_id] = remaining
            return
        self._lock_users.pop(session_id, None)
        self._locks.pop(session_id, None)

    def is_busy(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    async def submit_message(
        self,
        session_id: str,
        text: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> SubmitResult:
        """
        Submit one user message and advance the session.

        Args:
            session_id: Session identifier (created on first message)
            text: User message
            progress_callback: Called as (phase, agent_id, content) per agent turn

        Returns:
            SubmitResult

        Raises:
            SessionBusyError: busy_policy is "reject" and the session is running
        """
        if self.busy_policy == "reject" and self.is_busy(session_id):
            logger.warning("Session busy, rejecting message", session_id=session_id)
            raise SessionBusyError(f"Session {session_id} is already processing a message")

        lock = self._acquire_lock(session_id)
        try:
            async with lock:
                return await self._submit_locked(session_id, text, progress_callback)
        finally:
            self._release_lock(session_id)

    async def _submit_locked(
        self,
        session_id: str,
        text: str,
        progress_callback: Optional[ProgressCallback],
    ) -> SubmitResult:
        session = await self.store.load(session_id)
        if session is None:
            session = self.driver.new_session(session_id)
            logger.info("Created session", session_id=session_id)

        intent = analyze_user_intent(text)
        if intent == Intent.HELP:
            return self._meta_result(session, HELP_TEXT, intent)
        if intent == Intent.STATUS:
            phase = self.driver.current_phase(session)
            return self._meta_result(session, build_status_report(session, phase), intent)

        if session.terminal:
            logger.info(
                "Message for finished session",
                session_id=session_id,
                reason=session.termination_reason,
            )
            return self._meta_result(
                session,
                f"This setup session has already finished ({session.termination_reason}).",
                intent,
            )

        session.add_user_message(text)

        if self.mode == "delegation":
            result = await self._run_delegation(session, text)
        else:
            run = await self.fallback.run(session, progress_callback=progress_callback)
            result = SubmitResult(
                session_id=session_id,
                response=run.response,
                terminal=run.terminal,
                reason=run.reason,
                degraded=run.degraded,
                phase=run.phase,
            )

        await self.store.save(session)
        return result

    async def _run_delegation(self, session: Session, text: str) -> SubmitResult:
        """
        One delegation round under the run deadline.

        Agent failures and overruns leave the session open and answer with
        an apology; UnknownAgentError still propagates.
        """
        try:
            response = await asyncio.wait_for(
                self.delegation.run(self.lead_agent, text),
                timeout=self.fallback.deadline_seconds,
            )
        except UnknownAgentError:
            raise
        except asyncio.TimeoutError:
            logger.warning(
                "Delegation exceeded deadline",
                session_id=session.session_id,
                deadline_seconds=self.fallback.deadline_seconds,
            )
            return self._delegation_failure(session, REASON_DELEGATION_TIMEOUT)
        except Exception as e:
            logger.error(
                "Delegation lead call failed",
                session_id=session.session_id,
                lead_agent=self.lead_agent,
                error=str(e),
            )
            return self._delegation_failure(session, REASON_DELEGATION_FAILURE)

        session.transcript.next_turn(self.lead_agent, response)
        session.last_speaker = self.lead_agent
        session.touch()
        return SubmitResult(
            session_id=session.session_id,
            response=response,
            terminal=False,
            phase=self.driver.current_phase(session),
        )

    def _delegation_failure(self, session: Session, reason: str) -> SubmitResult:
        # The user turn stays; the session remains open for a retry
        session.touch()
        return SubmitResult(
            session_id=session.session_id,
            response=APOLOGY_MESSAGE,
            terminal=False,
            reason=reason,
            degraded=True,
            phase=self.driver.current_phase(session),
        )

    def _meta_result(self, session: Session, response: str, intent: Intent) -> SubmitResult:
        return SubmitResult(
            session_id=session.session_id,
            response=response,
            terminal=session.terminal,
            reason=session.termination_reason,
            phase=self.driver.current_phase(session),
            intent=intent,
        )

    async def get_session(self, session_id: str) -> Session:
        session = await self.store.load(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def get_transcript(self, session_id: str) -> List[Turn]:
        """
        Ordered transcript of a session.

        Raises:
            SessionNotFoundError: unknown session id
        """
        session = await self.get_session(session_id)
        return session.transcript.all()

    async def delete_session(self, session_id: str) -> bool:
        return await self.store.delete(session_id)

    @classmethod
    def from_config(
        cls,
        config: Config,
        invoker: Optional[AgentInvoker] = None,
        store: Optional[SessionStore] = None,
    ) -> "ConnectorOrchestrator":
        """
        Wire roster, heuristics, invoker and store from configuration.

        Args:
            config: Loaded configuration
            invoker: Agent invoker override (built from config if omitted)
            store: Session store override (built from config if omitted)
        """
        wf = config.workflow
        roster = build_roster(config.roster)
        lexicons = Lexicons.from_overrides(config.lexicons)

        detector = ErrorDetector(
            lexicons=lexicons,
            recovery_threshold=wf.recovery_threshold,
            stuck_window=wf.stuck_window,
            stuck_repeat=wf.stuck_repeat,
        )

        if invoker is None:
            invoker = cls._build_invoker(config, roster)

        driver = OrchestrationDriver(
            roster=roster,
            invoker=invoker,
            lexicons=lexicons,
            classifier=PhaseClassifier(window_size=wf.phase_window),
            detector=detector,
            router=SelectionStrategy(
                detector=detector,
                specialist_error_cap=wf.specialist_error_cap,
            ),
            termination=TerminationStrategy(
                detector=detector,
                lexicons=lexicons,
                critical_window=wf.phase_window,
                recovery_threshold=wf.stop_recovery_threshold,
            ),
            history_window=wf.history_window,
            phase_window=wf.phase_window,
            agent_name=config.agent.name,
            agent_version=config.agent.version,
            max_iterations=wf.max_iterations,
        )

        if store is None:
            store = create_session_store(
                backend=config.sessions.backend,
                redis_url=config.redis.url,
                key_prefix=config.redis.key_prefix,
                ttl_seconds=config.redis.ttl_seconds,
            )

        logger.info(
            "Connector orchestrator configured",
            roster=roster.ids,
            mode=wf.mode,
            invoker=type(invoker).__name__,
            busy_policy=wf.busy_policy,
        )

        return cls(
            driver=driver,
            store=store,
            deadline_seconds=wf.deadline_seconds,
            fallback_window=wf.fallback_window,
            busy_policy=wf.busy_policy,
            mode=wf.mode,
            lead_agent=wf.lead_agent,
        )

    @staticmethod
    def _build_invoker(config: Config, roster: Roster) -> AgentInvoker:
        if config.workflow.invoker == "a2a":
            client = A2AClient(
                default_timeout=config.a2a.timeout_seconds,
                max_retries=config.a2a.max_retries,
            )
            return A2AAgentInvoker(
                roster=roster,
                a2a_client=client,
                timeout=config.a2a.timeout_seconds,
            )

        return LLMAgentInvoker(
            llm_config=LLMConfig(
                provider=config.llm.provider,
                model=config.llm.model,
                temperature=config.llm.temperature,
                max_tokens=config.llm.max_tokens,
                aws_region=config.llm.aws_region,
            )
        )
