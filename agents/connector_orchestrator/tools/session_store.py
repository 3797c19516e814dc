"""
Session Store Tool

Persistence for orchestration sessions: an in-process store for tests and
single-node use, and a Redis store keyed by session id with a TTL.
"""

import os
from typing import Optional, Protocol, runtime_checkable

import structlog
import redis.asyncio as redis

from ..schemas.state import Session

logger = structlog.get_logger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Load / save / delete sessions by id"""

    async def load(self, session_id: str) -> Optional[Session]:
        ...

    async def save(self, session: Session) -> None:
        ...

    async def delete(self, session_id: str) -> bool:
        ...


class InMemorySessionStore:
    """
    Dict-backed store.

    Sessions are copied on the way in and out so a caller never shares
    mutable state with the store.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    async def load(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def save(self, session: Session) -> None:
        self._sessions[session.session_id] = session.model_copy(deep=True)

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore:
    """
    Redis-backed store.

    Sessions are stored as pydantic JSON under `{key_prefix}{session_id}`
    and expire after ttl_seconds without a save.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: str = "connector_orchestrator:session:",
        ttl_seconds: int = 86400,  # 24 hours default
        client: Optional[redis.Redis] = None,
    ):
        """
        Initialize session store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Prefix for Redis keys
            ttl_seconds: Time-to-live for session keys
            client: Pre-built Redis client (used by tests)
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://redis:6379")
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds
        self._client: Optional[redis.Redis] = client

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client"""
        if self._client is None:
            self._client = redis.from_url(self.redis_url, decode_responses=True)
        return self._client

    def _make_key(self, session_id: str) -> str:
        """Create Redis key for session"""
        return f"{self.key_prefix}{session_id}"

    async def load(self, session_id: str) -> Optional[Session]:
        """
        Get session from Redis.

        Args:
            session_id: Session identifier

        Returns:
            Session or None if not found
        """
        client = await self._get_client()

        try:
            data = await client.get(self._make_key(session_id))
        except redis.RedisError as e:
            logger.error("Failed to load session", session_id=session_id, error=str(e))
            raise

        if not data:
            return None
        return Session.model_validate_json(data)

    async def save(self, session: Session) -> None:
        """Write the session and refresh its TTL"""
        client = await self._get_client()

        try:
            await client.setex(
                self._make_key(session.session_id),
                self.ttl_seconds,
                session.model_dump_json(),
            )
        except redis.RedisError as e:
            logger.error("Failed to save session", session_id=session.session_id, error=str(e))
            raise

        logger.debug(
            "Saved session",
            session_id=session.session_id,
            turns=len(session.transcript),
            terminal=session.terminal,
        )

    async def delete(self, session_id: str) -> bool:
        """
        Delete session from Redis.

        Returns:
            True if deleted, False if not found
        """
        client = await self._get_client()
        deleted = await client.delete(self._make_key(session_id))
        logger.info("Deleted session", session_id=session_id, deleted=bool(deleted))
        return bool(deleted)

    async def close(self) -> None:
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            self._client = None


def create_session_store(
    backend: str = "memory",
    redis_url: Optional[str] = None,
    key_prefix: str = "connector_orchestrator:session:",
    ttl_seconds: int = 86400,
) -> SessionStore:
    """Build a session store for the configured backend"""
    if backend == "memory":
        return InMemorySessionStore()
    if backend == "redis":
        return RedisSessionStore(
            redis_url=redis_url,
            key_prefix=key_prefix,
            ttl_seconds=ttl_seconds,
        )
    raise ValueError(f"Unknown session backend: {backend}")
