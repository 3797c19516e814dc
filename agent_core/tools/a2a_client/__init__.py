"""
A2A (Agent-to-Agent) Client for inter-agent communication.
"""

from .client import (
    A2AClient,
    A2AClientError,
    A2ATimeoutError,
    A2AConnectionError,
    get_a2a_client,
    configure_a2a_client,
)

__all__ = [
    "A2AClient",
    "A2AClientError",
    "A2ATimeoutError",
    "A2AConnectionError",
    "get_a2a_client",
    "configure_a2a_client",
]
