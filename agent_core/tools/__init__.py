"""
Tools module for agent core.

Provides:
- A2A client for inter-agent communication
"""

from .a2a_client import A2AClient, get_a2a_client, configure_a2a_client

__all__ = [
    "A2AClient",
    "get_a2a_client",
    "configure_a2a_client",
]
