"""
LangChain Chains for Agent Core

Provides the LLM factory and role prompts.
"""

from .prompts import (
    COORDINATOR_PROMPT,
    AWS_SPECIALIST_PROMPT,
    AZURE_SPECIALIST_PROMPT,
    MONITOR_PROMPT,
    PHASE_HINT_PROMPT,
    FALLBACK_PROMPT,
    DELEGATION_LEAD_PROMPT,
    ROLE_PROMPTS,
)
from .llm_factory import get_llm, LLMConfig

__all__ = [
    "COORDINATOR_PROMPT",
    "AWS_SPECIALIST_PROMPT",
    "AZURE_SPECIALIST_PROMPT",
    "MONITOR_PROMPT",
    "PHASE_HINT_PROMPT",
    "FALLBACK_PROMPT",
    "DELEGATION_LEAD_PROMPT",
    "ROLE_PROMPTS",
    "get_llm",
    "LLMConfig",
]
