"""
LangGraph Workflow State Definition

This module defines the TypedDict fields every workflow state carries.
Extend per agent while maintaining the common fields.
"""

from typing import TypedDict


class WorkflowState(TypedDict, total=False):
    """
    Base workflow state for all agents.

    Extend this class for agent-specific state fields.
    """

    # ============== Execution Tracking ==============
    iteration_count: int                  # Current iteration (for loops)
    current_node: str                     # Currently executing node name
    started_at: str                       # ISO timestamp of start
    nodes_executed: list[str]             # List of executed node names
