"""
Connector Orchestrator Nodes

LangGraph nodes implementing the conversation loop.
"""

from .context import DriverContext, ProgressCallback, get_context
from .termination_node import termination_node
from .select_node import select_node
from .invoke_node import invoke_node, failure_content
from .conditions import check_termination_route

__all__ = [
    "DriverContext",
    "ProgressCallback",
    "get_context",
    "termination_node",
    "select_node",
    "invoke_node",
    "failure_content",
    "check_termination_route",
]
