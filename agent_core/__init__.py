"""
Agent Core Package

Shared building blocks for LangGraph-based agents: the BaseWorkflow
scaffold, configuration loading, the A2A client, LLM factory and the
HTTP session server.

Example:
    from agent_core import BaseWorkflow, run_agent
    from agent_core.schemas.state import WorkflowState
    from langgraph.graph import StateGraph, START, END

    class MyWorkflow(BaseWorkflow):
        def get_state_class(self):
            return WorkflowState

        def build_graph(self, graph: StateGraph):
            # Add your nodes and edges
            pass
"""

from .workflow import BaseWorkflow
from .main import run_agent, AgentRunner, configure_logging
from .config_loader import load_config, get_config, Config

__version__ = "1.0.0"

__all__ = [
    "BaseWorkflow",
    "run_agent",
    "AgentRunner",
    "configure_logging",
    "load_config",
    "get_config",
    "Config",
]
