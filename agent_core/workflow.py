"""
Base LangGraph Workflow Template

This module provides the base workflow structure that agents extend.
Customize by:
1. Extending WorkflowState for agent-specific fields
2. Defining agent-specific nodes
3. Configuring the graph edges
"""

from typing import Any, Optional
from abc import ABC, abstractmethod

import structlog
from langgraph.graph import StateGraph

logger = structlog.get_logger(__name__)


class BaseWorkflow(ABC):
    """
    Abstract base class for LangGraph workflows.

    Subclass this to create agent-specific workflows.
    Override the abstract methods to customize behavior.
    """

    def __init__(
        self,
        agent_name: str,
        agent_version: str,
        max_iterations: int = 3,
    ):
        """
        Initialize workflow.

        Args:
            agent_name: Name of this agent
            agent_version: Version string
            max_iterations: Maximum workflow iterations
        """
        self.agent_name = agent_name
        self.agent_version = agent_version
        self.max_iterations = max_iterations

        self._graph: Optional[StateGraph] = None
        self._compiled = None

    @abstractmethod
    def get_state_class(self) -> type:
        """Return the TypedDict class for this workflow's state"""
        pass

    @abstractmethod
    def build_graph(self, graph: StateGraph) -> None:
        """
        Build the workflow graph.

        Add nodes and edges to the graph.
        Called by compile() before compilation.
        """
        pass

    def get_recursion_limit(self) -> int:
        """Upper bound on graph steps for one execution"""
        return 25

    def compile(self) -> Any:
        """
        Compile the workflow graph.

        Returns the compiled LangGraph application.
        """
        if self._compiled:
            return self._compiled

        state_class = self.get_state_class()
        self._graph = StateGraph(state_class)

        # Let subclass build the graph
        self.build_graph(self._graph)

        # Compile
        self._compiled = self._graph.compile()
        logger.info("Compiled workflow", agent=self.agent_name)
        return self._compiled

    async def execute(
        self,
        initial_state: dict[str, Any],
        configurable: Optional[dict[str, Any]] = None,
        recursion_limit: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Execute the workflow.

        Args:
            initial_state: State handed to the first node
            configurable: Run-scoped components exposed to nodes via
                config["configurable"]
            recursion_limit: Step bound for this run (defaults to
                get_recursion_limit())

        Returns:
            Final workflow state
        """
        app = self.compile()

        config = {
            "configurable": configurable or {},
            "recursion_limit": recursion_limit or self.get_recursion_limit(),
        }

        logger.info("Executing workflow", agent=self.agent_name)

        try:
            final_state = await app.ainvoke(initial_state, config=config)
        except Exception:
            logger.exception("Workflow exception", agent=self.agent_name)
            raise

        logger.info(
            "Workflow completed",
            agent=self.agent_name,
            nodes_executed=len(final_state.get("nodes_executed", [])),
        )
        return final_state


# ============== Common Node Helpers ==============


def track_node_execution(state: dict, node_name: str) -> dict:
    """Execution-tracking fields every node returns"""
    nodes = state.get("nodes_executed", [])
    return {
        "nodes_executed": nodes + [node_name],
        "current_node": node_name,
    }
