"""
Driver Context

Run-scoped components handed to the nodes through
config["configurable"]["driver"].
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from langchain_core.runnables import RunnableConfig

from ..schemas.state import Phase, Roster
from ..tools.agent_caller import AgentInvoker
from ..tools.error_detector import ErrorDetector
from ..tools.phase_classifier import PhaseClassifier
from ..tools.selection import SelectionStrategy
from ..tools.termination import TerminationStrategy

ProgressCallback = Callable[[Phase, str, str], Union[None, Awaitable[None]]]


@dataclass
class DriverContext:
    roster: Roster
    invoker: AgentInvoker
    classifier: PhaseClassifier
    detector: ErrorDetector
    router: SelectionStrategy
    termination: TerminationStrategy
    history_window: int = 10        # agent context, error detection
    phase_window: int = 5           # phase, routing, termination
    progress_callback: Optional[ProgressCallback] = None

    async def report_progress(self, phase: Phase, agent_id: str, content: str) -> None:
        if self.progress_callback is None:
            return
        result: Any = self.progress_callback(phase, agent_id, content)
        if inspect.isawaitable(result):
            await result


def get_context(config: RunnableConfig) -> DriverContext:
    try:
        return config["configurable"]["driver"]
    except (KeyError, TypeError):
        raise RuntimeError("Driver context missing from run configuration") from None
