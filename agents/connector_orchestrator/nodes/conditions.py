"""
Conditional Edge Functions

Functions for LangGraph conditional edges in the driver loop.
"""

from typing import Literal


def check_termination_route(state: dict) -> Literal["select_speaker", "stop", "yield"]:
    """
    Route after the termination check.

    check_termination -> select_speaker (continue)
    check_termination -> END (stop or yield)
    """
    route = state.get("route", "continue")
    if route == "stop":
        return "stop"
    if route == "yield":
        return "yield"
    return "select_speaker"
