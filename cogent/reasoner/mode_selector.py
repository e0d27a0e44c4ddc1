"""Keyword classifier mapping a task description to a reasoning mode."""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

from cogent.reasoner.models import ReasoningMode

# Evaluated in order, first match wins: a task mentioning both a refactor and a
# review is a plan_solve task.
MODE_TRIGGERS: Sequence[Tuple[ReasoningMode, Tuple[str, ...]]] = (
    (ReasoningMode.PLAN_SOLVE, ("refactor", "restructure", "reorganize", "multiple files", "entire codebase")),
    (ReasoningMode.REFLECTION, ("review", "improve", "optimize", "enhance", "better")),
    (ReasoningMode.REACT, ("read", "show", "display", "what is", "explain", "find")),
)

DEFAULT_MODE = ReasoningMode.REACT


def select_mode(task: str, user_preference: Optional[ReasoningMode] = None) -> ReasoningMode:
    """Return ``user_preference`` if given, else the first matching category's mode."""
    if user_preference is not None:
        return user_preference

    lowered = task.lower()
    for mode, triggers in MODE_TRIGGERS:
        if any(trigger in lowered for trigger in triggers):
            return mode
    return DEFAULT_MODE


class ModeSelector:
    """Injectable wrapper around :func:`select_mode`."""

    def select_mode(self, task: str, user_preference: Optional[ReasoningMode] = None) -> ReasoningMode:
        return select_mode(task, user_preference)
