from __future__ import annotations

from typing import List, Optional

from cogent.reasoner.models import ReasoningStep


class ReasoningTrace:
    """Append-only record of one run's reasoning steps.

    Owned by a single reasoner run; never shared across runs.
    """

    def __init__(self) -> None:
        self._steps: List[ReasoningStep] = []

    def add(self, *, thought: Optional[str] = None, action: Optional[str] = None, observation: Optional[str] = None) -> ReasoningStep:
        step = ReasoningStep(thought=thought, action=action, observation=observation)
        self._steps.append(step)
        return step

    @property
    def steps(self) -> List[ReasoningStep]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def clear(self) -> None:
        self._steps = []

    def render(self) -> str:
        lines: List[str] = []
        for step in self._steps:
            if step.thought:
                lines.append(f"THOUGHT: {step.thought}")
            if step.action:
                lines.append(f"ACTION: {step.action}")
            if step.observation is not None:
                lines.append(f"OBSERVATION: {step.observation}")
        return "\n".join(lines)
