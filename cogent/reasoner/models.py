"""Data models for the reasoning layer."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

__all__ = [
    "ReasoningMode",
    "ReasoningStatus",
    "ReasoningStep",
    "ReasoningResult",
]


class ReasoningMode(str, Enum):
    """Strategy selected once per task; fixed for the whole run."""

    REACT = "react"
    PLAN_SOLVE = "plan_solve"
    REFLECTION = "reflection"


class ReasoningStatus(str, Enum):
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


class ReasoningStep(BaseModel):
    """One trace record: a thought, an action, an observation, or a mix."""

    thought: Optional[str] = None
    action: Optional[str] = None
    observation: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _require_content(self) -> "ReasoningStep":
        if self.thought is None and self.action is None and self.observation is None:
            raise ValueError("a reasoning step needs a thought, an action or an observation")
        return self


class ReasoningResult(BaseModel):
    """Summary returned by a reasoning loop run."""

    final_answer: str
    status: ReasoningStatus
    mode: ReasoningMode = ReasoningMode.REACT
    iterations: int = 0
    tool_calls: List[Dict[str, Any]] = Field(default_factory=list)
    steps: List[ReasoningStep] = Field(default_factory=list)
    transcript: str = ""

    @property
    def success(self) -> bool:
        return self.status is ReasoningStatus.SUCCESS
