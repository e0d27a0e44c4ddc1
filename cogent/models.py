"""Data models for the agent layer."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from cogent.reasoner.models import ReasoningMode, ReasoningStatus

__all__ = ["AgentRunMetadata", "AgentResult"]


class AgentRunMetadata(BaseModel):
    """Progress counters for one run, reported whether or not it succeeded."""

    turn_count: int = 0
    tool_call_count: int = 0
    duration_ms: int = 0
    # None when the run failed before producing an outcome.
    status: Optional[ReasoningStatus] = None


class AgentResult(BaseModel):
    """What a caller gets back from ``Agent.run``; never an exception."""

    success: bool
    result: str
    mode: ReasoningMode
    metadata: AgentRunMetadata = Field(default_factory=AgentRunMetadata)
