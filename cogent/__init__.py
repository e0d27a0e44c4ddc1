"""Cogent: an agentic task executor that drives a tool-calling model loop."""
from cogent.agent import Agent, AgentState
from cogent.models import AgentResult, AgentRunMetadata
from cogent.reasoner.models import ReasoningMode

__all__ = ["Agent", "AgentState", "AgentResult", "AgentRunMetadata", "ReasoningMode"]
