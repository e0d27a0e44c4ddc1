"""
Agent

Lightweight façade that wires together the core runtime services (LLM, tools,
approval gate, memory) with the reasoning loop. The agent owns the services and
builds a fresh loop, context budget and trace for every task.
"""
from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import MutableMapping
from enum import Enum
from typing import Optional
from uuid import uuid4

from cogent.llm.base_llm import BaseLLM
from cogent.memory.context import ContextManager
from cogent.memory.dict_memory import DictMemory
from cogent.models import AgentResult, AgentRunMetadata
from cogent.reasoner.mode_selector import ModeSelector
from cogent.reasoner.models import ReasoningMode
from cogent.reasoner.react import ReACTReasoner, ReasoningObserver
from cogent.security.approval import ApprovalGate
from cogent.tools.gated import GatedToolRegistry
from cogent.tools.registry import ToolRegistry

from utils.logger import get_logger
from utils.observability import observe

logger = get_logger(__name__)


class AgentState(str, Enum):
    READY               = "READY"
    BUSY                = "BUSY"
    NEEDS_ATTENTION     = "NEEDS_ATTENTION"


class Agent:
    """Top-level class that runs tasks through the reasoning loop."""

    def __init__(
        self,
        *,
        llm: BaseLLM,
        tools: ToolRegistry,

        # Optionals
        approval: Optional[ApprovalGate] = None,
        memory: Optional[MutableMapping] = None,
        mode_selector: Optional[ModeSelector] = None,
        reasoning_mode: Optional[ReasoningMode] = None,
        max_steps: int = ReACTReasoner.DEFAULT_MAX_STEPS,
        max_tokens: int = 200_000,
        compress_ratio: float = 0.7,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        max_duration: Optional[float] = None,
        temperature: Optional[float] = 0.7,
        max_output_tokens: Optional[int] = 2000,
        observer: Optional[ReasoningObserver] = None,
        conversation_history_window: int = 50,
    ):
        """Initializes the agent.

        Args:
            llm: The language model instance.
            tools: Registry of tools the model may call.
            approval: Gate consulted before each tool call. Defaults to the
                standard policy with automatic approval.
            memory: The memory backend. Defaults to a fresh ``DictMemory``.
            mode_selector: Classifier used when no mode is forced.
            reasoning_mode: Forces a mode for every task this agent runs.
            max_steps: Step ceiling of each run.
            max_tokens: Context budget of each run.
            max_duration: Optional wall-clock budget of each run, in seconds.
            observer: Progress callbacks passed to every run.
            conversation_history_window: The number of past interactions to keep in memory.
        """
        self.llm = llm
        self.tools = tools
        self.approval = approval or ApprovalGate()
        self.memory = memory if memory is not None else DictMemory()
        self.mode_selector = mode_selector or ModeSelector()
        self.reasoning_mode = reasoning_mode
        self.max_steps = max_steps
        self.max_tokens = max_tokens
        self.compress_ratio = compress_ratio
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.max_duration = max_duration
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.observer = observer

        self.memory.setdefault("conversation_history", deque(maxlen=conversation_history_window))

        self._state: AgentState = AgentState.READY

    @property
    def state(self) -> AgentState:
        return self._state

    def select_mode(self, task: str, mode: Optional[ReasoningMode] = None) -> ReasoningMode:
        return self.mode_selector.select_mode(task, mode or self.reasoning_mode)

    @observe(root=True)
    async def run(
        self,
        task: str,
        mode: Optional[ReasoningMode] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AgentResult:
        """Runs one task to completion. Failures come back as ``success=False``."""
        run_id = uuid4().hex
        self.memory[f"task:{run_id}"] = task
        self._state = AgentState.BUSY

        started = time.perf_counter()
        selected: Optional[ReasoningMode] = None
        reasoner: Optional[ReACTReasoner] = None
        try:
            selected = self.select_mode(task, mode)
            logger.info("agent_run_started", run_id=run_id, mode=selected.value)
            reasoner = ReACTReasoner(
                llm=self.llm,
                tools=GatedToolRegistry(self.tools, self.approval),
                context=ContextManager(self.max_tokens, compress_ratio=self.compress_ratio),
                mode=selected,
                max_steps=self.max_steps,
                max_retries=self.max_retries,
                backoff_base=self.backoff_base,
                observer=self.observer,
                cancel_event=cancel_event,
                max_duration=self.max_duration,
                temperature=self.temperature,
                max_tokens=self.max_output_tokens,
            )
            outcome = await reasoner.run(task)
        except Exception as exc:
            self._state = AgentState.NEEDS_ATTENTION
            selected = selected or mode or self.reasoning_mode or ReasoningMode.REACT
            result = AgentResult(
                success=False,
                result=str(exc),
                mode=selected,
                metadata=self._metadata(reasoner, started),
            )
            logger.error("agent_run_failed", run_id=run_id, error_type=type(exc).__name__, error=str(exc))
        else:
            self._state = AgentState.READY
            result = AgentResult(
                success=True,
                result=outcome.final_answer,
                mode=selected,
                metadata=self._metadata(reasoner, started, status=outcome.status),
            )
            logger.info(
                "agent_run_finished",
                run_id=run_id,
                status=outcome.status.value,
                turns=result.metadata.turn_count,
                tool_calls=result.metadata.tool_call_count,
                duration_ms=result.metadata.duration_ms,
            )

        self.memory[f"result:{run_id}"] = result
        self.memory["conversation_history"].append(
            {"task": task, "result": result.result, "mode": selected.value, "success": result.success}
        )
        return result

    def solve(self, task: str, mode: Optional[ReasoningMode] = None) -> AgentResult:
        """Runs a task synchronously (library-style API)."""
        return asyncio.run(self.run(task, mode=mode))

    @staticmethod
    def _metadata(reasoner: Optional[ReACTReasoner], started: float, status=None) -> AgentRunMetadata:
        # No reasoner when construction itself failed.
        return AgentRunMetadata(
            turn_count=reasoner.steps_taken if reasoner else 0,
            tool_call_count=reasoner.tool_call_count if reasoner else 0,
            duration_ms=int((time.perf_counter() - started) * 1000),
            status=status,
        )
