from __future__ import annotations

import asyncio
import contextlib
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from cogent.llm.base_llm import BaseLLM
from cogent.llm.exceptions import TransientLLMError
from cogent.memory.context import ContextManager, ContextPriority
from cogent.memory.trace import ReasoningTrace
from cogent.reasoner.exceptions import EmptyResponseError, ReasoningCancelledError, StepExecutionError
from cogent.reasoner.models import ReasoningMode, ReasoningResult, ReasoningStatus
from cogent.reasoner.prompts import load_prompts
from cogent.tools.base import ToolCall, ToolResult
from cogent.tools.gated import GatedToolRegistry
from cogent.tools.registry import ToolRegistry

from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

FINAL_ANSWER_MARKER = "FINAL ANSWER:"
MAX_STEPS_SENTINEL = "Task incomplete: maximum steps reached"
TIME_BUDGET_SENTINEL = "Task incomplete: time budget exhausted"
OBSERVATION_OMITTED = "[observation omitted: context budget exhausted]"

_PROMPTS = load_prompts("modes", required_keys=[mode.value for mode in ReasoningMode] + ["task", "continue"])


@dataclass
class ReasoningObserver:
    """Optional progress callbacks. Sync or async; return values are ignored."""

    on_step: Optional[Callable[[int, int], Any]] = None
    on_thought: Optional[Callable[[str], Any]] = None
    on_tool_call: Optional[Callable[[ToolCall], Any]] = None
    on_tool_result: Optional[Callable[[ToolCall, ToolResult], Any]] = None


class _TimeBudgetExceeded(Exception):
    pass


class ReACTReasoner:
    """Tool-calling think/act/observe loop over a chat model.

    One instance drives one run: the conversation, trace and counters are
    reset at the start of ``run``.
    """

    DEFAULT_MAX_STEPS = 30

    def __init__(
        self,
        *,
        llm: BaseLLM,
        tools: ToolRegistry | GatedToolRegistry,
        context: ContextManager,
        mode: ReasoningMode = ReasoningMode.REACT,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        observer: Optional[ReasoningObserver] = None,
        cancel_event: Optional[asyncio.Event] = None,
        max_duration: Optional[float] = None,
        temperature: Optional[float] = 0.7,
        max_tokens: Optional[int] = 2000,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.llm = llm
        self.tools = tools
        self.context = context
        self.mode = mode
        self.max_steps = max_steps
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.observer = observer or ReasoningObserver()
        self.cancel_event = cancel_event
        self.max_duration = max_duration
        self.temperature = temperature
        self.max_tokens = max_tokens

        self.trace = ReasoningTrace()
        self.steps_taken = 0
        self.tool_call_count = 0
        self._messages: List[Dict[str, Any]] = []
        self._tool_log: List[Dict[str, Any]] = []
        self._deadline: Optional[float] = None

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return list(self._messages)

    async def run(self, task: str) -> ReasoningResult:
        logger.info("reasoning_started", mode=self.mode.value, max_steps=self.max_steps, task=task[:200])
        self._reset(task)

        for index in range(self.max_steps):
            step = index + 1
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise ReasoningCancelledError(step)
            if self._deadline is not None and time.monotonic() >= self._deadline:
                return self._exhausted(TIME_BUDGET_SENTINEL)

            self.steps_taken = step
            try:
                answer = await self._step(step)
            except (ReasoningCancelledError, asyncio.CancelledError):
                raise
            except _TimeBudgetExceeded:
                return self._exhausted(TIME_BUDGET_SENTINEL)
            except Exception as exc:
                logger.error("reasoning_step_failed", step=step, error_type=type(exc).__name__, error=str(exc))
                raise StepExecutionError(step, exc) from exc

            if answer is not None:
                logger.info("reasoning_complete", steps=step, tool_calls=self.tool_call_count)
                return self._result(answer, ReasoningStatus.SUCCESS)

        logger.warning("max_steps_reached", max_steps=self.max_steps, tool_calls=self.tool_call_count)
        return self._exhausted(MAX_STEPS_SENTINEL)

    def _reset(self, task: str) -> None:
        self.trace.clear()
        self.steps_taken = 0
        self.tool_call_count = 0
        self._tool_log = []
        self._deadline = time.monotonic() + self.max_duration if self.max_duration is not None else None
        self._messages = [
            {"role": "system", "content": _PROMPTS[self.mode.value]},
            {"role": "user", "content": _PROMPTS["task"].format(task=task)},
        ]
        if not self.context.add_item(task, ContextPriority.CRITICAL):
            logger.warning("task_exceeds_context_budget", max_tokens=self.context.max_tokens)

    async def _step(self, step: int) -> Optional[str]:
        """Run one step. Returns the final answer, or None to keep going."""
        logger.info("reasoning_step_started", step=step, max_steps=self.max_steps)
        await self._notify("on_step", step, self.max_steps)

        response = await self._generate(step)
        if response.is_empty:
            raise EmptyResponseError()

        answer = self._final_answer(response)
        if answer is not None:
            if response.tool_calls:
                logger.warning("pending_tool_calls_dropped", step=step, count=len(response.tool_calls))
            self.trace.add(thought="Task completed", observation=answer)
            return answer

        if response.text:
            self.trace.add(thought=response.text)
            await self._notify("on_thought", response.text)

        assistant: Dict[str, Any] = {"role": "assistant", "content": response.text or None}
        if response.tool_calls:
            assistant["tool_calls"] = [call.to_message() for call in response.tool_calls]
        self._messages.append(assistant)

        for call in response.tool_calls:
            await self._execute_tool(step, call)

        self._messages.append({"role": "user", "content": _PROMPTS["continue"]})
        return None

    async def _generate(self, step: int) -> BaseLLM.LLMResponse:
        catalogue = self.tools.catalogue()
        attempt = 0
        while True:
            try:
                return await self._guard(
                    step,
                    self.llm.completion(
                        self.messages,
                        tools=catalogue or None,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens,
                    ),
                )
            except TransientLLMError as exc:
                if attempt + 1 >= self.max_retries:
                    raise
                delay = self.backoff_base * 2 ** attempt
                logger.warning(
                    "model_call_retry",
                    step=step,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=delay,
                    error=str(exc),
                )
                await self._guard(step, asyncio.sleep(delay))
                attempt += 1

    async def _execute_tool(self, step: int, call: ToolCall) -> None:
        await self._notify("on_tool_call", call)
        logger.info("tool_call_requested", step=step, tool=call.name, call_id=call.id)

        result = await self._guard(step, self.tools.invoke(call.name, call.arguments, call.id))
        self.tool_call_count += 1
        self._tool_log.append({"tool": call.name, "call_id": call.id, "is_error": result.is_error})
        await self._notify("on_tool_result", call, result)

        observation = result.to_text()
        if result.is_error:
            logger.warning("tool_returned_error", step=step, tool=call.name, call_id=call.id, error=observation[:200])
        position = len(self._messages)
        content = observation if self._budget(observation, result.is_error, position) else OBSERVATION_OMITTED
        self._messages.append({"role": "tool", "tool_call_id": call.id, "content": content})
        self._omit_dropped()
        self.trace.add(action=f"{call.name}({call.arguments})", observation=observation)

    def _budget(self, observation: str, is_error: bool, position: int) -> bool:
        priority = ContextPriority.LOW if is_error else ContextPriority.MEDIUM
        if self.context.add_item(observation, priority, ref=position):
            return True
        self.context.compress()
        if self.context.add_item(observation, priority, ref=position):
            return True
        logger.warning("observation_omitted", tokens=self.context.current_tokens, max_tokens=self.context.max_tokens)
        return False

    def _omit_dropped(self) -> None:
        """Blank the tool messages whose observations left the context; the call ids stay answered."""
        for item in self.context.drain_dropped():
            if item.ref is None or item.ref >= len(self._messages):
                continue
            message = self._messages[item.ref]
            if message.get("role") == "tool" and message["content"] == item.content:
                message["content"] = OBSERVATION_OMITTED
                logger.debug("observation_compacted", tool_call_id=message["tool_call_id"], tokens=item.tokens)

    @staticmethod
    def _final_answer(response: BaseLLM.LLMResponse) -> Optional[str]:
        if response.final_answer is not None:
            return response.final_answer.strip()
        if FINAL_ANSWER_MARKER in response.text:
            return response.text.split(FINAL_ANSWER_MARKER, 1)[1].strip()
        return None

    async def _guard(self, step: int, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the cancel event fires or the time budget runs out first."""
        remaining: Optional[float] = None
        if self._deadline is not None:
            remaining = max(self._deadline - time.monotonic(), 0.0)
        if self.cancel_event is None and remaining is None:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        waiters = {work}
        cancel_wait: Optional[asyncio.Future] = None
        if self.cancel_event is not None:
            cancel_wait = asyncio.ensure_future(self.cancel_event.wait())
            waiters.add(cancel_wait)
        try:
            done, _ = await asyncio.wait(waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()
            if not work.done():
                work.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await work

        if work in done:
            return work.result()
        if cancel_wait is not None and cancel_wait in done:
            logger.info("reasoning_cancelled", step=step)
            raise ReasoningCancelledError(step)
        logger.warning("time_budget_exhausted", step=step, max_duration=self.max_duration)
        raise _TimeBudgetExceeded()

    async def _notify(self, name: str, *args: Any) -> None:
        callback = getattr(self.observer, name)
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.warning("observer_callback_failed", callback=name, error=str(exc), exc_info=True)

    def _exhausted(self, sentinel: str) -> ReasoningResult:
        return self._result(sentinel, ReasoningStatus.EXHAUSTED)

    def _result(self, answer: str, status: ReasoningStatus) -> ReasoningResult:
        return ReasoningResult(
            final_answer=answer,
            status=status,
            mode=self.mode,
            iterations=self.steps_taken,
            tool_calls=list(self._tool_log),
            steps=self.trace.steps,
            transcript=self.trace.render(),
        )
