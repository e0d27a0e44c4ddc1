import json
from typing import Any, Dict, List, Optional, Union

import pytest
from pydantic import BaseModel

from cogent.llm.base_llm import BaseLLM
from cogent.reasoner.react import ReasoningObserver
from cogent.tools.base import ApprovalCategory, ToolApproval, ToolCall, ToolResult
from cogent.tools.registry import ToolRegistry


def reply(text: str = "", *calls: ToolCall, final_answer: Optional[str] = None) -> BaseLLM.LLMResponse:
    return BaseLLM.LLMResponse(text=text, tool_calls=list(calls), final_answer=final_answer)


def call(name: str, args: Union[Dict[str, Any], str] = None, call_id: str = "call_1") -> ToolCall:
    arguments = args if isinstance(args, str) else json.dumps(args or {})
    return ToolCall(id=call_id, name=name, arguments=arguments)


class ScriptedLLM(BaseLLM):
    """Returns (or raises) queued items in order; records every request."""

    def __init__(self, script: List[Union[BaseLLM.LLMResponse, Exception]] | None = None):
        # Intentionally do not call super().__init__ to avoid model env requirement
        self.model = "scripted"
        self.temperature = None
        self.script = list(script or [])
        self.calls: List[Dict[str, Any]] = []

    async def completion(self, messages, tools=None, **kwargs):  # type: ignore[override]
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools, **kwargs})
        if not self.script:
            return reply("still thinking")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingObserver:
    def __init__(self):
        self.events: List[tuple] = []

    def build(self) -> ReasoningObserver:
        return ReasoningObserver(
            on_step=lambda step, max_steps: self.events.append(("step", step, max_steps)),
            on_thought=lambda thought: self.events.append(("thought", thought)),
            on_tool_call=lambda c: self.events.append(("tool_call", c.name, c.id)),
            on_tool_result=lambda c, result: self.events.append(("tool_result", c.name, result.is_error)),
        )

    def kinds(self) -> List[str]:
        return [event[0] for event in self.events]


class EchoParams(BaseModel):
    text: str


class NoteParams(BaseModel):
    path: str
    content: str = ""


def make_registry(written: Optional[List[str]] = None) -> ToolRegistry:
    registry = ToolRegistry()
    written = written if written is not None else []

    @registry.tool(EchoParams, approval=ToolApproval(category=ApprovalCategory.READ))
    def echo(params: EchoParams) -> str:
        """Echo the text back."""
        return f"echo: {params.text}"

    @registry.tool(NoteParams, approval=ToolApproval(category=ApprovalCategory.WRITE))
    async def write_note(params: NoteParams) -> ToolResult:
        """Pretend to write a note."""
        written.append(params.path)
        return ToolResult(content=f"wrote {params.path}")

    @registry.tool(EchoParams, approval=ToolApproval(category=ApprovalCategory.READ))
    def explode(params: EchoParams) -> str:
        """Always fails."""
        raise RuntimeError(f"kaboom: {params.text}")

    return registry


@pytest.fixture
def registry() -> ToolRegistry:
    return make_registry()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()
