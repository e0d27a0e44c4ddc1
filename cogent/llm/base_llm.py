"""Model endpoint interface used by the reasoning loop."""
from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cogent.tools.base import ToolCall

from utils.logger import get_logger
logger = get_logger(__name__)


class BaseLLM(ABC):
    """Minimal async chat-LLM interface with tool calling.

    • Accepts a list[dict] *messages* in the OpenAI Chat format.
    • Accepts an optional catalogue of function-tool descriptors.
    • Returns an ``LLMResponse`` with text and structured tool calls.
    • Implementations SHOULD be stateless; auth + model name given at init.
    • Network-class failures MUST surface as ``TransientLLMError``; every other
      failure as ``LLMError``.
    """

    @dataclass
    class LLMResponse:
        text: str = ""
        tool_calls: List[ToolCall] = field(default_factory=list)
        # Structured completion signal; takes precedence over the text marker.
        final_answer: Optional[str] = None
        prompt_tokens: Optional[int] = None
        completion_tokens: Optional[int] = None
        total_tokens: Optional[int] = None

        @property
        def is_empty(self) -> bool:
            return not self.text and not self.tool_calls and self.final_answer is None

    def __init__(self, model: str | None = None, temperature: float | None = None) -> None:
        self.model = model or os.getenv("LLM_MODEL")
        if not self.model:
            raise ValueError("No model configured: pass `model` or set the LLM_MODEL environment variable")
        self.temperature = temperature

    @abstractmethod
    async def completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> "BaseLLM.LLMResponse": ...

    async def prompt(self, content: str, **kwargs: Any) -> str:
        """Convenience method for single user prompts."""
        response = await self.completion([{"role": "user", "content": content}], **kwargs)
        return response.text
