from cogent.llm.base_llm import BaseLLM
from cogent.llm.exceptions import LLMError, TransientLLMError
from cogent.tools.base import ToolCall
from typing import List, Dict, Any, Optional
import litellm

from utils.logger import get_logger
from utils.observability import observe
logger = get_logger(__name__)

# Connection-level failures only; rate limits, auth and bad requests are terminal.
_TRANSIENT_ERRORS = (litellm.APIConnectionError, litellm.Timeout, ConnectionError)


class LiteLLM(BaseLLM):
    """Wrapper around litellm.acompletion."""

    def __init__(
        self,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        super().__init__(model=model, temperature=temperature)
        self.max_tokens = max_tokens

    @observe(llm=True)
    async def completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> BaseLLM.LLMResponse:
        # Merge default parameters with provided kwargs
        effective_temperature = kwargs.get("temperature", self.temperature)
        effective_max_tokens = kwargs.get("max_tokens", self.max_tokens)

        completion_kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
        }
        if tools:
            completion_kwargs["tools"] = tools
        if effective_temperature is not None:
            completion_kwargs["temperature"] = effective_temperature
        if effective_max_tokens is not None:
            completion_kwargs["max_tokens"] = effective_max_tokens

        for key, value in kwargs.items():
            if key not in ["temperature", "max_tokens"]:
                completion_kwargs[key] = value

        try:
            resp = await litellm.acompletion(**completion_kwargs)
        except _TRANSIENT_ERRORS as exc:
            logger.warning("llm_transient_error", model=self.model, error=str(exc))
            raise TransientLLMError(str(exc), model=self.model) from exc
        except Exception as exc:
            logger.error("llm_request_failed", model=self.model, error_type=type(exc).__name__, error=str(exc))
            raise LLMError(str(exc), model=self.model) from exc

        text, tool_calls = self._extract_message(resp)
        prompt_tokens, completion_tokens, total_tokens = self._extract_token_usage(resp)

        return BaseLLM.LLMResponse(
            text=text,
            tool_calls=tool_calls,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )

    @staticmethod
    def _extract_message(resp: Any) -> tuple[str, List[ToolCall]]:
        try:
            message = resp.choices[0].message
        except (IndexError, AttributeError):
            return "", []

        text = (getattr(message, "content", None) or "").strip()
        tool_calls: List[ToolCall] = []
        for raw in getattr(message, "tool_calls", None) or []:
            function = getattr(raw, "function", None)
            name = getattr(function, "name", None)
            if not name:
                continue
            tool_calls.append(
                ToolCall(
                    id=getattr(raw, "id", None) or f"call_{len(tool_calls)}",
                    name=name,
                    arguments=getattr(function, "arguments", None) or "{}",
                )
            )
        return text, tool_calls

    def _extract_token_usage(self, resp: Any) -> tuple[int | None, int | None, int | None]:
        """Extract token usage from provider response with fallbacks for different providers."""
        def _get_token(obj: Any, *keys: str) -> int | None:
            for key in keys:
                if isinstance(obj, dict):
                    val = obj.get(key)
                elif hasattr(obj, key):
                    val = getattr(obj, key, None)
                else:
                    continue
                if isinstance(val, int):
                    return val
            return None

        usage = getattr(resp, "usage", None) or (resp.get("usage") if isinstance(resp, dict) else None)
        if usage is None:
            return None, None, None

        prompt_tokens = _get_token(usage, "prompt_tokens", "input_tokens")
        completion_tokens = _get_token(usage, "completion_tokens", "output_tokens")
        total_tokens = _get_token(usage, "total_tokens")

        # Compute total if missing but components available
        if total_tokens is None and prompt_tokens is not None and completion_tokens is not None:
            total_tokens = prompt_tokens + completion_tokens

        return prompt_tokens, completion_tokens, total_tokens
