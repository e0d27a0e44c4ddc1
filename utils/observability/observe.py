"""Simple, minimal tracing decorator for Cogent."""

from __future__ import annotations

from functools import wraps
from inspect import iscoroutinefunction, signature
from typing import Any, Callable, List, Optional
from contextvars import ContextVar
from dataclasses import is_dataclass, asdict
import json
import time

from opentelemetry import trace


def observe(_fn: Optional[Callable[..., Any]] = None, *, llm: bool = False, root: bool = False) -> Callable[..., Any]:
    """Minimal tracing decorator for sync and async callables.

    Usage:
        @observe
        async def run(self, task): ...

        @observe(llm=True)
        async def completion(self, messages, tools=None): ...

        @observe(root=True)
        async def run(self, task): ...

    - Auto-names spans from function module.qualname
    - Records timing, exceptions, basic I/O
    - Tracks token usage when llm=True
    - Aggregates total tokens when root=True
    - Spans are no-ops until the host configures an OpenTelemetry SDK
    """

    def _decorate(fn: Callable[..., Any]) -> Callable[..., Any]:
        module = getattr(fn, "__module__", "") or ""
        qualname = getattr(fn, "__qualname__", fn.__name__)
        span_name = f"{module}.{qualname}" if module else qualname

        def _finish(span: Any, result: Any) -> None:
            if llm:
                _capture_llm_output(span, result)
            else:
                _capture_output(span, result)

        def _fail(span: Any, exc: BaseException) -> None:
            span.record_exception(exc)
            span.set_status(trace.Status(trace.StatusCode.ERROR))

        def _close(span: Any, start_time: float) -> None:
            span.set_attribute("duration_ms", int((time.perf_counter() - start_time) * 1000))
            if root:
                _finalize_token_accumulator(span)

        if iscoroutinefunction(fn):
            @wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                tracer = trace.get_tracer("cogent")
                start_time = time.perf_counter()
                with tracer.start_as_current_span(span_name) as span:
                    try:
                        if root:
                            _start_token_accumulator(span)
                        _capture_input(span, fn, args, kwargs, llm)
                        result = await fn(*args, **kwargs)
                        _finish(span, result)
                        return result
                    except Exception as e:
                        _fail(span, e)
                        raise
                    finally:
                        _close(span, start_time)

            return async_wrapper

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = trace.get_tracer("cogent")
            start_time = time.perf_counter()
            with tracer.start_as_current_span(span_name) as span:
                try:
                    if root:
                        _start_token_accumulator(span)
                    _capture_input(span, fn, args, kwargs, llm)
                    result = fn(*args, **kwargs)
                    _finish(span, result)
                    return result
                except Exception as e:
                    _fail(span, e)
                    raise
                finally:
                    _close(span, start_time)

        return wrapper

    # Support both @observe and @observe() forms
    if callable(_fn):
        return _decorate(_fn)
    return _decorate


_SECRET_KEYS = {"apikey", "accesstoken", "refreshtoken", "clientsecret", "secret", "password",
                "authorization", "bearer", "cookie", "setcookie", "privatekey", "sshkey"}


def _safe_preview(val: Any, max_len: int = 512) -> Any:
    """Create safe preview of any value."""
    if val is None or isinstance(val, (bool, int, float)):
        return val
    if isinstance(val, str):
        return val[:max_len]
    if isinstance(val, dict):
        return {
            str(k): ("<redacted>" if str(k).lower().replace("_", "").replace("-", "") in _SECRET_KEYS
                     else _safe_preview(v, max_len))
            for k, v in list(val.items())[:20]
        }
    if isinstance(val, (list, tuple)):
        return [_safe_preview(v, max_len) for v in list(val)[:20]]
    if is_dataclass(val) and not isinstance(val, type):
        return _safe_preview(asdict(val), max_len)
    if hasattr(val, "model_dump"):
        return _safe_preview(val.model_dump(), max_len)
    return repr(val)[:max_len]


def _capture_input(span: Any, fn: Callable, args: tuple, kwargs: dict, llm: bool) -> None:
    """Capture function inputs with previews and redaction."""
    try:
        bound = signature(fn).bind_partial(*args, **kwargs)
    except TypeError:
        return

    # LLM path: capture messages only (longer cap for prompt visibility)
    if llm:
        messages = bound.arguments.get("messages")
        if messages:
            msg_str = json.dumps(messages, ensure_ascii=False, separators=(",", ":"), default=str)
            span.set_attribute("input", msg_str[:12288])
        return

    inputs = {name: _safe_preview(value) for name, value in bound.arguments.items() if name not in {"self", "cls"}}
    input_str = json.dumps(inputs, ensure_ascii=False, separators=(",", ":"), default=str)
    span.set_attribute("input", input_str[:6144] + ("..." if len(input_str) > 6144 else ""))


def _capture_output(span: Any, result: Any) -> None:
    """Capture non-LLM outputs with structured attributes."""
    # ReasoningResult / AgentResult: capture structured fields
    answer = getattr(result, "final_answer", None)
    if answer is None:
        answer = getattr(result, "result", None)
    if isinstance(answer, str):
        span.set_attribute("output", answer[:8192])
        success = getattr(result, "success", None)
        if isinstance(success, bool):
            span.set_attribute("result_success", success)
        iterations = getattr(result, "iterations", None)
        if isinstance(iterations, int):
            span.set_attribute("total_iterations", iterations)
        return
    span.set_attribute("output", str(result)[:8192])


def _capture_llm_output(span: Any, result: Any) -> None:
    """Capture LLM outputs and track tokens."""
    text = getattr(result, "text", None)
    if not isinstance(text, str):
        span.set_attribute("output", str(result)[:8192])
        return

    span.set_attribute("output", text)
    tool_calls = getattr(result, "tool_calls", None) or []
    span.set_attribute("tool_call_count", len(tool_calls))
    for attr, key in (("prompt_tokens", "tokens.prompt"), ("completion_tokens", "tokens.completion"), ("total_tokens", "tokens.total")):
        value = getattr(result, attr, None)
        if isinstance(value, int):
            span.set_attribute(key, value)
    total = getattr(result, "total_tokens", None)
    if isinstance(total, int):
        _accumulate_tokens(total)


# ── Token Accumulation ──────────────────────────────────────────────────────
# Root spans start a token counter; child LLM calls increment it; root finalizes total.
# The counter is a one-element list so increments made in child tasks (which run
# on a copy of the context) land in the same holder.

_tokens: ContextVar[Optional[List[int]]] = ContextVar("tokens", default=None)
_owner: ContextVar[Optional[int]] = ContextVar("owner", default=None)


def _start_token_accumulator(span: Any) -> None:
    """Initialize token counter for root span."""
    if _tokens.get() is None:
        _tokens.set([0])
        _owner.set(id(span))


def _accumulate_tokens(token_count: int) -> None:
    """Add tokens from an LLM call."""
    holder = _tokens.get()
    if holder is not None:
        holder[0] += token_count


def _finalize_token_accumulator(span: Any) -> None:
    """Write total tokens to root span and reset."""
    if _owner.get() == id(span):
        holder = _tokens.get()
        total = holder[0] if holder is not None else None
        if isinstance(total, int) and total > 0:
            span.set_attribute("tokens.total", total)
        _tokens.set(None)
        _owner.set(None)
