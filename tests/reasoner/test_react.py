import asyncio

import pytest

from cogent.llm.exceptions import LLMError, TransientLLMError
from cogent.memory.context import ContextManager
from cogent.memory.token_budget import TokenBudget
from cogent.reasoner.exceptions import EmptyResponseError, ReasoningCancelledError, StepExecutionError
from cogent.reasoner.models import ReasoningMode, ReasoningStatus
from cogent.reasoner.react import (
    MAX_STEPS_SENTINEL,
    OBSERVATION_OMITTED,
    TIME_BUDGET_SENTINEL,
    ReACTReasoner,
    ReasoningObserver,
)
from cogent.security.approval import ApprovalGate
from cogent.tools.gated import GatedToolRegistry

from tests.conftest import ScriptedLLM, call, make_registry, reply

CONTINUE = "Continue, or provide FINAL ANSWER: followed by your answer if done."


class HangingLLM(ScriptedLLM):
    async def completion(self, messages, tools=None, **kwargs):  # type: ignore[override]
        self.calls.append({"messages": messages})
        await asyncio.sleep(30)


def _reasoner(llm, tools, **kwargs) -> ReACTReasoner:
    kwargs.setdefault("context", ContextManager(10_000))
    kwargs.setdefault("max_steps", 5)
    kwargs.setdefault("backoff_base", 0)
    return ReACTReasoner(llm=llm, tools=tools, **kwargs)


def test_final_answer_on_first_step_yields_single_trace_entry(registry):
    llm = ScriptedLLM([reply("Easy one. FINAL ANSWER:  42  ")])

    result = asyncio.run(_reasoner(llm, registry).run("What is six times seven?"))

    assert result.success is True
    assert result.status is ReasoningStatus.SUCCESS
    assert result.final_answer == "42"
    assert result.iterations == 1
    assert len(result.steps) == 1
    assert result.steps[0].thought == "Task completed"
    assert result.steps[0].observation == "42"
    assert len(llm.calls) == 1


def test_text_after_first_marker_is_kept_verbatim(registry):
    llm = ScriptedLLM([reply("FINAL ANSWER: use FINAL ANSWER: as the marker")])

    result = asyncio.run(_reasoner(llm, registry).run("how do I finish?"))

    assert result.final_answer == "use FINAL ANSWER: as the marker"


def test_structured_final_answer_takes_precedence(registry):
    llm = ScriptedLLM([reply("", final_answer="  structured  ")])

    result = asyncio.run(_reasoner(llm, registry).run("task"))

    assert result.final_answer == "structured"


def test_exhaustion_after_exactly_max_steps(registry):
    llm = ScriptedLLM()  # never finishes

    result = asyncio.run(_reasoner(llm, registry, max_steps=3).run("never ending"))

    assert result.status is ReasoningStatus.EXHAUSTED
    assert result.success is False
    assert result.final_answer == MAX_STEPS_SENTINEL
    assert result.iterations == 3
    assert len(llm.calls) == 3
    assert [step.thought for step in result.steps] == ["still thinking"] * 3


def test_tool_call_round_trip_builds_openai_style_conversation(registry):
    llm = ScriptedLLM([
        reply("Let me echo", call("echo", {"text": "hi"})),
        reply("FINAL ANSWER: done"),
    ])
    reasoner = _reasoner(llm, registry)

    result = asyncio.run(reasoner.run("say hi"))

    assert result.final_answer == "done"
    assert result.tool_calls == [{"tool": "echo", "call_id": "call_1", "is_error": False}]
    assert reasoner.tool_call_count == 1

    first = llm.calls[0]
    assert {spec["function"]["name"] for spec in first["tools"]} == {"echo", "write_note", "explode"}
    assert [m["role"] for m in first["messages"]] == ["system", "user"]
    assert "say hi" in first["messages"][1]["content"]

    second = llm.calls[1]["messages"]
    assert [m["role"] for m in second] == ["system", "user", "assistant", "tool", "user"]
    assert second[2]["content"] == "Let me echo"
    assert second[2]["tool_calls"][0]["id"] == "call_1"
    assert second[2]["tool_calls"][0]["function"]["name"] == "echo"
    assert second[3] == {"role": "tool", "tool_call_id": "call_1", "content": "echo: hi"}
    assert second[4] == {"role": "user", "content": CONTINUE}

    actions = [(s.thought, s.action, s.observation) for s in result.steps]
    assert actions == [
        ("Let me echo", None, None),
        (None, 'echo({"text": "hi"})', "echo: hi"),
        ("Task completed", None, "done"),
    ]


def test_text_only_step_has_no_tool_calls_key_and_gets_continuation(registry):
    llm = ScriptedLLM([reply("thinking"), reply("FINAL ANSWER: ok")])

    asyncio.run(_reasoner(llm, registry).run("task"))

    messages = llm.calls[1]["messages"]
    assert messages[-2] == {"role": "assistant", "content": "thinking"}
    assert messages[-1]["content"] == CONTINUE


def test_tool_calls_run_sequentially_in_declaration_order(registry):
    llm = ScriptedLLM([
        reply("two calls", call("echo", {"text": "a"}, "c1"), call("echo", {"text": "b"}, "c2")),
        reply("FINAL ANSWER: ok"),
    ])

    asyncio.run(_reasoner(llm, registry).run("task"))

    tool_messages = [m for m in llm.calls[1]["messages"] if m["role"] == "tool"]
    assert [(m["tool_call_id"], m["content"]) for m in tool_messages] == [("c1", "echo: a"), ("c2", "echo: b")]


def test_tool_failures_are_observations_not_errors(registry):
    llm = ScriptedLLM([
        reply("try", call("explode", {"text": "x"}, "c1"), call("nope", {}, "c2"), call("echo", "{bad json", "c3")),
        reply("FINAL ANSWER: recovered"),
    ])

    result = asyncio.run(_reasoner(llm, registry).run("task"))

    assert result.final_answer == "recovered"
    assert [c["is_error"] for c in result.tool_calls] == [True, True, True]
    contents = [m["content"] for m in llm.calls[1]["messages"] if m["role"] == "tool"]
    assert contents[0].startswith("Error executing tool 'explode'")
    assert contents[1] == "Error: Tool 'nope' not found"
    assert "not valid JSON" in contents[2]


def test_marker_wins_over_simultaneous_tool_calls():
    written = []
    registry = make_registry(written)
    llm = ScriptedLLM([reply("FINAL ANSWER: done", call("write_note", {"path": "a.txt"}))])
    reasoner = _reasoner(llm, registry)

    result = asyncio.run(reasoner.run("task"))

    assert result.final_answer == "done"
    assert written == []
    assert reasoner.tool_call_count == 0
    assert result.tool_calls == []


def test_transient_errors_are_retried_with_exponential_backoff(registry, monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    llm = ScriptedLLM([TransientLLMError("connection reset"), TransientLLMError("connection reset"), reply("FINAL ANSWER: ok")])

    result = asyncio.run(_reasoner(llm, registry, max_retries=3, backoff_base=0.5).run("task"))

    assert result.final_answer == "ok"
    assert len(llm.calls) == 3
    assert delays == [0.5, 1.0]


def test_transient_errors_past_the_retry_ceiling_fail_the_step(registry):
    llm = ScriptedLLM([TransientLLMError("connection reset")] * 3)

    with pytest.raises(StepExecutionError) as excinfo:
        asyncio.run(_reasoner(llm, registry, max_retries=3).run("task"))

    assert str(excinfo.value) == "Error in step 1: connection reset"
    assert isinstance(excinfo.value.cause, TransientLLMError)
    assert len(llm.calls) == 3


def test_terminal_model_error_is_not_retried(registry):
    llm = ScriptedLLM([reply("thinking"), LLMError("invalid api key"), reply("FINAL ANSWER: never")])

    with pytest.raises(StepExecutionError) as excinfo:
        asyncio.run(_reasoner(llm, registry).run("task"))

    assert excinfo.value.step == 2
    assert str(excinfo.value) == "Error in step 2: invalid api key"
    assert len(llm.calls) == 2


def test_empty_response_fails_the_step(registry):
    llm = ScriptedLLM([reply("")])

    with pytest.raises(StepExecutionError) as excinfo:
        asyncio.run(_reasoner(llm, registry).run("task"))

    assert isinstance(excinfo.value.cause, EmptyResponseError)
    assert str(excinfo.value) == "Error in step 1: Model returned an empty response"


def test_observer_sees_steps_thoughts_and_tools_in_order(registry, observer):
    llm = ScriptedLLM([reply("Let me echo", call("echo", {"text": "hi"})), reply("FINAL ANSWER: done")])

    asyncio.run(_reasoner(llm, registry, observer=observer.build()).run("task"))

    assert observer.events == [
        ("step", 1, 5),
        ("thought", "Let me echo"),
        ("tool_call", "echo", "call_1"),
        ("tool_result", "echo", False),
        ("step", 2, 5),
    ]


def test_observer_failures_do_not_break_the_run(registry):
    def broken(*args):
        raise RuntimeError("observer bug")

    thoughts = []

    async def async_thought(text):
        thoughts.append(text)

    observer = ReasoningObserver(on_step=broken, on_thought=async_thought, on_tool_call=broken)
    llm = ScriptedLLM([reply("go", call("echo", {"text": "x"})), reply("FINAL ANSWER: fine")])

    result = asyncio.run(_reasoner(llm, registry, observer=observer).run("task"))

    assert result.final_answer == "fine"
    assert thoughts == ["go"]


def test_denied_tool_call_is_reported_to_the_model():
    written = []
    gated = GatedToolRegistry(make_registry(written), ApprovalGate("standard", approver=lambda tool, params: False))
    llm = ScriptedLLM([reply("write", call("write_note", {"path": "a.txt"})), reply("FINAL ANSWER: gave up")])

    result = asyncio.run(_reasoner(llm, gated).run("task"))

    assert written == []
    assert result.tool_calls == [{"tool": "write_note", "call_id": "call_1", "is_error": True}]
    tool_message = next(m for m in llm.calls[1]["messages"] if m["role"] == "tool")
    assert tool_message["content"] == "Tool call 'write_note' was denied by the approval policy"


def test_oversized_observation_is_replaced_by_placeholder(registry):
    llm = ScriptedLLM([reply("echo", call("echo", {"text": "x" * 400})), reply("FINAL ANSWER: ok")])
    context = ContextManager(50)

    result = asyncio.run(_reasoner(llm, registry, context=context).run("t"))

    tool_message = next(m for m in llm.calls[1]["messages"] if m["role"] == "tool")
    assert tool_message["content"] == OBSERVATION_OMITTED
    assert tool_message["tool_call_id"] == "call_1"
    # the trace keeps the full observation
    assert result.steps[1].observation.startswith("echo: xxx")
    assert context.current_tokens <= 50


def test_observations_are_budgeted_in_context(registry):
    llm = ScriptedLLM([reply("echo", call("echo", {"text": "hello"})), reply("FINAL ANSWER: ok")])
    context = ContextManager(1_000)

    asyncio.run(_reasoner(llm, registry, context=context).run("the task"))

    assert [item.content for item in context.items] == ["the task", "echo: hello"]


def test_mode_selects_the_system_prompt(registry):
    llm = ScriptedLLM([reply("FINAL ANSWER: ok")])

    asyncio.run(_reasoner(llm, registry, mode=ReasoningMode.PLAN_SOLVE).run("refactor it"))

    system = llm.calls[0]["messages"][0]
    assert system["role"] == "system"
    assert "numbered plan" in system["content"]


def test_cancel_event_set_before_run_stops_before_model_call(registry):
    llm = ScriptedLLM([reply("FINAL ANSWER: too late")])
    event = asyncio.Event()
    event.set()

    with pytest.raises(ReasoningCancelledError):
        asyncio.run(_reasoner(llm, registry, cancel_event=event).run("task"))

    assert llm.calls == []


def test_cancel_event_interrupts_in_flight_model_call(registry):
    async def scenario():
        event = asyncio.Event()
        reasoner = _reasoner(HangingLLM(), registry, cancel_event=event)
        asyncio.get_running_loop().call_later(0.01, event.set)
        await reasoner.run("task")

    with pytest.raises(ReasoningCancelledError):
        asyncio.run(scenario())


def test_time_budget_ends_run_with_sentinel(registry):
    result = asyncio.run(_reasoner(HangingLLM(), registry, max_duration=0.05).run("task"))

    assert result.status is ReasoningStatus.EXHAUSTED
    assert result.final_answer == TIME_BUDGET_SENTINEL


def test_rejects_non_positive_limits(registry):
    with pytest.raises(ValueError):
        _reasoner(ScriptedLLM(), registry, max_steps=0)
    with pytest.raises(ValueError):
        _reasoner(ScriptedLLM(), registry, max_retries=0)


def test_compaction_keeps_observations_sent_to_model_within_budget(registry):
    calls = [call("echo", {"text": "x" * 155}, call_id=f"call_{n}") for n in range(1, 7)]
    llm = ScriptedLLM([reply("reading", *calls), reply("FINAL ANSWER: ok")])
    context = ContextManager(100)

    asyncio.run(_reasoner(llm, registry, context=context).run("t"))

    tool_messages = [m for m in llm.calls[1]["messages"] if m["role"] == "tool"]
    assert [m["tool_call_id"] for m in tool_messages] == [c.id for c in calls]
    kept = [m["content"] for m in tool_messages if m["content"] != OBSERVATION_OMITTED]
    kept_tokens = sum(TokenBudget.estimate(content) for content in kept)
    assert kept_tokens <= context.max_tokens
    assert kept_tokens == context.current_tokens - TokenBudget.estimate("t")
    assert [m["content"] == OBSERVATION_OMITTED for m in tool_messages] == [True] * 4 + [False] * 2
