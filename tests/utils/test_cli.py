import io

import pytest

from cogent.models import AgentResult, AgentRunMetadata
from cogent.reasoner.models import ReasoningMode
from utils.cli import confirm_tool_call, print_result, read_user_goal


class _Tool:
    name = "write_file"


def test_read_user_goal_strips_input(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("  fix the tests  \n"))
    assert read_user_goal() == "fix the tests"


@pytest.mark.parametrize("line", ["", "quit\n", "EXIT\n", "q\n"])
def test_read_user_goal_exits_on_eof_or_quit(monkeypatch, line):
    monkeypatch.setattr("sys.stdin", io.StringIO(line))
    with pytest.raises(KeyboardInterrupt):
        read_user_goal()


@pytest.mark.parametrize("answer, approved", [("y\n", True), ("YES\n", True), ("n\n", False), ("\n", False)])
def test_confirm_tool_call(monkeypatch, capsys, answer, approved):
    monkeypatch.setattr("sys.stdin", io.StringIO(answer))

    assert confirm_tool_call(_Tool(), {"file_path": "a.py"}) is approved
    assert "write_file" in capsys.readouterr().out


def test_print_result(capsys):
    ok = AgentResult(
        success=True,
        result="42",
        mode=ReasoningMode.REACT,
        metadata=AgentRunMetadata(turn_count=2, tool_call_count=1, duration_ms=15),
    )
    failed = AgentResult(success=False, result="Error in step 1: boom", mode=ReasoningMode.REFLECTION)

    print_result(ok)
    print_result(failed)

    out = capsys.readouterr().out
    assert "✅ **Answer:** 42" in out
    assert "mode=react steps=2 tool_calls=1 duration=15ms" in out
    assert "❌ **Failed:** Error in step 1: boom" in out
