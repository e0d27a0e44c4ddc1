"""CLI utility functions for user interaction."""
import sys
from typing import Any, Dict


def read_user_goal(prompt: str = "🤖 Enter a task: ") -> str:
    """Read a task from user input via stdin."""
    print(prompt, end="", flush=True)
    line = sys.stdin.readline()
    if not line:  # EOF
        raise KeyboardInterrupt

    goal = line.strip()
    if goal.lower() in {"bye", "quit", "exit", "q"}:
        raise KeyboardInterrupt

    return goal


def confirm_tool_call(tool: Any, params: Dict[str, Any]) -> bool:
    """Ask on stdin whether a tool call may run. Anything but y/yes denies."""
    print(f"\n⚠️  Approve {tool.name} {params}? [y/N] ", end="", flush=True)
    answer = sys.stdin.readline().strip().lower()
    return answer in {"y", "yes"}


def print_result(result) -> None:
    """Print an agent result to stdout."""
    meta = result.metadata
    if result.success:
        print(f"✅ **Answer:** {result.result}")
    else:
        print(f"❌ **Failed:** {result.result}")
    print(
        f"\n📋 mode={result.mode.value} steps={meta.turn_count} "
        f"tool_calls={meta.tool_call_count} duration={meta.duration_ms}ms"
    )
