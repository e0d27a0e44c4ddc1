"""Shell command tool with dangerous-command screening."""
from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from cogent.security.commands import is_high_risk_command, validate_command
from cogent.tools.base import ApprovalCategory, ApprovalContext, ToolApproval, ToolResult
from cogent.tools.registry import ToolRegistry

from utils.logger import get_logger
logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class RunCommandParams(BaseModel):
    command: str = Field(min_length=1, description="The shell command to execute")
    timeout: Optional[float] = Field(default=None, gt=0, description=f"Timeout in seconds (default: {DEFAULT_TIMEOUT:g})")


def _format_output(stdout: str, stderr: str) -> str:
    output: List[str] = []
    if stdout:
        output.extend(["STDOUT:", stdout])
    if stderr:
        output.extend(["\nSTDERR:", stderr])
    return "\n".join(output)


def register_shell_tools(registry: ToolRegistry, root: Path, banned: Iterable[str] = ()) -> None:
    banned = tuple(banned)

    def needs_approval(context: ApprovalContext) -> bool:
        return is_high_risk_command(str(context.params.get("command", "")), banned)

    @registry.tool(
        RunCommandParams,
        approval=ToolApproval(category=ApprovalCategory.COMMAND, predicate=needs_approval),
    )
    async def run_command(params: RunCommandParams) -> ToolResult:
        """Execute a shell command in the workspace. Use for running tests, linting, building, etc. Dangerous commands will be rejected."""
        safe, reason = validate_command(params.command, banned)
        if not safe:
            logger.warning("command_rejected", command=params.command, reason=reason)
            return ToolResult.error(f"Command rejected: {reason}", kind="command_rejected")

        timeout = params.timeout or DEFAULT_TIMEOUT
        started = time.perf_counter()
        proc = await asyncio.create_subprocess_shell(
            params.command,
            cwd=str(root),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            raw_out, raw_err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("command_timed_out", command=params.command, timeout=timeout)
            return ToolResult.error(f"Command timed out after {timeout:g}s", kind="timeout", command=params.command)
        except asyncio.CancelledError:
            proc.kill()
            raise

        duration_ms = int((time.perf_counter() - started) * 1000)
        output = _format_output(
            raw_out.decode("utf-8", errors="replace").strip(),
            raw_err.decode("utf-8", errors="replace").strip(),
        )
        display = {"command": params.command, "exit_code": proc.returncode, "duration_ms": duration_ms}
        if proc.returncode != 0:
            return ToolResult(
                content=f"Command failed with exit code {proc.returncode}:\n```\n{output}\n```",
                is_error=True,
                display=display,
                metadata={"error": "nonzero_exit", "exit_code": proc.returncode},
            )
        return ToolResult(content=f"Command executed successfully in {duration_ms}ms:\n```\n{output}\n```", display=display)
