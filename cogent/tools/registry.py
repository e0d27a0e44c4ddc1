"""Tool registry: name → tool lookup and the never-raising dispatch boundary."""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel

from cogent.tools.base import FunctionTool, ToolApproval, ToolBase, ToolResult
from cogent.tools.exceptions import ToolExecutionError

from utils.logger import get_logger
logger = get_logger(__name__)


class ToolRegistry:
    """Constructed once and passed by reference to every run that needs it.

    Read-only during runs: ``invoke`` never mutates the registry, so one
    instance can serve concurrent task executions.
    """

    def __init__(self, tools: Iterable[ToolBase] = ()):
        self._tools: Dict[str, ToolBase] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolBase) -> ToolBase:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        return tool

    def tool(
        self,
        parameters: Type[BaseModel],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        approval: Optional[ToolApproval] = None,
    ):
        """Decorator to register a function as a tool.

        Args:
            parameters: pydantic model describing (and validating) the arguments.
            name: tool name, defaults to the function name.
            description: defaults to the first paragraph of the docstring.
            approval: approval category and optional per-invocation predicate.
        """
        def decorator(func: Callable[..., Any]) -> FunctionTool:
            tool_obj = FunctionTool(func, parameters, name=name, description=description, approval=approval)
            self.register(tool_obj)
            return tool_obj
        return decorator

    def get(self, name: str) -> Optional[ToolBase]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def catalogue(self) -> List[Dict[str, Any]]:
        """Tool descriptors in the function-calling format the model endpoint expects."""
        return [tool.to_function_spec() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def invoke(self, name: str, raw_args: str, call_id: str) -> ToolResult:
        """Parse, validate and execute one tool call.

        Every failure (unknown tool, bad JSON, schema violation, executor
        exception) comes back as an error-flagged ``ToolResult``.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("tool_not_found", tool=name, call_id=call_id)
            return ToolResult.error(f"Error: Tool '{name}' not found", kind="tool_not_found", tool=name)

        try:
            decoded = json.loads(raw_args) if raw_args and raw_args.strip() else {}
        except json.JSONDecodeError as exc:
            logger.warning("tool_arguments_unparsable", tool=name, call_id=call_id, error=str(exc))
            return ToolResult.error(
                f"Error executing tool '{name}': arguments are not valid JSON ({exc.msg})",
                kind="invalid_arguments",
                tool=name,
            )
        if not isinstance(decoded, dict):
            return ToolResult.error(
                f"Error executing tool '{name}': arguments must be a JSON object",
                kind="invalid_arguments",
                tool=name,
            )

        try:
            params = tool.validate(decoded)
        except ValueError as exc:
            logger.warning("tool_arguments_invalid", tool=name, call_id=call_id, error=str(exc))
            return ToolResult.error(f"Error executing tool '{name}': {exc}", kind="validation_failed", tool=name)

        logger.info("tool_dispatched", tool=name, call_id=call_id)
        try:
            return await tool.execute(params, call_id)
        except ToolExecutionError as exc:
            logger.error("tool_execution_failed", tool=name, call_id=call_id, error=exc.message)
            return ToolResult.error(f"Error executing tool '{name}': {exc.message}", kind="execution_failed", tool=name)
        except Exception as exc:
            logger.error("tool_unexpected_error", tool=name, call_id=call_id, error=str(exc), exc_info=True)
            return ToolResult.error(f"Error executing tool '{name}': {exc}", kind="execution_failed", tool=name)
