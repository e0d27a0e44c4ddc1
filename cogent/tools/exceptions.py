"""
Tool-related exceptions.

Executors may raise these instead of returning an error result; the registry
converts them into an error-flagged ``ToolResult`` so they never reach the
reasoning loop.
"""


class ToolError(Exception):
    """Base class for tool failures."""


class ToolExecutionError(ToolError):
    """Raised when a tool fails to execute for any reason."""

    def __init__(self, message: str, *, tool_id: str):
        self.tool_id = tool_id
        self.message = message
        super().__init__(f"Tool '{tool_id}': {message}")
