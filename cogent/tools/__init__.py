from cogent.tools.base import ApprovalCategory, ApprovalContext, FunctionTool, ToolApproval, ToolBase, ToolCall, ToolResult
from cogent.tools.registry import ToolRegistry

__all__ = [
    "ApprovalCategory",
    "ApprovalContext",
    "FunctionTool",
    "ToolApproval",
    "ToolBase",
    "ToolCall",
    "ToolResult",
    "ToolRegistry",
]
