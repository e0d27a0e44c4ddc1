"""Tool contract shared by the registry, the approval gate and the reasoning loop."""
from __future__ import annotations

import inspect
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ValidationError


class ApprovalCategory(str, Enum):
    """Coarse risk classification attached to a tool at registration."""

    READ = "read"
    WRITE = "write"
    COMMAND = "command"
    NETWORK = "network"


@dataclass
class ApprovalContext:
    """Everything a per-tool approval predicate gets to look at."""

    tool_name: str
    params: Dict[str, Any]
    policy: str
    extra: Dict[str, Any] = field(default_factory=dict)


ApprovalPredicate = Callable[[ApprovalContext], Union[bool, Awaitable[bool]]]


@dataclass
class ToolApproval:
    category: Optional[ApprovalCategory] = None
    predicate: Optional[ApprovalPredicate] = None


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image"] = "image"
    data: str
    mime_type: str


class ToolResult(BaseModel):
    """Outcome of one tool invocation, fed back to the model as an observation."""

    content: Union[str, List[Union[TextPart, ImagePart]]]
    is_error: bool = False
    display: Any = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def error(cls, message: str, *, kind: str, **metadata: Any) -> "ToolResult":
        return cls(content=message, is_error=True, metadata={"error": kind, **metadata})

    def to_text(self) -> str:
        """Flatten content to the string the model sees."""
        if isinstance(self.content, str):
            return self.content
        parts: List[str] = []
        for part in self.content:
            if isinstance(part, TextPart):
                parts.append(part.text)
            else:
                parts.append(f"[image: {part.mime_type}]")
        return "\n".join(parts)


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: str = "{}"

    def to_message(self) -> Dict[str, Any]:
        return {"id": self.id, "type": "function", "function": {"name": self.name, "arguments": self.arguments}}

    def parsed_arguments(self) -> Any:
        return json.loads(self.arguments or "{}")


class ToolBase(ABC):
    """Abstract tool: name, schema, approval metadata and an executor."""

    def __init__(self, name: str, description: str = "", approval: Optional[ToolApproval] = None):
        self.name = name
        self.description = description
        self.approval = approval or ToolApproval()

    @property
    def id(self) -> str:
        return self.name

    @property
    def category(self) -> Optional[ApprovalCategory]:
        return self.approval.category

    def get_summary(self) -> str:
        return f"{self.name}: {self.description}"

    @abstractmethod
    def get_parameters(self) -> Dict[str, Any]:
        """JSON schema of the parameters object."""

    @abstractmethod
    def validate(self, params: Any) -> Any:
        """Return validated parameters or raise ``ValueError``."""

    @abstractmethod
    async def execute(self, params: Any, call_id: str) -> ToolResult: ...

    def to_function_spec(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.get_parameters(),
            },
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


ToolFunction = Callable[..., Any]


class FunctionTool(ToolBase):
    """Tool backed by a plain function and a pydantic parameter model.

    The function receives the validated model instance and may be sync or
    async. It may accept ``call_id`` as a keyword argument. A ``str`` return
    value is wrapped in a successful ``ToolResult``.
    """

    def __init__(
        self,
        func: ToolFunction,
        parameters: Type[BaseModel],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        approval: Optional[ToolApproval] = None,
        display_name: Optional[str] = None,
    ):
        doc = inspect.getdoc(func) or ""
        super().__init__(name or func.__name__, description or doc.split("\n\n")[0].strip(), approval)
        self.func = func
        self.parameters = parameters
        self.display_name = display_name or self.name
        self._accepts_call_id = "call_id" in inspect.signature(func).parameters

    def get_parameters(self) -> Dict[str, Any]:
        schema = self.parameters.model_json_schema()
        schema.pop("title", None)
        return schema

    def validate(self, params: Any) -> BaseModel:
        try:
            return self.parameters.model_validate(params)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc

    async def execute(self, params: BaseModel, call_id: str) -> ToolResult:
        kwargs = {"call_id": call_id} if self._accepts_call_id else {}
        result = self.func(params, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, ToolResult):
            return result
        return ToolResult(content=result if isinstance(result, str) else json.dumps(result, default=str))
