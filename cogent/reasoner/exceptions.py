from __future__ import annotations

from utils.logger import get_logger

logger = get_logger(__name__)


class ReasoningError(Exception):
    """Base exception for all reasoning-related errors."""

    def __init__(self, message: str):
        super().__init__(message)
        logger.warning(
            "reasoning_error",
            error_type=self.__class__.__name__,
            message=message,
        )


class EmptyResponseError(ReasoningError):
    """The model returned no text, no tool calls and no final answer."""

    def __init__(self, message: str = "Model returned an empty response"):
        super().__init__(message)


class StepExecutionError(ReasoningError):
    """A reasoning step failed; carries the 1-based step number and the cause."""

    def __init__(self, step: int, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Error in step {step}: {cause}")


class ReasoningCancelledError(ReasoningError):
    """The run was cancelled through its cancel event."""

    def __init__(self, step: int):
        self.step = step
        super().__init__(f"Reasoning cancelled before step {step}")
