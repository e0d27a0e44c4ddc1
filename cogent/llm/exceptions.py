"""Typed failure kinds for model endpoint calls."""


class LLMError(Exception):
    """A model call failed in a way retrying will not fix."""

    transient = False

    def __init__(self, message: str, *, model: str | None = None):
        self.model = model
        super().__init__(message)


class TransientLLMError(LLMError):
    """A network-class failure (connection reset, timeout) worth retrying."""

    transient = True
