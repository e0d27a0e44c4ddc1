from cogent.llm.base_llm import BaseLLM
from cogent.llm.exceptions import LLMError, TransientLLMError

__all__ = ["BaseLLM", "LLMError", "TransientLLMError"]
