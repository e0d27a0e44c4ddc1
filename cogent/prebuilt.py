import os
from pathlib import Path
from typing import Optional, Union

from cogent.agent import Agent
from cogent.llm.litellm import LiteLLM
from cogent.memory.dict_memory import DictMemory
from cogent.reasoner.models import ReasoningMode
from cogent.reasoner.react import ReasoningObserver
from cogent.security.approval import ApprovalGate, Approver
from cogent.tools.builtin import builtin_tools
from utils.config import Config


def _validate_litellm_environment(model: str | None = None) -> None:
    """
    Validate environment variables for LiteLLM based on the model being used.

    LiteLLM supports many providers and this function checks for the appropriate
    API key based on the model prefix or common environment variables.

    Args:
        model: The model string which may indicate the provider

    Raises:
        ValueError: If required environment variables are missing
    """
    # If no model is specified, check for LLM_MODEL env var as per BaseLLM
    if not model:
        model = os.getenv("LLM_MODEL")
        if not model:
            # BaseLLM will handle this error, so we don't need to validate here
            return

    # Not exhaustive; covers the most common providers
    provider_env_vars = {
        "gpt": ["OPENAI_API_KEY"],
        "openai": ["OPENAI_API_KEY"],
        "claude": ["ANTHROPIC_API_KEY"],
        "anthropic": ["ANTHROPIC_API_KEY"],
        "gemini": ["GEMINI_API_KEY", "GOOGLE_API_KEY"],
        "mistral": ["MISTRAL_API_KEY"],
        "groq": ["GROQ_API_KEY"],
        "deepseek": ["DEEPSEEK_API_KEY"],
        "azure": ["AZURE_API_KEY", "AZURE_API_BASE"],
    }
    # Local runtimes need no key
    keyless_prefixes = ("ollama", "lm_studio", "vllm")

    model_lower = model.lower()
    if model_lower.startswith(keyless_prefixes):
        return

    required_vars = []
    for provider_prefix, env_vars in provider_env_vars.items():
        if provider_prefix in model_lower:
            required_vars = env_vars
            break

    if not required_vars:
        common_vars = ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"]
        if any(os.getenv(var) for var in common_vars):
            return
        raise ValueError(
            f"No API key found for model '{model}'. "
            f"Please set one of the following environment variables: "
            f"{', '.join(common_vars)}, or other provider-specific API keys. "
            f"See https://docs.litellm.ai/docs/providers for full list of supported providers."
        )

    if not any(os.getenv(var) for var in required_vars):
        raise ValueError(
            f"Missing required environment variables for model '{model}'. "
            f"Please set one of: {', '.join(required_vars)}"
        )


def build_agent(
    config: Config,
    cwd: Union[str, Path] = ".",
    *,
    approver: Optional[Approver] = None,
    observer: Optional[ReasoningObserver] = None,
) -> Agent:
    """Wire an ``Agent`` from configuration: LiteLLM, built-in tools rooted at ``cwd``, approval gate and limits.

    ``LLM_MODEL`` in the environment takes precedence over ``config.llm.model``.

    Raises:
        ValueError: If required environment variables for the LLM provider are missing
    """
    model = os.getenv("LLM_MODEL") or config.llm.model
    _validate_litellm_environment(model)

    reasoning = config.reasoning
    return Agent(
        llm=LiteLLM(model=model, temperature=config.llm.temperature, max_tokens=config.llm.max_tokens),
        tools=builtin_tools(cwd, config.security.banned_commands),
        approval=ApprovalGate(config.security.approval_policy, approver=approver),
        memory=DictMemory(),
        reasoning_mode=ReasoningMode(reasoning.default_mode) if reasoning.default_mode else None,
        max_steps=reasoning.max_steps,
        max_tokens=config.context.max_tokens,
        compress_ratio=config.context.compress_ratio,
        max_retries=reasoning.max_retries,
        backoff_base=reasoning.backoff_base,
        max_duration=reasoning.max_duration_seconds,
        temperature=config.llm.temperature,
        max_output_tokens=config.llm.max_tokens,
        observer=observer,
    )


class CodingAgent(Agent):
    """
    A pre-configured Agent for working in a local code workspace.

    This agent combines:
    - LiteLLM for language model access
    - Built-in file, search and shell tools rooted at ``cwd``
    - An approval gate (standard policy unless configured otherwise)
    - DictMemory for run bookkeeping and conversation history
    - The ReACT reasoner with keyword-based mode selection
    """

    def __init__(
        self,
        *,
        model: str | None = None,
        cwd: Union[str, Path] = ".",
        approval_policy: str = "standard",
        approver: Optional[Approver] = None,
        max_steps: int = 30,
        observer: Optional[ReasoningObserver] = None,
    ):
        """
        Args:
            model: The language model to use (defaults to the LLM_MODEL environment variable)
            cwd: Workspace the built-in tools operate in
            approval_policy: permissive, edit_auto, standard or strict
            approver: Callable consulted when a tool call needs approval
            max_steps: Maximum number of reasoning steps per task
            observer: Progress callbacks

        Raises:
            ValueError: If required environment variables for the LLM provider are missing
        """
        _validate_litellm_environment(model)

        super().__init__(
            llm=LiteLLM(model=model),
            tools=builtin_tools(cwd),
            approval=ApprovalGate(approval_policy, approver=approver),
            memory=DictMemory(),
            max_steps=max_steps,
            observer=observer,
        )
