from __future__ import annotations
import dataclasses
from typing import List, Optional

@dataclasses.dataclass
class LLM:
    model: str
    temperature: float = 0.7
    max_tokens: int = 2000

@dataclasses.dataclass
class Reasoning:
    default_mode: Optional[str] = None
    max_steps: int = 30
    max_retries: int = 3
    backoff_base: float = 1.0
    max_duration_seconds: Optional[float] = None

@dataclasses.dataclass
class Security:
    approval_policy: str = "standard"
    banned_commands: List[str] = dataclasses.field(default_factory=list)

@dataclasses.dataclass
class Context:
    max_tokens: int = 200_000
    compress_ratio: float = 0.7

@dataclasses.dataclass
class Config:
    llm: LLM
    reasoning: Reasoning = dataclasses.field(default_factory=Reasoning)
    security: Security = dataclasses.field(default_factory=Security)
    context: Context = dataclasses.field(default_factory=Context)
