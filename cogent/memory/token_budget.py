from __future__ import annotations

import math

CHARS_PER_TOKEN = 4


class TokenBudget:
    """Token ceiling plus a deterministic size estimate.

    The estimate is a fixed character ratio: longer text never costs fewer
    tokens, and the same text always costs the same.
    """

    def __init__(self, max_tokens: int):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self.max_tokens = max_tokens

    @staticmethod
    def estimate(text: str) -> int:
        return math.ceil(len(text) / CHARS_PER_TOKEN)

    def fits(self, current: int, extra: int = 0) -> bool:
        return current + extra <= self.max_tokens

    def target(self, ratio: float) -> int:
        """Token count corresponding to a fraction of the ceiling."""
        return math.floor(self.max_tokens * ratio)
