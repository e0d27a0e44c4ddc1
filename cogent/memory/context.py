"""
Context accumulator

Holds prioritized, token-costed content items within a token ceiling.
Additions that do not fit evict strictly lower-priority content (lowest
priority first, oldest first) or are rejected without touching what is
already held. ``compress`` is the proactive, more aggressive shrink.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import List, Optional

from cogent.memory.token_budget import TokenBudget

from utils.logger import get_logger, trace_method
logger = get_logger(__name__)


class ContextPriority(IntEnum):
    CRITICAL = 100
    HIGH = 80
    MEDIUM = 60
    LOW = 40
    VERY_LOW = 20


@dataclass
class ContextItem:
    content: str
    priority: ContextPriority
    tokens: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Insertion order; breaks timestamp ties.
    seq: int = 0
    # Position of the conversation message this item stands for, if any.
    ref: Optional[int] = None


class ContextManager:
    DEFAULT_COMPRESS_RATIO = 0.7

    def __init__(self, max_tokens: int, *, compress_ratio: float = DEFAULT_COMPRESS_RATIO):
        if not 0 < compress_ratio <= 1:
            raise ValueError("compress_ratio must be in (0, 1]")
        self.budget = TokenBudget(max_tokens)
        self.compress_ratio = compress_ratio
        self._items: List[ContextItem] = []
        self._dropped: List[ContextItem] = []
        self._seq = itertools.count()

    @property
    def max_tokens(self) -> int:
        return self.budget.max_tokens

    @property
    def current_tokens(self) -> int:
        return sum(item.tokens for item in self._items)

    @property
    def items(self) -> List[ContextItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add_item(self, content: str, priority: ContextPriority, *, ref: Optional[int] = None) -> bool:
        """Add content; return False when it cannot be made to fit.

        ``ref`` ties the item to a conversation message so the caller can
        drop that message too once the item is evicted or compressed away.
        """
        tokens = self.budget.estimate(content)
        current = self.current_tokens

        if not self.budget.fits(current, tokens):
            victims = self._eviction_plan(priority, current, tokens)
            if victims is None:
                logger.info("context_item_rejected", tokens=tokens, priority=priority.name, current_tokens=current)
                return False
            victim_ids = {id(item) for item in victims}
            self._items = [item for item in self._items if id(item) not in victim_ids]
            self._dropped.extend(victims)
            logger.debug("context_items_evicted", count=len(victims), freed=sum(v.tokens for v in victims))

        self._items.append(ContextItem(content=content, priority=ContextPriority(priority), tokens=tokens, seq=next(self._seq), ref=ref))
        return True

    def _eviction_plan(self, priority: ContextPriority, current: int, tokens: int) -> List[ContextItem] | None:
        candidates = sorted(
            (item for item in self._items if item.priority < priority),
            key=lambda item: (item.priority, item.seq),
        )
        freed = 0
        plan: List[ContextItem] = []
        for item in candidates:
            if self.budget.fits(current - freed, tokens):
                break
            plan.append(item)
            freed += item.tokens
        return plan if self.budget.fits(current - freed, tokens) else None

    @trace_method
    def compress(self) -> None:
        """Keep the highest-priority, most recent prefix within the compression target."""
        target = self.budget.target(self.compress_ratio)
        ordered = sorted(self._items, key=lambda item: (item.priority, item.seq), reverse=True)

        kept: List[ContextItem] = []
        total = 0
        for item in ordered:
            if total + item.tokens > target:
                break
            kept.append(item)
            total += item.tokens

        kept_ids = {id(item) for item in kept}
        self._dropped.extend(item for item in self._items if id(item) not in kept_ids)
        logger.info("context_compressed", kept=len(kept), dropped=len(self._items) - len(kept), tokens=total, target=target)
        self._items = kept

    def get_context(self) -> str:
        return "\n\n".join(item.content for item in self._items)

    def drain_dropped(self) -> List[ContextItem]:
        """Items evicted or compressed away since the last call, in drop order."""
        dropped, self._dropped = self._dropped, []
        return dropped

    def clear(self) -> None:
        self._items = []
        self._dropped = []
