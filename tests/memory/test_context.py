import pytest

from cogent.memory.context import ContextManager, ContextPriority
from cogent.memory.token_budget import TokenBudget


def _text(tokens: int, char: str = "x") -> str:
    return char * (tokens * 4)


def test_token_estimate_is_ceiling_of_quarter_length():
    assert TokenBudget.estimate("") == 0
    assert TokenBudget.estimate("abc") == 1
    assert TokenBudget.estimate("abcd") == 1
    assert TokenBudget.estimate("abcde") == 2


def test_token_estimate_is_monotonic():
    sizes = [TokenBudget.estimate("y" * n) for n in range(0, 200)]
    assert sizes == sorted(sizes)


def test_budget_rejects_non_positive_ceiling():
    with pytest.raises(ValueError):
        TokenBudget(0)


def test_adds_within_ceiling_are_accepted():
    ctx = ContextManager(100)
    assert ctx.add_item(_text(40), ContextPriority.MEDIUM) is True
    assert ctx.add_item(_text(60), ContextPriority.LOW) is True
    assert ctx.current_tokens == 100
    assert len(ctx) == 2


def test_eviction_removes_lowest_priority_oldest_first_and_stops_when_it_fits():
    ctx = ContextManager(100)
    ctx.add_item(_text(30, "a"), ContextPriority.LOW)
    ctx.add_item(_text(30, "b"), ContextPriority.LOW)
    ctx.add_item(_text(20, "c"), ContextPriority.VERY_LOW)
    ctx.add_item(_text(20, "d"), ContextPriority.MEDIUM)

    assert ctx.add_item(_text(40, "e"), ContextPriority.HIGH) is True

    # VERY_LOW goes first (20 freed, not enough), then the oldest LOW (50 freed, fits)
    assert [item.content[0] for item in ctx.items] == ["b", "d", "e"]
    assert ctx.current_tokens == 90


def test_equal_or_higher_priority_content_is_never_evicted():
    ctx = ContextManager(100)
    ctx.add_item(_text(60), ContextPriority.HIGH)
    ctx.add_item(_text(40), ContextPriority.MEDIUM)
    before = ctx.items

    assert ctx.add_item(_text(10), ContextPriority.MEDIUM) is False
    assert ctx.items == before


def test_rejection_leaves_state_untouched_even_when_some_eviction_was_possible():
    ctx = ContextManager(100)
    ctx.add_item(_text(70), ContextPriority.CRITICAL)
    ctx.add_item(_text(20), ContextPriority.LOW)
    before = ctx.items

    # evicting the LOW item frees 20; 70 + 50 still exceeds the ceiling
    assert ctx.add_item(_text(50), ContextPriority.HIGH) is False
    assert ctx.items == before
    assert ctx.current_tokens == 90


def test_item_larger_than_ceiling_is_rejected():
    ctx = ContextManager(10)
    assert ctx.add_item(_text(11), ContextPriority.CRITICAL) is False
    assert len(ctx) == 0


def test_compress_keeps_highest_priority_most_recent_prefix():
    ctx = ContextManager(100, compress_ratio=0.5)
    ctx.add_item(_text(20, "a"), ContextPriority.MEDIUM)
    ctx.add_item(_text(20, "b"), ContextPriority.CRITICAL)
    ctx.add_item(_text(20, "c"), ContextPriority.MEDIUM)
    ctx.add_item(_text(20, "d"), ContextPriority.LOW)

    ctx.compress()

    # target 50: b (20) + c (20) = 40, adding a would exceed; a strict prefix stops there
    assert [item.content[0] for item in ctx.items] == ["b", "c"]
    assert ctx.current_tokens <= 50


def test_compress_stops_at_first_item_that_does_not_fit():
    ctx = ContextManager(100, compress_ratio=0.5)
    ctx.add_item(_text(10, "s"), ContextPriority.LOW)
    ctx.add_item(_text(45, "B"), ContextPriority.HIGH)
    ctx.add_item(_text(10, "m"), ContextPriority.MEDIUM)

    ctx.compress()

    # the HIGH item fits (45); "m" would make 55 > 50, so nothing after it is kept either
    assert [item.content[0] for item in ctx.items] == ["B"]


def test_get_context_uses_stored_order():
    ctx = ContextManager(100)
    ctx.add_item("low", ContextPriority.LOW)
    ctx.add_item("critical", ContextPriority.CRITICAL)
    assert ctx.get_context() == "low\n\ncritical"


def test_clear_and_items_copy():
    ctx = ContextManager(100)
    ctx.add_item("one", ContextPriority.HIGH)
    items = ctx.items
    items.clear()
    assert len(ctx) == 1
    ctx.clear()
    assert len(ctx) == 0
    assert ctx.current_tokens == 0


def test_compress_ratio_must_be_a_fraction():
    with pytest.raises(ValueError):
        ContextManager(100, compress_ratio=0)
    with pytest.raises(ValueError):
        ContextManager(100, compress_ratio=1.5)


def test_dropped_items_keep_their_message_reference_until_drained():
    ctx = ContextManager(100, compress_ratio=0.5)
    ctx.add_item(_text(30, "a"), ContextPriority.LOW, ref=3)
    ctx.add_item(_text(30, "b"), ContextPriority.MEDIUM, ref=5)
    ctx.add_item(_text(40, "c"), ContextPriority.MEDIUM, ref=7)

    assert ctx.drain_dropped() == []

    ctx.add_item(_text(20, "d"), ContextPriority.HIGH)
    assert [item.ref for item in ctx.drain_dropped()] == [3]

    ctx.compress()
    assert [item.ref for item in ctx.drain_dropped()] == [5, 7]
    assert ctx.drain_dropped() == []
