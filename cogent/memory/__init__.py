from cogent.memory.context import ContextItem, ContextManager, ContextPriority
from cogent.memory.token_budget import TokenBudget

__all__ = ["ContextItem", "ContextManager", "ContextPriority", "TokenBudget"]
