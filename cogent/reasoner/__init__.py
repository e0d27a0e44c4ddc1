from cogent.reasoner.mode_selector import ModeSelector, select_mode
from cogent.reasoner.models import ReasoningMode, ReasoningResult, ReasoningStatus, ReasoningStep

__all__ = [
    "ModeSelector",
    "select_mode",
    "ReasoningMode",
    "ReasoningResult",
    "ReasoningStatus",
    "ReasoningStep",
]
