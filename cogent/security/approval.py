"""
Approval gate

Decides whether a tool invocation may proceed without asking a human, and
owns the seam through which a human (or any other authority) is asked.
"""
from __future__ import annotations

import inspect
import threading
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from cogent.tools.base import ApprovalCategory, ApprovalContext, ToolBase

from utils.logger import get_logger
logger = get_logger(__name__)


class ApprovalPolicy(str, Enum):
    PERMISSIVE = "permissive"
    EDIT_AUTO = "edit_auto"
    STANDARD = "standard"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: Union[str, "ApprovalPolicy"]) -> "ApprovalPolicy":
        if isinstance(value, ApprovalPolicy):
            return value
        key = value.strip().lower()
        return cls(_POLICY_ALIASES.get(key, key))


# Names used by earlier config files.
_POLICY_ALIASES = {"yolo": "permissive", "auto_edit": "edit_auto", "default": "standard"}

Approver = Callable[[ToolBase, Dict[str, Any]], Union[bool, Awaitable[bool]]]


def auto_approve(tool: ToolBase, params: Dict[str, Any]) -> bool:
    """Approver for unattended runs: every request is granted."""
    return True


class ApprovalGate:
    """Policy-driven approval for tool calls.

    The policy is the only mutable state and may be switched while runs are in
    flight; reads and writes go through a lock.
    """

    def __init__(self, policy: Union[str, ApprovalPolicy] = ApprovalPolicy.STANDARD, approver: Optional[Approver] = None):
        self._policy = ApprovalPolicy.parse(policy)
        self._lock = threading.Lock()
        self.approver: Approver = approver or auto_approve

    @property
    def policy(self) -> ApprovalPolicy:
        with self._lock:
            return self._policy

    def set_policy(self, policy: Union[str, ApprovalPolicy]) -> None:
        parsed = ApprovalPolicy.parse(policy)
        with self._lock:
            previous, self._policy = self._policy, parsed
        logger.info("approval_policy_changed", previous=previous.value, policy=parsed.value)

    async def needs_approval(self, tool: ToolBase, params: Dict[str, Any], extra: Optional[Dict[str, Any]] = None) -> bool:
        policy = self.policy
        category = tool.approval.category

        if policy is ApprovalPolicy.PERMISSIVE:
            return False

        if category is ApprovalCategory.READ:
            return False

        if policy in (ApprovalPolicy.EDIT_AUTO, ApprovalPolicy.STRICT):
            return True

        # STANDARD
        predicate = tool.approval.predicate
        if predicate is not None:
            context = ApprovalContext(tool_name=tool.name, params=params, policy=policy.value, extra=dict(extra or {}))
            decision = predicate(context)
            if inspect.isawaitable(decision):
                decision = await decision
            return bool(decision)

        return category in (ApprovalCategory.WRITE, ApprovalCategory.COMMAND)

    async def request_approval(self, tool: ToolBase, params: Dict[str, Any]) -> bool:
        policy = self.policy
        logger.info("approval_requested", tool=tool.name, params=params, policy=policy.value)

        decision = self.approver(tool, params)
        if inspect.isawaitable(decision):
            decision = await decision
        approved = bool(decision)

        if approved:
            logger.info("approval_granted", tool=tool.name, policy=policy.value)
        else:
            logger.warning("approval_denied", tool=tool.name, policy=policy.value)
        return approved
