from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from cogent.security.approval import ApprovalGate
from cogent.tools.base import ToolBase, ToolResult
from cogent.tools.registry import ToolRegistry

from utils.logger import get_logger
logger = get_logger(__name__)


class GatedToolRegistry:
    """A ``ToolRegistry`` view that asks the approval gate before executing.

    Same ``get`` / ``catalogue`` / ``invoke`` surface as the registry, so the
    reasoning loop does not know whether it is gated.
    """

    def __init__(self, registry: ToolRegistry, gate: ApprovalGate):
        self.registry = registry
        self.gate = gate

    def get(self, name: str) -> Optional[ToolBase]:
        return self.registry.get(name)

    def catalogue(self) -> List[Dict[str, Any]]:
        return self.registry.catalogue()

    def __len__(self) -> int:
        return len(self.registry)

    async def invoke(self, name: str, raw_args: str, call_id: str) -> ToolResult:
        tool = self.registry.get(name)
        params = _decode_params(raw_args)
        # Unknown tools and undecodable arguments fall through to the registry's error results.
        if tool is not None and params is not None:
            try:
                approved = True
                if await self.gate.needs_approval(tool, params, extra={"call_id": call_id}):
                    approved = await self.gate.request_approval(tool, params)
            except Exception as exc:
                logger.error("approval_check_failed", tool=name, call_id=call_id, error=str(exc), exc_info=True)
                return ToolResult.error(f"Approval check for tool '{name}' failed: {exc}", kind="approval_failed", tool=name)
            if not approved:
                return ToolResult.error(
                    f"Tool call '{name}' was denied by the approval policy",
                    kind="approval_denied",
                    tool=name,
                )
        return await self.registry.invoke(name, raw_args, call_id)


def _decode_params(raw_args: str) -> Optional[Dict[str, Any]]:
    if not raw_args or not raw_args.strip():
        return {}
    try:
        decoded = json.loads(raw_args)
    except json.JSONDecodeError:
        return None
    return decoded if isinstance(decoded, dict) else None
