"""Shell command risk screening used by the ``run_command`` tool."""
from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

DANGEROUS_COMMANDS = (
    "rm -rf",
    "format",
    "mkfs",
    ":(){:|:&};:",
    "dd if=",
    "mv /* ",
    "> /dev/sda",
)

HIGH_RISK_PATTERNS = (
    re.compile(r"rm\s+-rf\s+[/~]"),
    re.compile(r"sudo\s+rm"),
    re.compile(r"chmod\s+-R\s+777"),
    re.compile(r"dd\s+if="),
    re.compile(r"mkfs"),
    re.compile(r":\(\)\{"),
)


def validate_command(command: str, banned: Iterable[str] = ()) -> Tuple[bool, Optional[str]]:
    """Return ``(safe, reason)`` for a shell command line."""
    for dangerous in (*DANGEROUS_COMMANDS, *banned):
        if dangerous and dangerous in command:
            return False, f"Command contains dangerous pattern: {dangerous}"

    for pattern in HIGH_RISK_PATTERNS:
        if pattern.search(command):
            return False, f"Command matches high-risk pattern: {pattern.pattern}"

    return True, None


def is_high_risk_command(command: str, banned: Iterable[str] = ()) -> bool:
    safe, _ = validate_command(command, banned)
    return not safe
