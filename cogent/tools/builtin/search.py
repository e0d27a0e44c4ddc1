"""Search tools: glob for paths, grep for content."""
from __future__ import annotations

import fnmatch
import os
import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from cogent.tools.base import ApprovalCategory, ToolApproval, ToolResult
from cogent.tools.builtin.backup import BACKUP_DIR
from cogent.tools.builtin.files import resolve
from cogent.tools.registry import ToolRegistry

READ = ToolApproval(category=ApprovalCategory.READ)

MAX_GLOB_RESULTS = 200
MAX_GREP_MATCHES = 100
SKIP_DIRS = {BACKUP_DIR, ".git", "node_modules", "dist", "build", "__pycache__", ".venv", ".mypy_cache", ".pytest_cache"}


class GlobParams(BaseModel):
    pattern: str = Field(description="Glob pattern, e.g. '**/*.py'")
    path: str = Field(default=".", description="Directory to search from")


class GrepParams(BaseModel):
    pattern: str = Field(min_length=1, description="Text or regular expression to search for")
    path: str = Field(default=".", description="File or directory to search in")
    include: Optional[str] = Field(default=None, description="Only search files whose name matches this glob, e.g. '*.py'")
    regex: bool = Field(default=False, description="Treat pattern as a regular expression")


def _iter_files(base: Path, include: Optional[str]):
    if base.is_file():
        yield base
        return
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for filename in sorted(filenames):
            if include and not fnmatch.fnmatch(filename, include):
                continue
            yield Path(dirpath) / filename


def register_search_tools(registry: ToolRegistry, root: Path) -> None:

    @registry.tool(GlobParams, approval=READ)
    def glob(params: GlobParams) -> ToolResult:
        """Find files by name pattern."""
        base = resolve(root, params.path)
        if not base.is_dir():
            return ToolResult.error(f"Error: Not a directory: {params.path}", kind="not_a_directory")
        matches = sorted(
            str(match.relative_to(base))
            for match in base.glob(params.pattern)
            if not SKIP_DIRS.intersection(match.relative_to(base).parts)
        )
        if not matches:
            return ToolResult(content=f"No files matched pattern: {params.pattern}", display={"pattern": params.pattern, "matches": 0})
        shown = matches[:MAX_GLOB_RESULTS]
        suffix = f"\n(showing first {MAX_GLOB_RESULTS} of {len(matches)})" if len(matches) > MAX_GLOB_RESULTS else ""
        return ToolResult(
            content=f"Found {len(matches)} file(s) matching {params.pattern}:\n" + "\n".join(shown) + suffix,
            display={"pattern": params.pattern, "matches": len(matches)},
        )

    @registry.tool(GrepParams, approval=READ)
    def grep(params: GrepParams) -> ToolResult:
        """Search for text patterns in files. Results are file:line:text."""
        try:
            compiled = re.compile(params.pattern if params.regex else re.escape(params.pattern))
        except re.error as exc:
            return ToolResult.error(f"Error: Invalid regular expression: {exc}", kind="invalid_pattern")

        base = resolve(root, params.path)
        if not base.exists():
            return ToolResult.error(f"Error: Path not found: {params.path}", kind="file_not_found")

        results: List[str] = []
        total = 0
        for file in _iter_files(base, params.include):
            try:
                text = file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            rel = file.relative_to(root) if file.is_relative_to(root) else file
            for lineno, line in enumerate(text.splitlines(), 1):
                if compiled.search(line):
                    total += 1
                    if len(results) < MAX_GREP_MATCHES:
                        results.append(f"{rel}:{lineno}:{line}")

        if not results:
            return ToolResult(content=f"No matches found for pattern: {params.pattern}", display={"pattern": params.pattern, "matches": 0})
        suffix = f"\n(showing first {MAX_GREP_MATCHES} matches)" if total > MAX_GREP_MATCHES else ""
        return ToolResult(
            content=f'Found {total} match(es) for "{params.pattern}":\n```\n' + "\n".join(results) + f"\n```{suffix}",
            display={"pattern": params.pattern, "matches": total},
        )
