"""File tools: read, write, edit and list, rooted at a working directory."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from cogent.tools.base import ApprovalCategory, ToolApproval, ToolResult
from cogent.tools.builtin.backup import BackupStore
from cogent.tools.registry import ToolRegistry

READ = ToolApproval(category=ApprovalCategory.READ)
WRITE = ToolApproval(category=ApprovalCategory.WRITE)


class ReadFileParams(BaseModel):
    file_path: str = Field(description="The path to the file to read")
    offset: Optional[int] = Field(default=None, ge=1, description="Line number to start reading from (1-indexed)")
    limit: Optional[int] = Field(default=None, ge=0, description="Maximum number of lines to read")


class WriteFileParams(BaseModel):
    file_path: str = Field(description="The path to the file to write")
    content: str = Field(description="The full content to write")
    create_backup: bool = Field(default=False, description="Back up the existing file before overwriting it")


class EditFileParams(BaseModel):
    file_path: str = Field(description="The path to the file to edit")
    old_string: str = Field(min_length=1, description="The exact string to replace")
    new_string: str = Field(description="The new string to replace with")
    replace_all: bool = Field(default=False, description="Replace all occurrences")


class ListDirectoryParams(BaseModel):
    path: str = Field(default=".", description="Directory to list, relative to the workspace")


def resolve(root: Path, path: str) -> Path:
    return (root / path).resolve()


def register_file_tools(registry: ToolRegistry, root: Path, backups: Optional[BackupStore] = None) -> None:

    def backup(target: Path) -> Optional[str]:
        if backups is None:
            return None
        return backups.create(target).relative_to(backups.root).as_posix()

    @registry.tool(ReadFileParams, approval=READ)
    def read_file(params: ReadFileParams) -> ToolResult:
        """Read the contents of a file. Can optionally read a specific range of lines."""
        target = resolve(root, params.file_path)
        if not target.is_file():
            return ToolResult.error(f"Error: File not found: {params.file_path}", kind="file_not_found")
        try:
            lines = target.read_text(encoding="utf-8").split("\n")
        except (OSError, UnicodeDecodeError) as exc:
            return ToolResult.error(f"Error reading file: {exc}", kind="io_error")

        start = params.offset - 1 if params.offset else 0
        end = len(lines) if params.limit is None else min(len(lines), start + params.limit)
        selected = lines[start:end]
        numbered = "\n".join(f"{start + idx + 1}|{line}" for idx, line in enumerate(selected))
        return ToolResult(
            content=f"Contents of {params.file_path}:\n```\n{numbered or 'File is empty.'}\n```",
            display={"file": params.file_path, "total_lines": len(lines), "lines_read": len(selected)},
        )

    @registry.tool(WriteFileParams, approval=WRITE)
    def write_file(params: WriteFileParams) -> ToolResult:
        """Create or overwrite a file with the given content. Parent directories are created."""
        target = resolve(root, params.file_path)
        created = not target.exists()
        saved = None
        try:
            if params.create_backup and target.is_file():
                saved = backup(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(params.content, encoding="utf-8")
        except OSError as exc:
            return ToolResult.error(f"Error writing file: {exc}", kind="io_error")
        line_count = params.content.count("\n") + (0 if params.content.endswith("\n") or not params.content else 1)
        verb = "Created" if created else "Overwrote"
        return ToolResult(
            content=f"{verb} {params.file_path} ({line_count} lines)" + (f"; backup at {saved}" if saved else ""),
            display={"file": params.file_path, "created": created, "lines": line_count, "backup": saved},
        )

    @registry.tool(EditFileParams, approval=WRITE)
    def edit_file(params: EditFileParams) -> ToolResult:
        """Edit a file by replacing exact string matches. Use for precise code changes."""
        target = resolve(root, params.file_path)
        if not target.is_file():
            return ToolResult.error(f"Error: File not found: {params.file_path}", kind="file_not_found")
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return ToolResult.error(f"Error editing file: {exc}", kind="io_error")

        occurrences = content.count(params.old_string)
        if occurrences == 0:
            return ToolResult.error(f'Error: String not found in file:\n"{params.old_string}"', kind="string_not_found")
        if occurrences > 1 and not params.replace_all:
            return ToolResult.error(
                f"Error: String occurs {occurrences} times in {params.file_path}; "
                "add surrounding context to make it unique or set replace_all",
                kind="ambiguous_match",
                occurrences=occurrences,
            )

        count = occurrences if params.replace_all else 1
        try:
            saved = backup(target)
            target.write_text(content.replace(params.old_string, params.new_string, count), encoding="utf-8")
        except OSError as exc:
            return ToolResult.error(f"Error editing file: {exc}", kind="io_error")
        return ToolResult(
            content=f"Successfully edited {params.file_path}. Replaced {count} occurrence(s).",
            display={"file": params.file_path, "replacements": count, "backup": saved},
        )

    @registry.tool(ListDirectoryParams, approval=READ)
    def list_directory(params: ListDirectoryParams) -> ToolResult:
        """List the entries of a directory. Directories end with '/'."""
        target = resolve(root, params.path)
        if not target.is_dir():
            return ToolResult.error(f"Error: Not a directory: {params.path}", kind="not_a_directory")
        entries = sorted(
            f"{child.name}/" if child.is_dir() else child.name
            for child in target.iterdir()
        )
        if not entries:
            return ToolResult(content=f"{params.path} is empty.", display={"path": params.path, "entries": 0})
        return ToolResult(
            content=f"Contents of {params.path}:\n" + "\n".join(entries),
            display={"path": params.path, "entries": len(entries)},
        )
