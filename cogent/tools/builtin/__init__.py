from pathlib import Path
from typing import Iterable, Union

from cogent.tools.builtin.backup import BackupStore
from cogent.tools.builtin.files import register_file_tools
from cogent.tools.builtin.search import register_search_tools
from cogent.tools.builtin.shell import register_shell_tools
from cogent.tools.registry import ToolRegistry

__all__ = ["BackupStore", "builtin_tools"]


def builtin_tools(cwd: Union[str, Path], banned_commands: Iterable[str] = ()) -> ToolRegistry:
    """Registry with the file, search and shell tools rooted at ``cwd``."""
    root = Path(cwd).resolve()
    registry = ToolRegistry()
    register_file_tools(registry, root, BackupStore(root))
    register_search_tools(registry, root)
    register_shell_tools(registry, root, banned_commands)
    return registry
