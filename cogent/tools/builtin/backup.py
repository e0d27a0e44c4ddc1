"""Timestamped file copies taken before the file tools overwrite anything."""
from __future__ import annotations

import re
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from utils.logger import get_logger
logger = get_logger(__name__)

BACKUP_DIR = ".cogent-backups"
_STAMP = re.compile(r"_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z$")


class BackupStore:
    """Flat directory of backups inside the workspace.

    A backup of ``src/app.py`` is stored as ``src_app.py_<UTC timestamp>``,
    so ``list`` can find every backup of one file by prefix.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.directory = self.root / BACKUP_DIR

    def _prefix(self, path: Path) -> str:
        resolved = Path(path).resolve()
        relative = resolved.relative_to(self.root) if resolved.is_relative_to(self.root) else resolved
        return relative.as_posix().strip("/").replace("/", "_")

    def create(self, path: Path) -> Path:
        """Copy ``path`` into the backup directory and return the copy's path."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        backup = self.directory / f"{self._prefix(path)}_{stamp}"
        shutil.copy2(path, backup)
        logger.info("backup_created", file=str(path), backup=str(backup))
        return backup

    def restore(self, backup: Path, target: Path) -> None:
        backup = Path(backup)
        if not backup.is_file():
            raise FileNotFoundError(f"Backup not found: {backup}")
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(backup, target)
        logger.info("backup_restored", backup=str(backup), file=str(target))

    def list(self, path: Path) -> List[Path]:
        """Backups of ``path``, oldest first."""
        if not self.directory.is_dir():
            return []
        prefix = self._prefix(path)
        return sorted(
            p for p in self.directory.iterdir()
            if p.is_file() and p.name.startswith(prefix) and _STAMP.fullmatch(p.name[len(prefix):])
        )

    def clean(self, max_age: float) -> int:
        """Delete backups older than ``max_age`` seconds; returns how many went."""
        if not self.directory.is_dir():
            return 0
        cutoff = time.time() - max_age
        removed = 0
        for backup in self.directory.iterdir():
            if backup.is_file() and backup.stat().st_mtime < cutoff:
                backup.unlink()
                removed += 1
        if removed:
            logger.info("backups_cleaned", removed=removed, max_age=max_age)
        return removed
