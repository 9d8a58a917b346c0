"""Backup artifact model.

A backup is a plain SQL dump written by ``pg_dump`` to
``<registry_dir>/backups/registry-YYYYmmdd-HHMMSS.sql``.
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class BackupArtifact(BaseModel):
    """A database dump on local disk."""

    path: Path
    created_at: datetime
    size_bytes: int

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size_human(self) -> str:
        """Size in the style of ``du -h`` (1024-based, one decimal below 10)."""
        size = float(self.size_bytes)
        for unit in ("B", "K", "M", "G"):
            if size < 1024 or unit == "G":
                break
            size /= 1024
        if unit == "B":
            return f"{int(size)}B"
        return f"{size:.1f}{unit}" if size < 10 else f"{size:.0f}{unit}"

    @classmethod
    def from_path(cls, path: Path) -> "BackupArtifact":
        stat = path.stat()
        return cls(
            path=path,
            created_at=datetime.fromtimestamp(stat.st_mtime),
            size_bytes=stat.st_size,
        )
