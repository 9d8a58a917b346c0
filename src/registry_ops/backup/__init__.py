"""SQL dump backup and restore for the registry database.

Usage:
    from registry_ops.backup import backup_database, list_backups, restore_database
"""

from registry_ops.backup.backup_restore import (
    backup_database,
    backup_filename,
    list_backups,
    resolve_backup,
    restore_database,
    validate_backup,
)
from registry_ops.backup.models import BackupArtifact

__all__ = [
    "BackupArtifact",
    "backup_database",
    "backup_filename",
    "list_backups",
    "resolve_backup",
    "restore_database",
    "validate_backup",
]
