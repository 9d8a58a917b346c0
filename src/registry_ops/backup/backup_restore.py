"""Database backup and restore through the database container.

Backups are produced by running ``pg_dump`` inside the database container
and streaming its stdout into a timestamped file. Restores feed a dump file
to ``psql`` on the container's stdin. Neither function prints -- callers
(the CLI) handle output and confirmation.

Usage:
    from registry_ops.backup.backup_restore import (
        backup_database,
        list_backups,
        resolve_backup,
        restore_database,
    )

    artifact = backup_database(config, runtime)
    path = resolve_backup(config, artifact.name)
    restore_database(config, runtime, path)
"""

import logging
from datetime import datetime
from pathlib import Path

from registry_ops.adapters.base import ContainerRuntime
from registry_ops.backup.models import BackupArtifact
from registry_ops.config.models import OpsConfig
from registry_ops.errors import BackupError, CommandError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "registry-"
BACKUP_SUFFIX = ".sql"


def backup_filename(now: datetime) -> str:
    """Return the backup file name for ``now``: ``registry-YYYYmmdd-HHMMSS.sql``."""
    return f"{BACKUP_PREFIX}{now.strftime('%Y%m%d-%H%M%S')}{BACKUP_SUFFIX}"


def backup_database(
    config: OpsConfig,
    runtime: ContainerRuntime,
    now: datetime | None = None,
) -> BackupArtifact:
    """Dump the registry database to a new file under the backup directory.

    Args:
        config: Operator configuration (container, user, database names).
        runtime: Container runtime used to exec ``pg_dump``.
        now: Timestamp for the file name (default: current time).

    Returns:
        The created BackupArtifact.

    Raises:
        BackupError: If the target file already exists or the dump fails.
            A failed dump leaves no partial file behind.
    """
    backups_dir = config.backups_path
    backups_dir.mkdir(parents=True, exist_ok=True)

    target = backups_dir / backup_filename(now or datetime.now())
    # Exclusive create reserves the name before the dump writes to it
    try:
        target.touch(exist_ok=False)
    except FileExistsError as e:
        raise BackupError(f"Backup file already exists: {target}") from e

    try:
        runtime.exec(
            config.db_container,
            ["pg_dump", "-U", config.db_user, "-d", config.db_name],
            stdout_path=target,
        )
    except (CommandError, OSError) as e:
        target.unlink(missing_ok=True)
        raise BackupError(f"Database dump failed: {e}") from e

    logger.debug("Backup written to %s", target)
    return BackupArtifact.from_path(target)


def list_backups(config: OpsConfig) -> list[BackupArtifact]:
    """Return the ``*.sql`` files in the backup directory, newest first."""
    backups_dir = config.backups_path
    if not backups_dir.is_dir():
        return []
    artifacts = [
        BackupArtifact.from_path(p)
        for p in backups_dir.glob(f"*{BACKUP_SUFFIX}")
        if p.is_file()
    ]
    return sorted(artifacts, key=lambda a: (a.created_at, a.name), reverse=True)


def resolve_backup(config: OpsConfig, name: str) -> Path:
    """Resolve a user-supplied backup name to an existing file.

    ``name`` is tried as a path first (absolute, or relative to the
    deployment directory), then as a file name inside the backup directory.

    Raises:
        BackupError: If no matching file exists.
    """
    name = name.strip()
    if not name:
        raise BackupError("No backup file given")

    candidate = Path(name).expanduser()
    if not candidate.is_absolute():
        candidate = config.registry_dir / candidate
    if candidate.is_file():
        return candidate

    in_backups = config.backups_path / name
    if in_backups.is_file():
        return in_backups

    raise BackupError(f"Backup file not found: {name}")


def validate_backup(path: Path) -> BackupArtifact:
    """Check that a restore source exists and is non-empty.

    Raises:
        BackupError: If the file is missing or empty.
    """
    if not path.is_file():
        raise BackupError(f"Backup file not found: {path}")
    artifact = BackupArtifact.from_path(path)
    if artifact.size_bytes == 0:
        raise BackupError(f"Backup file is empty: {path}")
    return artifact


def restore_database(
    config: OpsConfig,
    runtime: ContainerRuntime,
    path: Path,
) -> BackupArtifact:
    """Replay a dump file into the live database.

    This is destructive -- callers must obtain confirmation first.

    Raises:
        BackupError: If the file is invalid or ``psql`` fails.
    """
    artifact = validate_backup(path)
    try:
        runtime.exec(
            config.db_container,
            ["psql", "-U", config.db_user, "-d", config.db_name],
            stdin_path=path,
        )
    except (CommandError, OSError) as e:
        raise BackupError(f"Database restore failed: {e}") from e
    return artifact
