"""registry-ops: deployment and management tooling for a containerized registry.

Wraps docker compose, the registry's HTTP API, and PostgreSQL behind two
command-line entry points: ``registry-deploy`` (one-shot deployment with
readiness polling and verification) and ``registry-ops`` (day-to-day
management verbs).

Usage:
    from registry_ops import load_ops_config, DockerCompose, RegistryApiClient
    from registry_ops import DeploymentSequence, poll_until
    from registry_ops import backup_database, restore_database
"""

__version__ = "0.1.0"

# Adapters
from registry_ops.adapters.base import ContainerRuntime
from registry_ops.adapters.compose import DockerCompose
from registry_ops.adapters.host import Host
from registry_ops.adapters.registry_api import RegistryApiClient

# Config
from registry_ops.config.loader import load_ops_config
from registry_ops.config.models import CheckResult, OpsConfig, PollSettings

# Backup
from registry_ops.backup.backup_restore import (
    backup_database,
    list_backups,
    resolve_backup,
    restore_database,
)
from registry_ops.backup.models import BackupArtifact

# Deployment
from registry_ops.deploy.sequence import DeploymentSequence
from registry_ops.deploy.verify import verify_deployment
from registry_ops.polling import PollResult, poll_until

# Errors
from registry_ops.errors import RegistryOpsError

__all__ = [
    # Adapters
    "ContainerRuntime",
    "DockerCompose",
    "Host",
    "RegistryApiClient",
    # Config
    "load_ops_config",
    "OpsConfig",
    "PollSettings",
    "CheckResult",
    # Backup
    "BackupArtifact",
    "backup_database",
    "list_backups",
    "resolve_backup",
    "restore_database",
    # Deployment
    "DeploymentSequence",
    "verify_deployment",
    "poll_until",
    "PollResult",
    # Errors
    "RegistryOpsError",
]
