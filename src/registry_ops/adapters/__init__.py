"""Adapters for the external collaborators: docker, the HTTP API, PostgreSQL, the host.

Usage:
    from registry_ops.adapters import DockerCompose, RegistryApiClient, Host
"""

from registry_ops.adapters.base import ContainerRuntime
from registry_ops.adapters.compose import DockerCompose
from registry_ops.adapters.host import Host
from registry_ops.adapters.postgres import AsyncPostgresAdapter, check_database_ready
from registry_ops.adapters.registry_api import RegistryApiClient

__all__ = [
    "ContainerRuntime",
    "DockerCompose",
    "Host",
    "AsyncPostgresAdapter",
    "check_database_ready",
    "RegistryApiClient",
]
