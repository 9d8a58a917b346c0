"""Deployment readiness sequence and post-deployment verification.

Usage:
    from registry_ops.deploy import DeploymentSequence, verify_deployment
"""

from registry_ops.deploy.sequence import LAUNCH_COMMAND, REQUIRED_TOOLS, DeploymentSequence
from registry_ops.deploy.verify import (
    check_container,
    check_health,
    check_ping,
    check_servers,
    verify_deployment,
)

__all__ = [
    "DeploymentSequence",
    "LAUNCH_COMMAND",
    "REQUIRED_TOOLS",
    "check_container",
    "check_health",
    "check_ping",
    "check_servers",
    "verify_deployment",
]
