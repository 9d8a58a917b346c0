#!/usr/bin/env python3
"""Single-shot registry deployment.

Runs the full readiness sequence: host checks, tool installation, port
check, source checkout, stack launch, liveness polling, and verification.

Usage:
    registry-deploy
    registry-deploy --registry-dir ~/registry --api-port 8081
    registry-deploy --skip-platform-check --poll-attempts 90
    python -m registry_ops.cli.deploy --verbose
"""

import argparse
import sys
from pathlib import Path

from registry_ops.adapters.compose import DockerCompose
from registry_ops.adapters.host import Host
from registry_ops.adapters.registry_api import RegistryApiClient
from registry_ops.config.loader import load_ops_config
from registry_ops.config.models import OpsConfig, PollSettings
from registry_ops.console import configure_logging, error, info, print_logs
from registry_ops.deploy.sequence import DeploymentSequence
from registry_ops.errors import (
    LaunchError,
    ReadinessTimeoutError,
    RegistryOpsError,
    VerificationError,
)

DEFAULT_DEPLOY_DIR = Path.home() / "registry"


def resolve_config(args: argparse.Namespace) -> OpsConfig:
    """Load configuration and apply deploy-specific defaults and options.

    The deployment target defaults to ``~/registry`` unless the directory
    was set by ``--registry-dir``, ``REGISTRY_DIR`` or the config file.
    """
    config = load_ops_config(
        config_path=args.config_file,
        registry_dir=args.registry_dir,
        api_port=args.api_port,
        db_port=args.db_port,
    )

    updates: dict = {}
    if "registry_dir" not in config.model_fields_set:
        updates["registry_dir"] = DEFAULT_DEPLOY_DIR

    if args.poll_attempts is not None or args.poll_interval is not None:
        updates["poll"] = PollSettings(
            interval=args.poll_interval if args.poll_interval is not None else config.poll.interval,
            max_attempts=args.poll_attempts if args.poll_attempts is not None else config.poll.max_attempts,
        )

    return config.model_copy(update=updates) if updates else config


def main(argv: list[str] | None = None) -> int:
    """Deployment entry point.

    Returns:
        0 when the stack is deployed and verified, 1 on any failed stage.
    """
    parser = argparse.ArgumentParser(
        prog="registry-deploy",
        description="Deploy the registry stack and verify it is healthy",
    )
    parser.add_argument(
        "--registry-dir",
        type=Path,
        default=None,
        help=f"Checkout/deployment directory (default: REGISTRY_DIR or {DEFAULT_DEPLOY_DIR})",
    )
    parser.add_argument("--api-port", type=int, default=None, help="Registry API port (default: 8080)")
    parser.add_argument("--db-port", type=int, default=None, help="PostgreSQL port (default: 5432)")
    parser.add_argument(
        "--poll-attempts",
        type=int,
        default=None,
        help="Liveness polling attempts (default: 60)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between liveness polls (default: 2)",
    )
    parser.add_argument(
        "--skip-platform-check",
        action="store_true",
        help="Do not require a WSL2 host",
    )
    parser.add_argument("--config-file", type=Path, default=None, help="TOML configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = resolve_config(args)
    except (RegistryOpsError, FileNotFoundError, ValueError) as e:
        error(str(e))
        return 1

    host = Host()
    runtime = DockerCompose(config.registry_dir)

    try:
        with RegistryApiClient(config.api_base_url) as api:
            sequence = DeploymentSequence(
                config,
                host,
                runtime,
                api,
                skip_platform_check=args.skip_platform_check,
            )
            sequence.run()
    except (ReadinessTimeoutError, VerificationError, LaunchError) as e:
        error(str(e))
        if e.logs:
            info("Recent logs:")
            print_logs(e.logs)
        return 1
    except (RegistryOpsError, OSError) as e:
        error(str(e))
        error("Deployment failed. Check the output above for details.")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
