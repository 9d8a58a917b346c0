"""Management CLI for a deployed registry stack.

Routes one verb to one handler. Every verb except ``help`` first checks
that the deployment directory contains the compose file.

Usage:
    registry-ops status
    registry-ops logs -f
    registry-ops backup
    registry-ops restore registry-20250101-120000.sql
    REGISTRY_DIR=~/registry REGISTRY_PORT=8081 registry-ops health

Commands:
    status    - Show status of all services
    start     - Start the registry services
    stop      - Stop the registry services
    restart   - Restart the registry services
    logs      - View logs (-f to follow)
    health    - Check health of the registry
    stats     - Show server statistics
    clean     - Remove containers, volumes and local data (with confirmation)
    backup    - Backup the database
    restore   - Restore the database from a backup
    test      - Run basic endpoint tests
    update    - Pull latest code and rebuild
    shell     - Open a shell in the registry container
    psql      - Connect to the PostgreSQL database
    help      - Show this help message
"""

import argparse
import asyncio
import shutil
import sys
import time
from pathlib import Path

import httpx
from rich.table import Table

from registry_ops.adapters.compose import DockerCompose, run_cmd
from registry_ops.adapters.postgres import AsyncPostgresAdapter, check_database_ready
from registry_ops.adapters.registry_api import (
    HEALTH_PATH,
    PING_PATH,
    SERVERS_PATH,
    RegistryApiClient,
)
from registry_ops.backup.backup_restore import (
    backup_database,
    list_backups,
    resolve_backup,
    restore_database,
)
from registry_ops.config.loader import load_ops_config
from registry_ops.config.models import OpsConfig, StatusCount
from registry_ops.console import (
    configure_logging,
    console,
    error,
    header,
    info,
    success,
    warn,
)
from registry_ops.deploy.verify import check_health, check_ping
from registry_ops.errors import (
    CommandError,
    NotADeploymentDirError,
    RegistryOpsError,
    UserDeclinedError,
)
from registry_ops.prompts import console_ask, typed_yes_confirm

ENDPOINT_TEST_SCRIPT = Path("scripts") / "test_endpoints.sh"


# ============================================================================
# Shared helpers
# ============================================================================


def check_directory(config: OpsConfig) -> None:
    """Ensure ``config.registry_dir`` is a deployment root.

    Raises:
        NotADeploymentDirError: If the marker file is missing.
    """
    if not config.compose_path.is_file():
        raise NotADeploymentDirError(
            f"Not in a valid registry directory: {config.registry_dir}\n"
            f"Run this from the registry directory or set REGISTRY_DIR."
        )


def _runtime(config: OpsConfig) -> DockerCompose:
    return DockerCompose(config.registry_dir)


def _api(config: OpsConfig) -> RegistryApiClient:
    return RegistryApiClient(config.api_base_url)


def _probe_after_settle(config: OpsConfig, done: str, pending: str) -> None:
    """Wait ``settle_delay`` then probe liveness once; warn if not up yet."""
    info("Waiting for services to be ready...")
    time.sleep(config.settle_delay)
    with _api(config) as api:
        if api.is_responding():
            success(done)
        else:
            warn(pending)
            info("Check logs with: registry-ops logs")


def _print_body(response_text: str) -> None:
    try:
        console.print_json(response_text)
    except ValueError:
        console.print(response_text, markup=False)


# ============================================================================
# Lifecycle commands
# ============================================================================


def cmd_status(args: argparse.Namespace) -> int:
    """Report container states and one liveness probe.

    Returns:
        0 always (informational command).
    """
    config: OpsConfig = args.config
    runtime = _runtime(config)

    header("Service Status")

    info("Docker Containers:")
    try:
        console.print(runtime.ps(), markup=False)
    except (RegistryOpsError, FileNotFoundError) as e:
        error(f"Could not list containers: {e}")
    console.print()

    info("Container Health:")
    for label, name in (("Registry", config.api_container), ("PostgreSQL", config.db_container)):
        if runtime.container_running(name):
            success(f"{label} container is running")
        else:
            error(f"{label} container is not running")
    console.print()

    info("API Status:")
    with _api(config) as api:
        if api.is_responding():
            success(f"API is responding on port {config.api_port}")
        else:
            error(f"API is not responding on port {config.api_port}")

    return 0


def cmd_start(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    header("Starting Services")
    info("Starting Docker Compose...")
    _runtime(config).up()
    _probe_after_settle(
        config,
        "Services started successfully",
        "Services started but API is not responding yet",
    )
    return 0


def cmd_stop(args: argparse.Namespace) -> int:
    header("Stopping Services")
    info("Stopping Docker Compose...")
    _runtime(args.config).stop()
    success("Services stopped")
    return 0


def cmd_restart(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    header("Restarting Services")
    info("Restarting Docker Compose...")
    _runtime(config).restart()
    _probe_after_settle(
        config,
        "Services restarted successfully",
        "Services restarted but API is not responding yet",
    )
    return 0


def cmd_logs(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    runtime = _runtime(config)
    header("Service Logs")
    if args.follow:
        info("Following logs (Ctrl+C to exit)...")
        runtime.logs(follow=True, capture=False)
    else:
        info(f"Showing last {config.logs_tail} lines...")
        runtime.logs(tail=config.logs_tail, capture=False)
    return 0


def cmd_update(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    header("Updating Registry")

    info("Pulling latest code...")
    run_cmd(["git", "pull", "origin", config.repo_branch], cwd=config.registry_dir, capture=False)

    info("Rebuilding containers...")
    _runtime(config).up(build=True)

    _probe_after_settle(
        config,
        "Update completed successfully",
        "Update completed but API is not responding yet",
    )
    return 0


# ============================================================================
# Diagnostics
# ============================================================================


def cmd_health(args: argparse.Namespace) -> int:
    """Probe liveness, structured health, and database readiness.

    Each check is reported independently.

    Returns:
        0 when every check passes, 1 otherwise.
    """
    config: OpsConfig = args.config
    header("Health Check")
    info("Checking registry health...")

    with _api(config) as api:
        ping = check_ping(api)
        if ping.ok:
            success("Ping endpoint: OK")
        else:
            error(f"Ping endpoint: FAILED ({ping.detail})")

        health = check_health(api)
        if health.ok:
            success("Health endpoint: OK")
            console.print()
            info("Health Details:")
        else:
            error(f"Health endpoint: FAILED ({health.detail})")
        if health.payload is not None:
            console.print_json(data=health.payload)

    console.print()
    info("Checking database connection...")
    db_ok, db_detail = check_database_ready(config.database_url)
    if db_ok:
        success("Database: OK")
    else:
        error(f"Database: FAILED ({db_detail})")

    return 0 if (ping.ok and health.ok and db_ok) else 1


async def _async_status_counts(config: OpsConfig) -> list[StatusCount]:
    adapter = AsyncPostgresAdapter(config.database_url)
    try:
        return await adapter.count_by_status("servers", "status")
    finally:
        await adapter.close()


def cmd_stats(args: argparse.Namespace) -> int:
    """Show server totals, per-status counts, and container resource usage.

    Returns:
        0 on success, 1 if the API cannot be reached. A database failure
        only produces a warning.
    """
    config: OpsConfig = args.config
    header("Server Statistics")
    info("Fetching statistics...")

    try:
        with _api(config) as api:
            total = api.server_count(limit=1)
    except (httpx.HTTPError, ValueError) as e:
        error(f"Could not fetch statistics: {e}")
        return 1

    console.print()
    success(f"Total Servers: {total if total is not None else 'unknown'}")
    console.print()

    info("Database Statistics:")
    try:
        counts = asyncio.run(_async_status_counts(config))
    except Exception as e:
        warn(f"Could not fetch database stats: {e}")
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Status")
        table.add_column("Count", justify="right")
        for row in counts:
            table.add_row(row.status, str(row.count))
        console.print(table)

    console.print()
    info("Container Resource Usage:")
    try:
        console.print(_runtime(config).stats(), markup=False)
    except (CommandError, FileNotFoundError) as e:
        warn(f"Could not fetch container stats: {e}")

    return 0


def cmd_test(args: argparse.Namespace) -> int:
    """Run the endpoint test script if the checkout has one, else smoke probes."""
    config: OpsConfig = args.config
    header("Running Endpoint Tests")

    script = config.registry_dir / ENDPOINT_TEST_SCRIPT
    if script.is_file():
        result = run_cmd([f"./{ENDPOINT_TEST_SCRIPT}"], cwd=config.registry_dir, check=False, capture=False)
        return result.returncode

    info("Running basic tests...")
    probes = [
        (PING_PATH, None),
        (HEALTH_PATH, None),
        (SERVERS_PATH, {"limit": 5}),
    ]
    with _api(config) as api:
        for path, params in probes:
            label = f"{path}?limit={params['limit']}" if params else path
            info(f"Testing {label}...")
            try:
                response = api.get(path, params=params)
            except httpx.HTTPError as e:
                error(f"{label}: {e}")
                continue
            _print_body(response.text)

    success("Basic tests completed")
    return 0


# ============================================================================
# Destructive commands
# ============================================================================


def cmd_clean(args: argparse.Namespace) -> int:
    """Tear down containers, volumes and the local data directory.

    Raises:
        UserDeclinedError: If the operator does not type "yes".
    """
    config: OpsConfig = args.config
    header("Clean Up")

    warn("This will:")
    console.print("  - Stop all containers")
    console.print("  - Remove containers")
    console.print("  - Remove volumes [bold red](DATABASE WILL BE DELETED)[/bold red]")
    console.print(f"  - Remove local database files ({config.data_dir})")
    console.print()

    if not args.yes and not typed_yes_confirm("Are you sure you want to continue? (yes/NO): "):
        raise UserDeclinedError("Clean up cancelled")

    info("Stopping and removing containers...")
    _runtime(config).down(volumes=True)

    if config.data_path.is_dir():
        info("Removing database files...")
        try:
            shutil.rmtree(config.data_path)
        except OSError as e:
            raise RegistryOpsError(
                f"Could not remove {config.data_path}: {e}\n"
                "The files may be owned by the database container user; remove them with sudo."
            ) from e

    success("Clean up completed")
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    header("Database Backup")

    info(f"Creating backup in: {config.backups_path}")
    artifact = backup_database(config, _runtime(config))

    success(f"Backup created: {artifact.path}")
    info(f"Backup size: {artifact.size_human}")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    """Replace the live database with a chosen dump.

    Returns:
        0 on success, 1 when there is nothing to restore from.

    Raises:
        BackupError: If the chosen file is missing or the restore fails.
        UserDeclinedError: If the operator does not type "yes".
    """
    config: OpsConfig = args.config
    header("Database Restore")

    if not config.backups_path.is_dir():
        error("No backups directory found")
        return 1

    backups = list_backups(config)
    if not backups:
        error("No backup files found")
        return 1

    table = Table(title="Available backups", show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for artifact in backups:
        table.add_row(
            artifact.name,
            artifact.size_human,
            artifact.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)
    console.print()

    name = args.file or console_ask("Enter backup filename (or path): ")
    path = resolve_backup(config, name)

    warn("This will replace the current database!")
    if not args.yes and not typed_yes_confirm("Are you sure? (yes/NO): "):
        raise UserDeclinedError("Restore cancelled")

    info(f"Restoring from: {path}")
    restore_database(config, _runtime(config), path)
    success("Database restored successfully")
    return 0


# ============================================================================
# Interactive sessions
# ============================================================================


def cmd_shell(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    header("Opening Shell in Registry Container")
    result = _runtime(config).exec(config.api_container, ["sh"], interactive=True, check=False)
    return result.returncode


def cmd_psql(args: argparse.Namespace) -> int:
    config: OpsConfig = args.config
    header("Connecting to PostgreSQL")
    info("Opening psql shell...")
    info(f"Database: {config.db_name}")
    info(f"User: {config.db_user}")
    console.print()
    result = _runtime(config).exec(
        config.db_container,
        ["psql", "-U", config.db_user, "-d", config.db_name],
        interactive=True,
        check=False,
    )
    return result.returncode


# ============================================================================
# Main entry point
# ============================================================================


EPILOG = """
Examples:
  registry-ops status                  # Check status
  registry-ops logs -f                 # Follow logs
  registry-ops restart                 # Restart services
  registry-ops stats                   # View statistics
  registry-ops restore --yes FILE      # Restore without prompting
  registry-ops psql                    # Connect to database

Environment Variables:
  REGISTRY_DIR          Path to registry directory (default: current directory)
  REGISTRY_PORT         Registry API port (default: 8080)
  POSTGRES_PORT         PostgreSQL port (default: 5432)
  REGISTRY_OPS_CONFIG   Optional TOML config file (default: ./registry-ops.toml)
"""


def build_parser() -> argparse.ArgumentParser:
    """Build the verb parser; each subcommand maps to one ``cmd_*`` handler."""
    parser = argparse.ArgumentParser(
        prog="registry-ops",
        description="Registry management commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="TOML configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output (debug logging)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    simple = [
        ("status", cmd_status, "Show status of all services"),
        ("start", cmd_start, "Start the registry services"),
        ("stop", cmd_stop, "Stop the registry services"),
        ("restart", cmd_restart, "Restart the registry services"),
        ("health", cmd_health, "Check health of the registry"),
        ("stats", cmd_stats, "Show server statistics"),
        ("backup", cmd_backup, "Backup the database"),
        ("test", cmd_test, "Run basic endpoint tests"),
        ("update", cmd_update, "Pull latest code and restart"),
        ("shell", cmd_shell, "Open a shell in the registry container"),
        ("psql", cmd_psql, "Connect to PostgreSQL database"),
    ]
    for name, func, help_text in simple:
        sub = subparsers.add_parser(name, help=help_text)
        sub.set_defaults(func=func)

    # logs command
    p_logs = subparsers.add_parser("logs", help="View logs (-f to follow)")
    p_logs.add_argument(
        "-f",
        "--follow",
        action="store_true",
        help="Follow log output",
    )
    p_logs.set_defaults(func=cmd_logs)

    # clean command
    p_clean = subparsers.add_parser("clean", help="Clean up (with confirmation)")
    p_clean.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    p_clean.set_defaults(func=cmd_clean)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore database from backup")
    p_restore.add_argument(
        "file",
        nargs="?",
        default=None,
        help="Backup file name (in the backups directory) or path; prompted if omitted",
    )
    p_restore.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    p_restore.set_defaults(func=cmd_restore)

    # help command
    subparsers.add_parser("help", help="Show this help message")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code: 0 on success or a declined confirmation, 1 on any
        failure. Unknown verbs exit 2 via argparse.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "help"):
        parser.print_help()
        return 0

    configure_logging(args.verbose)

    try:
        args.config = load_ops_config(config_path=args.config_file)
        check_directory(args.config)
        return args.func(args)
    except UserDeclinedError as e:
        info(str(e))
        return 0
    except RegistryOpsError as e:
        error(str(e))
        return 1
    except OSError as e:
        error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
