"""Deployment readiness sequence.

Brings the registry's compose stack from "not running" to "verified
healthy", or stops at the first failing stage:

    platform -> docker -> compose -> tools -> ports -> source
             -> launch -> wait for liveness -> verify -> summary

Each stage raises a ``RegistryOpsError`` subclass on failure; nothing is
rolled back. The port check runs once before launch and is not re-checked,
so another process binding the port in between is not detected.

Usage:
    from registry_ops.deploy import DeploymentSequence

    sequence = DeploymentSequence(config, host, runtime, api)
    sequence.run()
"""

import logging
import subprocess
import time
from typing import Callable

from registry_ops.adapters.base import ContainerRuntime
from registry_ops.adapters.host import Host, is_wsl
from registry_ops.adapters.registry_api import RegistryApiClient
from registry_ops.config.models import CheckResult, OpsConfig
from registry_ops.console import console, error, header, info, success, warn
from registry_ops.deploy.verify import verify_deployment
from registry_ops.errors import (
    CommandError,
    EnvironmentMismatchError,
    LaunchError,
    MissingDependencyError,
    PortConflictError,
    ReadinessTimeoutError,
)
from registry_ops.polling import poll_until
from registry_ops.prompts import Confirm, short_yes_confirm

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git", "make", "jq", "curl")
LAUNCH_COMMAND = ["make", "dev-compose"]
LAUNCH_LOG = ".registry-deploy.log"


class DeploymentSequence:
    """One deployment run against ``config.registry_dir``.

    Args:
        config: Operator configuration.
        host: Host operations (platform, packages, ports, git).
        runtime: Container runtime rooted at the deployment directory.
        api: Registry API client pointed at ``config.api_base_url``.
        confirm_replace: Asked whether to remove and re-clone an existing
            checkout.
        sleep: Sleep function (injected by tests).
        skip_platform_check: Allow running outside WSL2.
        tools: Auxiliary command-line tools that must be present.
    """

    def __init__(
        self,
        config: OpsConfig,
        host: Host,
        runtime: ContainerRuntime,
        api: RegistryApiClient,
        confirm_replace: Confirm = short_yes_confirm,
        sleep: Callable[[float], None] = time.sleep,
        skip_platform_check: bool = False,
        tools: tuple[str, ...] = REQUIRED_TOOLS,
    ) -> None:
        self.config = config
        self.host = host
        self.runtime = runtime
        self.api = api
        self.confirm_replace = confirm_replace
        self.sleep = sleep
        self.skip_platform_check = skip_platform_check
        self.tools = tools
        self.process: subprocess.Popen | None = None
        self.launch_log = config.registry_dir / LAUNCH_LOG

    def run(self) -> list[CheckResult]:
        """Execute every stage in order.

        Returns:
            The verification results (all passing).

        Raises:
            RegistryOpsError: From the first stage that fails.
        """
        header("Registry Deployment")
        info("Starting automated deployment process...")

        self.check_platform()
        self.ensure_docker()
        self.ensure_compose()
        self.ensure_tools()
        self.check_ports()
        self.setup_source()
        self.launch()
        self.wait_for_ready()

        # Let dependent services settle before probing richer endpoints
        self.sleep(self.config.stabilize_delay)

        results = self.verify()
        self.print_summary()
        return results

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def check_platform(self) -> None:
        header("Checking WSL2 Environment")
        if self.skip_platform_check:
            warn("Platform check skipped")
            return
        if not is_wsl(self.host.platform_signature()):
            raise EnvironmentMismatchError(
                "This deployment is designed for WSL2 Ubuntu. "
                "Run it inside WSL2 or pass --skip-platform-check."
            )
        success("Running on WSL2")

    def ensure_docker(self) -> None:
        header("Checking Docker Installation")

        if self.host.which("docker") is None:
            warn("Docker not found. Installing Docker...")
            try:
                self.host.install_docker()
            except (CommandError, FileNotFoundError) as e:
                raise MissingDependencyError(f"Docker installation failed: {e}") from e
            success("Docker installed successfully")
        else:
            success(f"Docker is installed: {self.host.version_of('docker')}")

        if not self.host.docker_operational():
            warn("Docker is not running or user lacks permissions")
            info("Attempting to start Docker service...")
            self.host.start_docker_service()

            if not self.host.user_in_docker_group():
                warn("Adding user to docker group...")
                self.host.add_user_to_docker_group()
                warn("You may need to log out and back in for group changes to take effect")

            if not self.host.docker_operational():
                raise MissingDependencyError(
                    "Docker is not running or the current user cannot access it"
                )

        success("Docker is operational")

    def ensure_compose(self) -> None:
        header("Checking Docker Compose")

        if self.host.compose_available():
            success("Docker Compose is available")
            return

        warn("Docker Compose not found. Installing...")
        try:
            self.host.apt_install(["docker-compose"])
        except (CommandError, FileNotFoundError) as e:
            raise MissingDependencyError(f"Docker Compose installation failed: {e}") from e

        if not self.host.compose_available():
            raise MissingDependencyError("Docker Compose is still unavailable after install")
        success("Docker Compose installed")

    def ensure_tools(self) -> None:
        """Install every missing auxiliary tool in one package-manager call."""
        header("Installing Dependencies")

        missing: list[str] = []
        for tool in self.tools:
            if self.host.which(tool) is None:
                missing.append(tool)
            else:
                success(f"{tool} is installed")

        if not missing:
            success("All dependencies are already installed")
            return

        info(f"Installing missing packages: {' '.join(missing)}")
        try:
            self.host.apt_update()
            self.host.apt_install(missing)
        except (CommandError, FileNotFoundError) as e:
            raise MissingDependencyError(f"Could not install {', '.join(missing)}: {e}") from e

        still_missing = [tool for tool in missing if self.host.which(tool) is None]
        if still_missing:
            raise MissingDependencyError(
                f"Tools still missing after install: {', '.join(still_missing)}"
            )
        success("Dependencies installed")

    def check_ports(self) -> None:
        header("Checking Port Availability")
        for port in (self.config.api_port, self.config.db_port):
            if self.host.port_in_use(port):
                raise PortConflictError(port)
            success(f"Port {port} is available")

    # ------------------------------------------------------------------
    # Source and launch
    # ------------------------------------------------------------------

    def setup_source(self) -> None:
        header("Setting Up Repository")
        target = self.config.registry_dir

        if target.exists():
            warn(f"Registry directory already exists at {target}")
            if self.confirm_replace("Do you want to remove and re-clone? (y/N): "):
                info("Removing existing directory...")
                self.host.remove_tree(target)
            else:
                info("Using existing directory")
                info("Pulling latest changes...")
                if not self.host.git_pull(target, self.config.repo_branch):
                    warn("Could not pull latest changes")
                return

        info("Cloning registry repository...")
        self.host.git_clone(self.config.repo_url, target)
        success("Repository cloned successfully")

    def launch(self) -> None:
        header("Deploying Registry")
        info("Starting Docker Compose...")
        try:
            self.process = self.runtime.launch_background(LAUNCH_COMMAND, log_path=self.launch_log)
        except FileNotFoundError as e:
            raise MissingDependencyError(f"Cannot launch stack: {e}") from e

    def launch_failed(self) -> bool:
        """True when the launch command has already exited non-zero."""
        if self.process is None:
            return False
        return self.process.poll() not in (None, 0)

    def launch_output(self) -> str:
        """Return the tail of the launch command's output, or "" if unreadable."""
        try:
            lines = self.launch_log.read_text(errors="replace").splitlines()
        except OSError as e:
            logger.debug("Cannot read %s: %s", self.launch_log, e)
            return ""
        return "\n".join(lines[-self.config.failure_log_tail:])

    def wait_for_ready(self) -> int:
        """Poll the liveness endpoint until it answers.

        Stops early when the launch command exits with a failure.

        Returns:
            Number of attempts used.

        Raises:
            ReadinessTimeoutError: After ``poll.max_attempts`` failed probes,
                with the last stack log lines attached.
            LaunchError: If the launch command exits non-zero while polling,
                with its output attached.
        """
        poll = self.config.poll
        budget = int(poll.interval * poll.max_attempts)
        info(f"Waiting for services to start (up to ~{budget}s)...")

        result = poll_until(
            self.api.is_responding,
            interval=poll.interval,
            max_attempts=poll.max_attempts,
            succeeded=bool,
            sleep=self.sleep,
            on_retry=lambda _attempt: console.print(".", end=""),
            abort=self.launch_failed,
        )
        console.print()

        if result.aborted:
            returncode = self.process.returncode
            error(f"Launch command exited with code {returncode}")
            raise LaunchError(LAUNCH_COMMAND, returncode, logs=self.launch_output())

        if not result.success:
            error("Registry failed to start within expected time")
            info("Checking logs...")
            logs = self.runtime.logs(tail=self.config.failure_log_tail)
            raise ReadinessTimeoutError(
                f"Registry did not respond after {result.attempts} attempts (~{budget}s)",
                attempts=result.attempts,
                logs=logs,
            )

        success("Registry is responding!")
        return result.attempts

    # ------------------------------------------------------------------
    # Verification and summary
    # ------------------------------------------------------------------

    def verify(self) -> list[CheckResult]:
        header("Verifying Deployment")

        def report(result: CheckResult) -> None:
            if result.ok:
                success(f"{result.name}: {result.detail}")
            else:
                error(f"{result.name}: {result.detail}")

        return verify_deployment(self.config, self.runtime, self.api, on_result=report)

    def print_summary(self) -> None:
        c = self.config
        base = c.api_base_url
        target = c.registry_dir

        header("Deployment Complete!")
        console.print("[green]The registry has been successfully deployed![/green]\n")

        console.print("[blue]Access Information:[/blue]")
        console.print(f"  - API Base URL:       [green]{base}[/green]")
        console.print(f"  - API Documentation:  [green]{base}/docs[/green]")
        console.print(f"  - Health Check:       [green]{base}/v0/health[/green]")
        console.print(f"  - List Servers:       [green]{base}/v0/servers[/green]\n")

        console.print("[blue]Database Information:[/blue]")
        console.print(f"  - PostgreSQL Host:    [green]localhost:{c.db_port}[/green]")
        console.print(f"  - Database Name:      [green]{c.db_name}[/green]")
        console.print(f"  - Username:           [green]{c.db_user}[/green]")
        console.print(f"  - Password:           [green]{c.db_password}[/green]\n")

        console.print("[blue]Useful Commands:[/blue]")
        console.print(f"  - View logs:          [yellow]cd {target} && registry-ops logs -f[/yellow]")
        console.print(f"  - Stop services:      [yellow]cd {target} && registry-ops stop[/yellow]")
        console.print(f"  - Restart services:   [yellow]cd {target} && registry-ops restart[/yellow]")
        console.print(f"  - Check status:       [yellow]cd {target} && registry-ops status[/yellow]\n")

        console.print("[blue]Next Steps:[/blue]")
        console.print(f"  1. Open [green]{base}/docs[/green] in your browser")
        console.print("  2. Explore the API endpoints")
        console.print(f"  3. Build the publisher CLI: [yellow]cd {target} && make publisher[/yellow]\n")

        console.print(
            "[green]Access from Windows:[/green] all services are reachable "
            "from Windows via localhost."
        )
