"""Docker and docker compose CLI wrapper.

Provides ``DockerCompose``, the ``ContainerRuntime`` implementation used in
production. Every call shells out to the docker CLI with ``subprocess``;
compose subcommands run from the deployment directory so the stack's
``docker-compose.yml`` is picked up.

Usage:
    from registry_ops.adapters.compose import DockerCompose

    runtime = DockerCompose(config.registry_dir)
    runtime.up()
    print(runtime.ps())
"""

import logging
import shutil
import subprocess
from pathlib import Path

from registry_ops.errors import CommandError, MissingDependencyError

logger = logging.getLogger(__name__)


def run_cmd(
    argv: list[str],
    cwd: Path | None = None,
    check: bool = True,
    capture: bool = True,
    **kwargs,
) -> subprocess.CompletedProcess:
    """Run a command and return the completed process.

    Args:
        argv: Command and arguments.
        cwd: Working directory.
        check: Raise ``CommandError`` on a non-zero exit.
        capture: Capture stdout/stderr as text. When False the command
            inherits the terminal.
        **kwargs: Forwarded to ``subprocess.run`` (e.g. ``stdin``, ``stdout``).

    Raises:
        CommandError: If ``check`` is set and the command fails.
    """
    logger.debug("Running: %s (cwd=%s)", " ".join(argv), cwd)
    if capture and "stdout" not in kwargs:
        kwargs["capture_output"] = True
    result = subprocess.run(argv, cwd=cwd, text=True, **kwargs)
    if check and result.returncode != 0:
        raise CommandError(argv, result.returncode, result.stderr or "")
    return result


class DockerCompose:
    """Compose stack rooted at ``project_dir``.

    Args:
        project_dir: Directory holding the compose file.
    """

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = Path(project_dir)
        self._compose: list[str] | None = None

    # ------------------------------------------------------------------
    # Tool detection
    # ------------------------------------------------------------------

    def compose_command(self) -> list[str]:
        """Return the compose invocation prefix.

        Prefers the ``docker compose`` plugin and falls back to the
        standalone ``docker-compose`` binary.

        Raises:
            MissingDependencyError: If neither is available.
        """
        if self._compose is not None:
            return self._compose

        try:
            result = run_cmd(["docker", "compose", "version"], check=False)
        except FileNotFoundError:
            result = None

        if result is not None and result.returncode == 0:
            self._compose = ["docker", "compose"]
        elif shutil.which("docker-compose"):
            self._compose = ["docker-compose"]
        else:
            raise MissingDependencyError(
                "Docker Compose not found (tried 'docker compose' and 'docker-compose')"
            )
        return self._compose

    def _compose_run(self, *args: str, capture: bool = True, check: bool = True) -> subprocess.CompletedProcess:
        return run_cmd(
            [*self.compose_command(), *args],
            cwd=self.project_dir,
            capture=capture,
            check=check,
        )

    # ------------------------------------------------------------------
    # Stack lifecycle
    # ------------------------------------------------------------------

    def up(self, build: bool = False) -> None:
        args = ["up", "-d"]
        if build:
            args.append("--build")
        self._compose_run(*args, capture=False)

    def stop(self) -> None:
        self._compose_run("stop", capture=False)

    def restart(self) -> None:
        self._compose_run("restart", capture=False)

    def down(self, volumes: bool = False) -> None:
        args = ["down"]
        if volumes:
            args.append("-v")
        self._compose_run(*args, capture=False)

    def logs(self, tail: int | None = None, follow: bool = False, capture: bool = True) -> str:
        args = ["logs"]
        if follow:
            args.append("-f")
        if tail is not None:
            args.append(f"--tail={tail}")
        if follow or not capture:
            self._compose_run(*args, capture=False, check=False)
            return ""
        result = self._compose_run(*args, check=False)
        return (result.stdout or "") + (result.stderr or "")

    def ps(self) -> str:
        return self._compose_run("ps").stdout

    def launch_background(self, argv: list[str], log_path: Path | None = None) -> subprocess.Popen:
        """Start ``argv`` in the project directory without waiting for it.

        Output (stdout and stderr combined) goes to ``log_path`` when given,
        otherwise it is discarded.
        """
        logger.debug("Launching in background: %s (cwd=%s)", " ".join(argv), self.project_dir)
        if log_path is None:
            return subprocess.Popen(
                argv,
                cwd=self.project_dir,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        # The child keeps its own copy of the descriptor
        with open(log_path, "w") as log_file:
            return subprocess.Popen(
                argv,
                cwd=self.project_dir,
                stdout=log_file,
                stderr=subprocess.STDOUT,
            )

    # ------------------------------------------------------------------
    # Per-container operations (plain docker CLI)
    # ------------------------------------------------------------------

    def container_running(self, name: str) -> bool:
        """True when ``name`` reports an "Up" status; False if docker is absent."""
        try:
            result = run_cmd(
                ["docker", "ps", "--filter", f"name={name}", "--format", "{{.Status}}"],
                check=False,
            )
        except FileNotFoundError:
            return False
        if result.returncode != 0:
            return False
        return any(line.startswith("Up") for line in result.stdout.splitlines())

    def container_names(self) -> list[str]:
        try:
            result = run_cmd(["docker", "ps", "--format", "{{.Names}}"], check=False)
        except FileNotFoundError:
            return []
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def stats(self) -> str:
        result = run_cmd(
            [
                "docker", "stats", "--no-stream",
                "--format", "table {{.Name}}\t{{.CPUPerc}}\t{{.MemUsage}}",
            ],
        )
        return result.stdout

    def exec(
        self,
        container: str,
        argv: list[str],
        interactive: bool = False,
        stdin_path: Path | None = None,
        stdout_path: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run a command inside a container.

        Args:
            container: Container name.
            argv: Command to run inside the container.
            interactive: Attach a TTY (``-it``) and inherit the terminal.
            stdin_path: File streamed to the command's stdin (adds ``-i``).
            stdout_path: File receiving the command's stdout.
            check: Raise ``CommandError`` on a non-zero exit.
        """
        if interactive:
            return run_cmd(
                ["docker", "exec", "-it", container, *argv],
                capture=False,
                check=check,
            )

        flags = ["-i"] if stdin_path is not None else []
        full_argv = ["docker", "exec", *flags, container, *argv]

        kwargs = {}
        stdin_file = open(stdin_path, "r") if stdin_path is not None else None
        stdout_file = open(stdout_path, "w") if stdout_path is not None else None
        try:
            if stdin_file is not None:
                kwargs["stdin"] = stdin_file
            if stdout_file is not None:
                kwargs["stdout"] = stdout_file
                kwargs["stderr"] = subprocess.PIPE
            return run_cmd(full_argv, check=check, **kwargs)
        finally:
            if stdin_file is not None:
                stdin_file.close()
            if stdout_file is not None:
                stdout_file.close()
