"""Container runtime protocol definition.

Defines the ``ContainerRuntime`` Protocol consumed by the deployment
sequence, the verification checks, and the management commands.
``DockerCompose`` is the production implementation; tests pass a
``MagicMock`` with the same surface.

Usage:
    from registry_ops.adapters.base import ContainerRuntime

    def stop_everything(runtime: ContainerRuntime) -> None:
        runtime.stop()
"""

import subprocess
from pathlib import Path
from typing import Protocol


class ContainerRuntime(Protocol):
    """Compose stack lifecycle plus per-container operations.

    All methods are synchronous and raise ``CommandError`` on a non-zero
    exit unless documented otherwise.
    """

    def up(self, build: bool = False) -> None:
        """Start the stack detached (``up -d``), optionally rebuilding images."""
        ...

    def stop(self) -> None:
        """Stop the stack's containers without removing them."""
        ...

    def restart(self) -> None:
        """Restart the stack's containers."""
        ...

    def down(self, volumes: bool = False) -> None:
        """Stop and remove containers, and volumes when ``volumes`` is set."""
        ...

    def logs(self, tail: int | None = None, follow: bool = False, capture: bool = True) -> str:
        """Return (or stream when ``capture`` is False) the stack's logs.

        Returns an empty string when streaming.
        """
        ...

    def ps(self) -> str:
        """Return the compose process table."""
        ...

    def container_running(self, name: str) -> bool:
        """True when a container matching ``name`` reports an "Up" status."""
        ...

    def stats(self) -> str:
        """Return a one-shot resource usage table."""
        ...

    def exec(
        self,
        container: str,
        argv: list[str],
        interactive: bool = False,
        stdin_path: Path | None = None,
        stdout_path: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run ``argv`` inside ``container``."""
        ...

    def launch_background(self, argv: list[str], log_path: Path | None = None) -> subprocess.Popen:
        """Start a long-running launch command without waiting for it.

        Combined output goes to ``log_path`` when given.
        """
        ...
