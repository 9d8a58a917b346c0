"""Host-level operations used by the deployment sequence.

Platform detection, tool presence, package installation, port probing, and
git checkout management. Installation commands run through ``sudo`` and the
apt package manager, matching the WSL2 Ubuntu hosts the deployment targets.

Usage:
    from registry_ops.adapters.host import Host

    host = Host()
    if host.port_in_use(8080):
        ...
"""

import errno
import logging
import os
import shutil
import socket
import tempfile
from pathlib import Path

from registry_ops.adapters.compose import run_cmd
from registry_ops.errors import CommandError

logger = logging.getLogger(__name__)

DOCKER_INSTALL_SCRIPT_URL = "https://get.docker.com"


def is_wsl(signature: str) -> bool:
    """True when a kernel version string identifies a WSL kernel."""
    return "microsoft" in signature.lower()


class Host:
    """Operations against the local machine.

    Args:
        proc_version: Path of the kernel version file read for platform
            detection.
    """

    def __init__(self, proc_version: Path = Path("/proc/version")) -> None:
        self.proc_version = proc_version

    # ------------------------------------------------------------------
    # Platform and tools
    # ------------------------------------------------------------------

    def platform_signature(self) -> str:
        """Return the kernel version string, or "" when unreadable."""
        try:
            return self.proc_version.read_text()
        except OSError as e:
            logger.debug("Cannot read %s: %s", self.proc_version, e)
            return ""

    def which(self, tool: str) -> str | None:
        return shutil.which(tool)

    def version_of(self, tool: str) -> str:
        """Return the first line of ``<tool> --version``, or "" on failure."""
        try:
            result = run_cmd([tool, "--version"], check=False)
        except FileNotFoundError:
            return ""
        lines = (result.stdout or "").strip().splitlines()
        return lines[0] if lines else ""

    def compose_available(self) -> bool:
        """True when either ``docker compose`` or ``docker-compose`` works."""
        try:
            if run_cmd(["docker", "compose", "version"], check=False).returncode == 0:
                return True
        except FileNotFoundError:
            pass
        return self.which("docker-compose") is not None

    # ------------------------------------------------------------------
    # Docker daemon
    # ------------------------------------------------------------------

    def docker_operational(self) -> bool:
        """True when ``docker ps`` succeeds for the current user."""
        try:
            return run_cmd(["docker", "ps"], check=False).returncode == 0
        except FileNotFoundError:
            return False

    def start_docker_service(self) -> None:
        run_cmd(["sudo", "systemctl", "start", "docker"], check=False, capture=False)

    def user_in_docker_group(self) -> bool:
        result = run_cmd(["groups"], check=False)
        return "docker" in (result.stdout or "").split()

    def add_user_to_docker_group(self) -> None:
        user = os.environ.get("USER", "")
        run_cmd(["sudo", "usermod", "-aG", "docker", user], capture=False)

    def install_docker(self) -> None:
        """Install Docker with the upstream convenience script.

        Raises:
            CommandError: If any install step fails.
        """
        self.apt_update()
        self.apt_install(["ca-certificates", "curl"])

        with tempfile.TemporaryDirectory() as tmp:
            script = Path(tmp) / "get-docker.sh"
            run_cmd(["curl", "-fsSL", DOCKER_INSTALL_SCRIPT_URL, "-o", str(script)])
            run_cmd(["sudo", "sh", str(script)], capture=False)

        self.add_user_to_docker_group()
        run_cmd(["sudo", "systemctl", "enable", "docker"], capture=False)
        run_cmd(["sudo", "systemctl", "start", "docker"], capture=False)

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def apt_update(self) -> None:
        run_cmd(["sudo", "apt-get", "update"], capture=False)

    def apt_install(self, packages: list[str]) -> None:
        """Install all ``packages`` in a single apt-get invocation."""
        if not packages:
            return
        run_cmd(["sudo", "apt-get", "install", "-y", *packages], capture=False)

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def port_in_use(self, port: int) -> bool:
        """True when ``port`` is bound on any local IPv4 or IPv6 address.

        The port counts as taken when a wildcard bind fails with
        ``EADDRINUSE``, or when any address of ``localhost`` accepts a
        connection on it.
        """
        return self._bind_conflict(port) or self._accepts_connection(port)

    def _bind_conflict(self, port: int) -> bool:
        for family, address in ((socket.AF_INET, "0.0.0.0"), (socket.AF_INET6, "::")):
            try:
                sock = socket.socket(family, socket.SOCK_STREAM)
            except OSError as e:
                logger.debug("Address family %s unavailable: %s", family, e)
                continue
            with sock:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                if family == socket.AF_INET6:
                    sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
                try:
                    sock.bind((address, port))
                except OSError as e:
                    if e.errno == errno.EADDRINUSE:
                        return True
                    logger.debug("Bind probe on [%s]:%d failed: %s", address, port, e)
        return False

    def _accepts_connection(self, port: int) -> bool:
        try:
            infos = socket.getaddrinfo("localhost", port, type=socket.SOCK_STREAM)
        except socket.gaierror as e:
            logger.debug("Cannot resolve localhost: %s", e)
            return False
        for family, socktype, proto, _, sockaddr in infos:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                logger.debug("Address family %s unavailable: %s", family, e)
                continue
            with sock:
                sock.settimeout(1.0)
                if sock.connect_ex(sockaddr) == 0:
                    return True
        return False

    # ------------------------------------------------------------------
    # Source checkout
    # ------------------------------------------------------------------

    def git_clone(self, url: str, dest: Path) -> None:
        run_cmd(["git", "clone", url, str(dest)], capture=False)

    def git_pull(self, repo_dir: Path, branch: str = "main") -> bool:
        """Pull ``branch`` from origin; returns False instead of raising."""
        try:
            run_cmd(["git", "pull", "origin", branch], cwd=repo_dir, capture=False)
        except (CommandError, FileNotFoundError) as e:
            logger.debug("git pull failed: %s", e)
            return False
        return True

    def remove_tree(self, path: Path) -> None:
        shutil.rmtree(path)
