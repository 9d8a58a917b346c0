"""Tests for host-level operations.

Command execution is patched at ``registry_ops.adapters.host.run_cmd``;
port probing uses a real listening socket on the loopback interface.
"""

import socket
import subprocess
from unittest.mock import call, patch

import pytest

from registry_ops.adapters.host import Host, is_wsl
from registry_ops.errors import CommandError

RUN_CMD = "registry_ops.adapters.host.run_cmd"


def _done(returncode: int = 0, stdout: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


class TestPlatform:
    @pytest.mark.parametrize(
        "signature",
        [
            "Linux version 5.15.153.1-microsoft-standard-WSL2",
            "Linux version 4.4.0-19041-Microsoft",
        ],
    )
    def test_wsl_detected(self, signature):
        assert is_wsl(signature) is True

    def test_plain_linux_is_not_wsl(self):
        assert is_wsl("Linux version 6.8.0-45-generic (buildd@lcy02)") is False

    def test_signature_from_file(self, tmp_path):
        proc_version = tmp_path / "version"
        proc_version.write_text("Linux version 5.15-microsoft-standard-WSL2\n")
        assert is_wsl(Host(proc_version=proc_version).platform_signature())

    def test_unreadable_signature_is_empty(self, tmp_path):
        assert Host(proc_version=tmp_path / "missing").platform_signature() == ""


class TestTools:
    def test_version_first_line(self):
        with patch(RUN_CMD, return_value=_done(stdout="git version 2.43.0\nextra\n")):
            assert Host().version_of("git") == "git version 2.43.0"

    def test_version_blank_output(self):
        with patch(RUN_CMD, return_value=_done(stdout="  \n")):
            assert Host().version_of("jq") == ""

    def test_version_missing_tool(self):
        with patch(RUN_CMD, side_effect=FileNotFoundError("jq")):
            assert Host().version_of("jq") == ""

    def test_docker_operational(self):
        with patch(RUN_CMD, return_value=_done(returncode=0)):
            assert Host().docker_operational() is True

    def test_docker_not_operational(self):
        with patch(RUN_CMD, return_value=_done(returncode=1)):
            assert Host().docker_operational() is False

    def test_user_in_docker_group(self):
        with patch(RUN_CMD, return_value=_done(stdout="alice adm sudo docker\n")):
            assert Host().user_in_docker_group() is True


class TestPackages:
    def test_apt_install_single_batch(self):
        with patch(RUN_CMD, return_value=_done()) as mock_run:
            Host().apt_install(["make", "jq", "curl"])
        mock_run.assert_called_once_with(
            ["sudo", "apt-get", "install", "-y", "make", "jq", "curl"], capture=False
        )

    def test_apt_install_nothing(self):
        with patch(RUN_CMD) as mock_run:
            Host().apt_install([])
        mock_run.assert_not_called()

    def test_install_docker_steps(self):
        with patch(RUN_CMD, return_value=_done()) as mock_run:
            Host().install_docker()
        argvs = [c.args[0] for c in mock_run.call_args_list]
        assert argvs[0] == ["sudo", "apt-get", "update"]
        assert argvs[1] == ["sudo", "apt-get", "install", "-y", "ca-certificates", "curl"]
        assert argvs[2][:3] == ["curl", "-fsSL", "https://get.docker.com"]
        assert argvs[3][:2] == ["sudo", "sh"]
        assert argvs[-1] == ["sudo", "systemctl", "start", "docker"]


class TestPortInUse:
    def _listen(self, family: int, address: str) -> socket.socket:
        server = None
        try:
            server = socket.socket(family, socket.SOCK_STREAM)
            server.bind((address, 0))
        except OSError as e:
            if server is not None:
                server.close()
            pytest.skip(f"{address} unavailable: {e}")
        server.listen(1)
        return server

    def test_ipv4_loopback_listener(self):
        with self._listen(socket.AF_INET, "127.0.0.1") as server:
            assert Host().port_in_use(server.getsockname()[1]) is True

    def test_ipv4_wildcard_listener(self):
        with self._listen(socket.AF_INET, "0.0.0.0") as server:
            assert Host().port_in_use(server.getsockname()[1]) is True

    def test_ipv6_loopback_listener(self):
        with self._listen(socket.AF_INET6, "::1") as server:
            assert Host().port_in_use(server.getsockname()[1]) is True

    def test_closed_port_is_free(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.bind(("127.0.0.1", 0))
            port = probe.getsockname()[1]
        assert Host().port_in_use(port) is False


class TestGit:
    def test_clone(self, tmp_path):
        with patch(RUN_CMD, return_value=_done()) as mock_run:
            Host().git_clone("https://example.com/repo", tmp_path / "registry")
        assert mock_run.call_args == call(
            ["git", "clone", "https://example.com/repo", str(tmp_path / "registry")], capture=False
        )

    def test_pull_success(self, tmp_path):
        with patch(RUN_CMD, return_value=_done()) as mock_run:
            assert Host().git_pull(tmp_path, "main") is True
        assert mock_run.call_args.args[0] == ["git", "pull", "origin", "main"]
        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    def test_pull_failure_returns_false(self, tmp_path):
        with patch(RUN_CMD, side_effect=CommandError(["git", "pull"], 1, "diverged")):
            assert Host().git_pull(tmp_path) is False

    def test_remove_tree(self, tmp_path):
        target = tmp_path / "registry"
        (target / "sub").mkdir(parents=True)
        Host().remove_tree(target)
        assert not target.exists()
