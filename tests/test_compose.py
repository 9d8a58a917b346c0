"""Tests for the docker / compose CLI wrapper.

``subprocess.run`` is patched throughout; no docker daemon is required.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from registry_ops.adapters.compose import DockerCompose, run_cmd
from registry_ops.errors import CommandError, MissingDependencyError

RUN = "registry_ops.adapters.compose.subprocess.run"


def _done(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def _compose(tmp_path: Path) -> DockerCompose:
    runtime = DockerCompose(tmp_path)
    runtime._compose = ["docker", "compose"]
    return runtime


class TestRunCmd:
    def test_success_returns_result(self):
        with patch(RUN, return_value=_done(stdout="hello")) as mock_run:
            result = run_cmd(["echo", "hello"])
        assert result.stdout == "hello"
        assert mock_run.call_args.kwargs["capture_output"] is True

    def test_failure_raises_command_error(self):
        with patch(RUN, return_value=_done(returncode=3, stderr="boom")):
            with pytest.raises(CommandError) as exc_info:
                run_cmd(["false"])
        assert exc_info.value.returncode == 3
        assert "boom" in str(exc_info.value)

    def test_failure_ignored_without_check(self):
        with patch(RUN, return_value=_done(returncode=1)):
            assert run_cmd(["false"], check=False).returncode == 1

    def test_no_capture_inherits_terminal(self):
        with patch(RUN, return_value=_done()) as mock_run:
            run_cmd(["ls"], capture=False)
        assert "capture_output" not in mock_run.call_args.kwargs


class TestComposeDetection:
    def test_prefers_compose_plugin(self, tmp_path):
        with patch(RUN, return_value=_done()):
            assert DockerCompose(tmp_path).compose_command() == ["docker", "compose"]

    def test_falls_back_to_standalone(self, tmp_path):
        with patch(RUN, return_value=_done(returncode=1)), patch(
            "registry_ops.adapters.compose.shutil.which", return_value="/usr/bin/docker-compose"
        ):
            assert DockerCompose(tmp_path).compose_command() == ["docker-compose"]

    def test_missing_compose_raises(self, tmp_path):
        with patch(RUN, side_effect=FileNotFoundError("docker")), patch(
            "registry_ops.adapters.compose.shutil.which", return_value=None
        ):
            with pytest.raises(MissingDependencyError):
                DockerCompose(tmp_path).compose_command()


class TestLifecycle:
    def test_up_detached(self, tmp_path):
        with patch(RUN, return_value=_done()) as mock_run:
            _compose(tmp_path).up()
        argv = mock_run.call_args.args[0]
        assert argv == ["docker", "compose", "up", "-d"]
        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    def test_up_with_build(self, tmp_path):
        with patch(RUN, return_value=_done()) as mock_run:
            _compose(tmp_path).up(build=True)
        assert mock_run.call_args.args[0] == ["docker", "compose", "up", "-d", "--build"]

    def test_down_with_volumes(self, tmp_path):
        with patch(RUN, return_value=_done()) as mock_run:
            _compose(tmp_path).down(volumes=True)
        assert mock_run.call_args.args[0] == ["docker", "compose", "down", "-v"]

    def test_stop_failure_raises(self, tmp_path):
        with patch(RUN, return_value=_done(returncode=1)):
            with pytest.raises(CommandError):
                _compose(tmp_path).stop()

    def test_logs_tail_captured(self, tmp_path):
        with patch(RUN, return_value=_done(stdout="line1\n", stderr="line2\n")) as mock_run:
            logs = _compose(tmp_path).logs(tail=50)
        assert mock_run.call_args.args[0] == ["docker", "compose", "logs", "--tail=50"]
        assert logs == "line1\nline2\n"

    def test_logs_follow_streams(self, tmp_path):
        with patch(RUN, return_value=_done()) as mock_run:
            assert _compose(tmp_path).logs(follow=True) == ""
        assert mock_run.call_args.args[0] == ["docker", "compose", "logs", "-f"]
        assert "capture_output" not in mock_run.call_args.kwargs


class TestContainers:
    def test_container_running(self, tmp_path):
        with patch(RUN, return_value=_done(stdout="Up 3 minutes (healthy)\n")) as mock_run:
            assert _compose(tmp_path).container_running("registry") is True
        assert "name=registry" in mock_run.call_args.args[0]

    def test_container_exited(self, tmp_path):
        with patch(RUN, return_value=_done(stdout="Exited (1) 2 minutes ago\n")):
            assert _compose(tmp_path).container_running("registry") is False

    def test_container_absent(self, tmp_path):
        with patch(RUN, return_value=_done(stdout="")):
            assert _compose(tmp_path).container_running("postgres") is False

    def test_container_names(self, tmp_path):
        with patch(RUN, return_value=_done(stdout="registry\npostgres\n")):
            assert _compose(tmp_path).container_names() == ["registry", "postgres"]

    def test_docker_missing_reports_not_running(self, tmp_path):
        with patch(RUN, side_effect=FileNotFoundError("docker")):
            assert _compose(tmp_path).container_running("registry") is False

    def test_docker_missing_lists_no_containers(self, tmp_path):
        with patch(RUN, side_effect=FileNotFoundError("docker")):
            assert _compose(tmp_path).container_names() == []


class TestExec:
    def test_exec_stdout_to_file(self, tmp_path):
        target = tmp_path / "dump.sql"
        with patch(RUN, return_value=_done()) as mock_run:
            _compose(tmp_path).exec("postgres", ["pg_dump"], stdout_path=target)

        argv = mock_run.call_args.args[0]
        assert argv == ["docker", "exec", "postgres", "pg_dump"]
        assert str(mock_run.call_args.kwargs["stdout"].name) == str(target)
        assert mock_run.call_args.kwargs["stdout"].closed

    def test_exec_stdin_from_file_adds_interactive_flag(self, tmp_path):
        source = tmp_path / "dump.sql"
        source.write_text("SELECT 1;")
        with patch(RUN, return_value=_done()) as mock_run:
            _compose(tmp_path).exec("postgres", ["psql"], stdin_path=source)

        argv = mock_run.call_args.args[0]
        assert argv == ["docker", "exec", "-i", "postgres", "psql"]
        assert str(mock_run.call_args.kwargs["stdin"].name) == str(source)

    def test_exec_interactive_tty(self, tmp_path):
        with patch(RUN, return_value=_done()) as mock_run:
            _compose(tmp_path).exec("registry", ["sh"], interactive=True, check=False)
        assert mock_run.call_args.args[0] == ["docker", "exec", "-it", "registry", "sh"]

    def test_exec_failure_raises(self, tmp_path):
        with patch(RUN, return_value=_done(returncode=1, stderr="no such container")):
            with pytest.raises(CommandError, match="no such container"):
                _compose(tmp_path).exec("postgres", ["pg_dump"])


class TestLaunchBackground:
    def test_launch_uses_popen_in_project_dir(self, tmp_path):
        fake_proc = MagicMock()
        with patch("registry_ops.adapters.compose.subprocess.Popen", return_value=fake_proc) as mock_popen:
            proc = _compose(tmp_path).launch_background(["make", "dev-compose"])
        assert proc is fake_proc
        assert mock_popen.call_args.args[0] == ["make", "dev-compose"]
        assert mock_popen.call_args.kwargs["cwd"] == tmp_path

    def test_launch_output_to_log_file(self, tmp_path):
        log_path = tmp_path / ".registry-deploy.log"
        with patch("registry_ops.adapters.compose.subprocess.Popen") as mock_popen:
            _compose(tmp_path).launch_background(["make", "dev-compose"], log_path=log_path)
        kwargs = mock_popen.call_args.kwargs
        assert str(kwargs["stdout"].name) == str(log_path)
        assert kwargs["stderr"] == subprocess.STDOUT
        assert log_path.exists()
