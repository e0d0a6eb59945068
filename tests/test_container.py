"""
コンテナ操作のテスト
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from devc.container import (
    RuntimeConfig,
    _truncate_output,
    build_devcontainer_command,
    detect_runtime_config,
    devcontainer_exec,
    devcontainer_up,
    get_container_id,
    run_command,
    stop_container,
)
from devc.errors import RuntimeNotFoundError

DOCKER = RuntimeConfig(runtime="docker", devcontainer_cmd=("devcontainer",))
PODMAN = RuntimeConfig(runtime="podman", devcontainer_cmd=("npx", "@devcontainers/cli"))


def _which(*available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


class TestDetectRuntimeConfig:
    """detect_runtime_config関数のテスト"""

    @patch("devc.container.shutil.which")
    def test_docker_preferred(self, mock_which):
        mock_which.side_effect = _which("docker", "podman", "devcontainer")
        assert detect_runtime_config() == DOCKER

    @patch("devc.container.shutil.which")
    def test_podman_with_npx(self, mock_which):
        mock_which.side_effect = _which("podman", "npx")
        assert detect_runtime_config() == PODMAN

    @patch("devc.container.shutil.which")
    def test_no_runtime(self, mock_which):
        mock_which.side_effect = _which("devcontainer")
        with pytest.raises(RuntimeNotFoundError):
            detect_runtime_config()

    @patch("devc.container.shutil.which")
    def test_no_devcontainer_cli(self, mock_which):
        mock_which.side_effect = _which("docker")
        with pytest.raises(RuntimeNotFoundError):
            detect_runtime_config()


class TestBuildDevcontainerCommand:
    """コマンドライン構築のテスト"""

    def test_docker(self):
        cmd = build_devcontainer_command(DOCKER, "up", Path("/ws"))
        assert cmd == ["devcontainer", "up", "--workspace-folder", "/ws"]

    def test_podman_adds_docker_path(self):
        cmd = build_devcontainer_command(PODMAN, "exec", Path("/ws"), "ls", "-la")
        assert cmd == [
            "npx",
            "@devcontainers/cli",
            "exec",
            "--docker-path",
            "podman",
            "--workspace-folder",
            "/ws",
            "ls",
            "-la",
        ]


class TestRunCommand:
    """run_command関数のテスト"""

    @patch("subprocess.run")
    def test_run_command(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")

        result = run_command(["echo", "ok"], check=False, verbose=True)

        mock_run.assert_called_once_with(
            ["echo", "ok"], check=False, capture_output=True, text=True
        )
        assert result.returncode == 0

    def test_truncate_output(self):
        assert _truncate_output("a" * 10, max_length=5) == "aaaaa..."
        assert _truncate_output("short") == "short"


class TestDevcontainerCommands:
    """devcontainer up/execのテスト"""

    @patch("subprocess.run")
    def test_up(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0)

        devcontainer_up(DOCKER, Path("/ws"))

        args = mock_run.call_args[0][0]
        assert args == ["devcontainer", "up", "--workspace-folder", "/ws"]
        assert mock_run.call_args[1]["capture_output"] is False

    @patch("subprocess.run")
    def test_up_remove_existing(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0)

        devcontainer_up(DOCKER, Path("/ws"), remove_existing=True)

        args = mock_run.call_args[0][0]
        assert args[-1] == "--remove-existing-container"

    @patch("subprocess.run")
    def test_exec(self, mock_run):
        mock_run.return_value = MagicMock(returncode=3)

        result = devcontainer_exec(DOCKER, Path("/ws"), ["zsh"])

        mock_run.assert_called_once_with(
            ["devcontainer", "exec", "--workspace-folder", "/ws", "zsh"], text=True
        )
        assert result.returncode == 3


class TestStopContainer:
    """コンテナ停止のテスト"""

    @patch("devc.container.run_command")
    def test_get_container_id_uses_label(self, mock_run_command):
        mock_run_command.return_value = MagicMock(returncode=0, stdout="abc123\ndef456\n")

        assert get_container_id(PODMAN, Path("/ws")) == "abc123"
        mock_run_command.assert_called_once_with(
            ["podman", "ps", "-q", "--filter", "label=devcontainer.local_folder=/ws"],
            check=False,
        )

    @patch("devc.container.run_command")
    def test_get_container_id_none(self, mock_run_command):
        mock_run_command.return_value = MagicMock(returncode=0, stdout="  \n")
        assert get_container_id(DOCKER, Path("/ws")) is None

    @patch("devc.container.run_command")
    def test_stop_running(self, mock_run_command):
        mock_run_command.side_effect = [
            MagicMock(returncode=0, stdout="abc123\n"),
            MagicMock(returncode=0, stdout=""),
        ]

        assert stop_container(DOCKER, Path("/ws")) is True
        mock_run_command.assert_called_with(["docker", "stop", "abc123"], verbose=True)

    @patch("devc.container.run_command")
    def test_stop_not_running(self, mock_run_command):
        mock_run_command.return_value = MagicMock(returncode=0, stdout="")

        assert stop_container(DOCKER, Path("/ws")) is False
        assert mock_run_command.call_count == 1
