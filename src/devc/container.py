"""
コンテナ操作モジュール

devcontainer CLIとコンテナランタイム（Docker/Podman）の呼び出しを提供します。
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from .errors import RuntimeNotFoundError

console = Console()


@dataclass(frozen=True)
class RuntimeConfig:
    """
    使用するコンテナランタイムとdevcontainer CLIの組み合わせ。

    Attributes:
        runtime: dockerまたはpodman
        devcontainer_cmd: devcontainer CLIを起動するコマンド
    """

    runtime: str
    devcontainer_cmd: tuple[str, ...]

    @property
    def docker_path_args(self) -> list[str]:
        # devcontainer CLIはデフォルトでdockerを呼び出す
        if self.runtime == "podman":
            return ["--docker-path", "podman"]
        return []


def detect_runtime_config() -> RuntimeConfig:
    """
    利用可能なコンテナランタイムとdevcontainer CLIを検出する。

    ランタイムはdocker、podmanの順に、
    CLIはdevcontainer、npx @devcontainers/cliの順に検索する。

    Returns:
        検出されたRuntimeConfig

    Raises:
        RuntimeNotFoundError: いずれかが見つからない場合
    """
    if shutil.which("docker"):
        runtime = "docker"
    elif shutil.which("podman"):
        runtime = "podman"
    else:
        raise RuntimeNotFoundError("No container runtime found. Install Docker or Podman.")

    if shutil.which("devcontainer"):
        devcontainer_cmd: tuple[str, ...] = ("devcontainer",)
    elif shutil.which("npx"):
        devcontainer_cmd = ("npx", "@devcontainers/cli")
    else:
        raise RuntimeNotFoundError(
            "devcontainer CLI not found. Install Node.js and use: npx @devcontainers/cli"
        )

    return RuntimeConfig(runtime=runtime, devcontainer_cmd=devcontainer_cmd)


def _truncate_output(output: str, max_length: int = 200) -> str:
    if len(output) > max_length:
        return f"{output[:max_length]}..."
    return output


def run_command(
    cmd: list[str],
    check: bool = True,
    capture_output: bool = True,
    verbose: bool = False,
) -> subprocess.CompletedProcess[str]:
    """
    コマンドを実行し、結果を返す。

    Args:
        cmd: 実行するコマンドのリスト
        check: エラー時に例外を発生させるかどうか
        capture_output: 出力をキャプチャするかどうか
        verbose: 詳細なデバッグ情報を表示するかどうか

    Returns:
        コマンドの実行結果
    """
    console.print(f"[cyan]実行中:[/cyan] {' '.join(cmd)}")
    result = subprocess.run(cmd, check=check, capture_output=capture_output, text=True)

    if verbose:
        console.print(f"[dim]デバッグ情報: returncode={result.returncode}[/dim]")
        if result.stdout:
            console.print(f"[dim]stdout: {_truncate_output(result.stdout)}[/dim]")
        if result.stderr:
            console.print(f"[dim]stderr: {_truncate_output(result.stderr)}[/dim]")

    return result


def build_devcontainer_command(
    config: RuntimeConfig, subcommand: str, workspace: Path, *extra: str
) -> list[str]:
    """devcontainer CLIのコマンドラインを構築する。"""
    return [
        *config.devcontainer_cmd,
        subcommand,
        *config.docker_path_args,
        "--workspace-folder",
        str(workspace),
        *extra,
    ]


def devcontainer_up(
    config: RuntimeConfig, workspace: Path, remove_existing: bool = False
) -> subprocess.CompletedProcess[str]:
    """
    開発コンテナを起動する。

    Args:
        config: ランタイム設定
        workspace: ワークスペースのパス
        remove_existing: 既存のコンテナを削除して作り直すかどうか
    """
    extra = ["--remove-existing-container"] if remove_existing else []
    cmd = build_devcontainer_command(config, "up", workspace, *extra)
    # 対話的なため出力をキャプチャしない
    return run_command(cmd, check=False, capture_output=False)


def devcontainer_exec(
    config: RuntimeConfig, workspace: Path, command: list[str]
) -> subprocess.CompletedProcess[str]:
    """コンテナ内でコマンドを実行する（devcontainer CLI使用）"""
    cmd = build_devcontainer_command(config, "exec", workspace, *command)
    return subprocess.run(cmd, text=True)


def get_container_id(config: RuntimeConfig, workspace: Path) -> str | None:
    """
    ワークスペースに対応する実行中のコンテナIDを取得する。

    devcontainer CLIが付与するdevcontainer.local_folderラベルで検索する。
    """
    result = run_command(
        [config.runtime, "ps", "-q", "--filter", f"label=devcontainer.local_folder={workspace}"],
        check=False,
    )
    if result.returncode == 0 and result.stdout and result.stdout.strip():
        return result.stdout.strip().split("\n")[0]
    return None


def stop_container(config: RuntimeConfig, workspace: Path) -> bool:
    """
    ワークスペースのコンテナを停止する。

    Returns:
        コンテナを停止した場合True、実行中のコンテナがない場合False

    Raises:
        subprocess.CalledProcessError: 停止に失敗した場合
    """
    container_id = get_container_id(config, workspace)
    if not container_id:
        return False

    run_command([config.runtime, "stop", container_id], verbose=True)
    return True
