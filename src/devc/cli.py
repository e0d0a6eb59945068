"""
CLI メインモジュール

devcコマンドのコマンドラインインターフェースを提供します。
"""

import subprocess
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import add_mount, check_workspace_privileges
from .container import (
    RuntimeConfig,
    detect_runtime_config,
    devcontainer_exec,
    devcontainer_up,
    stop_container,
)
from .errors import DevcError
from .templates import install_template
from .utils import devcontainer_json_path, find_devcontainer_json, resolve_host_path

# Richコンソールのインスタンスを作成（カラフルな出力用）
console = Console()

workspace_argument = click.argument(
    "workspace",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)

workspace_option = click.option(
    "--workspace",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="ワークスペースフォルダ",
)

remote_user_option = click.option(
    "--remote-user",
    envvar="DEVC_REMOTE_USER",
    default=None,
    help="デフォルトマウントの判定に使うユーザー名（省略時はdevcontainer.jsonのremoteUser）",
)


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]✗ {escape(message)}[/bold red]")
    sys.exit(1)


def _runtime() -> RuntimeConfig:
    try:
        return detect_runtime_config()
    except DevcError as e:
        _fail(str(e))


def _start(workspace: Path, remove_existing: bool) -> None:
    """権限チェックの後にdevcontainer upを実行する。"""
    try:
        check_workspace_privileges(devcontainer_json_path(workspace))
    except DevcError as e:
        _fail(str(e))

    runtime = _runtime()

    result = devcontainer_up(runtime, workspace, remove_existing=remove_existing)
    if result.returncode != 0:
        console.print("[bold red]✗ Failed to start devcontainer[/bold red]")
        sys.exit(result.returncode)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """
    Claude Code用devcontainerの管理ツール

    テンプレートのインストール、コンテナの起動・停止、
    カスタムマウントの追加を行います。
    """
    pass


@cli.command()
@workspace_argument
@remote_user_option
def template(workspace: Path, remote_user: str | None) -> None:
    """
    devcontainerテンプレートをディレクトリにコピーする。

    既存のdevcontainer.jsonに追加したマウントは上書き後も保持されます。
    """
    workspace = workspace.resolve()
    devcontainer_dir = workspace / ".devcontainer"

    if devcontainer_dir.is_dir():
        console.print(f"[yellow]Devcontainer already exists at {devcontainer_dir}[/yellow]")
        if not click.confirm("Overwrite?"):
            console.print("Aborted.")
            sys.exit(0)

    try:
        install_template(workspace, remote_user)
    except (DevcError, OSError) as e:
        _fail(str(e))

    console.print(f"[green]✓ Template installed to {devcontainer_dir}[/green]")


@cli.command(name=".")
@remote_user_option
@click.pass_context
def install_and_up(ctx: click.Context, remote_user: str | None) -> None:
    """テンプレートをインストールしてコンテナを起動する。"""
    ctx.invoke(template, workspace=Path("."), remote_user=remote_user)
    ctx.invoke(up, workspace=Path("."))


@cli.command()
@workspace_argument
def up(workspace: Path) -> None:
    """開発コンテナを起動する。"""
    workspace = workspace.resolve()
    console.print(f"[bold green]Starting devcontainer in {workspace}...[/bold green]")
    _start(workspace, remove_existing=False)
    console.print("[bold green]✓ Devcontainer started[/bold green]")


@cli.command()
@workspace_argument
def rebuild(workspace: Path) -> None:
    """
    既存のコンテナを削除して再作成する。

    認証情報などのボリュームは保持されます。
    """
    workspace = workspace.resolve()
    console.print(f"[bold yellow]Rebuilding devcontainer in {workspace}...[/bold yellow]")
    _start(workspace, remove_existing=True)
    console.print("[bold green]✓ Devcontainer rebuilt[/bold green]")


@cli.command()
@workspace_argument
def down(workspace: Path) -> None:
    """開発コンテナを停止する。"""
    workspace = workspace.resolve()
    runtime = _runtime()
    console.print("[bold red]Stopping devcontainer...[/bold red]")

    try:
        stopped = stop_container(runtime, workspace)
    except (subprocess.CalledProcessError, OSError) as e:
        _fail(f"Failed to stop devcontainer: {e}")

    if stopped:
        console.print("[green]✓ Devcontainer stopped[/green]")
    else:
        console.print(f"[yellow]No running devcontainer found for {workspace}[/yellow]")


@cli.command()
@workspace_option
def shell(workspace: Path) -> None:
    """コンテナ内でzshを開く。"""
    runtime = _runtime()
    result = devcontainer_exec(runtime, workspace.resolve(), ["zsh"])
    sys.exit(result.returncode)


@cli.command(context_settings={"ignore_unknown_options": True})
@workspace_option
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def exec(workspace: Path, command: tuple[str, ...]) -> None:
    """実行中のコンテナ内でコマンドを実行する。"""
    runtime = _runtime()
    result = devcontainer_exec(runtime, workspace.resolve(), list(command))
    sys.exit(result.returncode)


@cli.command()
@workspace_option
def upgrade(workspace: Path) -> None:
    """コンテナ内のClaude Codeを最新版に更新する。"""
    runtime = _runtime()
    console.print("[blue]Upgrading Claude Code...[/blue]")
    result = devcontainer_exec(runtime, workspace.resolve(), ["claude", "update"])
    if result.returncode != 0:
        sys.exit(result.returncode)
    console.print("[green]✓ Claude Code upgraded[/green]")


@cli.command()
@click.argument("host_path")
@click.argument("container_path")
@click.option("--readonly", is_flag=True, help="読み取り専用でマウントする")
@workspace_option
def mount(host_path: str, container_path: str, readonly: bool, workspace: Path) -> None:
    """
    devcontainer.jsonにマウントを追加してコンテナを再作成する。

    同じコンテナパスへのマウントが既にある場合は置き換えます。
    """
    if not container_path.startswith("/"):
        _fail(f"Container path must be absolute: {container_path}")

    try:
        resolved = resolve_host_path(host_path)
    except DevcError as e:
        _fail(str(e))

    workspace = workspace.resolve()
    config_path = find_devcontainer_json(workspace)
    if not config_path:
        _fail("No devcontainer.json found. Run 'devc template' first.")

    runtime = _runtime()

    console.print(f"[blue]Adding mount: {resolved} → {container_path}[/blue]")
    try:
        add_mount(config_path, str(resolved), container_path, readonly)
    except (DevcError, ValueError, OSError) as e:
        _fail(str(e))

    console.print("[blue]Recreating container with new mount...[/blue]")
    result = devcontainer_up(runtime, workspace, remove_existing=True)
    if result.returncode != 0:
        console.print("[bold red]✗ Failed to recreate devcontainer[/bold red]")
        sys.exit(result.returncode)

    console.print(f"[green]✓ Mount added: {resolved} → {container_path}[/green]")


if __name__ == "__main__":
    cli()
