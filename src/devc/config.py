"""
設定管理モジュール

devcontainer.jsonの読み込み・検証・更新を行う機能を提供します。

.devcontainer/はコンテナ内で読み取り専用としてマウントされ、
侵害されたプロセスがリビルド時にホスト上で実行されるマウントや
コマンドを注入できないようにしている。この保護はrunArgsに
SYS_ADMINが含まれないことが前提であるため、変更操作の前に必ず確認する。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from rich.console import Console

from .errors import MountMergeError, PrivilegeEscalationRiskError
from .mounts import (
    DEFAULT_REMOTE_USER,
    extract_custom_mounts,
    get_mount_target,
    merge_custom_mounts,
    upsert_mount,
)
from .utils import load_json_file, save_json_file

console = Console()

FORBIDDEN_CAPABILITY = "SYS_ADMIN"


def find_privilege_escalation_risks(config: dict[str, Any]) -> list[str]:
    """
    読み取り専用マウントを無効化できる設定を検出する。

    runArgsのSYS_ADMINを含むトークンや--privileged、
    capAddのSYS_ADMIN、privileged: trueを対象とする。

    Args:
        config: devcontainer.jsonの内容

    Returns:
        検出されたトークンのリスト（問題がなければ空）
    """
    risks: list[str] = []

    run_args = config.get("runArgs") or []
    if isinstance(run_args, list):
        for arg in run_args:
            if not isinstance(arg, str):
                continue
            if FORBIDDEN_CAPABILITY in arg or arg == "--privileged":
                risks.append(arg)

    cap_add = config.get("capAdd") or []
    if isinstance(cap_add, list):
        for cap in cap_add:
            if isinstance(cap, str) and FORBIDDEN_CAPABILITY in cap:
                risks.append(f"capAdd: {cap}")

    if config.get("privileged") is True:
        risks.append("privileged: true")

    return risks


def check_no_sys_admin(config: dict[str, Any]) -> None:
    """
    SYS_ADMIN権限が付与されていないことを確認する。

    Raises:
        PrivilegeEscalationRiskError: 危険な設定が検出された場合
    """
    risks = find_privilege_escalation_risks(config)
    if risks:
        raise PrivilegeEscalationRiskError(risks)


def check_workspace_privileges(config_path: Path) -> None:
    """ファイルが存在する場合のみcheck_no_sys_adminを実行する。"""
    if not config_path.is_file():
        return
    check_no_sys_admin(load_json_file(config_path))


def update_devcontainer_json(
    config_path: Path, transform: Callable[[dict[str, Any]], dict[str, Any]]
) -> dict[str, Any]:
    """
    devcontainer.jsonを読み込み、変換して書き戻す。

    権限チェックは変換の前に行うため、拒否された場合ファイルは変更されない。

    Args:
        config_path: devcontainer.jsonのパス
        transform: ドキュメントを受け取り更新後のドキュメントを返す関数

    Returns:
        書き込まれたドキュメント
    """
    config = load_json_file(config_path)
    check_no_sys_admin(config)

    updated = transform(config)
    save_json_file(updated, config_path)
    return updated


def get_remote_user(config: dict[str, Any]) -> str:
    """remoteUserを返す。未定義の場合はデフォルトのユーザー名。"""
    remote_user = config.get("remoteUser")
    if isinstance(remote_user, str) and remote_user:
        return remote_user
    return DEFAULT_REMOTE_USER


def read_custom_mounts(config_path: Path, remote_user: str | None = None) -> list[str] | None:
    """
    既存のdevcontainer.jsonからカスタムマウントを読み出す。

    remote_userを省略した場合は、ドキュメントのremoteUserで
    デフォルトマウントを判定する。ファイルが存在しない場合はNoneを返す。
    """
    if not config_path.is_file():
        return None
    config = load_json_file(config_path)
    return extract_custom_mounts(config, remote_user or get_remote_user(config))


def find_duplicate_targets(mounts: list[str]) -> list[str]:
    """複数のエントリが同じターゲットを持つ場合、そのターゲットを返す。"""
    targets = [t for t in map(get_mount_target, mounts) if t is not None]
    return [t for t in dict.fromkeys(targets) if targets.count(t) > 1]


def restore_custom_mounts(config_path: Path, preserved_mounts: list[str] | None) -> None:
    """
    保持していたカスタムマウントをdevcontainer.jsonに戻す。

    失敗した場合は、手動で再適用できるように保持していたマウントを
    例外に含める。権限チェックによる拒否はPrivilegeEscalationRiskErrorのまま、
    その他の失敗はMountMergeErrorとして発生させる。
    """
    if not preserved_mounts:
        return

    try:
        updated = update_devcontainer_json(
            config_path, lambda config: merge_custom_mounts(config, preserved_mounts)
        )
    except PrivilegeEscalationRiskError as e:
        raise PrivilegeEscalationRiskError(e.tokens, preserved_mounts) from e
    except Exception as e:
        raise MountMergeError(preserved_mounts, e) from e

    # 文字列の完全一致で重複を削除するため、同じターゲットが残る場合がある
    for target in find_duplicate_targets(updated.get("mounts", [])):
        console.print(f"[yellow]Warning: Multiple mounts target {target}[/yellow]")


def add_mount(
    config_path: Path, host_path: str, container_path: str, readonly: bool = False
) -> dict[str, Any]:
    """同じターゲットのマウントを置き換えて新しいマウントを追加する。"""
    return update_devcontainer_json(
        config_path,
        lambda config: upsert_mount(config, host_path, container_path, readonly),
    )
