"""
マウント調整モジュール

devcontainer.jsonのmountsを抽出・マージ・追加する機能を提供します。
テンプレートの上書き時にユーザーが追加したマウントを保持するために使用します。
"""

from __future__ import annotations

from typing import Any

from .errors import MalformedConfigurationError

# テンプレートが常に生成するマウントのターゲット（<user>はリモートユーザー名）
DEFAULT_MOUNT_TARGET_TEMPLATES = (
    "/commandhistory",
    "/home/{user}/.claude",
    "/home/{user}/.config/gh",
    "/home/{user}/.gitconfig",
    "/workspace/.devcontainer",
)

DEFAULT_REMOTE_USER = "vscode"

# Dockerの--mount構文ではtargetの別名も受け付ける
_TARGET_KEYS = ("target", "destination", "dst")


def default_mount_targets(remote_user: str = DEFAULT_REMOTE_USER) -> frozenset[str]:
    """デフォルトマウントのターゲットパス集合を返す。"""
    return frozenset(t.format(user=remote_user) for t in DEFAULT_MOUNT_TARGET_TEMPLATES)


def parse_mount_spec(spec: str) -> dict[str, str | bool]:
    """マウント文字列を分解する。readonlyのような値なしのコンポーネントはTrueになる。"""
    components: dict[str, str | bool] = {}
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            key, value = part.split("=", 1)
            components[key.strip()] = value.strip()
        else:
            components[part] = True
    return components


def get_mount_target(spec: str) -> str | None:
    """マウント文字列のターゲットパスを返す。見つからない場合はNone。"""
    components = parse_mount_spec(spec)
    for key in _TARGET_KEYS:
        value = components.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def build_mount_spec(host_path: str, container_path: str, readonly: bool = False) -> str:
    """source=<host>,target=<container>,type=bind[,readonly] 形式の文字列を構築する。"""
    for path in (host_path, container_path):
        if "," in path:
            raise ValueError(f"マウントパスにカンマは使用できません: {path}")

    spec = f"source={host_path},target={container_path},type=bind"
    if readonly:
        spec += ",readonly"
    return spec


def is_default_mount(spec: str, remote_user: str = DEFAULT_REMOTE_USER) -> bool:
    """
    テンプレートのデフォルトマウントかどうかを判定する。

    ターゲットパスの完全一致で判定するため、
    /workspace/.devcontainer-extra は /workspace/.devcontainer に一致しない。
    """
    return get_mount_target(spec) in default_mount_targets(remote_user)


def get_mounts(document: dict[str, Any] | None) -> list[str]:
    """
    ドキュメントからmountsリストを取り出す。

    Raises:
        MalformedConfigurationError: mountsが文字列のリストでない場合
    """
    if document is None:
        return []
    if not isinstance(document, dict):
        raise MalformedConfigurationError("devcontainer.jsonのトップレベルがオブジェクトではありません")

    mounts = document.get("mounts")
    if mounts is None:
        return []
    if not isinstance(mounts, list) or not all(isinstance(m, str) for m in mounts):
        raise MalformedConfigurationError("mountsは文字列のリストである必要があります")
    return list(mounts)


def extract_custom_mounts(
    document: dict[str, Any] | None, remote_user: str = DEFAULT_REMOTE_USER
) -> list[str] | None:
    """
    デフォルト以外のカスタムマウントを抽出する。

    ドキュメントが存在しない場合、または保持すべきものがない場合はNoneを返す。
    """
    custom = [m for m in get_mounts(document) if not is_default_mount(m, remote_user)]
    return custom or None


def merge_custom_mounts(
    document: dict[str, Any], preserved_mounts: list[str] | None
) -> dict[str, Any]:
    """
    保持していたカスタムマウントをドキュメントに戻す。

    既存のmountsの後ろに追加し、文字列の完全一致で重複を削除する。
    最初に出現した順序を維持し、引数のドキュメントは変更しない。
    """
    mounts = get_mounts(document)
    if not preserved_mounts:
        return document

    result = document.copy()
    result["mounts"] = list(dict.fromkeys(mounts + list(preserved_mounts)))
    return result


def upsert_mount(
    document: dict[str, Any], host_path: str, container_path: str, readonly: bool = False
) -> dict[str, Any]:
    """
    ターゲットパスをキーとしてマウントを追加または置換する。

    同じターゲットを持つ既存のエントリを削除してから新しいエントリを追加するため、
    同じ引数で2回呼んでも結果は変わらない。

    Returns:
        更新されたドキュメント（引数は変更しない）
    """
    mount_spec = build_mount_spec(host_path, container_path, readonly)
    mounts = [m for m in get_mounts(document) if get_mount_target(m) != container_path]

    result = document.copy()
    result["mounts"] = mounts + [mount_spec]
    return result

