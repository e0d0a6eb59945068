"""
ユーティリティ関数

devcontainer.jsonの検索・読み込み・保存など、共通で使用される関数を提供します。
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import json5

from .errors import InvalidPathError, MalformedConfigurationError


def load_json_file(file_path: Path) -> dict[str, Any]:
    """
    JSONまたはJSONCファイルを読み込む。

    devcontainer.jsonのようなコメント付きJSONもサポートします。
    空ファイルの場合は空の辞書を返す。

    Args:
        file_path: 読み込むJSONファイルのパス

    Returns:
        パースされたJSON（辞書）

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        MalformedConfigurationError: JSONとして不正、またはオブジェクトでない場合
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            content = f.read()
    except UnicodeDecodeError as e:
        raise MalformedConfigurationError(f"Invalid UTF-8 in {file_path}: {e}") from e

    # 空ファイルの場合は空の辞書を返す
    if not content.strip():
        return {}

    try:
        # json5でコメント付きJSONをパース
        data = json5.loads(content)
    except ValueError as e:
        raise MalformedConfigurationError(f"Invalid JSON in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise MalformedConfigurationError(f"Expected a JSON object in {file_path}")
    return data


def find_devcontainer_json(workspace: Path) -> Path | None:
    """
    ワークスペース内の.devcontainer/devcontainer.jsonを検索する。

    Args:
        workspace: 検索するワークスペースのパス

    Returns:
        見つかったdevcontainer.jsonのパス、見つからない場合はNone
    """
    candidate = devcontainer_json_path(workspace)
    if candidate.is_file():
        return candidate
    return None


def devcontainer_json_path(workspace: Path) -> Path:
    return workspace / ".devcontainer" / "devcontainer.json"


def save_json_file(data: dict[str, Any], file_path: Path, indent: int = 2) -> None:
    """
    辞書をJSONファイルとしてアトミックに保存する。

    同じディレクトリの一時ファイルに書き込んでからリネームするため、
    途中で失敗しても元のファイルはそのまま残る。

    Args:
        data: 保存するデータ
        file_path: 保存先のファイルパス
        indent: インデントレベル
    """
    # ディレクトリが存在しない場合は作成
    file_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        mode = file_path.stat().st_mode & 0o777
    except FileNotFoundError:
        mode = 0o644

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{file_path.name}.", suffix=".tmp", dir=file_path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
            f.write("\n")
        os.chmod(temp_name, mode)
        os.replace(temp_name, file_path)
    except BaseException:
        # 一時ファイルを削除して元のファイルを残す
        Path(temp_name).unlink(missing_ok=True)
        raise


def resolve_host_path(path: str | Path) -> Path:
    """
    ホスト側のパスを絶対パスに解決する。

    Raises:
        InvalidPathError: パスが存在しない場合
    """
    resolved = Path(path).expanduser()
    if not resolved.exists():
        raise InvalidPathError(f"Host path does not exist: {path}")
    return resolved.resolve()
