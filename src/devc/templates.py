"""
テンプレート管理モジュール

パッケージに同梱されたdevcontainerテンプレートをワークスペースへ書き出します。
既存のdevcontainer.jsonに追加されたカスタムマウントは上書き後に復元されます。
"""

from __future__ import annotations

from importlib.resources import files
from pathlib import Path

from rich.console import Console

from .config import read_custom_mounts, restore_custom_mounts
from .utils import devcontainer_json_path

console = Console()

# 同梱ファイル名 -> .devcontainer内のファイル名
TEMPLATE_FILES = {
    "devcontainer.json": "devcontainer.json",
    "Dockerfile": "Dockerfile",
    "zshrc": ".zshrc",
}


def copy_template_files(devcontainer_dir: Path) -> None:
    """同梱テンプレートを.devcontainerディレクトリへコピーする。"""
    devcontainer_dir.mkdir(parents=True, exist_ok=True)
    template_root = files("devc") / "template"
    for source_name, dest_name in TEMPLATE_FILES.items():
        data = (template_root / source_name).read_bytes()
        (devcontainer_dir / dest_name).write_bytes(data)


def install_template(target_dir: Path, remote_user: str | None = None) -> list[str] | None:
    """
    テンプレートをインストールし、カスタムマウントを保持する。

    処理順序:
    1. 既存のdevcontainer.jsonからカスタムマウントを抽出
    2. テンプレートファイルで上書き
    3. 抽出したマウントをマージ

    既存のdevcontainer.jsonが解析できない場合は上書き前に例外が発生し、
    ファイルは変更されない。

    Args:
        target_dir: テンプレートをインストールするディレクトリ
        remote_user: デフォルトマウントの判定に使うユーザー名
            （省略時は既存のdevcontainer.jsonのremoteUser）

    Returns:
        復元したカスタムマウント（なければNone）
    """
    config_path = devcontainer_json_path(target_dir)

    preserved_mounts = read_custom_mounts(config_path, remote_user)
    if preserved_mounts:
        console.print("[blue]Preserving custom mounts...[/blue]")

    copy_template_files(config_path.parent)

    if preserved_mounts:
        restore_custom_mounts(config_path, preserved_mounts)
        console.print("[blue]Custom mounts restored[/blue]")

    return preserved_mounts
