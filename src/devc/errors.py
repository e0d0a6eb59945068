"""
例外定義モジュール

devcが発生させる例外をまとめて定義します。
"""

from __future__ import annotations


class DevcError(Exception):
    """devcのすべての例外の基底クラス。"""

    pass


class MalformedConfigurationError(DevcError, ValueError):
    """
    devcontainer.jsonを解析できない場合に発生する例外。

    JSONとして不正な場合や、mountsが文字列のリストでない場合に発生する。
    """

    pass


class PrivilegeEscalationRiskError(DevcError):
    """
    コンテナにSYS_ADMIN権限が付与されている場合に発生する例外。

    SYS_ADMINがあるとコンテナ内から読み取り専用の.devcontainerを
    書き込み可能で再マウントできてしまうため、変更操作をすべて拒否する。
    """

    def __init__(self, tokens: list[str], preserved_mounts: list[str] | None = None):
        self.tokens = tokens
        self.preserved_mounts = preserved_mounts or []
        message = (
            "SYS_ADMIN capability detected: "
            + ", ".join(tokens)
            + " (this defeats the read-only .devcontainer mount)"
        )
        if self.preserved_mounts:
            message += _manual_mounts_hint(self.preserved_mounts)
        super().__init__(message)


def _manual_mounts_hint(preserved_mounts: list[str]) -> str:
    lines = "\n".join(f"  {m}" for m in preserved_mounts)
    return f"\nRe-add these custom mounts to devcontainer.json manually:\n{lines}"


class InvalidPathError(DevcError, ValueError):
    """指定されたホストパスが存在しない場合に発生する例外。"""

    pass


class MountMergeError(DevcError):
    """
    カスタムマウントの復元に失敗した場合に発生する例外。

    抽出済みのマウントを失わないよう、手動で再適用できるように保持する。
    """

    def __init__(self, preserved_mounts: list[str], cause: Exception):
        self.preserved_mounts = preserved_mounts
        self.cause = cause
        super().__init__(
            f"Could not restore custom mounts ({cause})." + _manual_mounts_hint(preserved_mounts)
        )


class RuntimeNotFoundError(DevcError):
    """DockerやPodman、devcontainer CLIが見つからない場合に発生する例外。"""

    pass
