"""Tests for template installation."""

import json
import tempfile
from pathlib import Path

import pytest

from devc.errors import MalformedConfigurationError
from devc.mounts import extract_custom_mounts, get_mount_target
from devc.templates import TEMPLATE_FILES, copy_template_files, install_template


class TestCopyTemplateFiles:
    """Test copying bundled template files."""

    def test_copies_all_files(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            devcontainer_dir = Path(temp_dir) / ".devcontainer"
            copy_template_files(devcontainer_dir)

            for dest_name in TEMPLATE_FILES.values():
                assert (devcontainer_dir / dest_name).is_file()

    def test_bundled_config_has_only_default_mounts(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            devcontainer_dir = Path(temp_dir) / ".devcontainer"
            copy_template_files(devcontainer_dir)

            config = json.loads((devcontainer_dir / "devcontainer.json").read_text())
            assert len(config["mounts"]) == 5
            assert extract_custom_mounts(config) is None

    def test_devcontainer_dir_mounted_readonly(self):
        """The .devcontainer directory must be read-only inside the container."""
        with tempfile.TemporaryDirectory() as temp_dir:
            devcontainer_dir = Path(temp_dir) / ".devcontainer"
            copy_template_files(devcontainer_dir)

            config = json.loads((devcontainer_dir / "devcontainer.json").read_text())
            mount = next(
                m for m in config["mounts"] if get_mount_target(m) == "/workspace/.devcontainer"
            )
            assert mount.split(",")[-1] == "readonly"
            assert not any("SYS_ADMIN" in arg for arg in config["runArgs"])


class TestInstallTemplate:
    """Test install_template."""

    def test_fresh_install(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            workspace = Path(temp_dir)

            preserved = install_template(workspace)

            assert preserved is None
            assert (workspace / ".devcontainer" / "devcontainer.json").is_file()
            assert (workspace / ".devcontainer" / ".zshrc").is_file()

    def test_overwrite_preserves_custom_mounts(self):
        custom = "source=/data,target=/data,type=bind,readonly"

        with tempfile.TemporaryDirectory() as temp_dir:
            workspace = Path(temp_dir)
            config_path = workspace / ".devcontainer" / "devcontainer.json"
            config_path.parent.mkdir()
            config_path.write_text(
                json.dumps(
                    {
                        "name": "old",
                        "mounts": [
                            "source=old,target=/commandhistory,type=volume",
                            custom,
                        ],
                    }
                )
            )

            preserved = install_template(workspace)

            assert preserved == [custom]
            config = json.loads(config_path.read_text())
            assert config["name"] == "Claude Code Sandbox"
            assert config["mounts"][-1] == custom
            assert config["mounts"].count(custom) == 1
            # 古いデフォルトマウントはテンプレートのもので置き換えられる
            assert "source=old,target=/commandhistory,type=volume" not in config["mounts"]

    def test_overwrite_uses_existing_remote_user(self):
        """Default mounts of the old remoteUser are not carried over as custom."""
        custom = "source=/data,target=/data,type=bind"

        with tempfile.TemporaryDirectory() as temp_dir:
            workspace = Path(temp_dir)
            config_path = workspace / ".devcontainer" / "devcontainer.json"
            config_path.parent.mkdir()
            config_path.write_text(
                json.dumps(
                    {
                        "remoteUser": "alice",
                        "mounts": ["source=c,target=/home/alice/.claude,type=volume", custom],
                    }
                )
            )

            preserved = install_template(workspace)

            assert preserved == [custom]
            config = json.loads(config_path.read_text())
            assert "source=c,target=/home/alice/.claude,type=volume" not in config["mounts"]

    def test_malformed_existing_config_not_overwritten(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            workspace = Path(temp_dir)
            config_path = workspace / ".devcontainer" / "devcontainer.json"
            config_path.parent.mkdir()
            config_path.write_text("{ broken")

            with pytest.raises(MalformedConfigurationError):
                install_template(workspace)

            assert config_path.read_text() == "{ broken"
            assert not (workspace / ".devcontainer" / "Dockerfile").exists()
