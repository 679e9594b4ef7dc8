"""
Unit tests for configuration loading and storage paths.

Tests config file creation, loading from YAML, environment variable overrides
and swap path naming.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from jit_library.config import loader
from jit_library.config.settings import JitSettings
from jit_library.storage import paths


@pytest.mark.unit
class TestConfigLoader:
    """Test configuration loading functions."""

    def test_get_config_path_returns_jit_yaml(self, mock_storage_env: Path) -> None:
        """Test get_config_path returns jit.yaml in config dir."""
        config_path = loader.get_config_path()

        assert config_path.name == "jit.yaml"
        assert config_path.parent == mock_storage_env.resolve() / "config"

    def test_create_default_config_has_yaml_content(self, mock_storage_env: Path) -> None:
        """Test create_default_config writes the documented keys."""
        loader.create_default_config()

        content = loader.get_config_path().read_text()
        assert "port:" in content
        assert "mount_path:" in content
        assert "hash_drift:" in content

    def test_create_default_config_is_idempotent(self, mock_storage_env: Path) -> None:
        """Test create_default_config doesn't overwrite existing config."""
        config_path = loader.get_config_path()
        loader.create_default_config()
        config_path.write_text("# Custom config\nport: 9000\n")

        loader.create_default_config()

        assert config_path.read_text() == "# Custom config\nport: 9000\n"

    def test_load_config_creates_default_if_missing(self, mock_storage_env: Path) -> None:
        """Test load_config creates default config if file doesn't exist."""
        settings = loader.load_config()

        assert isinstance(settings, JitSettings)
        assert loader.get_config_path().exists()
        assert settings.port == 8430
        assert settings.hash_drift == 250

    def test_load_config_reads_yaml(self, mock_storage_env: Path, tmp_path: Path) -> None:
        """Test YAML values override defaults."""
        config_path = tmp_path / "custom.yaml"
        config_path.write_text(f"port: 9001\nmount_path: components/\nsource_dir: {tmp_path}\n")

        settings = loader.load_config(config_path)

        assert settings.port == 9001
        assert settings.mount_path == "/components"
        assert settings.source_dir == str(tmp_path.resolve())

    def test_env_overrides_yaml(self, mock_storage_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test JIT_ environment variables win over YAML."""
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("port: 9001\nimmutable: false\n")
        monkeypatch.setenv("JIT_PORT", "9002")
        monkeypatch.setenv("JIT_IMMUTABLE", "true")

        settings = loader.load_config(config_path)

        assert settings.port == 9002
        assert settings.immutable is True

    def test_invalid_yaml_falls_back_to_defaults(self, mock_storage_env: Path, tmp_path: Path) -> None:
        """Test a malformed config file is logged and ignored."""
        config_path = tmp_path / "broken.yaml"
        config_path.write_text("port: [unclosed\n")

        settings = loader.load_config(config_path)

        assert settings.port == 8430


@pytest.mark.unit
class TestSettingsValidation:
    """Test settings validators."""

    def test_negative_drift_rejected(self, mock_storage_env: Path) -> None:
        """Test a negative drift is a validation error."""
        with pytest.raises(ValidationError):
            JitSettings(hash_drift=-5)

    def test_cache_dir_expanded(self, mock_storage_env: Path) -> None:
        """Test ~ in cache_dir is expanded."""
        settings = JitSettings(cache_dir="~/jit-cache")

        assert settings.cache_dir == str(Path("~/jit-cache").expanduser().resolve())
        assert JitSettings().cache_dir is None


@pytest.mark.unit
class TestPaths:
    """Test path resolution functions."""

    def test_get_home_dir_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test get_home_dir returns .jit when JIT_HOME is not set."""
        monkeypatch.delenv("JIT_HOME", raising=False)

        assert paths.get_home_dir() == Path(".jit").resolve()

    def test_get_cache_dir_creates_directory(self, mock_storage_env: Path) -> None:
        """Test get_cache_dir creates $JIT_HOME/cache."""
        cache_dir = paths.get_cache_dir()

        assert cache_dir.is_dir()
        assert cache_dir == mock_storage_env.resolve() / "cache"

    def test_get_cache_dir_override(self, mock_storage_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test JIT_CACHE_DIR overrides the cache location."""
        monkeypatch.setenv("JIT_CACHE_DIR", str(mock_storage_env / "elsewhere"))

        assert paths.get_cache_dir() == (mock_storage_env / "elsewhere").resolve()

    def test_swap_path_is_hidden_sibling(self, tmp_path: Path) -> None:
        """Test swap files share the destination directory."""
        dest = tmp_path / "widgets.js"

        swap = paths.make_swap_path(dest)

        assert swap.parent == dest.parent
        assert swap.name.startswith(".widgets.js.")
        assert swap.suffix == ".swp"

    def test_swap_paths_are_unique(self, tmp_path: Path) -> None:
        """Test repeated calls never collide."""
        dest = tmp_path / "widgets.js"

        assert len({paths.make_swap_path(dest) for _ in range(50)}) == 50
