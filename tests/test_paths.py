"""Tests for path utilities."""

from pathlib import Path

from qualtrics_sync.utils.paths import (
    CONFIG_DIR_ENV_VAR,
    DEFAULT_CONFIG_DIR,
    resolve_config_dir,
    resolve_relative,
)


class TestDefaultConfigDir:
    """Test DEFAULT_CONFIG_DIR constant."""

    def test_default_config_dir_is_in_home(self):
        """Default config dir should be in user's home directory."""
        assert Path.home() / ".qualtrics-sync" == DEFAULT_CONFIG_DIR


class TestResolveConfigDir:
    """Test resolve_config_dir function."""

    def test_explicit_path_string(self, tmp_path):
        """Explicit path string should be used."""
        assert resolve_config_dir(str(tmp_path)) == tmp_path.resolve()

    def test_explicit_path_with_tilde(self):
        """Explicit path with ~ should be expanded."""
        result = resolve_config_dir("~/custom-config")
        assert result == (Path.home() / "custom-config").resolve()

    def test_env_var_override(self, tmp_path, monkeypatch):
        """Environment variable should override default when no explicit path."""
        monkeypatch.setenv(CONFIG_DIR_ENV_VAR, str(tmp_path))
        assert resolve_config_dir(None) == tmp_path.resolve()

    def test_explicit_path_beats_env_var(self, tmp_path, monkeypatch):
        """Explicit path should take precedence over the environment."""
        monkeypatch.setenv(CONFIG_DIR_ENV_VAR, str(tmp_path / "env"))
        assert resolve_config_dir(tmp_path / "arg") == (tmp_path / "arg").resolve()

    def test_default_when_nothing_set(self, monkeypatch):
        """Default directory should be used without overrides."""
        monkeypatch.delenv(CONFIG_DIR_ENV_VAR, raising=False)
        assert resolve_config_dir() == DEFAULT_CONFIG_DIR.resolve()


class TestResolveRelative:
    """Test resolve_relative function."""

    def test_relative_path_joined_to_base(self, tmp_path):
        """Relative paths are taken relative to the base directory."""
        assert resolve_relative("csv", tmp_path) == tmp_path / "csv"

    def test_absolute_path_kept(self, tmp_path):
        """Absolute paths are returned unchanged."""
        assert resolve_relative("/data/csv", tmp_path) == Path("/data/csv")

    def test_tilde_expanded(self, tmp_path):
        """Home-relative paths are expanded, not joined."""
        assert resolve_relative("~/csv", tmp_path) == Path.home() / "csv"
