"""Tests for configuration loading."""

from pathlib import Path
from unittest.mock import patch

import pytest
from bundleview.config import (
    BuildConfig,
    Config,
    PathsConfig,
    RenderConfig,
    ServerConfig,
)
from bundleview.render import DEFAULT_BODY_SIZE_LIMIT


class TestConfigLoad:
    """Tests for Config.load()."""

    def test__explicit_path__loads_config(self, tmp_path: Path) -> None:
        """Load config from explicit path."""
        config_file = tmp_path / "bundleview.toml"
        config_file.write_text("""
[server]
host = "0.0.0.0"
port = 3000
protocol = "https"

[build]
out_dir = "dist"
app_dir = "assets"
static_dir = "public"

[paths]
base = "/app"
assets = "https://cdn.example.com"

[render]
entry = "myapp.render:Server"
body_size_limit = 1024
""")

        config = Config.load(config_file)

        assert config.server.host == "0.0.0.0"
        assert config.server.port == 3000
        assert config.server.protocol == "https"
        assert config.build.out_dir == tmp_path / "dist"
        assert config.build.app_dir == "assets"
        assert config.build.static_dir == tmp_path / "public"
        assert config.paths.base == "/app"
        assert config.paths.assets == "https://cdn.example.com"
        assert config.render.entry == "myapp.render:Server"
        assert config.render.body_size_limit == 1024
        assert config.config_path == config_file

    def test__minimal_config__uses_defaults(self, tmp_path: Path) -> None:
        """Load minimal config with defaults relative to config file."""
        config_file = tmp_path / "bundleview.toml"
        config_file.write_text("")

        config = Config.load(config_file)

        assert config.server.host == "127.0.0.1"
        assert config.server.port == 4173
        assert config.server.protocol == "http"
        assert config.build.out_dir == tmp_path / ".bundle"
        assert config.build.app_dir == "_app"
        assert config.build.static_dir == tmp_path / "static"
        assert config.paths.base == ""
        assert config.paths.assets == ""
        assert config.render.entry is None
        assert config.render.body_size_limit == DEFAULT_BODY_SIZE_LIMIT

    def test__missing_explicit_path__raises_error(self, tmp_path: Path) -> None:
        """Raise FileNotFoundError for missing explicit config file."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            Config.load(tmp_path / "nonexistent.toml")

    def test__no_path_no_discovery__returns_defaults(self) -> None:
        """Return defaults when no config file found."""
        with patch.object(Config, "_discover_config", return_value=None):
            config = Config.load()

        assert config.server.port == 4173
        assert config.build.out_dir == Path(".bundle")
        assert config.config_path is None


class TestConfigDiscovery:
    """Tests for config file discovery."""

    def test__config_in_current_dir__found(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bundleview.toml"
        config_file.write_text("[server]\nport = 9000")

        with patch("pathlib.Path.cwd", return_value=tmp_path):
            discovered = Config._discover_config()

        assert discovered == config_file

    def test__config_in_parent_dir__found(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bundleview.toml"
        config_file.write_text("[server]\nport = 9000")
        subdir = tmp_path / "sub" / "dir"
        subdir.mkdir(parents=True)

        with patch("pathlib.Path.cwd", return_value=subdir):
            discovered = Config._discover_config()

        assert discovered == config_file


class TestConfigValidation:
    """Tests for invalid configuration values."""

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ('server = "x"', "server section must be a dictionary"),
            ('[server]\nport = "80"', "server.port must be an integer"),
            ("[server]\nport = true", "server.port must be an integer"),
            ('[server]\nprotocol = "ftp"', "server.protocol must be"),
            ("[build]\nout_dir = 1", "build.out_dir must be a string"),
            ('[build]\napp_dir = "/_app"', "build.app_dir must be non-empty"),
            ('[build]\napp_dir = ""', "build.app_dir must be non-empty"),
            ('[paths]\nbase = "app"', "paths.base must be"),
            ('[paths]\nbase = "/app/"', "paths.base must be"),
            ("[paths]\nassets = 1", "paths.assets must be a string"),
            ("[render]\nentry = 1", "render.entry must be a string"),
            ("[render]\nbody_size_limit = -1", "render.body_size_limit must be"),
        ],
    )
    def test__invalid_value__raises_value_error(
        self,
        tmp_path: Path,
        content: str,
        message: str,
    ) -> None:
        config_file = tmp_path / "bundleview.toml"
        config_file.write_text(content)

        with pytest.raises(ValueError, match=message):
            Config.load(config_file)


class TestBuildConfig:
    """Tests for BuildConfig layout properties."""

    def test__layout__derived_from_out_dir(self, tmp_path: Path) -> None:
        build = BuildConfig(out_dir=tmp_path)

        assert build.client_dir == tmp_path / "output" / "client"
        assert build.dependencies_dir == tmp_path / "output" / "prerendered" / "dependencies"
        assert build.pages_dir == tmp_path / "output" / "prerendered" / "pages"


class TestWithOverrides:
    """Tests for Config.with_overrides()."""

    @pytest.fixture
    def config(self) -> Config:
        return Config(
            server=ServerConfig(),
            build=BuildConfig(),
            paths=PathsConfig(),
            render=RenderConfig(),
        )

    def test__no_overrides__equal_copy(self, config: Config) -> None:
        assert config.with_overrides() == config

    def test__overrides__applied_without_mutation(self, config: Config, tmp_path: Path) -> None:
        result = config.with_overrides(host="0.0.0.0", port=5000, out_dir=tmp_path, base="/app")

        assert result.server.host == "0.0.0.0"
        assert result.server.port == 5000
        assert result.build.out_dir == tmp_path
        assert result.paths.base == "/app"
        assert config.server.port == 4173
        assert config.paths.base == ""

    def test__invalid_base__raises_value_error(self, config: Config) -> None:
        with pytest.raises(ValueError, match="paths.base must be"):
            config.with_overrides(base="app/")
