"""Configuration management for bundleview.

Supports TOML configuration format with auto-discovery.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from bundleview.render import DEFAULT_BODY_SIZE_LIMIT

CONFIG_FILENAME = "bundleview.toml"


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 4173
    protocol: str = "http"


@dataclass
class BuildConfig:
    """Build output configuration."""

    out_dir: Path = field(default_factory=lambda: Path(".bundle"))
    app_dir: str = "_app"
    static_dir: Path = field(default_factory=lambda: Path("static"))

    @property
    def client_dir(self) -> Path:
        return self.out_dir / "output" / "client"

    @property
    def dependencies_dir(self) -> Path:
        return self.out_dir / "output" / "prerendered" / "dependencies"

    @property
    def pages_dir(self) -> Path:
        return self.out_dir / "output" / "prerendered" / "pages"


@dataclass
class PathsConfig:
    """URL paths the app is served under."""

    base: str = ""
    assets: str = ""


@dataclass
class RenderConfig:
    """Server-side rendering configuration."""

    entry: str | None = None
    body_size_limit: int | None = DEFAULT_BODY_SIZE_LIMIT


@dataclass
class Config:
    """Application configuration."""

    server: ServerConfig
    build: BuildConfig
    paths: PathsConfig
    render: RenderConfig
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file.

        If config_path is provided, loads from that file.
        Otherwise, searches for bundleview.toml in current directory and parents.

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(config_path)

        discovered_path = cls._discover_config()
        if discovered_path is None:
            return cls._default()

        return cls._load_from_file(discovered_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents.

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> "Config":
        return cls(
            server=ServerConfig(),
            build=BuildConfig(),
            paths=PathsConfig(),
            render=RenderConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            data = tomllib.load(f)

        config_dir = path.parent

        return cls(
            server=cls._parse_server(data.get("server")),
            build=cls._parse_build(data.get("build"), config_dir),
            paths=cls._parse_paths(data.get("paths")),
            render=cls._parse_render(data.get("render")),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "127.0.0.1")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 4173)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")

        protocol = data.get("protocol", "http")
        if protocol not in ("http", "https"):
            raise ValueError('server.protocol must be "http" or "https"')

        return ServerConfig(host=host, port=port, protocol=protocol)

    @classmethod
    def _parse_build(cls, data: object, config_dir: Path) -> BuildConfig:
        """Parse build configuration section.

        Args:
            data: Raw build section data
            config_dir: Directory containing config file (for relative paths)

        Returns:
            BuildConfig instance
        """
        if data is None:
            return BuildConfig(
                out_dir=config_dir / ".bundle",
                static_dir=config_dir / "static",
            )

        if not isinstance(data, dict):
            raise ValueError("build section must be a dictionary")

        out_dir = data.get("out_dir", ".bundle")
        if not isinstance(out_dir, str):
            raise ValueError("build.out_dir must be a string")

        app_dir = data.get("app_dir", "_app")
        if not isinstance(app_dir, str):
            raise ValueError("build.app_dir must be a string")
        validate_app_dir(app_dir)

        static_dir = data.get("static_dir", "static")
        if not isinstance(static_dir, str):
            raise ValueError("build.static_dir must be a string")

        return BuildConfig(
            out_dir=config_dir / out_dir,
            app_dir=app_dir,
            static_dir=config_dir / static_dir,
        )

    @classmethod
    def _parse_paths(cls, data: object) -> PathsConfig:
        if data is None:
            return PathsConfig()

        if not isinstance(data, dict):
            raise ValueError("paths section must be a dictionary")

        base = data.get("base", "")
        if not isinstance(base, str):
            raise ValueError("paths.base must be a string")
        validate_base(base)

        assets = data.get("assets", "")
        if not isinstance(assets, str):
            raise ValueError("paths.assets must be a string")

        return PathsConfig(base=base, assets=assets)

    @classmethod
    def _parse_render(cls, data: object) -> RenderConfig:
        if data is None:
            return RenderConfig()

        if not isinstance(data, dict):
            raise ValueError("render section must be a dictionary")

        entry = data.get("entry")
        if entry is not None and not isinstance(entry, str):
            raise ValueError("render.entry must be a string")

        body_size_limit = data.get("body_size_limit", DEFAULT_BODY_SIZE_LIMIT)
        if (
            not isinstance(body_size_limit, int)
            or isinstance(body_size_limit, bool)
            or body_size_limit < 0
        ):
            raise ValueError("render.body_size_limit must be a non-negative integer")

        return RenderConfig(entry=entry, body_size_limit=body_size_limit)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        out_dir: Path | None = None,
        base: str | None = None,
    ) -> "Config":
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config.

        Args:
            host: Override server.host
            port: Override server.port
            out_dir: Override build.out_dir
            base: Override paths.base

        Returns:
            New Config instance with overrides applied

        Raises:
            ValueError: If base is not a valid base path
        """
        server = self.server
        if host is not None or port is not None:
            server = replace(
                self.server,
                host=host if host is not None else self.server.host,
                port=port if port is not None else self.server.port,
            )

        build = self.build
        if out_dir is not None:
            build = replace(self.build, out_dir=out_dir)

        paths = self.paths
        if base is not None:
            validate_base(base)
            paths = replace(self.paths, base=base)

        return replace(self, server=server, build=build, paths=paths)


def validate_base(base: str) -> None:
    """Check that ``base`` is empty or a root-relative path without trailing slash.

    Raises:
        ValueError: If base is malformed
    """
    if base and (not base.startswith("/") or base.endswith("/")):
        raise ValueError(
            'paths.base must be "" or start with "/" and not end with "/"',
        )


def validate_app_dir(app_dir: str) -> None:
    if not app_dir or app_dir.startswith("/") or app_dir.endswith("/"):
        raise ValueError("build.app_dir must be non-empty and not start or end with '/'")
