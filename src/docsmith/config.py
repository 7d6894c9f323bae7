"""Configuration management for Docsmith.

Supports TOML configuration format with auto-discovery.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

CONFIG_FILENAME = "docsmith.toml"


@dataclass
class SiteConfig:
    """Source and output tree configuration."""

    source_dir: Path = field(default_factory=lambda: Path("src"))
    output_dir: Path = field(default_factory=lambda: Path("dist"))
    layouts_dir: Path = field(default_factory=lambda: Path("src/layouts"))
    partials_dir: Path = field(default_factory=lambda: Path("src/partials"))
    stylesheets_dir: Path | None = None
    css_dir: str = "css"
    default_layout: str | None = None
    flatten: bool = False
    template_extensions: list[str] = field(default_factory=lambda: [".template"])
    markdown_extensions: list[str] = field(default_factory=lambda: [".md", ".markdown"])
    data: dict[str, object] = field(default_factory=dict)


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class Substitution:
    """Literal text replacement applied to acquired markdown."""

    find: str
    replace: str


@dataclass
class AcquireConfig:
    """External repository configuration."""

    repo_url: str
    branch: str = "master"
    depth: int = 1
    subdir: str = "docs"
    target: str = ""
    substitutions: list[Substitution] = field(default_factory=list)


@dataclass
class RenderConfig:
    """Render stage configuration."""

    jobs: int = 1
    strict: bool = True


@dataclass
class HelpersConfig:
    """Template helper configuration."""

    replace_all: bool = False
    markdown_class: str = "markdown-body"


@dataclass
class LiveReloadConfig:
    """Live reload configuration."""

    enabled: bool = True
    debounce_ms: int = 300


@dataclass
class Config:
    """Application configuration."""

    site: SiteConfig
    server: ServerConfig
    acquire: AcquireConfig | None
    render: RenderConfig
    helpers: HelpersConfig
    live_reload: LiveReloadConfig
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file.

        If config_path is provided, loads from that file.
        Otherwise, searches for docsmith.toml in current directory and parents.

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
        """Search for config file in current directory and parents."""
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
        """Create config with all defaults, rooted at the current directory."""
        return cls(
            site=cls._parse_site(None, Path.cwd()),
            server=ServerConfig(),
            acquire=None,
            render=RenderConfig(),
            helpers=HelpersConfig(),
            live_reload=LiveReloadConfig(),
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

        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        config_dir = path.resolve().parent

        return cls(
            site=cls._parse_site(data.get("site"), config_dir),
            server=cls._parse_server(data.get("server")),
            acquire=cls._parse_acquire(data.get("acquire")),
            render=cls._parse_render(data.get("render")),
            helpers=cls._parse_helpers(data.get("helpers")),
            live_reload=cls._parse_live_reload(data.get("live_reload")),
            config_path=path,
        )

    @classmethod
    def _parse_site(cls, data: object, config_dir: Path) -> SiteConfig:
        """Parse site configuration section.

        Args:
            data: Raw site section data
            config_dir: Directory containing config file (for relative paths)

        Returns:
            SiteConfig instance
        """
        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ValueError("site section must be a dictionary")

        paths: dict[str, Path] = {}
        for key, default in (
            ("source_dir", "src"),
            ("output_dir", "dist"),
            ("layouts_dir", "src/layouts"),
            ("partials_dir", "src/partials"),
        ):
            value = data.get(key, default)
            if not isinstance(value, str):
                raise ValueError(f"site.{key} must be a string")
            paths[key] = config_dir / value

        stylesheets_dir = data.get("stylesheets_dir")
        if stylesheets_dir is not None and not isinstance(stylesheets_dir, str):
            raise ValueError("site.stylesheets_dir must be a string")

        css_dir = data.get("css_dir", "css")
        if not isinstance(css_dir, str):
            raise ValueError("site.css_dir must be a string")

        default_layout = data.get("default_layout")
        if default_layout is not None and not isinstance(default_layout, str):
            raise ValueError("site.default_layout must be a string")

        flatten = data.get("flatten", False)
        if not isinstance(flatten, bool):
            raise ValueError("site.flatten must be a boolean")

        template_extensions = _parse_extensions(
            data.get("template_extensions", [".template"]),
            "site.template_extensions",
        )
        markdown_extensions = _parse_extensions(
            data.get("markdown_extensions", [".md", ".markdown"]),
            "site.markdown_extensions",
        )

        site_data = data.get("data", {})
        if not isinstance(site_data, dict):
            raise ValueError("site.data must be a table")

        return SiteConfig(
            source_dir=paths["source_dir"],
            output_dir=paths["output_dir"],
            layouts_dir=paths["layouts_dir"],
            partials_dir=paths["partials_dir"],
            stylesheets_dir=config_dir / stylesheets_dir if stylesheets_dir else None,
            css_dir=css_dir,
            default_layout=default_layout,
            flatten=flatten,
            template_extensions=template_extensions,
            markdown_extensions=markdown_extensions,
            data=site_data,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        """Parse server configuration section."""
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "127.0.0.1")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 8080)
        if not isinstance(port, int):
            raise ValueError("server.port must be an integer")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_acquire(cls, data: object) -> AcquireConfig | None:
        """Parse acquire configuration section.

        Args:
            data: Raw acquire section data

        Returns:
            AcquireConfig instance or None if no repository is declared
        """
        if data is None:
            return None

        if not isinstance(data, dict):
            raise ValueError("acquire section must be a dictionary")

        repo_url = data.get("repo_url")
        if repo_url is None:
            return None
        if not isinstance(repo_url, str):
            raise ValueError("acquire.repo_url must be a string")

        branch = data.get("branch", "master")
        if not isinstance(branch, str):
            raise ValueError("acquire.branch must be a string")

        depth = data.get("depth", 1)
        if not isinstance(depth, int) or depth < 1:
            raise ValueError("acquire.depth must be a positive integer")

        subdir = data.get("subdir", "docs")
        if not isinstance(subdir, str):
            raise ValueError("acquire.subdir must be a string")

        target = data.get("target", "")
        if not isinstance(target, str):
            raise ValueError("acquire.target must be a string")

        substitutions_raw = data.get("substitutions", [])
        if not isinstance(substitutions_raw, list):
            raise ValueError("acquire.substitutions must be a list")
        substitutions: list[Substitution] = []
        for item in substitutions_raw:
            if not isinstance(item, dict):
                raise ValueError("acquire.substitutions items must be tables")
            find = item.get("find")
            replacement = item.get("replace")
            if not isinstance(find, str) or not isinstance(replacement, str):
                raise ValueError(
                    "acquire.substitutions items need string 'find' and 'replace'",
                )
            substitutions.append(Substitution(find=find, replace=replacement))

        return AcquireConfig(
            repo_url=repo_url,
            branch=branch,
            depth=depth,
            subdir=subdir,
            target=target,
            substitutions=substitutions,
        )

    @classmethod
    def _parse_render(cls, data: object) -> RenderConfig:
        """Parse render configuration section."""
        if data is None:
            return RenderConfig()

        if not isinstance(data, dict):
            raise ValueError("render section must be a dictionary")

        jobs = data.get("jobs", 1)
        if not isinstance(jobs, int) or jobs < 1:
            raise ValueError("render.jobs must be a positive integer")

        strict = data.get("strict", True)
        if not isinstance(strict, bool):
            raise ValueError("render.strict must be a boolean")

        return RenderConfig(jobs=jobs, strict=strict)

    @classmethod
    def _parse_helpers(cls, data: object) -> HelpersConfig:
        """Parse helpers configuration section."""
        if data is None:
            return HelpersConfig()

        if not isinstance(data, dict):
            raise ValueError("helpers section must be a dictionary")

        replace_all = data.get("replace_all", False)
        if not isinstance(replace_all, bool):
            raise ValueError("helpers.replace_all must be a boolean")

        markdown_class = data.get("markdown_class", "markdown-body")
        if not isinstance(markdown_class, str):
            raise ValueError("helpers.markdown_class must be a string")

        return HelpersConfig(replace_all=replace_all, markdown_class=markdown_class)

    @classmethod
    def _parse_live_reload(cls, data: object) -> LiveReloadConfig:
        """Parse live_reload configuration section."""
        if data is None:
            return LiveReloadConfig()

        if not isinstance(data, dict):
            raise ValueError("live_reload section must be a dictionary")

        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ValueError("live_reload.enabled must be a boolean")

        debounce_ms = data.get("debounce_ms", 300)
        if not isinstance(debounce_ms, int) or debounce_ms < 0:
            raise ValueError("live_reload.debounce_ms must be a non-negative integer")

        return LiveReloadConfig(enabled=enabled, debounce_ms=debounce_ms)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        source_dir: Path | None = None,
        output_dir: Path | None = None,
        live_reload_enabled: bool | None = None,
    ) -> "Config":
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Args:
            host: Override server.host
            port: Override server.port
            source_dir: Override site.source_dir
            output_dir: Override site.output_dir
            live_reload_enabled: Override live_reload.enabled

        Returns:
            New Config instance with overrides applied
        """
        server = self.server
        if host is not None or port is not None:
            server = replace(
                self.server,
                host=host if host is not None else self.server.host,
                port=port if port is not None else self.server.port,
            )

        site = self.site
        if source_dir is not None or output_dir is not None:
            site = replace(
                self.site,
                source_dir=source_dir if source_dir is not None else self.site.source_dir,
                output_dir=output_dir if output_dir is not None else self.site.output_dir,
            )

        live_reload = self.live_reload
        if live_reload_enabled is not None:
            live_reload = replace(self.live_reload, enabled=live_reload_enabled)

        return replace(self, server=server, site=site, live_reload=live_reload)


def _parse_extensions(value: object, name: str) -> list[str]:
    """Validate a list of file extensions, normalizing the leading dot."""
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    extensions: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item:
            raise ValueError(f"{name} items must be non-empty strings")
        extensions.append(item if item.startswith(".") else f".{item}")
    return extensions
