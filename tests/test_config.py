"""Tests for configuration loading."""

from pathlib import Path

import pytest
from docsmith.config import (
    Config,
    HelpersConfig,
    LiveReloadConfig,
    RenderConfig,
    ServerConfig,
    Substitution,
)


class TestConfigLoad:
    """Tests for Config.load()."""

    def test__explicit_path__loads_config(self, tmp_path: Path) -> None:
        """Load config from explicit path."""
        config_file = tmp_path / "docsmith.toml"
        config_file.write_text("""
[site]
source_dir = "content"
output_dir = "public"
layouts_dir = "content/_layouts"
partials_dir = "content/_partials"
stylesheets_dir = "scss"
default_layout = "main"
flatten = true
template_extensions = ["hbs", ".tpl"]

[site.data]
name = "Handbook"

[server]
host = "0.0.0.0"
port = 3000

[render]
jobs = 4
strict = false

[helpers]
replace_all = true
markdown_class = "prose"

[live_reload]
enabled = false
debounce_ms = 50
""")

        config = Config.load(config_file)

        root = tmp_path.resolve()
        assert config.site.source_dir == root / "content"
        assert config.site.output_dir == root / "public"
        assert config.site.layouts_dir == root / "content" / "_layouts"
        assert config.site.partials_dir == root / "content" / "_partials"
        assert config.site.stylesheets_dir == root / "scss"
        assert config.site.default_layout == "main"
        assert config.site.flatten is True
        assert config.site.template_extensions == [".hbs", ".tpl"]
        assert config.site.data == {"name": "Handbook"}
        assert config.server == ServerConfig(host="0.0.0.0", port=3000)
        assert config.render == RenderConfig(jobs=4, strict=False)
        assert config.helpers == HelpersConfig(replace_all=True, markdown_class="prose")
        assert config.live_reload == LiveReloadConfig(enabled=False, debounce_ms=50)
        assert config.acquire is None
        assert config.config_path == config_file

    def test__empty_file__uses_defaults(self, tmp_path: Path) -> None:
        """Missing sections fall back to defaults relative to the config file."""
        config_file = tmp_path / "docsmith.toml"
        config_file.write_text("")

        config = Config.load(config_file)

        root = tmp_path.resolve()
        assert config.site.source_dir == root / "src"
        assert config.site.output_dir == root / "dist"
        assert config.site.layouts_dir == root / "src" / "layouts"
        assert config.site.partials_dir == root / "src" / "partials"
        assert config.site.stylesheets_dir is None
        assert config.site.markdown_extensions == [".md", ".markdown"]
        assert config.server == ServerConfig()
        assert config.render == RenderConfig()
        assert config.helpers.replace_all is False
        assert config.live_reload.enabled is True

    def test__missing_explicit_path__raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="not found"):
            Config.load(tmp_path / "missing.toml")

    def test__discovery__finds_config_in_parent(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Search the current directory and its parents."""
        (tmp_path / "docsmith.toml").write_text('[server]\nport = 9000\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        config = Config.load()

        assert config.server.port == 9000
        assert config.config_path is not None
        assert config.config_path.resolve() == (tmp_path / "docsmith.toml").resolve()

    def test__no_config_anywhere__uses_cwd_defaults(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Config, "_discover_config", classmethod(lambda cls: None))

        config = Config.load()

        assert config.config_path is None
        assert config.site.source_dir == Path.cwd() / "src"


class TestAcquireSection:
    """Tests for the [acquire] section."""

    def test__repository__is_parsed(self, tmp_path: Path) -> None:
        config_file = tmp_path / "docsmith.toml"
        config_file.write_text("""
[acquire]
repo_url = "https://example.com/project.git"
branch = "main"
subdir = "documentation"
target = "external"

[[acquire.substitutions]]
find = "docs/"
replace = "/"

[[acquire.substitutions]]
find = ".md)"
replace = ".html)"
""")

        acquire = Config.load(config_file).acquire

        assert acquire is not None
        assert acquire.repo_url == "https://example.com/project.git"
        assert acquire.branch == "main"
        assert acquire.depth == 1
        assert acquire.subdir == "documentation"
        assert acquire.target == "external"
        assert acquire.substitutions == [
            Substitution(find="docs/", replace="/"),
            Substitution(find=".md)", replace=".html)"),
        ]

    def test__no_repo_url__disables_acquire(self, tmp_path: Path) -> None:
        config_file = tmp_path / "docsmith.toml"
        config_file.write_text('[acquire]\nbranch = "main"\n')

        assert Config.load(config_file).acquire is None

    def test__substitution_without_replace__raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "docsmith.toml"
        config_file.write_text("""
[acquire]
repo_url = "https://example.com/project.git"
substitutions = [{ find = "x" }]
""")

        with pytest.raises(ValueError, match="substitutions"):
            Config.load(config_file)


class TestValidation:
    """Tests for invalid configuration values."""

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ('site = "src"', "site section"),
            ("[site]\nsource_dir = 1", "site.source_dir"),
            ("[site]\nflatten = 'yes'", "site.flatten"),
            ("[site]\ntemplate_extensions = '.template'", "site.template_extensions"),
            ("[server]\nport = '8080'", "server.port"),
            ("[render]\njobs = 0", "render.jobs"),
            ("[acquire]\nrepo_url = 'x'\ndepth = 0", "acquire.depth"),
            ("[helpers]\nreplace_all = 1", "helpers.replace_all"),
            ("[live_reload]\ndebounce_ms = -1", "live_reload.debounce_ms"),
        ],
    )
    def test__invalid_value__raises(self, tmp_path: Path, content: str, message: str) -> None:
        config_file = tmp_path / "docsmith.toml"
        config_file.write_text(content)

        with pytest.raises(ValueError, match=message):
            Config.load(config_file)


class TestWithOverrides:
    """Tests for Config.with_overrides()."""

    def test__overrides__replace_only_given_values(self, test_config: Config, tmp_path: Path) -> None:
        """Apply CLI overrides without touching the original."""
        output_dir = tmp_path / "elsewhere"

        config = test_config.with_overrides(port=9999, output_dir=output_dir, live_reload_enabled=True)

        assert config.server.port == 9999
        assert config.server.host == test_config.server.host
        assert config.site.output_dir == output_dir
        assert config.site.source_dir == test_config.site.source_dir
        assert config.live_reload.enabled is True
        assert test_config.server.port == 8080
        assert test_config.live_reload.enabled is False

    def test__no_overrides__returns_equal_config(self, test_config: Config) -> None:
        assert test_config.with_overrides() == test_config
