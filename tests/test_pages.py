"""Tests for page discovery."""

from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import pytest
from docsmith.config import SiteConfig
from docsmith.core.pages import PageKind, discover_pages, parse_front_matter, read_source

Write = Callable[[Path, str], Path]


class TestDiscoverPages:
    """Tests for discover_pages()."""

    def test__markdown_and_template__become_pages(
        self, site_config: SiteConfig, write: Write
    ) -> None:
        write(site_config.source_dir / "index.md", "# Home")
        write(site_config.source_dir / "about.template", "<p>About</p>")

        discovery = discover_pages(site_config)

        kinds = {p.source_path.name: p.kind for p in discovery.pages}
        assert kinds == {"index.md": PageKind.MARKDOWN, "about.template": PageKind.TEMPLATE}
        assert discovery.failures == []

    def test__nested_page__mirrors_directory_structure(
        self, site_config: SiteConfig, write: Write
    ) -> None:
        write(site_config.source_dir / "guide" / "setup.md", "# Setup")

        [page] = discover_pages(site_config).pages

        assert page.output_path == site_config.output_dir / "guide" / "setup.html"
        assert page.url == "/guide/setup.html"

    def test__flatten__drops_directories(self, site_config: SiteConfig, write: Write) -> None:
        write(site_config.source_dir / "guide" / "setup.md", "# Setup")
        site = replace(site_config, flatten=True)

        [page] = discover_pages(site).pages

        assert page.output_path == site.output_dir / "setup.html"

    def test__layouts_and_partials__are_not_pages(
        self, site_config: SiteConfig, write: Write
    ) -> None:
        write(site_config.layouts_dir / "main.template", "{{ body }}")
        write(site_config.partials_dir / "nav.template", "<nav></nav>")
        write(site_config.source_dir / "index.md", "# Home")

        pages = discover_pages(site_config).pages

        assert [p.source_path.name for p in pages] == ["index.md"]

    def test__assets_and_hidden_files__are_not_pages(
        self, site_config: SiteConfig, write: Write
    ) -> None:
        write(site_config.source_dir / "style.css", "body {}")
        write(site_config.source_dir / ".draft" / "wip.md", "# WIP")

        assert discover_pages(site_config).pages == []

    def test__colliding_output_paths__second_page_fails(
        self, site_config: SiteConfig, write: Write
    ) -> None:
        write(site_config.source_dir / "index.md", "# Markdown")
        write(site_config.source_dir / "index.template", "<p>Template</p>")

        discovery = discover_pages(site_config)

        assert [p.source_path.name for p in discovery.pages] == ["index.md"]
        assert len(discovery.failures) == 1
        assert discovery.failures[0].path.name == "index.template"
        assert "already produced" in discovery.failures[0].message

    def test__missing_source_dir__finds_nothing(self, tmp_path: Path) -> None:
        site = SiteConfig(source_dir=tmp_path / "nope", output_dir=tmp_path / "dist")

        assert discover_pages(site).pages == []


class TestReadSource:
    """Tests for front matter parsing."""

    def test__front_matter__declares_layout(self, tmp_path: Path, write: Write) -> None:
        path = write(tmp_path / "page.md", "---\nlayout: main\ntitle: Hi\n---\n# Body\n")

        source = read_source(path)

        assert source.layout == "main"
        assert source.metadata["title"] == "Hi"
        assert source.body.strip() == "# Body"

    def test__no_front_matter__has_no_layout(self, tmp_path: Path, write: Write) -> None:
        source = read_source(write(tmp_path / "page.md", "# Body\n"))

        assert source.layout is None
        assert source.body.strip() == "# Body"

    def test__layout_none__disables_layout(self, tmp_path: Path, write: Write) -> None:
        assert read_source(write(tmp_path / "a.md", "---\nlayout: none\n---\nx")).layout is False
        assert read_source(write(tmp_path / "b.md", "---\nlayout: false\n---\nx")).layout is False


class TestParseFrontMatter:
    """Tests for parse_front_matter()."""

    def test__empty_block__gives_empty_metadata(self) -> None:
        source = parse_front_matter("---\n---\nbody\n")

        assert source.metadata == {}
        assert source.body == "body"

    def test__horizontal_rule_only__is_body(self) -> None:
        """A lone --- line is markdown, not an unterminated front matter block."""
        source = parse_front_matter("---\nNo closing delimiter here\n")

        assert source.metadata == {}
        assert source.body == "---\nNo closing delimiter here"

    def test__invalid_yaml__raises(self) -> None:
        with pytest.raises(ValueError, match="invalid front matter"):
            parse_front_matter("---\nlayout: [unclosed\n---\nbody")

    def test__non_mapping__raises(self) -> None:
        with pytest.raises(ValueError, match="mapping"):
            parse_front_matter("---\n- a\n- b\n---\nbody")
