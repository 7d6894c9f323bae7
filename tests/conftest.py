"""Shared test fixtures."""

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from docsmith.config import (
    Config,
    HelpersConfig,
    LiveReloadConfig,
    RenderConfig,
    ServerConfig,
    SiteConfig,
)

# GitPython refuses to import without a git executable unless told otherwise
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")


@pytest.fixture
def site_config(tmp_path: Path) -> SiteConfig:
    """Create a site configuration with source, layouts and partials under tmp_path."""
    source_dir = tmp_path / "src"
    (source_dir / "layouts").mkdir(parents=True, exist_ok=True)
    (source_dir / "partials").mkdir(exist_ok=True)

    return SiteConfig(
        source_dir=source_dir,
        output_dir=tmp_path / "dist",
        layouts_dir=source_dir / "layouts",
        partials_dir=source_dir / "partials",
    )


@pytest.fixture
def test_config(site_config: SiteConfig) -> Config:
    """Create a test configuration around site_config with live reload off."""
    return Config(
        site=site_config,
        server=ServerConfig(),
        acquire=None,
        render=RenderConfig(),
        helpers=HelpersConfig(),
        live_reload=LiveReloadConfig(enabled=False),
    )


@pytest.fixture
def write() -> Callable[[Path, str], Path]:
    """Write a text file, creating parent directories."""

    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
