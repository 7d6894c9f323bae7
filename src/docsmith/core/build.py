"""Build orchestration.

Runs the build stages strictly in order, each consuming the filesystem
output of its predecessor::

    clean -> acquire -> stylesheets -> copy -> substitute -> render

Two profiles exist. ``develop`` renders incrementally and tolerates
per-page failures; ``production`` wipes the output tree, renders every
page, and fails the build if any page or asset failed.
"""

import logging
import os
import shutil
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from docsmith.config import Config, SiteConfig
from docsmith.core.acquire import AcquireOptions, SourceAcquisition, apply_substitutions
from docsmith.core.assets import AssetPipeline
from docsmith.core.helpers import build_registry
from docsmith.core.pages import Page, discover_pages, is_excluded
from docsmith.core.stylesheets import compile_stylesheets
from docsmith.core.templates import TemplateRenderer
from docsmith.core.tracker import BuildManifest, IncrementalTracker, RenderProfile
from docsmith.core.transform import ContentTransform
from docsmith.errors import BuildFailedError, Failure, RenderError, UnsafeOutputDirError

logger = logging.getLogger(__name__)


class Stage(Enum):
    CLEAN = "clean"
    ACQUIRE = "acquire"
    STYLESHEETS = "stylesheets"
    COPY = "copy"
    SUBSTITUTE = "substitute"
    RENDER = "render"


@dataclass(frozen=True)
class CleanOptions:
    """Options for the clean stage.

    Attributes:
        remove_assets: Remove the whole output tree instead of only HTML files
    """

    remove_assets: bool = False


@dataclass(frozen=True)
class RenderOptions:
    """Options for the render stage.

    Attributes:
        profile: INCREMENTAL renders stale pages only, FULL renders every page
        jobs: Number of worker threads rendering pages
    """

    profile: RenderProfile = RenderProfile.INCREMENTAL
    jobs: int = 1


@dataclass(frozen=True)
class BuildProfile:
    """Named stage sequence with its stage options."""

    name: str
    stages: tuple[Stage, ...]
    clean: CleanOptions
    render_profile: RenderProfile
    strict: bool
    compress_css: bool


DEVELOP = BuildProfile(
    name="develop",
    stages=(
        Stage.CLEAN,
        Stage.ACQUIRE,
        Stage.STYLESHEETS,
        Stage.COPY,
        Stage.SUBSTITUTE,
        Stage.RENDER,
    ),
    clean=CleanOptions(remove_assets=False),
    render_profile=RenderProfile.INCREMENTAL,
    strict=False,
    compress_css=False,
)

PRODUCTION = BuildProfile(
    name="production",
    stages=(Stage.CLEAN, Stage.STYLESHEETS, Stage.COPY, Stage.RENDER),
    clean=CleanOptions(remove_assets=True),
    render_profile=RenderProfile.FULL,
    strict=True,
    compress_css=True,
)


@dataclass
class BuildResult:
    """Outcome of one build pass."""

    profile: str
    rendered: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    copied: list[Path] = field(default_factory=list)
    acquired: list[Path] = field(default_factory=list)
    stylesheets: list[Path] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def changed_outputs(self) -> bool:
        return bool(self.rendered or self.copied or self.stylesheets)


def check_output_dir(site: SiteConfig) -> None:
    """Refuse an output directory that is, or contains, a source directory.

    Raises:
        UnsafeOutputDirError: If cleaning the output would delete sources
    """
    output_dir = site.output_dir.resolve()
    protected = [site.source_dir, site.layouts_dir, site.partials_dir]
    if site.stylesheets_dir is not None:
        protected.append(site.stylesheets_dir)
    for directory in protected:
        if directory.resolve().is_relative_to(output_dir):
            raise UnsafeOutputDirError(
                f"Output directory {site.output_dir} contains source directory {directory}",
            )


def clean_output(output_dir: Path, options: CleanOptions) -> None:
    """Remove generated HTML, or the whole output tree with ``remove_assets``."""
    if not output_dir.exists():
        return
    if options.remove_assets:
        logger.info(f"Removing {output_dir}")
        shutil.rmtree(output_dir)
        return
    removed = 0
    for path in output_dir.rglob("*.html"):
        if path.is_file():
            path.unlink()
            removed += 1
    logger.info(f"Removed {removed} HTML files from {output_dir}")


def _write_atomic(path: Path, content: str) -> None:
    """Write a file so readers never observe it half-written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(content, encoding="utf-8")
    os.replace(tmp_path, path)


class BuildOrchestrator:
    """Runs build passes for one configuration and profile.

    The template machinery (markdown transform, helper registry, renderer)
    is built once and reused across passes; pages are rediscovered on
    every pass.
    """

    def __init__(self, config: Config, profile: BuildProfile = DEVELOP) -> None:
        self._config = config
        self._profile = profile
        site = config.site
        check_output_dir(site)

        self._transform = ContentTransform()
        helpers = build_registry(
            self._transform,
            replace_all=config.helpers.replace_all,
            markdown_class=config.helpers.markdown_class,
        )
        self._renderer = TemplateRenderer(site, helpers, self._transform)
        self._assets = AssetPipeline(site)
        self._tracker = IncrementalTracker()
        self._acquisition = (
            SourceAcquisition(AcquireOptions.from_config(config.acquire, site))
            if config.acquire is not None
            else None
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def profile(self) -> BuildProfile:
        return self._profile

    @property
    def renderer(self) -> TemplateRenderer:
        return self._renderer

    @property
    def manifest(self) -> BuildManifest:
        return self._tracker.manifest

    def build(self) -> BuildResult:
        """Run every stage of the profile once.

        Returns:
            BuildResult describing the pass

        Raises:
            AcquisitionError: If the external source cannot be fetched
            BuildFailedError: If the profile is strict and anything failed
        """
        site = self._config.site
        result = BuildResult(profile=self._profile.name)
        logger.info(f"Starting {self._profile.name} build: {site.source_dir} -> {site.output_dir}")

        for stage in self._profile.stages:
            logger.debug(f"Stage: {stage.value}")
            if stage is Stage.CLEAN:
                clean_output(site.output_dir, self._profile.clean)
            elif stage is Stage.ACQUIRE:
                if self._acquisition is not None:
                    result.acquired = self._acquisition.fetch()
            elif stage is Stage.STYLESHEETS:
                compiled = compile_stylesheets(site, compressed=self._profile.compress_css)
                result.stylesheets.extend(compiled.compiled)
                result.failures.extend(compiled.failures)
            elif stage is Stage.COPY:
                copied = self._assets.copy_all()
                result.copied.extend(copied.copied)
                result.failures.extend(copied.failures)
            elif stage is Stage.SUBSTITUTE:
                if self._config.acquire is not None and result.acquired:
                    substituted = apply_substitutions(
                        result.acquired,
                        self._config.acquire.substitutions,
                        site.markdown_extensions,
                    )
                    result.failures.extend(substituted.failures)
            elif stage is Stage.RENDER:
                self.render(
                    RenderOptions(
                        profile=self._profile.render_profile,
                        jobs=self._config.render.jobs,
                    ),
                    result,
                )

        self._finish(result)
        return result

    def rebuild(self, changed: Iterable[Path]) -> BuildResult:
        """Run an incremental pass for a batch of changed source files.

        Changed assets are copied again. A change to any layout or partial
        makes every page stale; otherwise only pages with newer sources are
        rendered.

        Args:
            changed: Paths reported by the watcher

        Returns:
            BuildResult describing the pass
        """
        site = self._config.site
        changed = list(changed)
        result = BuildResult(profile=self._profile.name)

        templates_changed = any(
            path.is_relative_to(site.layouts_dir) or path.is_relative_to(site.partials_dir)
            for path in changed
        )
        stylesheets_changed = site.stylesheets_dir is not None and any(
            path.is_relative_to(site.stylesheets_dir) for path in changed
        )

        if stylesheets_changed:
            compiled = compile_stylesheets(site, compressed=self._profile.compress_css)
            result.stylesheets.extend(compiled.compiled)
            result.failures.extend(compiled.failures)

        assets = [path for path in changed if path.is_file() and not is_excluded(path, site)]
        copied = self._assets.copy(assets)
        result.copied.extend(copied.copied)
        result.failures.extend(copied.failures)

        profile = RenderProfile.FULL if templates_changed else RenderProfile.INCREMENTAL
        self.render(RenderOptions(profile=profile, jobs=self._config.render.jobs), result)

        self._finish(result)
        return result

    def render(self, options: RenderOptions, result: BuildResult) -> None:
        """Render the pages selected by the tracker into ``result``."""
        discovery = discover_pages(self._config.site)
        result.failures.extend(discovery.failures)

        selected = self._tracker.select(discovery.pages, options.profile)
        selected_paths = {page.source_path for page in selected}
        result.skipped.extend(
            page.source_path for page in discovery.pages if page.source_path not in selected_paths
        )

        if options.jobs > 1 and len(selected) > 1:
            with ThreadPoolExecutor(max_workers=options.jobs) as executor:
                outcomes = list(executor.map(self._render_one, selected))
        else:
            outcomes = [self._render_one(page) for page in selected]

        for page, failure in zip(selected, outcomes):
            if failure is None:
                result.rendered.append(page.source_path)
            else:
                result.failures.append(failure)

        logger.info(
            f"Rendered {len(result.rendered)} pages, skipped {len(result.skipped)} up-to-date",
        )

    def _render_one(self, page: Page) -> Failure | None:
        try:
            html = self._renderer.render_page(page)
            _write_atomic(page.output_path, html)
        except Exception as e:  # noqa: BLE001 - a broken page must not stop the pass
            message = e.message if isinstance(e, RenderError) else str(e)
            logger.warning(f"Failed to render {page.source_path}: {message}")
            return Failure(path=page.source_path, stage="render", message=message)
        self._tracker.record(page)
        logger.debug(f"Rendered {page.source_path} -> {page.output_path}")
        return None

    def _finish(self, result: BuildResult) -> None:
        if result.failures:
            logger.warning(f"{len(result.failures)} failure(s) during {self._profile.name} build")
        if self._profile.strict and self._config.render.strict and result.failures:
            raise BuildFailedError(result.failures)
