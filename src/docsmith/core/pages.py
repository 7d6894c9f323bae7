"""Page discovery.

Pages are recomputed from the source tree on every build pass: each
template or markdown file outside the layouts, partials and stylesheet
directories becomes a ``Page`` with a computed output path.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from docsmith.config import SiteConfig
from docsmith.errors import Failure

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = ".html"

_FRONT_MATTER_RE = re.compile(
    r"---[ \t]*\n(.*?)^---[ \t]*(?:\n|\Z)(.*)",
    re.DOTALL | re.MULTILINE,
)


class PageKind(Enum):
    TEMPLATE = "template"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class Page:
    """A renderable source file."""

    source_path: Path
    output_path: Path
    relative_path: Path
    kind: PageKind
    url: str


@dataclass
class PageSource:
    """Front matter and body of a page or layout file."""

    metadata: dict[str, object]
    body: str

    @property
    def layout(self) -> str | None | bool:
        """Declared layout: a name, ``False`` to disable, ``None`` if absent."""
        value = self.metadata.get("layout")
        if value is None:
            return None
        if value is False or (isinstance(value, str) and value.lower() in ("none", "false", "")):
            return False
        return str(value)


def parse_front_matter(text: str) -> PageSource:
    """Split a leading ``---`` delimited YAML block from the body.

    Surrounding whitespace is stripped from the body. Text without a front
    matter block is all body.

    Raises:
        ValueError: If the front matter is not a YAML mapping
    """
    text = text.lstrip("\ufeff").strip()
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return PageSource(metadata={}, body=text)

    try:
        metadata = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ValueError(f"invalid front matter: {e}") from e
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ValueError("front matter must be a mapping")
    return PageSource(metadata=metadata, body=match.group(2).strip())


def read_source(path: Path) -> PageSource:
    """Read a page, layout or partial file and split off its front matter.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the front matter is invalid
    """
    return parse_front_matter(path.read_text(encoding="utf-8"))


@dataclass
class Discovery:
    """Result of walking the source tree."""

    pages: list[Page] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)


def is_excluded(path: Path, site: SiteConfig) -> bool:
    """Whether a source path belongs to a non-page directory or is hidden."""
    excluded_dirs = [site.layouts_dir, site.partials_dir, site.output_dir]
    if site.stylesheets_dir is not None:
        excluded_dirs.append(site.stylesheets_dir)
    for directory in excluded_dirs:
        if path == directory or path.is_relative_to(directory):
            return True
    try:
        relative = path.relative_to(site.source_dir)
    except ValueError:
        return True
    return any(part.startswith(".") for part in relative.parts)


def page_kind(path: Path, site: SiteConfig) -> PageKind | None:
    suffix = path.suffix.lower()
    if suffix in site.template_extensions:
        return PageKind.TEMPLATE
    if suffix in site.markdown_extensions:
        return PageKind.MARKDOWN
    return None


def output_path_for(relative: Path, site: SiteConfig) -> Path:
    """Compute the output file for a page source path relative to the source root."""
    target = Path(relative.name) if site.flatten else relative
    return site.output_dir / target.with_suffix(OUTPUT_SUFFIX)


def iter_source_files(site: SiteConfig) -> Iterator[Path]:
    """Yield every non-excluded file under the source root in sorted order."""
    if not site.source_dir.exists():
        return
    for path in sorted(site.source_dir.rglob("*")):
        if path.is_file() and not is_excluded(path, site):
            yield path


def discover_pages(site: SiteConfig) -> Discovery:
    """Find all pages in the source tree.

    A page whose output path is already claimed by an earlier page (in
    sorted source order) is recorded as a failure and left out.

    Args:
        site: Site configuration

    Returns:
        Discovery with the pages to render and any collisions
    """
    discovery = Discovery()
    claimed: dict[Path, Path] = {}

    for path in iter_source_files(site):
        kind = page_kind(path, site)
        if kind is None:
            continue

        relative = path.relative_to(site.source_dir)
        output_path = output_path_for(relative, site)
        owner = claimed.get(output_path)
        if owner is not None:
            message = f"output path {output_path} already produced by {owner}"
            logger.warning(f"Skipping {path}: {message}")
            discovery.failures.append(Failure(path=path, stage="render", message=message))
            continue

        claimed[output_path] = path
        discovery.pages.append(
            Page(
                source_path=path,
                output_path=output_path,
                relative_path=relative,
                kind=kind,
                url="/" + output_path.relative_to(site.output_dir).as_posix(),
            ),
        )

    logger.debug(f"Discovered {len(discovery.pages)} pages in {site.source_dir}")
    return discovery
