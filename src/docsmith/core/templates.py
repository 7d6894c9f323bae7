"""Page composition with layouts and partials.

A page body is rendered with Jinja, converted from markdown when the page
is a markdown file, and then wrapped by its layout chain. Each layout
receives the inner HTML as ``body`` and may name a parent layout in its
own front matter.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from jinja2 import (
    BaseLoader,
    Environment,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
)
from markupsafe import Markup

from docsmith.config import SiteConfig
from docsmith.core.helpers import HelperRegistry
from docsmith.core.pages import Page, PageKind, PageSource, read_source
from docsmith.core.transform import ContentTransform
from docsmith.errors import (
    LayoutCycleError,
    LayoutNotFoundError,
    PartialNotFoundError,
    RenderError,
)

logger = logging.getLogger(__name__)

BODY_SLOT = "body"


def _candidates(directory: Path, name: str, extensions: list[str]) -> list[Path]:
    """Files a template name may refer to: the exact name, then name + extension."""
    candidates = [directory / name]
    candidates.extend(directory / f"{name}{ext}" for ext in extensions)
    return candidates


def _find(directory: Path, name: str, extensions: list[str]) -> Path | None:
    for candidate in _candidates(directory, name, extensions):
        if candidate.is_file() and candidate.resolve().is_relative_to(directory.resolve()):
            return candidate
    return None


class PartialLoader(BaseLoader):
    """Resolves ``{% include "name" %}`` against the partials directory."""

    def __init__(self, partials_dir: Path, extensions: list[str]) -> None:
        self._partials_dir = partials_dir
        self._extensions = extensions

    def get_source(
        self,
        environment: Environment,
        template: str,
    ) -> tuple[str, str, Callable[[], bool]]:
        path = _find(self._partials_dir, template, self._extensions)
        if path is None:
            raise TemplateNotFound(template)

        mtime = path.stat().st_mtime
        source = read_source(path).body

        def uptodate() -> bool:
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return source, str(path), uptodate

    def list_templates(self) -> list[str]:
        if not self._partials_dir.is_dir():
            return []
        return sorted(p.stem for p in self._partials_dir.iterdir() if p.is_file())


@dataclass
class Layout:
    """A named template wrapping rendered page content."""

    name: str
    path: Path
    source: PageSource

    @property
    def parent(self) -> str | None:
        declared = self.source.layout
        return declared if isinstance(declared, str) else None


class TemplateRenderer:
    """Renders pages to final HTML.

    The helper registry must be frozen before it is handed over; helpers are
    exposed to every template as globals.
    """

    def __init__(
        self,
        site: SiteConfig,
        helpers: HelperRegistry,
        transform: ContentTransform,
    ) -> None:
        if not helpers.frozen:
            raise ValueError("Helper registry must be frozen before rendering")

        self._site = site
        self._transform = transform
        self._layout_extensions = [*site.template_extensions, ".html"]
        self._env = Environment(
            loader=PartialLoader(site.partials_dir, self._layout_extensions),
            autoescape=True,
            keep_trailing_newline=True,
            auto_reload=True,
        )
        self._env.globals.update(helpers.as_globals())

    @property
    def environment(self) -> Environment:
        return self._env

    def load_layout(self, name: str, page_path: Path) -> Layout:
        """Load a layout by bare name or file name.

        Raises:
            LayoutNotFoundError: If no matching file exists in the layouts directory
        """
        path = _find(self._site.layouts_dir, name, self._layout_extensions)
        if path is None:
            raise LayoutNotFoundError(page_path, f"layout not found: {name}")
        return Layout(name=name, path=path, source=read_source(path))

    def layout_chain(self, page_path: Path, declared: str | None | bool) -> list[Layout]:
        """Resolve the layouts wrapping a page, innermost first.

        Args:
            page_path: Source path of the page (for error reporting)
            declared: Layout named by the page's front matter

        Returns:
            Layouts in wrapping order; empty if the page uses no layout

        Raises:
            LayoutNotFoundError: If a layout in the chain does not exist
            LayoutCycleError: If the chain revisits a layout
        """
        if declared is False:
            return []
        name = declared if isinstance(declared, str) else self._site.default_layout

        chain: list[Layout] = []
        seen: set[Path] = set()
        while name:
            layout = self.load_layout(name, page_path)
            resolved = layout.path.resolve()
            if resolved in seen:
                names = " -> ".join([*(item.name for item in chain), name])
                raise LayoutCycleError(page_path, f"layout cycle: {names}")
            seen.add(resolved)
            chain.append(layout)
            name = layout.parent
        return chain

    def render_page(self, page: Page) -> str:
        """Render a page with its layout chain and partials.

        Args:
            page: Page to render

        Returns:
            Final HTML

        Raises:
            RenderError: If the page cannot be rendered
        """
        source = read_source(page.source_path)
        context: dict[str, object] = {
            **source.metadata,
            "site": self._site.data,
            "page": {
                "path": page.relative_path.as_posix(),
                "url": page.url,
                "title": source.metadata.get("title", page.source_path.stem),
            },
        }

        try:
            html = self._render_string(source.body, context)
            if page.kind is PageKind.MARKDOWN:
                html = self._transform.render(html)

            for layout in self.layout_chain(page.source_path, source.layout):
                layout_context = {
                    **{k: v for k, v in layout.source.metadata.items() if k != "layout"},
                    **context,
                    BODY_SLOT: Markup(html),
                }
                html = self._render_string(layout.source.body, layout_context)
        except TemplateNotFound as e:
            raise PartialNotFoundError(page.source_path, f"partial not found: {e.name}") from e
        except TemplateSyntaxError as e:
            raise RenderError(
                page.source_path,
                f"template syntax error at line {e.lineno}: {e.message}",
            ) from e
        except TemplateError as e:
            raise RenderError(page.source_path, str(e)) from e

        return html

    def _render_string(self, source: str, context: dict[str, object]) -> str:
        return self._env.from_string(source).render(context)
