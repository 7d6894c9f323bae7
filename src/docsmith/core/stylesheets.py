"""SCSS compilation into the output CSS directory."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import sass

from docsmith.config import SiteConfig
from docsmith.errors import Failure

logger = logging.getLogger(__name__)


@dataclass
class StylesheetResult:
    compiled: list[Path] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)


def compile_stylesheets(site: SiteConfig, *, compressed: bool = False) -> StylesheetResult:
    """Compile every non-partial ``.scss`` file to ``<output>/<css_dir>``.

    Files starting with an underscore are imports and are not compiled on
    their own. The directory structure below the stylesheet root is kept.

    Args:
        site: Site configuration
        compressed: Emit minified CSS

    Returns:
        StylesheetResult listing compiled sources and failures
    """
    result = StylesheetResult()
    source_root = site.stylesheets_dir
    if source_root is None or not source_root.is_dir():
        return result

    css_root = site.output_dir / site.css_dir
    output_style = "compressed" if compressed else "expanded"

    for source_path in sorted(source_root.rglob("*.scss")):
        if source_path.name.startswith("_"):
            continue
        destination = css_root / source_path.relative_to(source_root).with_suffix(".css")
        try:
            css = sass.compile(
                filename=str(source_path),
                output_style=output_style,
                include_paths=[str(source_root)],
            )
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(css, encoding="utf-8")
        except (sass.CompileError, OSError) as e:
            logger.warning(f"Failed to compile {source_path}: {e}")
            result.failures.append(Failure(path=source_path, stage="stylesheets", message=str(e)))
            continue
        logger.debug(f"Compiled {source_path} -> {destination}")
        result.compiled.append(source_path)

    return result
