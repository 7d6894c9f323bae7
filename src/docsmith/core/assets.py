"""Asset copying from the source tree to the output tree."""

import filecmp
import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from docsmith.config import SiteConfig
from docsmith.core.pages import iter_source_files, page_kind
from docsmith.errors import Failure

logger = logging.getLogger(__name__)


@dataclass
class CopyResult:
    """Outcome of an asset copy pass."""

    copied: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)


class AssetPipeline:
    """Copies every non-page file to the mirrored output location.

    Files already present with identical content are left untouched.
    Files already inside the output directory are never copied again.
    """

    def __init__(self, site: SiteConfig) -> None:
        self._site = site

    def is_asset(self, path: Path) -> bool:
        return page_kind(path, self._site) is None

    def output_path(self, source_path: Path) -> Path:
        return self._site.output_dir / source_path.relative_to(self._site.source_dir)

    def copy_all(self) -> CopyResult:
        """Copy every asset in the source tree."""
        return self.copy(iter_source_files(self._site))

    def copy(self, paths: Iterable[Path]) -> CopyResult:
        """Copy the given source files, skipping anything that is not an asset.

        A failure on one file is recorded and does not stop the others.
        """
        result = CopyResult()
        for source_path in paths:
            if not self.is_asset(source_path):
                continue
            if source_path.resolve().is_relative_to(self._site.output_dir.resolve()):
                logger.debug(f"Skipping generated file {source_path}")
                continue
            destination = self.output_path(source_path)
            try:
                if destination.exists() and filecmp.cmp(source_path, destination, shallow=False):
                    result.unchanged.append(source_path)
                    continue
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source_path, destination)
            except OSError as e:
                logger.warning(f"Failed to copy {source_path}: {e}")
                result.failures.append(Failure(path=source_path, stage="copy", message=str(e)))
                continue
            logger.debug(f"Copied {source_path} -> {destination}")
            result.copied.append(source_path)
        return result
