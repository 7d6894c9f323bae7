"""Fetching external documentation into the source tree.

The external repository is shallow-cloned into a scratch directory and its
documentation subtree copied over the local source tree. Acquired markdown
is then normalized with a fixed list of literal substitutions.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from docsmith.config import AcquireConfig, SiteConfig, Substitution
from docsmith.errors import AcquisitionError, Failure

logger = logging.getLogger(__name__)


@dataclass
class AcquireOptions:
    """Options for the acquire stage."""

    repo_url: str
    branch: str
    depth: int
    subdir: str
    target_dir: Path

    @classmethod
    def from_config(cls, acquire: AcquireConfig, site: SiteConfig) -> "AcquireOptions":
        return cls(
            repo_url=acquire.repo_url,
            branch=acquire.branch,
            depth=acquire.depth,
            subdir=acquire.subdir,
            target_dir=site.source_dir / acquire.target if acquire.target else site.source_dir,
        )


@dataclass
class SubstituteResult:
    changed: list[Path] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)


class SourceAcquisition:
    """Clones an external repository and merges its docs into the source tree."""

    def __init__(self, options: AcquireOptions) -> None:
        self._options = options

    @property
    def target_dir(self) -> Path:
        return self._options.target_dir

    def fetch(self) -> list[Path]:
        """Clone the repository and copy its documentation subtree.

        Returns:
            Copied files, as paths inside the target directory

        Raises:
            AcquisitionError: If cloning fails or the subtree does not exist
        """
        import git

        options = self._options
        logger.info(f"Cloning {options.repo_url} ({options.branch}, depth {options.depth})")

        with tempfile.TemporaryDirectory(prefix="docsmith-") as scratch:
            clone_dir = Path(scratch) / "repo"
            try:
                git.Repo.clone_from(
                    options.repo_url,
                    clone_dir,
                    branch=options.branch,
                    depth=options.depth,
                )
            except git.CommandError as e:
                raise AcquisitionError(f"Failed to clone {options.repo_url}: {e}") from e

            subtree = clone_dir / options.subdir if options.subdir else clone_dir
            if not subtree.is_dir():
                raise AcquisitionError(
                    f"Directory {options.subdir!r} not found in {options.repo_url}",
                )

            copied = [
                options.target_dir / path.relative_to(subtree)
                for path in subtree.rglob("*")
                if path.is_file() and ".git" not in path.relative_to(subtree).parts
            ]
            try:
                shutil.copytree(
                    subtree,
                    options.target_dir,
                    dirs_exist_ok=True,
                    ignore=shutil.ignore_patterns(".git"),
                )
            except OSError as e:
                raise AcquisitionError(f"Failed to copy {subtree}: {e}") from e

        logger.info(f"Acquired {len(copied)} files into {options.target_dir}")
        return copied


def apply_substitutions(
    paths: list[Path],
    substitutions: list[Substitution],
    extensions: list[str],
) -> SubstituteResult:
    """Apply literal find/replace pairs to every markdown file in ``paths``.

    Every occurrence is replaced, in list order. Files without a match are
    left untouched; unreadable files are recorded as failures.

    Args:
        paths: Candidate files
        substitutions: Replacements to apply
        extensions: Markdown file extensions to consider

    Returns:
        SubstituteResult with changed files and failures
    """
    result = SubstituteResult()
    if not substitutions:
        return result

    for path in paths:
        if path.suffix.lower() not in extensions:
            continue
        try:
            original = path.read_text(encoding="utf-8")
            text = original
            for substitution in substitutions:
                text = text.replace(substitution.find, substitution.replace)
            if text != original:
                path.write_text(text, encoding="utf-8")
                result.changed.append(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to apply substitutions to {path}: {e}")
            result.failures.append(Failure(path=path, stage="substitute", message=str(e)))

    logger.debug(f"Substitutions changed {len(result.changed)} files")
    return result
