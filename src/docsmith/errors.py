"""Error taxonomy for the build pipeline.

Acquisition errors abort a build pass. Render errors are scoped to a single
page and are collected by the orchestrator instead of propagating.
"""

from dataclasses import dataclass
from pathlib import Path


class DocsmithError(Exception):
    """Base class for all docsmith errors."""


class AcquisitionError(DocsmithError):
    """External content could not be fetched."""


class RenderError(DocsmithError):
    """A single page could not be rendered."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class LayoutNotFoundError(RenderError):
    """A page or layout references a layout that does not exist."""


class LayoutCycleError(RenderError):
    """A layout chain refers back to one of its own members."""


class PartialNotFoundError(RenderError):
    """A template includes a partial that does not exist."""


class UnsafeOutputDirError(DocsmithError):
    """The output directory contains source files that cleaning would destroy."""


class DuplicateHelperError(DocsmithError):
    """A helper name was registered twice."""


@dataclass(frozen=True)
class Failure:
    """A non-fatal failure recorded during a build pass."""

    path: Path
    stage: str
    message: str


class BuildFailedError(DocsmithError):
    """A strict build finished with one or more failures."""

    def __init__(self, failures: list[Failure]) -> None:
        super().__init__(f"Build failed with {len(failures)} error(s)")
        self.failures = failures
