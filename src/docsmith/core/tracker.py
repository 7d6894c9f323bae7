"""Incremental rebuild policy.

A page is stale when its output does not exist or its source file is
strictly newer than the output. An output replaced since its last render
is stale too. Full renders bypass the check.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from docsmith.core.pages import Page


class RenderProfile(Enum):
    """Which pages a render pass considers."""

    INCREMENTAL = "incremental"
    FULL = "full"


@dataclass
class BuildManifest:
    """Source path -> output mtime of the last successful render.

    Kept in memory for the lifetime of the orchestrator; never persisted.
    """

    entries: dict[Path, float] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, source_path: Path, output_mtime: float) -> None:
        with self._lock:
            self.entries[source_path] = output_mtime

    def get(self, source_path: Path) -> float | None:
        return self.entries.get(source_path)

    def __len__(self) -> int:
        return len(self.entries)


class IncrementalTracker:
    """Decides which pages a render pass must render."""

    def __init__(self, manifest: BuildManifest | None = None) -> None:
        self._manifest = manifest if manifest is not None else BuildManifest()

    @property
    def manifest(self) -> BuildManifest:
        return self._manifest

    def is_stale(self, page: Page) -> bool:
        """Check whether a page must be rendered again.

        A page is stale when its output is missing or older than its source,
        or when the output changed since this tracker last recorded it. A
        page whose source no longer exists is not stale.
        """
        try:
            output_mtime = page.output_path.stat().st_mtime
        except FileNotFoundError:
            return page.source_path.exists()
        try:
            source_mtime = page.source_path.stat().st_mtime
        except FileNotFoundError:
            return False
        recorded = self._manifest.get(page.source_path)
        if recorded is not None and recorded != output_mtime:
            return True
        return source_mtime > output_mtime

    def select(self, pages: list[Page], profile: RenderProfile) -> list[Page]:
        """Restrict pages to the ones to render under the given profile.

        Pages whose source was removed after discovery are never selected.

        Args:
            pages: All discovered pages
            profile: FULL renders everything, INCREMENTAL only stale pages

        Returns:
            Pages to render, in input order
        """
        if profile is RenderProfile.FULL:
            return [page for page in pages if page.source_path.exists()]
        return [page for page in pages if self.is_stale(page)]

    def record(self, page: Page) -> None:
        """Remember the output mtime of a successful render."""
        self._manifest.record(page.source_path, page.output_path.stat().st_mtime)
