"""Tests for incremental rebuild decisions."""

import os
from pathlib import Path

from docsmith.core.pages import Page, PageKind
from docsmith.core.tracker import BuildManifest, IncrementalTracker, RenderProfile


def _page(tmp_path: Path, name: str = "index.md") -> Page:
    source = tmp_path / "src" / name
    source.parent.mkdir(parents=True, exist_ok=True)
    source.write_text("# Page")
    return Page(
        source_path=source,
        output_path=tmp_path / "dist" / Path(name).with_suffix(".html"),
        relative_path=Path(name),
        kind=PageKind.MARKDOWN,
        url="/" + Path(name).with_suffix(".html").as_posix(),
    )


def _write_output(page: Page, mtime: float) -> None:
    page.output_path.parent.mkdir(parents=True, exist_ok=True)
    page.output_path.write_text("<h1>Page</h1>")
    os.utime(page.output_path, (mtime, mtime))


def _set_source_mtime(page: Page, mtime: float) -> None:
    os.utime(page.source_path, (mtime, mtime))


class TestIsStale:
    """Tests for IncrementalTracker.is_stale()."""

    def test__missing_output__is_stale(self, tmp_path: Path) -> None:
        """A page that was never rendered must be rendered."""
        assert IncrementalTracker().is_stale(_page(tmp_path))

    def test__older_source__is_fresh(self, tmp_path: Path) -> None:
        page = _page(tmp_path)
        _set_source_mtime(page, 1_000_000)
        _write_output(page, 2_000_000)

        assert not IncrementalTracker().is_stale(page)

    def test__equal_mtimes__is_fresh(self, tmp_path: Path) -> None:
        """Only a strictly newer source invalidates the output."""
        page = _page(tmp_path)
        _set_source_mtime(page, 1_500_000)
        _write_output(page, 1_500_000)

        assert not IncrementalTracker().is_stale(page)

    def test__newer_source__is_stale(self, tmp_path: Path) -> None:
        page = _page(tmp_path)
        _write_output(page, 1_000_000)
        _set_source_mtime(page, 2_000_000)

        assert IncrementalTracker().is_stale(page)


class TestSelect:
    """Tests for IncrementalTracker.select()."""

    def test__incremental__keeps_stale_pages_in_order(self, tmp_path: Path) -> None:
        fresh = _page(tmp_path, "a.md")
        stale = _page(tmp_path, "b.md")
        missing = _page(tmp_path, "c.md")
        _set_source_mtime(fresh, 1_000_000)
        _write_output(fresh, 2_000_000)
        _write_output(stale, 1_000_000)
        _set_source_mtime(stale, 2_000_000)

        selected = IncrementalTracker().select([fresh, stale, missing], RenderProfile.INCREMENTAL)

        assert selected == [stale, missing]

    def test__full__selects_every_page(self, tmp_path: Path) -> None:
        """Full renders ignore timestamps."""
        page = _page(tmp_path)
        _set_source_mtime(page, 1_000_000)
        _write_output(page, 2_000_000)

        assert IncrementalTracker().select([page], RenderProfile.FULL) == [page]


class TestRecord:
    """Tests for the build manifest."""

    def test__record__stores_output_mtime(self, tmp_path: Path) -> None:
        page = _page(tmp_path)
        _write_output(page, 1_234_567)
        manifest = BuildManifest()

        IncrementalTracker(manifest).record(page)

        assert len(manifest) == 1
        assert manifest.get(page.source_path) == 1_234_567

    def test__unknown_page__has_no_entry(self, tmp_path: Path) -> None:
        assert BuildManifest().get(tmp_path / "nope.md") is None

    def test__output_replaced_after_render__is_stale(self, tmp_path: Path) -> None:
        """An output touched outside the build is rendered again."""
        page = _page(tmp_path)
        _set_source_mtime(page, 1_000_000)
        _write_output(page, 2_000_000)
        tracker = IncrementalTracker()
        tracker.record(page)

        _write_output(page, 3_000_000)

        assert tracker.is_stale(page)

    def test__output_unchanged_since_render__is_fresh(self, tmp_path: Path) -> None:
        page = _page(tmp_path)
        _set_source_mtime(page, 1_000_000)
        _write_output(page, 2_000_000)
        tracker = IncrementalTracker()
        tracker.record(page)

        assert not tracker.is_stale(page)


class TestRemovedSource:
    """Tests for pages whose source disappeared after discovery."""

    def test__incremental__skips_removed_source(self, tmp_path: Path) -> None:
        kept = _page(tmp_path, "kept.md")
        removed = _page(tmp_path, "removed.md")
        removed.source_path.unlink()

        selected = IncrementalTracker().select([kept, removed], RenderProfile.INCREMENTAL)

        assert selected == [kept]

    def test__incremental__skips_removed_source_with_output(self, tmp_path: Path) -> None:
        page = _page(tmp_path)
        _write_output(page, 1_000_000)
        page.source_path.unlink()

        assert not IncrementalTracker().is_stale(page)

    def test__full__skips_removed_source(self, tmp_path: Path) -> None:
        kept = _page(tmp_path, "kept.md")
        removed = _page(tmp_path, "removed.md")
        removed.source_path.unlink()

        assert IncrementalTracker().select([kept, removed], RenderProfile.FULL) == [kept]
