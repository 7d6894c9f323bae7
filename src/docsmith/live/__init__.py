"""Live reload for development mode."""

from docsmith.live.reload import LiveReloadManager

__all__ = ["LiveReloadManager"]
