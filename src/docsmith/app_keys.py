"""Application keys for type-safe app configuration access."""

from pathlib import Path

from aiohttp import web

from docsmith.live.reload import LiveReloadManager

output_dir_key = web.AppKey("output_dir", Path)
live_reload_enabled_key = web.AppKey("live_reload_enabled", bool)
live_reload_manager_key = web.AppKey("live_reload_manager", LiveReloadManager)
