"""aiohttp development server for Docsmith.

Serves the output directory as static files and, when live reload is
enabled, watches the source tree and pushes reload events to browsers.
"""

import logging
from pathlib import Path

from aiohttp import web
from markupsafe import escape

from docsmith.app_keys import live_reload_enabled_key, live_reload_manager_key, output_dir_key
from docsmith.config import Config
from docsmith.core.build import BuildOrchestrator
from docsmith.live.reload import LiveReloadManager, create_live_reload_routes, inject_live_reload

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".html"
INDEX_FILE = "index.html"


async def serve_output(request: web.Request) -> web.StreamResponse:
    """Serve a file from the output directory.

    Extension-less paths fall back to ``<path>.html``. Directories serve
    their ``index.html`` or, without one, a generated listing.
    """
    output_dir = request.app[output_dir_key].resolve()
    relative = request.match_info["path"]
    target = (output_dir / relative).resolve()

    if not target.is_relative_to(output_dir):
        raise web.HTTPNotFound()

    if target.is_dir():
        if relative and not relative.endswith("/"):
            raise web.HTTPFound(f"/{relative}/")
        index = target / INDEX_FILE
        if index.is_file():
            return _file_response(request, index)
        return web.Response(
            text=_directory_listing(target, output_dir),
            content_type="text/html",
        )

    if target.is_file():
        return _file_response(request, target)

    if not target.suffix:
        fallback = target.with_name(target.name + DEFAULT_EXTENSION)
        if fallback.is_file():
            return _file_response(request, fallback)

    raise web.HTTPNotFound()


def _file_response(request: web.Request, path: Path) -> web.StreamResponse:
    if path.suffix == DEFAULT_EXTENSION and request.app[live_reload_enabled_key]:
        html = path.read_text(encoding="utf-8")
        return web.Response(text=inject_live_reload(html), content_type="text/html")
    return web.FileResponse(path)


def _directory_listing(directory: Path, output_dir: Path) -> str:
    relative = directory.relative_to(output_dir).as_posix()
    title = "/" if relative == "." else f"/{relative}/"
    items = []
    for entry in sorted(directory.iterdir()):
        if entry.name.startswith("."):
            continue
        name = f"{entry.name}/" if entry.is_dir() else entry.name
        items.append(f'<li><a href="{escape(name)}">{escape(name)}</a></li>')
    return (
        f"<!DOCTYPE html>\n<html><head><title>Index of {escape(title)}</title></head>\n"
        f"<body><h1>Index of {escape(title)}</h1>\n<ul>\n"
        + "\n".join(items)
        + "\n</ul></body></html>\n"
    )


def create_app(
    config: Config,
    *,
    orchestrator: BuildOrchestrator | None = None,
) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        orchestrator: Orchestrator used for rebuilds; live reload is only
            wired up when one is given and live reload is enabled

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    app[output_dir_key] = config.site.output_dir
    app[live_reload_enabled_key] = False

    if config.live_reload.enabled and orchestrator is not None:
        app[live_reload_enabled_key] = True
        site = config.site
        watch_paths = [site.source_dir, site.layouts_dir, site.partials_dir]
        if site.stylesheets_dir is not None:
            watch_paths.append(site.stylesheets_dir)

        manager = LiveReloadManager(
            orchestrator,
            watch_paths,
            debounce_ms=config.live_reload.debounce_ms,
        )
        app[live_reload_manager_key] = manager
        app.router.add_routes(create_live_reload_routes(manager))
        app.on_startup.append(_start_live_reload)
        app.on_cleanup.append(_stop_live_reload)

    # Catch-all must be last so the WebSocket route takes precedence
    app.router.add_get("/{path:.*}", serve_output)

    return app


async def _start_live_reload(app: web.Application) -> None:
    """Start live reload on application startup."""
    await app[live_reload_manager_key].start()


async def _stop_live_reload(app: web.Application) -> None:
    """Stop live reload on application cleanup."""
    await app[live_reload_manager_key].stop()


def run_server(config: Config, orchestrator: BuildOrchestrator | None = None) -> None:
    """Run the server until the process is interrupted.

    Args:
        config: Application configuration
        orchestrator: Orchestrator used for live reload rebuilds
    """
    app = create_app(config, orchestrator=orchestrator)
    logger.info(f"Serving {config.site.output_dir} on http://{config.server.host}:{config.server.port}")
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)
