"""WebSocket-based live reload for development mode.

Watches the source tree, runs an incremental rebuild for every debounced
batch of changes and notifies connected clients so they reload the page.
"""

import asyncio
import json
import logging
import weakref
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from aiohttp import WSMsgType, web
from watchfiles import Change, awatch

if TYPE_CHECKING:
    from docsmith.core.build import BuildOrchestrator, BuildResult

logger = logging.getLogger(__name__)

LIVE_RELOAD_PATH = "/ws/live-reload"

LIVE_RELOAD_SCRIPT = f"""<script>
(function () {{
  var scheme = location.protocol === "https:" ? "wss://" : "ws://";
  var socket = new WebSocket(scheme + location.host + "{LIVE_RELOAD_PATH}");
  socket.onmessage = function (event) {{
    if (JSON.parse(event.data).type === "reload") {{
      location.reload();
    }}
  }};
}})();
</script>
"""


class LiveReloadManager:
    """Manages WebSocket connections and file watching for live reload.

    Rebuilds run one at a time in a worker thread; the watcher does not pick
    up the next batch until the current rebuild has finished.
    """

    def __init__(
        self,
        orchestrator: "BuildOrchestrator",
        watch_paths: Iterable[Path],
        *,
        debounce_ms: int = 300,
    ) -> None:
        """Initialize the live reload manager.

        Args:
            orchestrator: Orchestrator used for rebuild passes
            watch_paths: Directories to watch (missing ones are ignored)
            debounce_ms: Quiet period collecting changes into one batch
        """
        self._orchestrator = orchestrator
        self._watch_paths = list(dict.fromkeys(watch_paths))
        self._debounce_ms = debounce_ms
        self._connections: weakref.WeakSet[web.WebSocketResponse] = weakref.WeakSet()
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def start(self) -> None:
        """Start the file watcher."""
        if self._watch_task is not None:
            return
        self._watch_task = asyncio.create_task(self._watch_files())

    async def stop(self) -> None:
        """Stop the file watcher and close all connections."""
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        for ws in list(self._connections):
            await ws.close()

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Handle WebSocket connection for live reload."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self._connections.add(ws)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    break
        finally:
            self._connections.discard(ws)

        return ws

    async def _watch_files(self) -> None:
        """Watch for file changes, rebuild and broadcast reload events."""
        paths = [path for path in self._watch_paths if path.exists()]
        if not paths:
            logger.warning("Live reload: nothing to watch")
            return

        logger.info(f"Watching {', '.join(str(p) for p in paths)}")
        async for changes in awatch(*paths, debounce=self._debounce_ms):
            changed = changed_paths(changes)
            if not changed:
                continue
            await self.process_changes(changed)

    async def process_changes(self, changed: list[Path]) -> "BuildResult | None":
        """Rebuild for one batch of changed files and notify clients.

        Args:
            changed: Changed source files

        Returns:
            The rebuild result, or None if the rebuild could not run
        """
        logger.info(f"{len(changed)} file(s) changed, rebuilding")
        try:
            result = await asyncio.to_thread(self._orchestrator.rebuild, changed)
        except OSError as e:
            logger.error(f"Rebuild failed: {e}")
            return None

        if result.changed_outputs:
            await self.broadcast_reload([str(path) for path in changed])
        return result

    async def broadcast_reload(self, paths: list[str]) -> None:
        """Broadcast reload event to all connected clients."""
        if not self._connections:
            return

        message = json.dumps({"type": "reload", "paths": paths})

        for ws in list(self._connections):
            if ws.closed:
                continue
            try:
                await ws.send_str(message)
            except ConnectionResetError:
                # Client disconnected mid-send, will be cleaned up by WeakSet
                pass


def changed_paths(changes: Iterable[tuple[Change, str]]) -> list[Path]:
    """Paths added or modified in a batch of watch events, deletions dropped."""
    seen: dict[Path, None] = {}
    for change_type, path_str in changes:
        if change_type == Change.deleted:
            continue
        seen[Path(path_str)] = None
    return sorted(seen)


def inject_live_reload(html: str) -> str:
    """Insert the live reload client before ``</body>``, or append it."""
    index = html.lower().rfind("</body>")
    if index == -1:
        return html + LIVE_RELOAD_SCRIPT
    return html[:index] + LIVE_RELOAD_SCRIPT + html[index:]


def create_live_reload_routes(manager: LiveReloadManager) -> list[web.RouteDef]:
    """Create routes for live reload WebSocket."""
    return [web.get(LIVE_RELOAD_PATH, manager.handle_websocket)]
