"""Development server for Folio.

Serves the built site with live reload and sane defaults for local authoring:
- Injects a polling script into HTML responses.
- Answers ``/__folio/build_id`` with the current build id as plain text.
- Rejects directory listings and missing paths with a 404 (serving 404.html when present).
- Watches source folders and hands changes to the Rebuilder.

The browser records the first build id it sees and reloads only when a
later poll returns a different one.

Key classes:
- DevServer: Wires the initial build, Rebuilder, Watcher and HTTP server.
- PreviewServer: Threaded HTTP server over the output directory.
- _PreviewHandler: HTTP request handler that injects the poll script and enforces 404s.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections.abc import Callable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import urlsplit

from .build import BuildOrchestrator, BuildResult
from .config import load_config
from .html_utils import inject_before_body_close
from .rebuilder import DEFAULT_DEBOUNCE, Rebuilder
from .watcher import Watcher

logger = logging.getLogger(__name__)

BUILD_ID_PATH = "/__folio/build_id"
POLL_INTERVAL_MS = 1000

RELOAD_SNIPPET = f"""<script>
(() => {{
  let baseline = null;
  const poll = () => fetch('{BUILD_ID_PATH}', {{cache: 'no-store'}})
    .then((response) => response.text())
    .then((text) => {{
      const id = text.trim();
      if (baseline === null) {{
        baseline = id;
      }} else if (id !== baseline) {{
        location.reload();
      }}
    }})
    .catch(() => {{}});
  poll();
  setInterval(poll, {POLL_INTERVAL_MS});
}})();
</script>"""


def _no_build_id() -> int:
    return 0


class _PreviewHandler(SimpleHTTPRequestHandler):
    """HTTP request handler for the preview server.

    Attributes:
        reload_script: Snippet injected into every HTML response.
        build_id_source: Callable returning the current build id.
    """

    reload_script = RELOAD_SNIPPET
    build_id_source: Callable[[], int] = staticmethod(_no_build_id)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        if urlsplit(self.path).path == BUILD_ID_PATH:
            self._send_build_id()
            return
        super().do_GET()

    def _send_build_id(self) -> None:
        encoded = str(self.build_id_source()).encode("ascii")
        self.send_response(200)
        self.send_header("Content-type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        # Never expose directory listings; treat as missing content.
        return self._serve_404()

    def _send_html(self, page: Path, status: int) -> None:
        content = inject_before_body_close(page.read_text(encoding="utf-8"), self.reload_script)
        encoded = content.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _serve_404(self):
        """Serve 404.html (when present) with the poll script and a 404 status."""
        error_page = Path(self.directory) / "404.html"
        if error_page.is_file():
            try:
                self._send_html(error_page, 404)
            except FileNotFoundError:
                self.send_error(404, "File not found")
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if not path_obj.is_file():
            index_path = path_obj / "index.html"
            if path_obj.is_dir() and index_path.is_file():
                path_obj = index_path
            else:
                return self._serve_404()

        if path_obj.suffix == ".html":
            # A rebuild may prune the page between the check and the read.
            try:
                self._send_html(path_obj, 200)
            except FileNotFoundError:
                return self._serve_404()
            return None
        return super().send_head()


class PreviewServer:
    """Threaded HTTP server over the output directory.

    Attributes:
        directory: Output root being served.
        port: TCP port; 0 picks a free one.
        build_id: Callable returning the current build id.
    """

    def __init__(
        self,
        directory: Path,
        port: int,
        build_id: Callable[[], int],
        host: str = "",
    ):
        self.directory = directory
        self.port = port
        self.build_id = build_id
        self.host = host
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def handler_class(self) -> type[_PreviewHandler]:
        return type(
            "_BoundPreviewHandler",
            (_PreviewHandler,),
            {"build_id_source": staticmethod(self.build_id)},
        )

    @property
    def address(self) -> tuple[str, int]:
        if self._httpd is None:
            return (self.host, self.port)
        host, port = self._httpd.server_address[:2]
        return (str(host), int(port))

    def start(self) -> None:
        handler = functools.partial(self.handler_class(), directory=str(self.directory))
        self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="folio-http", daemon=True
        )
        self._thread.start()
        logger.info("Serving %s at http://localhost:%d", self.directory, self.address[1])

    def stop(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None


class DevServer:
    """Development server with live reload.

    Attributes:
        project_root: Root directory of the project.
        port: Port for the HTTP server.
        orchestrator: Runs every build, with a local base URL.
        rebuilder: Created by ``start()``.
    """

    def __init__(
        self,
        project_root: Path,
        port: int | None = None,
        drafts: bool = False,
        debounce: float = DEFAULT_DEBOUNCE,
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.port = int(port if port is not None else self.config.port)
        self.debounce = debounce
        # Dev server always uses local base_url for absolute asset/page URLs.
        overrides = {"base_url": f"http://localhost:{self.port}"}
        if drafts:
            overrides["drafts"] = True
        self.orchestrator = BuildOrchestrator(project_root, overrides)
        self.rebuilder: Rebuilder | None = None
        self.watcher: Watcher | None = None
        self.http: PreviewServer | None = None

    def start(self) -> BuildResult:
        """Run the initial build and start the background services.

        Raises:
            ConfigurationError: If the initial build cannot start.
        """
        initial = self.orchestrator.build()
        self.rebuilder = Rebuilder(
            self.orchestrator.build, self.debounce, initial_cache=initial.content_cache
        )
        self.rebuilder.start()
        self.watcher = Watcher(self.config, self.rebuilder.trigger)
        self.watcher.start()
        self.http = PreviewServer(initial.output_dir, self.port, lambda: self.rebuilder.build_id)
        self.http.start()
        return initial

    def serve_forever(self) -> None:  # pragma: no cover - integration path
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def stop(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None
        if self.rebuilder is not None:
            self.rebuilder.stop()
        if self.http is not None:
            self.http.stop()
            self.http = None
