"""Local static server for the browser page."""

import logging
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent
STATIC_FILES = ("index.html", "story.js", "style.css")


class StaticHandler(SimpleHTTPRequestHandler):
    """Serves only the page's own files."""

    def _select_file(self) -> bool:
        name = self.path.split("?", 1)[0].lstrip("/") or "index.html"
        if name not in STATIC_FILES:
            self.send_error(404, "Not Found")
            return False
        self.path = "/" + name
        return True

    def do_GET(self) -> None:
        if self._select_file():
            super().do_GET()

    def do_HEAD(self) -> None:
        if self._select_file():
            super().do_HEAD()

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"{self.address_string()} - {format % args}")


def create_server(host: str = "127.0.0.1", port: int = 8000) -> ThreadingHTTPServer:
    handler = partial(StaticHandler, directory=str(STATIC_DIR))
    return ThreadingHTTPServer((host, port), handler)


def run_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the page until interrupted."""
    server = create_server(host, port)
    logger.info(f"Story web page available at http://{host}:{server.server_address[1]}")
    try:
        server.serve_forever()
    finally:
        server.server_close()
