"""Lightweight HTTP control surface: health, status, manual trigger, config reload."""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple

from core.exceptions import ConfigLoadError, CycleAbortedError

logger = logging.getLogger(__name__)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ControlServer:
    """
    JSON control server bound to one scheduler.

    Requests are served on their own threads, so /health keeps answering while
    a manual /trigger runs a cycle.
    """

    def __init__(self, port: int, scheduler, config_store, health_path: str = "/health", host: str = "0.0.0.0"):
        self._host = host
        self._port = int(port)
        self._health_path = health_path
        self._scheduler = scheduler
        self._config_store = config_store
        self._started_monotonic = time.monotonic()
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> Optional[int]:
        if self._server is None:
            return None
        return self._server.server_port

    def start(self) -> None:
        if self._thread:
            return

        handler_cls = self._build_handler(self)
        self._server = ThreadingHTTPServer((self._host, self._port), handler_cls)
        self._server.daemon_threads = True
        self._thread = threading.Thread(target=self._server.serve_forever, name="ControlServer", daemon=True)
        self._thread.start()
        logger.info("Control server listening on %s:%s", self._host, self._server.server_port)

    def stop(self) -> None:
        if not self._server:
            return
        try:
            self._server.shutdown()
            self._server.server_close()
        except OSError as exc:  # pragma: no cover - best-effort shutdown
            logger.warning("Failed shutting down control server: %s", exc)
        if self._thread:
            self._thread.join(timeout=3)
        self._thread = None
        self._server = None
        logger.info("Control server stopped")

    # Route handlers return (http_status, payload)

    def health(self) -> Tuple[int, Dict[str, Any]]:
        return 200, {
            "status": "healthy",
            "uptime": round(time.monotonic() - self._started_monotonic, 3),
            "scheduler": self._scheduler.snapshot(),
            "timestamp": _iso_now(),
        }

    def status(self) -> Tuple[int, Dict[str, Any]]:
        return 200, {
            "scheduler": self._scheduler.snapshot(),
            "config": self._config_store.redacted_summary(),
            "lastCycle": self._scheduler.last_cycle_summary(),
            "timestamp": _iso_now(),
        }

    def trigger(self) -> Tuple[int, Dict[str, Any]]:
        try:
            results = self._scheduler.trigger_manual()
        except CycleAbortedError as exc:
            logger.error("Manual trigger aborted: %s", exc)
            return 500, {"triggered": False, "error": str(exc), "timestamp": _iso_now()}
        return 200, {
            "triggered": True,
            "results": [r.to_dict() for r in results],
            "timestamp": _iso_now(),
        }

    def reload(self) -> Tuple[int, Dict[str, Any]]:
        try:
            config = self._config_store.reload()
        except ConfigLoadError as exc:
            logger.warning("Config reload rejected: %s", exc)
            return 400, {"reloaded": False, "error": str(exc), "errors": exc.errors}
        return 200, {"reloaded": True, "version": config.version, "timestamp": _iso_now()}

    def route(self, method: str, path: str) -> Tuple[int, Optional[Dict[str, Any]]]:
        path = path.split("?", 1)[0]
        if method == "GET" and path == self._health_path:
            return self.health()
        if method == "GET" and path == "/status":
            return self.status()
        if method == "POST" and path == "/trigger":
            return self.trigger()
        if method == "POST" and path == "/reload":
            return self.reload()
        return 404, None

    @staticmethod
    def _build_handler(server: "ControlServer"):
        control = server

        class ControlHandler(BaseHTTPRequestHandler):
            def _dispatch(self, method: str) -> None:
                status, payload = control.route(method, self.path)
                if payload is None:
                    body = b"Not Found"
                    content_type = "text/plain"
                else:
                    body = json.dumps(payload).encode("utf-8")
                    content_type = "application/json"

                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def do_GET(self):  # type: ignore[override]
                self._dispatch("GET")

            def do_POST(self):  # type: ignore[override]
                length = int(self.headers.get("Content-Length") or 0)
                if length:
                    self.rfile.read(length)
                self._dispatch("POST")

            def log_message(self, format: str, *args: Any) -> None:  # pragma: no cover - suppress noisy logs
                return

        return ControlHandler


__all__ = ["ControlServer"]
