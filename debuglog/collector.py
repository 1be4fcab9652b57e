"""Minimal receiving endpoint for uploaded debug logs.

Serves ``POST /api/error-logs/add`` with the same contract the uploader
expects, so the logger can be exercised end to end without a real backend.
"""

import logging
import threading

from flask import Flask, jsonify, request

logger = logging.getLogger(__name__)


class CollectedLogs:
    """Thread-safe store of every upload received."""

    def __init__(self):
        self._lock = threading.Lock()
        self._uploads: list[list[str]] = []

    def add(self, entries: list[str]):
        with self._lock:
            self._uploads.append(list(entries))

    @property
    def uploads(self) -> list[list[str]]:
        with self._lock:
            return [list(u) for u in self._uploads]

    @property
    def entries(self) -> list[str]:
        with self._lock:
            return [e for upload in self._uploads for e in upload]


def create_app(fail_with: int | None = None, collected: CollectedLogs | None = None) -> Flask:
    """Flask application factory.

    ``fail_with`` forces every upload to answer with that status code.
    """
    app = Flask(__name__)
    collected = collected or CollectedLogs()
    app.config["collected"] = collected

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "uploads": len(collected.uploads),
            "entries": len(collected.entries),
        })

    @app.route("/api/error-logs/add", methods=["POST"])
    def add_logs():
        if fail_with == 403:
            return jsonify({"error": "authentication required"}), 403
        if fail_with is not None:
            return f"forced failure {fail_with}", fail_with

        body = request.get_json(force=True, silent=True)
        entries = body.get("log") if isinstance(body, dict) else None
        if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            logger.warning("Rejected upload without a 'log' list of strings")
            return jsonify({"success": False})

        collected.add(entries)
        logger.info("Received %d entries", len(entries))
        return jsonify({"success": True})

    return app
