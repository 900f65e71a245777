"""
HTTP Microservice
=================
Flask-based HTTP API for the package parser.

Endpoints:
    POST   /api/parse    → Parse an uploaded package (or a file_path) and
                           return the question set as JSON
    GET    /api/health   → Health check
    GET    /api/info     → Parser version info
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .engine import ParserConfig, ParserEngine
from .exceptions import PackageError
from .storage import contents_to_json

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    app.config.setdefault("MAX_CONTENT_LENGTH", 500 * 1024 * 1024)  # 500MB
    app.config.setdefault("PARSER_WORKERS", 1)
    app.config.setdefault("LOG_LEVEL", "INFO")

    return app


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUE_VALUES


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "siq-parser",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Parser version and capability info."""
    return jsonify({
        "version": __version__,
        "capabilities": [
            "modern_params_schema",
            "legacy_scenario_schema",
            "media_resolution",
            "special_question_types",
            "select_questions",
        ],
        "supported_formats": ["siq"],
    })


# ─── Parse Endpoint ──────────────────────────────────────────────────────────


@app.route("/api/parse", methods=["POST"])
def parse_package_endpoint():
    """
    Parse a package synchronously and return the result.

    Accepts either:
        - A file upload (multipart/form-data, field "file")
        - A JSON body with file_path pointing to an existing file

    Optional parameter include_media embeds media as data URLs.
    """
    if "file" in request.files:
        file = request.files["file"]
        if not file.filename:
            return jsonify({"error": "No file selected"}), 400
        data = file.read()
        params = request.form
        source = file.filename
    elif request.is_json:
        params = request.get_json(silent=True) or {}
        if not isinstance(params, dict):
            return jsonify({"error": "JSON body must be an object"}), 400
        package_path = params.get("file_path")
        if not package_path or not os.path.isfile(package_path):
            return jsonify({"error": f"File not found: {package_path}"}), 404
        data = Path(package_path).read_bytes()
        source = package_path
    else:
        return jsonify({
            "error": "Provide a file upload or JSON with file_path"
        }), 400

    config = ParserConfig(
        max_workers=int(app.config.get("PARSER_WORKERS", 1)),
        stable_ids=not _flag(params.get("random_ids")),
        log_level=app.config.get("LOG_LEVEL", "INFO"),
    )

    try:
        contents = ParserEngine(config).parse(data)
    except PackageError as e:
        logger.warning(f"Rejected package {source}: {e}")
        return jsonify({"error": str(e)}), 400

    return jsonify(
        contents_to_json(contents, include_media=_flag(params.get("include_media")))
    ), 200


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
