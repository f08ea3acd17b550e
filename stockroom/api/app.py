"""
JSON REST API over the stockroom services.

Run with ``stockroom-api`` (or ``python -m stockroom.api.app``).
"""

from __future__ import annotations

import argparse
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from stockroom.api import components, dashboard, production, products, sales
from stockroom.api.common import close_db
from stockroom.config import Settings, load_settings
from stockroom.db import connect, ensure_schema
from stockroom.errors import InsufficientStockError, NotFoundError, ValidationError
from stockroom.logger import configure_logging, get_logger

logger = get_logger("stockroom.api")


def create_app(settings: Settings | None = None, *, database: str | None = None) -> Flask:
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config["DATABASE"] = str(database or settings.db_path)
    app.config["SETTINGS"] = settings
    app.json.sort_keys = False

    conn = connect(app.config["DATABASE"])
    try:
        ensure_schema(conn)
    finally:
        conn.close()

    app.teardown_appcontext(close_db)

    for bp in (products.bp, sales.bp, production.bp, dashboard.bp, components.bp):
        app.register_blueprint(bp)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(ValidationError)
    @app.errorhandler(InsufficientStockError)
    def rejected(e):
        logger.warning("Rejected request: %s", e)
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def unexpected(e):
        logger.exception("Unhandled API error")
        return jsonify({"error": "Internal server error"}), 500

    logger.info("API ready (database=%s)", app.config["DATABASE"])
    return app


def parse_arguments():
    parser = argparse.ArgumentParser(description="Stockroom REST API")
    parser.add_argument("--host", default=None, help="Bind address (default: STOCKROOM_API_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: STOCKROOM_API_PORT or 3001)")
    parser.add_argument("--data-dir", default=None, help="Directory holding stockroom.db")
    return parser.parse_args()


def main() -> None:
    args = parse_arguments()
    settings = load_settings(args.data_dir)
    configure_logging(settings.log_level, json_format=os.getenv("STOCKROOM_LOG_JSON", "").lower() in ("1", "true"))

    app = create_app(settings)
    host = args.host or settings.api_host
    port = args.port or settings.api_port
    logger.info("Serving on %s:%s (clients use %s)", host, port, settings.api_base_url)
    app.run(host=host, port=port)


if __name__ == "__main__":
    main()
