"""
Web Analyzer - HTTP Server
Flask application exposing the page analysis over a small JSON API.
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask
from flask_compress import Compress
from flask_cors import CORS

from analyzer.model import AnalyzerSettings
from analyzer.services.generate_default_user_agent_service import generate_default_user_agent
from webanalyzer.core.managers.config_manager import config_manager
from webanalyzer.server.metrics import RequestMetrics
from webanalyzer.server.middleware import register_middleware
from webanalyzer.server.rate_limiter import RateLimiter
from webanalyzer.server.response import error
from webanalyzer.server.routers.analyze_router import analyze_router

logger = logging.getLogger(__name__)

API_PREFIX = "/webanalyzer/api/v1"


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Application factory. `config` defaults to the loaded settings.json.
    """
    config = config if config is not None else config_manager.get_all()
    server_config = config.get("server", {})

    flask_app = Flask(__name__)

    # 1. Core settings shared by every request
    flask_app.config['ANALYZER_SETTINGS'] = AnalyzerSettings.from_config(config.get("analyzer"))
    flask_app.config['USER_AGENT'] = generate_default_user_agent(
        config.get("user_agent", {}).get("chrome_version")
    )

    # 2. Per-process components, owned by this app instance
    flask_app.config['RATE_LIMITER'] = RateLimiter(
        rate=server_config.get("rate_limit_per_second", 1.0),
        burst=server_config.get("rate_limit_burst", 3),
        idle_ttl=server_config.get("rate_limit_idle_ttl", 300),
    )
    flask_app.config['BASIC_AUTH_USER'] = server_config.get("basic_auth_user", "")
    flask_app.config['BASIC_AUTH_PASS'] = server_config.get("basic_auth_pass", "")
    flask_app.config['METRICS'] = RequestMetrics()

    # 3. Middleware and routes
    register_middleware(flask_app)
    CORS(
        flask_app,
        resources={f"{API_PREFIX}/*": {"origins": server_config.get("cors_allowed_origins", "*")}},
        methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        send_wildcard=True,
    )
    flask_app.config['COMPRESS_ALGORITHM'] = "gzip"
    flask_app.config['COMPRESS_MIN_SIZE'] = server_config.get("compress_min_size", 500)
    Compress(flask_app)
    flask_app.register_blueprint(analyze_router, url_prefix=API_PREFIX)

    @flask_app.errorhandler(404)
    def _not_found(_):
        return error(404, "not found")

    @flask_app.errorhandler(405)
    def _method_not_allowed(_):
        return error(405, "method not allowed")

    @flask_app.errorhandler(500)
    def _internal_error(e):
        logger.error("Unhandled server error: %s", e, exc_info=True)
        return error(500, "internal server error")

    if not (flask_app.config['BASIC_AUTH_USER'] and flask_app.config['BASIC_AUTH_PASS']):
        logger.warning("Basic auth is not configured; the API is open.")

    return flask_app
