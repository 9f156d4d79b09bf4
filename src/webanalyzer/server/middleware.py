# src/webanalyzer/server/middleware.py
import hmac
import logging
import time

from flask import Flask, current_app, g, request

from webanalyzer.server.metrics import RequestMetrics, UNMATCHED_PATH
from webanalyzer.server.rate_limiter import RateLimiter
from webanalyzer.server.response import error

logger = logging.getLogger(__name__)

AUTH_EXEMPT_ENDPOINTS = {"analyze_router.health"}


def get_client_address() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def _check_basic_auth():
    user = current_app.config.get("BASIC_AUTH_USER") or ""
    password = current_app.config.get("BASIC_AUTH_PASS") or ""
    if not (user and password) or request.endpoint in AUTH_EXEMPT_ENDPOINTS:
        return None
    # CORS preflights never carry credentials.
    if request.method == "OPTIONS":
        return None

    auth = request.authorization
    if (auth is not None
            and hmac.compare_digest(auth.username or "", user)
            and hmac.compare_digest(auth.password or "", password)):
        return None

    response, status = error(401, "unauthorized")
    response.headers["WWW-Authenticate"] = 'Basic realm="webanalyzer"'
    return response, status


def _check_rate_limit():
    limiter: RateLimiter = current_app.config["RATE_LIMITER"]
    if not limiter.allow(get_client_address()):
        return error(429, "too many requests")
    return None


def _record_metrics(status_code: int, duration: float) -> None:
    metrics: RequestMetrics = current_app.config.get("METRICS")
    if metrics is None:
        return
    path = request.url_rule.rule if request.url_rule is not None else UNMATCHED_PATH
    metrics.observe(path, request.method, status_code, duration)


def register_middleware(app: Flask) -> None:
    """Installs the before/after request hooks shared by every route."""

    @app.before_request
    def _before():
        g.request_started = time.perf_counter()
        return _check_basic_auth() or _check_rate_limit()

    @app.after_request
    def _after(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        started = g.get("request_started")
        if started is not None:
            duration = time.perf_counter() - started
            _record_metrics(response.status_code, duration)
            logger.info(
                "%s %s -> %d (%.1f ms, client=%s)",
                request.method, request.path, response.status_code,
                duration * 1000, get_client_address()
            )
        return response
