"""Per-client request rate limiting for the directory API.

Backed by Flask-Limiter. Clients are keyed by the address the load
balancer reports for them; /health and /ready are exempted at the route.
"""
import logging
import os
import time

from flask import Flask, current_app, jsonify, request
from flask_limiter import Limiter

from campusdir.shared.utils import hash_pii

logger = logging.getLogger(__name__)


DEFAULT_RATE_LIMIT = "100 per 15 minutes"

# Flask config key holding the limit string (overridable per app/test)
RATE_LIMIT_CONFIG_KEY = "DIRECTORY_RATE_LIMIT"


def client_key() -> str:
    """Identify the calling client.

    Uses the first X-Forwarded-For entry, then X-Real-IP, then the socket
    address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.headers.get("X-Real-IP") or request.remote_addr or "unknown"


def configured_limit() -> str:
    return current_app.config.get(RATE_LIMIT_CONFIG_KEY, DEFAULT_RATE_LIMIT)


def create_limiter(app: Flask) -> Limiter:
    """Attach a limiter applying the configured limit to every route.

    Environment variables:
        RATE_LIMIT: Limit string (default "100 per 15 minutes")
        RATE_LIMIT_STORAGE_URI: Counter storage (default in-process memory)
    """
    app.config.setdefault(RATE_LIMIT_CONFIG_KEY, os.getenv("RATE_LIMIT", DEFAULT_RATE_LIMIT))

    return Limiter(
        client_key,
        app=app,
        default_limits=[configured_limit],
        storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        headers_enabled=True,
    )


def rate_limit_response(limiter: Limiter, error):
    """JSON body for a rejected request.

    Retry-After and X-RateLimit-* headers are added by the limiter.
    """
    current = limiter.current_limit
    retry_after = max(int(current.reset_at - time.time()), 1) if current else None

    logger.warning(
        "RATE_LIMIT_EXCEEDED",
        extra={
            "client_hash": hash_pii(client_key()),
            "limit": str(error.description),
            "path": request.path,
        }
    )
    return jsonify({
        "error": "Too many requests. Please try again later.",
        "retry_after": retry_after,
    }), 429
