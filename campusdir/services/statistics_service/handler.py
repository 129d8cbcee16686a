"""Statistics Service HTTP Handler - dashboard aggregation API.

Only signed-in users who have registered their own profile (or admins)
may see the dashboard. Each request loads one snapshot of all profiles
and aggregates it; nothing is cached between requests.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /statistics - Aggregated dashboard data
"""
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from campusdir.shared.database import ConnectionManager, DatabaseConfig, RepositoryError
from campusdir.shared.utils import configure_pii_salt, hash_pii
from campusdir.services.directory_service.access_policy import (
    AccessDenied,
    AccessPolicy,
    AuthenticationRequired,
)
from campusdir.services.directory_service.student_repository import StudentRepository
from .aggregation import AggregationEngine
from .config import StatisticsConfig

logger = logging.getLogger(__name__)

app = Flask(__name__)

PRINCIPAL_HEADER = "X-User-Email"


class ProfileRequired(AccessDenied):
    """Signed-in user has not registered a profile yet."""
    pass


class StatisticsHandler:
    """Handler for the statistics dashboard."""

    def __init__(
        self,
        repository: StudentRepository,
        config: Optional[StatisticsConfig] = None,
        engine: Optional[AggregationEngine] = None,
        policy: Optional[AccessPolicy] = None,
    ):
        """Initialize handler with dependencies.

        Args:
            repository: Source of record snapshots
            config: Statistics configuration
            engine: Aggregation engine (injected for testing)
            policy: Access policy used for the admin check
        """
        self.repository = repository
        self.config = config or StatisticsConfig()
        self.engine = engine or AggregationEngine(self.config)
        self.policy = policy or AccessPolicy()

        logger.info(
            "STATISTICS_HANDLER_INITIALIZED",
            extra={"cohorts": list(self.config.cohort_totals)}
        )

    def get_statistics(self, principal: Optional[str]) -> Dict[str, Any]:
        """Aggregate the dashboard for a signed-in user.

        Args:
            principal: Signed-in user's email

        Returns:
            Aggregation result dictionary with ``dataAvailable``. When the
            snapshot cannot be loaded every section is empty (cohorts show
            zero registrations) and ``dataAvailable`` is False.

        Raises:
            AuthenticationRequired: No principal
            ProfileRequired: Principal has no profile and is not an admin
        """
        principal = self.policy.require_principal(principal)

        try:
            if not self.policy.is_admin(principal):
                if self.repository.find_by_owner_email(principal) is None:
                    logger.info(
                        "STATISTICS_PROFILE_REQUIRED",
                        extra={"principal_hash": hash_pii(principal)}
                    )
                    raise ProfileRequired("Register your profile to view statistics")

            records = self.repository.snapshot()
            available = True
        except RepositoryError as e:
            logger.error(
                "STATISTICS_SNAPSHOT_UNAVAILABLE",
                extra={"error": str(e), "principal_hash": hash_pii(principal)}
            )
            records = []
            available = False

        result = self.engine.aggregate(records).to_dict()
        result["dataAvailable"] = available

        logger.info(
            "STATISTICS_RETRIEVED",
            extra={
                "principal_hash": hash_pii(principal),
                "total_students": result["totalStudents"],
                "data_available": available,
            }
        )
        return result


def create_default_handler() -> StatisticsHandler:
    """Build a handler from environment configuration."""
    configure_pii_salt(os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars"))
    connection_manager = ConnectionManager(DatabaseConfig.from_env())
    return StatisticsHandler(
        repository=StudentRepository(connection_manager),
        config=StatisticsConfig.from_env(),
        policy=AccessPolicy.from_env(),
    )


# Global handler instance
_handler: Optional[StatisticsHandler] = None


def get_handler() -> StatisticsHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = create_default_handler()
    return _handler


def set_handler(handler: StatisticsHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


@app.errorhandler(AuthenticationRequired)
def handle_authentication_required(e):
    return jsonify({"error": "Authentication required"}), 401


@app.errorhandler(AccessDenied)
def handle_access_denied(e):
    return jsonify({"error": str(e)}), 403


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.error("STATISTICS_REQUEST_FAILED", extra={"error": str(e)}, exc_info=True)
    return jsonify({"error": "Failed to compute statistics"}), 500


# Flask routes
@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "service": "statistics-service"})


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check endpoint."""
    db_health = get_handler().repository.connection_manager.health_check()
    if not db_health["healthy"]:
        return jsonify({"status": "not_ready", "service": "statistics-service"}), 503
    return jsonify({"status": "ready", "service": "statistics-service"})


@app.route("/statistics", methods=["GET"])
def statistics():
    """Get aggregated dashboard data for the signed-in user."""
    result = get_handler().get_statistics(request.headers.get(PRINCIPAL_HEADER))
    return jsonify(result)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.getenv("PORT", "8080"))
    app.run(host="0.0.0.0", port=port)
