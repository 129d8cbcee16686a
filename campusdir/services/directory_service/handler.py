"""Directory Service HTTP Handler - student profile browsing and editing.

The signed-in user's email is asserted by the upstream identity provider in
the ``X-User-Email`` header. Ownership and admin checks go through
AccessPolicy; every request is rate limited per client address.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /students - Search, filter and paginate profiles
- GET /students/<id> - Get one profile
- POST /students - Create a profile
- PATCH /students/<id> - Update a profile (owner or admin)
- DELETE /students/<id> - Delete a profile (owner or admin)
- PATCH /students/<id>/pin - Toggle the pinned flag (owner only)
- POST /students/<id>/favorite - Toggle a favorite for the signed-in user
- GET /favorites - List the signed-in user's favorites
- POST /feedback - Submit a bug report or suggestion
"""
import logging
import math
import os
import uuid
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from campusdir.shared.database import (
    ConnectionManager,
    DatabaseConfig,
    DuplicateError,
    NotFoundError,
    RepositoryError,
)
from campusdir.shared.models import Favorite, Feedback, StudentRecord
from campusdir.shared.utils import configure_pii_salt, hash_pii
from .access_policy import AccessDenied, AccessPolicy, AuthenticationRequired
from .favorite_repository import FavoriteRepository, FeedbackRepository
from .rate_limiter import create_limiter, rate_limit_response
from .student_repository import StudentRepository
from .validation import (
    ValidationError,
    validate_feedback_payload,
    validate_student_payload,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
limiter = create_limiter(app)

PRINCIPAL_HEADER = "X-User-Email"
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

# Fields returned in directory listings
SUMMARY_FIELDS = (
    "id", "studentId", "fullName", "imageUrl", "targetCourse", "circle", "isPinned",
)


def _summary(record: StudentRecord) -> Dict[str, Any]:
    return {key: value for key, value in record.to_dict().items() if key in SUMMARY_FIELDS}


class DirectoryHandler:
    """Handler for student profile endpoints."""

    def __init__(
        self,
        repository: StudentRepository,
        policy: Optional[AccessPolicy] = None,
        favorites: Optional[FavoriteRepository] = None,
        feedback: Optional[FeedbackRepository] = None,
    ):
        """Initialize handler with dependencies.

        Args:
            repository: Student repository
            policy: Access policy (admins, ownership)
            favorites: Favorite repository (defaults to the student
                repository's connection)
            feedback: Feedback repository (same default)
        """
        self.repository = repository
        self.policy = policy or AccessPolicy()
        self.favorites = favorites or FavoriteRepository(repository.connection_manager)
        self.feedback = feedback or FeedbackRepository(repository.connection_manager)

        logger.info(
            "DIRECTORY_HANDLER_INITIALIZED",
            extra={"admin_count": len(self.policy.admin_emails)}
        )

    def list_students(
        self,
        principal: Optional[str],
        query: str = "",
        course: Optional[str] = None,
        circle: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Search profiles and return one page of summaries.

        Args:
            principal: Signed-in user's email
            query: Free-text search
            course: Course code filter
            circle: Circle substring filter
            page: 1-based page number
            limit: Page size (clamped to 1..100)

        Returns:
            Dictionary with students and pagination metadata
        """
        self.policy.require_principal(principal)

        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        records, total = self.repository.search(
            query=query,
            course=course,
            circle=circle,
            limit=limit,
            offset=(page - 1) * limit,
        )

        return {
            "students": [_summary(r) for r in records],
            "pagination": {
                "total": total,
                "pages": math.ceil(total / limit),
                "page": page,
                "limit": limit,
            },
        }

    def get_student(self, principal: Optional[str], record_id: str) -> Dict[str, Any]:
        """Get one profile.

        Raises:
            NotFoundError: No profile with that id
        """
        self.policy.require_principal(principal)
        return self.repository.get(record_id).to_dict()

    def create_student(self, principal: Optional[str], data: Any) -> Dict[str, Any]:
        """Create a profile.

        Non-admin users may create one profile, owned by themselves.
        Admins may create profiles for anyone and set ``ownerEmail``.

        Raises:
            ValidationError: Payload invalid
            AccessDenied: User already owns a profile
            DuplicateError: Student number already registered
        """
        principal = self.policy.require_principal(principal)
        cleaned = validate_student_payload(data)
        is_admin = self.policy.is_admin(principal)

        existing = None if is_admin else self.repository.find_by_owner_email(principal)
        if not self.policy.can_create(principal, existing):
            raise AccessDenied("You already have a profile")

        if self.repository.find_by_student_id(cleaned["studentId"]) is not None:
            raise DuplicateError("Student number already registered")

        owner_email = data.get("ownerEmail") if is_admin else principal
        record = StudentRecord.from_dict({
            **cleaned,
            "id": uuid.uuid4().hex,
            "ownerEmail": owner_email,
        })
        saved = self.repository.save(record)

        logger.info(
            "STUDENT_PROFILE_CREATED",
            extra={
                "record_id": saved.id,
                "principal_hash": hash_pii(principal),
                "by_admin": is_admin,
            }
        )
        return saved.to_dict()

    def update_student(
        self,
        principal: Optional[str],
        record_id: str,
        data: Any,
    ) -> Dict[str, Any]:
        """Apply a partial update to a profile.

        Raises:
            NotFoundError: No profile with that id
            AccessDenied: Principal is neither owner nor admin
            ValidationError: Payload invalid
            DuplicateError: New student number already registered
        """
        principal = self.policy.require_principal(principal)
        record = self.repository.get(record_id)
        self.policy.require_mutate(principal, record)
        cleaned = validate_student_payload(data, partial=True)

        new_student_id = cleaned.get("studentId")
        if new_student_id and new_student_id != record.student_id:
            clash = self.repository.find_by_student_id(new_student_id)
            if clash is not None and clash.id != record.id:
                raise DuplicateError("Student number already registered")

        if self.policy.is_admin(principal) and "ownerEmail" in data:
            cleaned["ownerEmail"] = data["ownerEmail"]

        saved = self.repository.save(record.with_changes(cleaned))

        logger.info(
            "STUDENT_PROFILE_UPDATED",
            extra={
                "record_id": record_id,
                "principal_hash": hash_pii(principal),
                "fields": sorted(cleaned),
            }
        )
        return saved.to_dict()

    def delete_student(self, principal: Optional[str], record_id: str) -> None:
        """Delete a profile.

        Raises:
            NotFoundError: No profile with that id
            AccessDenied: Principal is neither owner nor admin
        """
        principal = self.policy.require_principal(principal)
        record = self.repository.get(record_id)
        self.policy.require_mutate(principal, record)

        if not self.repository.delete(record_id):
            raise NotFoundError(f"students:{record_id} not found")

        logger.info(
            "STUDENT_PROFILE_DELETED",
            extra={"record_id": record_id, "principal_hash": hash_pii(principal)}
        )

    def toggle_pin(self, principal: Optional[str], record_id: str) -> Dict[str, Any]:
        """Flip the pinned flag of the principal's own profile.

        Raises:
            NotFoundError: No profile with that id
            AccessDenied: Principal does not own the profile
        """
        principal = self.policy.require_principal(principal)
        record = self.repository.get(record_id)
        self.policy.require_owner(principal, record)

        saved = self.repository.save(record.with_changes({"isPinned": not record.is_pinned}))

        logger.info(
            "STUDENT_PROFILE_PIN_TOGGLED",
            extra={"record_id": record_id, "is_pinned": saved.is_pinned}
        )
        return {"id": saved.id, "isPinned": saved.is_pinned}

    def toggle_favorite(self, principal: Optional[str], record_id: str) -> Dict[str, Any]:
        """Add the profile to the principal's favorites, or remove it.

        Raises:
            NotFoundError: No profile with that id
        """
        principal = self.policy.require_principal(principal)
        self.repository.get(record_id)

        existing = self.favorites.find(principal, record_id)
        if existing is not None:
            self.favorites.delete(existing.id)
            favorited = False
        else:
            self.favorites.save(Favorite(
                id=uuid.uuid4().hex,
                user_email=principal.lower(),
                student_id=record_id,
            ))
            favorited = True

        logger.info(
            "FAVORITE_TOGGLED",
            extra={
                "record_id": record_id,
                "principal_hash": hash_pii(principal),
                "is_favorited": favorited,
            }
        )
        return {"studentId": record_id, "isFavorited": favorited}

    def list_favorites(self, principal: Optional[str]) -> Dict[str, Any]:
        """List the principal's favorites with profile summaries."""
        principal = self.policy.require_principal(principal)
        favorites = self.favorites.find_for_user(principal)
        students = {
            r.id: r for r in self.repository.find_by_ids([f.student_id for f in favorites])
        }

        return {
            "favorites": [
                {**f.to_dict(), "student": _summary(students[f.student_id])}
                for f in favorites
                if f.student_id in students
            ],
        }

    def submit_feedback(self, principal: Optional[str], data: Any) -> Dict[str, Any]:
        """Store a feedback submission.

        Anonymous submissions are accepted. A signed-in user must submit
        under their own email.

        Raises:
            ValidationError: Payload invalid
            AccessDenied: Email differs from the signed-in user
        """
        cleaned = validate_feedback_payload(data)
        if principal and principal.strip() and not self.policy.is_same_user(
            principal, cleaned["email"]
        ):
            raise AccessDenied("Email does not match the signed-in user")

        saved = self.feedback.save(Feedback(id=uuid.uuid4().hex, **cleaned))

        logger.info(
            "FEEDBACK_SUBMITTED",
            extra={
                "feedback_id": saved.id,
                "type": saved.type.value,
                "email_hash": hash_pii(saved.email),
            }
        )
        return {"success": True, "id": saved.id}

    def ensure_schema(self) -> None:
        """Create the tables this service uses if they do not exist."""
        self.repository.create_schema()
        self.favorites.create_schema()
        self.feedback.create_schema()


def create_default_handler() -> DirectoryHandler:
    """Build a handler from environment configuration."""
    configure_pii_salt(os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars"))
    connection_manager = ConnectionManager(DatabaseConfig.from_env())
    return DirectoryHandler(
        repository=StudentRepository(connection_manager),
        policy=AccessPolicy.from_env(),
        favorites=FavoriteRepository(connection_manager),
        feedback=FeedbackRepository(connection_manager),
    )


# Global handler instance
_handler: Optional[DirectoryHandler] = None


def get_handler() -> DirectoryHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = create_default_handler()
    return _handler


def set_handler(handler: DirectoryHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


def _principal() -> Optional[str]:
    return request.headers.get(PRINCIPAL_HEADER)


@app.errorhandler(429)
def handle_rate_limited(e):
    return rate_limit_response(limiter, e)


@app.errorhandler(AuthenticationRequired)
def handle_authentication_required(e):
    return jsonify({"error": "Authentication required"}), 401


@app.errorhandler(AccessDenied)
def handle_access_denied(e):
    return jsonify({"error": str(e)}), 403


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({"error": "Invalid request data", "fields": e.errors}), 400


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({"error": "Student not found"}), 404


@app.errorhandler(DuplicateError)
def handle_duplicate(e):
    return jsonify({"error": "This student number is already registered"}), 409


@app.errorhandler(RepositoryError)
def handle_repository_error(e):
    logger.error("DIRECTORY_REPOSITORY_ERROR", extra={"error": str(e)})
    return jsonify({"error": "Student data unavailable"}), 503


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.error("DIRECTORY_REQUEST_FAILED", extra={"error": str(e)}, exc_info=True)
    return jsonify({"error": "Internal server error"}), 500


# Flask routes
@app.route("/health", methods=["GET"])
@limiter.exempt
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "service": "directory-service"})


@app.route("/ready", methods=["GET"])
@limiter.exempt
def ready():
    """Readiness check endpoint."""
    db_health = get_handler().repository.connection_manager.health_check()
    if not db_health["healthy"]:
        return jsonify({"status": "not_ready", "service": "directory-service"}), 503
    return jsonify({"status": "ready", "service": "directory-service"})


@app.route("/students", methods=["GET"])
def list_students():
    """Search profiles.

    Query params:
        q: Optional - Free-text search
        course: Optional - Course code
        circle: Optional - Circle substring
        page: Optional - Page number (default 1)
        limit: Optional - Page size (default 50, max 100)
    """
    try:
        page = int(request.args.get("page", 1))
        limit = int(request.args.get("limit", DEFAULT_PAGE_SIZE))
    except ValueError:
        return jsonify({"error": "page and limit must be integers"}), 400

    result = get_handler().list_students(
        _principal(),
        query=request.args.get("q", ""),
        course=request.args.get("course"),
        circle=request.args.get("circle"),
        page=page,
        limit=limit,
    )
    return jsonify(result)


@app.route("/students/<record_id>", methods=["GET"])
def get_student(record_id: str):
    """Get one profile."""
    return jsonify(get_handler().get_student(_principal(), record_id))


@app.route("/students", methods=["POST"])
def create_student():
    """Create a profile.

    Body: camelCase student fields; studentId, fullName, birthDate,
    hometown, almaMater, targetCourse and year are required.
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body required"}), 400

    result = get_handler().create_student(_principal(), data)
    return jsonify(result), 201


@app.route("/students/<record_id>", methods=["PATCH"])
def update_student(record_id: str):
    """Update a profile; only the fields present are changed."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body required"}), 400

    return jsonify(get_handler().update_student(_principal(), record_id, data))


@app.route("/students/<record_id>", methods=["DELETE"])
def delete_student(record_id: str):
    """Delete a profile."""
    get_handler().delete_student(_principal(), record_id)
    return jsonify({"status": "deleted", "id": record_id})


@app.route("/students/<record_id>/pin", methods=["PATCH"])
def toggle_pin(record_id: str):
    """Pin or unpin the caller's own profile."""
    return jsonify(get_handler().toggle_pin(_principal(), record_id))


@app.route("/students/<record_id>/favorite", methods=["POST"])
def toggle_favorite(record_id: str):
    """Add a profile to the caller's favorites, or remove it."""
    return jsonify(get_handler().toggle_favorite(_principal(), record_id))


@app.route("/favorites", methods=["GET"])
def list_favorites():
    """List the caller's favorite profiles."""
    return jsonify(get_handler().list_favorites(_principal()))


@app.route("/feedback", methods=["POST"])
def submit_feedback():
    """Submit feedback.

    Body: type (bug|suggestion|other), title, description, email, name (optional)
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body required"}), 400

    return jsonify(get_handler().submit_feedback(_principal(), data)), 201


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    get_handler().ensure_schema()
    port = int(os.getenv("PORT", "8081"))
    app.run(host="0.0.0.0", port=port)
