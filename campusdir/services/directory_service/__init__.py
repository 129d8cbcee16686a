"""Directory Service: browse, search and edit student profiles.

Profile ownership and admin rights are decided in one place (AccessPolicy)
and every request is rate limited per client.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /students - Search and filter profiles
- GET /students/<id> - Get a profile
- POST /students - Create a profile
- PATCH /students/<id> - Update a profile
- DELETE /students/<id> - Delete a profile
- PATCH /students/<id>/pin - Pin or unpin your own profile
- POST /students/<id>/favorite - Toggle a favorite
- GET /favorites - List your favorites
- POST /feedback - Submit feedback
"""

from .access_policy import (
    AccessPolicy,
    AccessDenied,
    AuthenticationRequired,
    legacy_student_prefix,
)
from .favorite_repository import FavoriteRepository, FeedbackRepository
from .rate_limiter import DEFAULT_RATE_LIMIT, client_key, create_limiter
from .student_repository import StudentRepository
from .validation import ValidationError, validate_feedback_payload, validate_student_payload
from .handler import (
    DirectoryHandler,
    app,
    limiter,
)

__all__ = [
    "AccessPolicy",
    "AccessDenied",
    "AuthenticationRequired",
    "legacy_student_prefix",
    "FavoriteRepository",
    "FeedbackRepository",
    "DEFAULT_RATE_LIMIT",
    "client_key",
    "create_limiter",
    "StudentRepository",
    "ValidationError",
    "validate_feedback_payload",
    "validate_student_payload",
    "DirectoryHandler",
    "app",
    "limiter",
]
