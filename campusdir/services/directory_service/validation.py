"""Payload validation for profile and feedback requests."""
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from campusdir.shared.models import FIELD_ALIASES, FeedbackType, Specialty
from campusdir.shared.utils import get_star_sign

logger = logging.getLogger(__name__)


REQUIRED_FIELDS: Tuple[str, ...] = (
    "studentId",
    "fullName",
    "birthDate",
    "hometown",
    "almaMater",
    "targetCourse",
    "year",
)

VALID_COURSES = frozenset(s.value for s in Specialty)

# Set by the service, never by clients
READ_ONLY_FIELDS = frozenset({"id", "ownerEmail", "isPinned"})


class ValidationError(Exception):
    """Payload failed validation.

    Attributes:
        errors: Mapping of field name to message
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__(f"Invalid fields: {sorted(errors)}")


def validate_student_payload(data: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate and clean a camelCase student payload.

    Args:
        data: Decoded JSON request body
        partial: Allow missing required fields (PATCH)

    Returns:
        Cleaned payload with only known, writable fields. ``starSign`` is
        derived from ``birthDate`` when the client did not send one.

    Raises:
        ValidationError: If any field is missing or malformed
    """
    if not isinstance(data, dict):
        raise ValidationError({"body": "JSON object required"})

    errors: Dict[str, str] = {}
    cleaned = {
        key: value for key, value in data.items()
        if key in FIELD_ALIASES and key not in READ_ONLY_FIELDS
    }

    for key in REQUIRED_FIELDS:
        if key not in cleaned:
            if not partial:
                errors[key] = "required"
            continue
        value = cleaned[key]
        if not isinstance(value, str) or not value.strip():
            errors[key] = "required"

    course = cleaned.get("targetCourse")
    if "targetCourse" not in errors and course is not None and course not in VALID_COURSES:
        errors["targetCourse"] = "unknown course"

    birth_date = cleaned.get("birthDate")
    if "birthDate" not in errors and isinstance(birth_date, str) and birth_date:
        try:
            parsed = date.fromisoformat(birth_date[:10])
        except ValueError:
            errors["birthDate"] = "expected YYYY-MM-DD"
        else:
            if not cleaned.get("starSign"):
                cleaned["starSign"] = get_star_sign(parsed)

    optional_errors: List[str] = [
        key for key, value in cleaned.items()
        if key not in REQUIRED_FIELDS and value is not None and not isinstance(value, str)
    ]
    for key in optional_errors:
        errors[key] = "must be a string"

    if errors:
        logger.info("STUDENT_PAYLOAD_REJECTED", extra={"fields": sorted(errors)})
        raise ValidationError(errors)

    return cleaned


FEEDBACK_TITLE_LENGTH = (3, 100)
FEEDBACK_DESCRIPTION_LENGTH = (10, 1000)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_length(value: Any, bounds: Tuple[int, int]) -> Optional[str]:
    if not isinstance(value, str):
        return "required"
    low, high = bounds
    length = len(value.strip())
    if length < low:
        return f"must be at least {low} characters"
    if length > high:
        return f"must be at most {high} characters"
    return None


def validate_feedback_payload(data: Any) -> Dict[str, Any]:
    """Validate a feedback submission.

    Returns:
        Dict with ``type`` (FeedbackType), trimmed ``title`` and
        ``description``, ``email`` and optional ``name``

    Raises:
        ValidationError: If any field is missing or malformed
    """
    if not isinstance(data, dict):
        raise ValidationError({"body": "JSON object required"})

    errors: Dict[str, str] = {}

    try:
        feedback_type = FeedbackType(data.get("type"))
    except ValueError:
        errors["type"] = "must be one of: " + ", ".join(t.value for t in FeedbackType)
        feedback_type = None

    for key, bounds in (
        ("title", FEEDBACK_TITLE_LENGTH),
        ("description", FEEDBACK_DESCRIPTION_LENGTH),
    ):
        message = _check_length(data.get(key), bounds)
        if message:
            errors[key] = message

    email = data.get("email")
    if not isinstance(email, str) or not EMAIL_PATTERN.match(email.strip()):
        errors["email"] = "invalid email address"

    name = data.get("name")
    if name is not None and not isinstance(name, str):
        errors["name"] = "must be a string"

    if errors:
        logger.info("FEEDBACK_PAYLOAD_REJECTED", extra={"fields": sorted(errors)})
        raise ValidationError(errors)

    return {
        "type": feedback_type,
        "title": data["title"].strip(),
        "description": data["description"].strip(),
        "email": email.strip(),
        "name": name.strip() if name and name.strip() else None,
    }
