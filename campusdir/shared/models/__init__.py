"""Shared domain models for the campus directory."""
from .student import (
    Specialty,
    SPECIALTY_LABELS,
    FIELD_ALIASES,
    StudentRecord,
)
from .feedback import (
    Favorite,
    Feedback,
    FeedbackType,
)

__all__ = [
    "Specialty",
    "SPECIALTY_LABELS",
    "FIELD_ALIASES",
    "StudentRecord",
    "Favorite",
    "Feedback",
    "FeedbackType",
]
