"""Favorites and feedback submitted by directory users."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class FeedbackType(Enum):
    """Kind of feedback a user can send."""
    BUG = "bug"
    SUGGESTION = "suggestion"
    OTHER = "other"


@dataclass(frozen=True)
class Favorite:
    """A profile bookmarked by a signed-in user.

    ``student_id`` holds the profile's record id, not the student number.
    """
    id: str
    user_email: str
    student_id: str
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "createdAt": self.created_at.isoformat() + "Z",
        }


@dataclass(frozen=True)
class Feedback:
    """A bug report, suggestion or other note about the directory."""
    id: str
    type: FeedbackType
    title: str
    description: str
    email: str
    name: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "email": self.email,
            "name": self.name,
            "createdAt": self.created_at.isoformat() + "Z",
        }
