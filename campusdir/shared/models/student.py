"""Student profile domain model.

This file defines the course codes and the StudentRecord entity shared by
the directory and statistics services. Records are owned by the persistence
layer; services read and replace them but never mutate them in place.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


class Specialty(Enum):
    """Course/specialty codes a student can target.

    Legacy course names are kept so that records created before the
    course reorganisation still validate.
    """
    # Legacy course names
    LEGACY_EEI = "電気電子情報工学コース"
    LEGACY_MECHANICAL = "機械システム工学コース"
    LEGACY_MATERIALS = "物質材料工学コース"

    # Current course codes
    DENKI_ENERGY_CONTROL = "DENKI_ENERGY_CONTROL"
    DENSHI_DEVICE_OPTICAL = "DENSHI_DEVICE_OPTICAL"
    JOHO_COMMUNICATION = "JOHO_COMMUNICATION"
    KIKAI_SYSTEM = "KIKAI_SYSTEM"
    BUSSHITSU_MATERIALS = "BUSSHITSU_MATERIALS"


SPECIALTY_LABELS: Dict[str, str] = {
    Specialty.LEGACY_EEI.value: "電気電子情報工学コース",
    Specialty.LEGACY_MECHANICAL.value: "機械システム工学コース",
    Specialty.LEGACY_MATERIALS.value: "物質材料工学コース",
    Specialty.DENKI_ENERGY_CONTROL.value: "電気エネルギー・制御工学",
    Specialty.DENSHI_DEVICE_OPTICAL.value: "電子デバイス・光波制御工学",
    Specialty.JOHO_COMMUNICATION.value: "情報通信制御工学",
    Specialty.KIKAI_SYSTEM.value: "機械システム工学コース",
    Specialty.BUSSHITSU_MATERIALS.value: "物質材料工学コース",
}

# camelCase payload key -> StudentRecord attribute
FIELD_ALIASES: Dict[str, str] = {
    "id": "id",
    "studentId": "student_id",
    "fullName": "full_name",
    "birthDate": "birth_date",
    "hometown": "hometown",
    "almaMater": "alma_mater",
    "bloodType": "blood_type",
    "starSign": "star_sign",
    "mbti": "personality_code",
    "year": "cohort",
    "targetCourse": "course",
    "hobby": "hobby",
    "circle": "circle",
    "likes": "likes",
    "dislikes": "dislikes",
    "goodSubjects": "good_subjects",
    "imageUrl": "image_url",
    "etcNote": "etc_note",
    "ownerEmail": "owner_email",
    "isPinned": "is_pinned",
}


@dataclass(frozen=True)
class StudentRecord:
    """A single student profile.

    The free-text fields (hobby, circle, likes, dislikes) are entered by
    students as delimiter-separated lists and feed the dashboard word clouds.
    """
    id: str
    student_id: str
    full_name: str
    cohort: str                     # Year-group label, e.g. "B3"
    course: str                     # Specialty code (legacy names allowed)
    hometown: str = ""
    alma_mater: str = ""
    birth_date: Optional[date] = None
    blood_type: Optional[str] = None
    star_sign: Optional[str] = None
    personality_code: Optional[str] = None
    hobby: Optional[str] = None
    circle: Optional[str] = None
    likes: Optional[str] = None
    dislikes: Optional[str] = None
    good_subjects: Optional[str] = None
    image_url: Optional[str] = None
    etc_note: Optional[str] = None
    owner_email: Optional[str] = None
    is_pinned: bool = False          # Highlighted by its owner in the directory
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentRecord":
        """Build a record from a camelCase payload.

        Unknown keys are ignored. ``birthDate`` accepts a date or an
        ISO-8601 string.
        """
        kwargs: Dict[str, Any] = {}
        for key, attr in FIELD_ALIASES.items():
            if key in data:
                kwargs[attr] = data[key]

        birth_date = kwargs.get("birth_date")
        if isinstance(birth_date, str) and birth_date:
            kwargs["birth_date"] = date.fromisoformat(birth_date[:10])
        elif not birth_date:
            kwargs["birth_date"] = None

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase response shape."""
        result: Dict[str, Any] = {}
        for key, attr in FIELD_ALIASES.items():
            value = getattr(self, attr)
            if isinstance(value, date):
                value = value.isoformat()
            result[key] = value
        result["createdAt"] = self.created_at.isoformat() + "Z"
        result["updatedAt"] = self.updated_at.isoformat() + "Z"
        return result

    def with_changes(self, changes: Dict[str, Any]) -> "StudentRecord":
        """Return a copy with camelCase ``changes`` applied."""
        updates: Dict[str, Any] = {}
        for key, value in changes.items():
            attr = FIELD_ALIASES.get(key)
            if attr is None or attr == "id":
                continue
            if attr == "birth_date" and isinstance(value, str):
                value = date.fromisoformat(value[:10]) if value else None
            updates[attr] = value
        updates["updated_at"] = datetime.utcnow()
        return replace(self, **updates)

    @property
    def course_label(self) -> str:
        """Human readable course name."""
        return SPECIALTY_LABELS.get(self.course, self.course)
