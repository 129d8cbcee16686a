"""Tests for student payload validation."""
import pytest

from campusdir.services.directory_service.validation import (
    REQUIRED_FIELDS,
    ValidationError,
    validate_feedback_payload,
    validate_student_payload,
)
from campusdir.shared.models import FeedbackType


@pytest.fixture
def payload():
    return {
        "studentId": "25314986",
        "fullName": "山田 太郎",
        "birthDate": "2003-05-15",
        "hometown": "東京都",
        "almaMater": "長岡高専",
        "targetCourse": "DENKI_ENERGY_CONTROL",
        "year": "B3",
        "mbti": "INTJ",
        "hobby": "プログラミング",
    }


class TestFullValidation:
    """Tests for create payloads."""

    def test_valid_payload(self, payload):
        cleaned = validate_student_payload(payload)

        assert cleaned["studentId"] == "25314986"
        assert cleaned["hobby"] == "プログラミング"

    def test_star_sign_derived(self, payload):
        cleaned = validate_student_payload(payload)

        assert cleaned["starSign"] == "牡牛座"

    def test_explicit_star_sign_kept(self, payload):
        payload["starSign"] = "蟹座"

        assert validate_student_payload(payload)["starSign"] == "蟹座"

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_missing_required_field(self, payload, field):
        del payload[field]

        with pytest.raises(ValidationError) as exc:
            validate_student_payload(payload)

        assert exc.value.errors[field] == "required"

    def test_blank_required_field(self, payload):
        payload["fullName"] = "   "

        with pytest.raises(ValidationError) as exc:
            validate_student_payload(payload)

        assert "fullName" in exc.value.errors

    def test_unknown_course(self, payload):
        payload["targetCourse"] = "ASTRONAUT"

        with pytest.raises(ValidationError) as exc:
            validate_student_payload(payload)

        assert exc.value.errors["targetCourse"] == "unknown course"

    def test_legacy_course_accepted(self, payload):
        payload["targetCourse"] = "電気電子情報工学コース"

        assert validate_student_payload(payload)["targetCourse"] == "電気電子情報工学コース"

    def test_bad_birth_date(self, payload):
        payload["birthDate"] = "15/05/2003"

        with pytest.raises(ValidationError) as exc:
            validate_student_payload(payload)

        assert "birthDate" in exc.value.errors

    def test_non_string_optional_field(self, payload):
        payload["likes"] = ["coffee"]

        with pytest.raises(ValidationError) as exc:
            validate_student_payload(payload)

        assert exc.value.errors["likes"] == "must be a string"

    def test_unknown_and_read_only_fields_dropped(self, payload):
        payload["ownerEmail"] = "attacker@example.com"
        payload["id"] = "forged"
        payload["isAdmin"] = True
        payload["isPinned"] = True

        cleaned = validate_student_payload(payload)

        assert "ownerEmail" not in cleaned
        assert "id" not in cleaned
        assert "isAdmin" not in cleaned
        assert "isPinned" not in cleaned

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            validate_student_payload(["not", "an", "object"])


class TestPartialValidation:
    """Tests for PATCH payloads."""

    def test_missing_required_allowed(self):
        cleaned = validate_student_payload({"hobby": "写真"}, partial=True)

        assert cleaned == {"hobby": "写真"}

    def test_present_required_still_checked(self):
        with pytest.raises(ValidationError):
            validate_student_payload({"fullName": ""}, partial=True)

    def test_birth_date_change_updates_star_sign(self):
        cleaned = validate_student_payload({"birthDate": "2001-08-22"}, partial=True)

        assert cleaned["starSign"] == "獅子座"


@pytest.fixture
def feedback_payload():
    return {
        "type": "suggestion",
        "title": "  ダークモード  ",
        "description": "夜でも見やすいテーマが欲しいです。",
        "email": "hanako@example.com",
        "name": "花子",
    }


class TestFeedbackValidation:
    """Tests for feedback submissions."""

    def test_valid_payload(self, feedback_payload):
        cleaned = validate_feedback_payload(feedback_payload)

        assert cleaned["type"] is FeedbackType.SUGGESTION
        assert cleaned["title"] == "ダークモード"
        assert cleaned["name"] == "花子"

    def test_blank_name_is_none(self, feedback_payload):
        feedback_payload["name"] = "  "

        assert validate_feedback_payload(feedback_payload)["name"] is None

    def test_unknown_type(self, feedback_payload):
        feedback_payload["type"] = "praise"

        with pytest.raises(ValidationError) as exc:
            validate_feedback_payload(feedback_payload)

        assert exc.value.errors["type"] == "must be one of: bug, suggestion, other"

    @pytest.mark.parametrize("field,value,message", [
        ("title", "ab", "must be at least 3 characters"),
        ("title", "x" * 101, "must be at most 100 characters"),
        ("description", "短すぎる", "must be at least 10 characters"),
        ("description", "x" * 1001, "must be at most 1000 characters"),
        ("title", None, "required"),
    ])
    def test_length_bounds(self, feedback_payload, field, value, message):
        feedback_payload[field] = value

        with pytest.raises(ValidationError) as exc:
            validate_feedback_payload(feedback_payload)

        assert exc.value.errors[field] == message

    @pytest.mark.parametrize("email", ["", "hanako", "hanako@example", "a b@example.com", None])
    def test_invalid_email(self, feedback_payload, email):
        feedback_payload["email"] = email

        with pytest.raises(ValidationError) as exc:
            validate_feedback_payload(feedback_payload)

        assert exc.value.errors["email"] == "invalid email address"

    def test_non_string_name(self, feedback_payload):
        feedback_payload["name"] = 42

        with pytest.raises(ValidationError) as exc:
            validate_feedback_payload(feedback_payload)

        assert exc.value.errors["name"] == "must be a string"

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            validate_feedback_payload("feedback")
