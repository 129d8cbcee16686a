"""Tests for the student profile model."""
import pytest
from dataclasses import FrozenInstanceError
from datetime import date

from campusdir.shared.models import SPECIALTY_LABELS, Specialty, StudentRecord


@pytest.fixture
def payload():
    return {
        "id": "rec_1",
        "studentId": "25314986",
        "fullName": "山田 太郎",
        "birthDate": "2003-05-15T00:00:00.000Z",
        "hometown": "東京都",
        "almaMater": "長岡高専",
        "targetCourse": "DENKI_ENERGY_CONTROL",
        "year": "B3",
        "mbti": "INTJ",
        "hobby": "読書, 映画",
        "ownerEmail": "taro@example.com",
        "unknownKey": "ignored",
    }


class TestSpecialty:
    """Tests for course codes."""

    def test_every_specialty_has_label(self):
        for specialty in Specialty:
            assert specialty.value in SPECIALTY_LABELS


class TestFromDict:
    """Tests for StudentRecord.from_dict."""

    def test_maps_camel_case_keys(self, payload):
        record = StudentRecord.from_dict(payload)

        assert record.student_id == "25314986"
        assert record.cohort == "B3"
        assert record.course == "DENKI_ENERGY_CONTROL"
        assert record.personality_code == "INTJ"
        assert record.owner_email == "taro@example.com"

    def test_parses_iso_timestamp_birth_date(self, payload):
        assert StudentRecord.from_dict(payload).birth_date == date(2003, 5, 15)

    def test_blank_birth_date_is_none(self, payload):
        payload["birthDate"] = ""

        assert StudentRecord.from_dict(payload).birth_date is None

    def test_accepts_date_object(self, payload):
        payload["birthDate"] = date(2001, 1, 2)

        assert StudentRecord.from_dict(payload).birth_date == date(2001, 1, 2)


class TestToDict:
    """Tests for StudentRecord.to_dict."""

    def test_camel_case_shape(self, payload):
        data = StudentRecord.from_dict(payload).to_dict()

        assert data["fullName"] == "山田 太郎"
        assert data["birthDate"] == "2003-05-15"
        assert data["mbti"] == "INTJ"
        assert data["createdAt"].endswith("Z")
        assert "unknownKey" not in data

    def test_to_dict_feeds_from_dict(self, payload):
        record = StudentRecord.from_dict(payload)
        again = StudentRecord.from_dict(record.to_dict())

        assert again.birth_date == record.birth_date
        assert again.hobby == record.hobby


class TestWithChanges:
    """Tests for StudentRecord.with_changes."""

    def test_applies_changes(self, payload):
        record = StudentRecord.from_dict(payload)

        updated = record.with_changes({"hobby": "写真", "birthDate": "2003-12-25"})

        assert updated.hobby == "写真"
        assert updated.birth_date == date(2003, 12, 25)
        assert record.hobby == "読書, 映画"

    def test_id_cannot_change(self, payload):
        record = StudentRecord.from_dict(payload)

        assert record.with_changes({"id": "forged"}).id == "rec_1"

    def test_touches_updated_at(self, payload):
        record = StudentRecord.from_dict(payload)

        assert record.with_changes({}).updated_at >= record.updated_at

    def test_pin_flag(self, payload):
        record = StudentRecord.from_dict(payload)

        pinned = record.with_changes({"isPinned": True})

        assert record.is_pinned is False
        assert pinned.to_dict()["isPinned"] is True

    def test_record_is_frozen(self, payload):
        record = StudentRecord.from_dict(payload)

        with pytest.raises(FrozenInstanceError):
            record.hobby = "x"


class TestCourseLabel:
    """Tests for the human readable course name."""

    def test_known_code(self):
        record = StudentRecord(
            id="r", student_id="1", full_name="x", cohort="B1", course="JOHO_COMMUNICATION",
        )

        assert record.course_label == "情報通信制御工学"

    def test_unknown_code_passes_through(self):
        record = StudentRecord(
            id="r", student_id="1", full_name="x", cohort="B1", course="OTHER",
        )

        assert record.course_label == "OTHER"
