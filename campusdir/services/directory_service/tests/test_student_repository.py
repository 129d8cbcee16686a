"""Tests for the student repository."""
import pytest
from contextlib import contextmanager
from datetime import date, datetime
from unittest.mock import MagicMock

from campusdir.shared.models import StudentRecord
from campusdir.services.directory_service.student_repository import (
    CREATE_STUDENTS_TABLE,
    SEARCH_COLUMNS,
    STUDENT_COLUMNS,
    StudentRepository,
    contains_pattern,
)


def make_row(**overrides) -> tuple:
    values = {column: None for column in STUDENT_COLUMNS}
    values.update({
        "id": "rec_1",
        "student_id": "25314986",
        "full_name": "山田 太郎",
        "cohort": "B3",
        "course": "KIKAI_SYSTEM",
        "hometown": "東京都",
        "alma_mater": "長岡高専",
        "birth_date": date(2003, 5, 15),
        "owner_email": "taro@example.com",
        "created_at": datetime(2024, 4, 1, 9, 0),
        "updated_at": datetime(2024, 4, 2, 9, 0),
    })
    values.update(overrides)
    return tuple(values[column] for column in STUDENT_COLUMNS)


@pytest.fixture
def cursor():
    cur = MagicMock()
    cur.__enter__.return_value = cur
    cur.fetchone.return_value = (0,)
    cur.fetchall.return_value = []
    return cur


@pytest.fixture
def connection_manager(cursor):
    conn = MagicMock()
    conn.cursor.return_value = cursor
    manager = MagicMock()

    @contextmanager
    def get_connection():
        yield conn

    manager.get_connection = get_connection
    manager.conn = conn
    return manager


@pytest.fixture
def repository(connection_manager):
    return StudentRepository(connection_manager)


def executed(cursor, index=0):
    """Return (sql, params) of the index-th executed statement."""
    call = cursor.execute.call_args_list[index]
    return call.args[0], call.args[1]


class TestRowMapping:
    """Tests for row <-> record conversion."""

    def test_row_to_entity(self, repository):
        record = repository._row_to_entity(make_row())

        assert record.student_id == "25314986"
        assert record.birth_date == date(2003, 5, 15)
        assert record.created_at == datetime(2024, 4, 1, 9, 0)

    def test_entity_to_params_covers_every_column(self, repository):
        record = StudentRecord(
            id="rec_1", student_id="1", full_name="x", cohort="B1", course="KIKAI_SYSTEM",
        )

        params = repository._entity_to_params(record)

        assert tuple(params) == STUDENT_COLUMNS

    def test_columns_match_table_definition(self):
        for column in STUDENT_COLUMNS:
            assert column in CREATE_STUDENTS_TABLE


class TestLookups:
    """Tests for single-record lookups."""

    def test_find_by_student_id(self, repository, cursor):
        cursor.fetchall.return_value = [make_row()]
        cursor.fetchone.return_value = (1,)

        record = repository.find_by_student_id("25314986")

        assert record.id == "rec_1"
        sql, params = executed(cursor)
        assert "student_id = %s" in sql
        assert params == ("25314986", 1, 0)

    def test_find_by_student_id_missing(self, repository):
        assert repository.find_by_student_id("0") is None

    def test_find_by_owner_email_is_case_insensitive(self, repository, cursor):
        cursor.fetchall.return_value = [make_row()]
        cursor.fetchone.return_value = (1,)

        record = repository.find_by_owner_email("Taro@Example.com")

        assert record.owner_email == "taro@example.com"
        sql, params = executed(cursor)
        assert "LOWER(owner_email) = LOWER(%s)" in sql
        assert params[0] == "Taro@Example.com"


class TestSearch:
    """Tests for directory search."""

    def test_no_filters_matches_everything(self, repository, cursor):
        repository.search(limit=50, offset=0)

        sql, params = executed(cursor)
        assert "WHERE TRUE" in sql
        assert "ORDER BY full_name ASC" in sql
        assert params == (50, 0)

    def test_query_matches_all_search_columns(self, repository, cursor):
        repository.search(query="長岡", limit=20, offset=40)

        sql, params = executed(cursor)
        for column in SEARCH_COLUMNS:
            assert f"{column} ILIKE %s" in sql
        assert params == ("%長岡%",) * len(SEARCH_COLUMNS) + (20, 40)

    def test_course_and_circle_filters(self, repository, cursor):
        repository.search(course="KIKAI_SYSTEM", circle="ロボット")

        sql, params = executed(cursor)
        assert "course = %s AND circle ILIKE %s" in sql
        assert params[:2] == ("KIKAI_SYSTEM", "%ロボット%")

    def test_returns_records_and_total(self, repository, cursor):
        cursor.fetchall.return_value = [make_row(), make_row(id="rec_2", student_id="2")]
        cursor.fetchone.return_value = (12,)

        records, total = repository.search(limit=2)

        assert [r.id for r in records] == ["rec_1", "rec_2"]
        assert total == 12

    def test_wildcards_in_query_are_literal(self, repository, cursor):
        repository.search(query="100%_done", circle="a\\b")

        sql, params = executed(cursor)
        assert "ESCAPE '\\'" in sql
        assert params[0] == "%a\\\\b%"
        assert params[1] == "%100\\%\\_done%"


class TestContainsPattern:
    """Tests for ILIKE pattern escaping."""

    @pytest.mark.parametrize("text,expected", [
        ("長岡", "%長岡%"),
        ("%", "%\\%%"),
        ("a_b", "%a\\_b%"),
        ("c:\\tmp", "%c:\\\\tmp%"),
    ])
    def test_escapes_wildcards(self, text, expected):
        assert contains_pattern(text) == expected


class TestFindByIds:
    """Tests for batch lookups."""

    def test_empty_ids_skip_query(self, repository, cursor):
        assert repository.find_by_ids([]) == []
        cursor.execute.assert_not_called()

    def test_uses_array_parameter(self, repository, cursor):
        cursor.fetchall.return_value = [make_row()]
        cursor.fetchone.return_value = (1,)

        records = repository.find_by_ids(["rec_1", "rec_9"])

        assert [r.id for r in records] == ["rec_1"]
        sql, params = executed(cursor)
        assert "id = ANY(%s)" in sql
        assert params[0] == ["rec_1", "rec_9"]


class TestSnapshotAndSchema:
    """Tests for snapshot reads and schema creation."""

    def test_snapshot_reads_without_limit(self, repository, cursor):
        cursor.fetchall.return_value = [make_row()]

        records = repository.snapshot()

        assert len(records) == 1
        _, params = executed(cursor)
        assert params == (None, 0)

    def test_create_schema(self, repository, cursor, connection_manager):
        repository.create_schema()

        sql = cursor.execute.call_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS students" in sql
        connection_manager.conn.commit.assert_called_once()
