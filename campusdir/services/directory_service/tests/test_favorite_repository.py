"""Tests for the favorite and feedback repositories."""
import pytest
from contextlib import contextmanager
from datetime import datetime
from unittest.mock import MagicMock

from campusdir.shared.models import Favorite, Feedback, FeedbackType
from campusdir.services.directory_service.favorite_repository import (
    CREATE_FAVORITES_TABLE,
    CREATE_FEEDBACK_TABLE,
    FAVORITE_COLUMNS,
    FEEDBACK_COLUMNS,
    FavoriteRepository,
    FeedbackRepository,
)


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
def favorites(connection_manager):
    return FavoriteRepository(connection_manager)


@pytest.fixture
def feedback(connection_manager):
    return FeedbackRepository(connection_manager)


def favorite_row(**overrides) -> tuple:
    values = {
        "id": "fav_1",
        "user_email": "hanako@example.com",
        "student_id": "rec_1",
        "created_at": datetime(2024, 5, 1, 12, 0),
    }
    values.update(overrides)
    return tuple(values[column] for column in FAVORITE_COLUMNS)


class TestFavoriteRepository:
    """Tests for per-user favorites."""

    def test_email_stored_lowercase(self, favorites):
        entry = Favorite(id="fav_1", user_email="Hanako@Example.com", student_id="rec_1")

        params = favorites._entity_to_params(entry)

        assert tuple(params) == FAVORITE_COLUMNS
        assert params["user_email"] == "hanako@example.com"

    def test_find_matches_user_and_profile(self, favorites, cursor):
        cursor.fetchall.return_value = [favorite_row()]
        cursor.fetchone.return_value = (1,)

        entry = favorites.find("Hanako@Example.com", "rec_1")

        assert entry.id == "fav_1"
        sql, params = cursor.execute.call_args_list[0].args
        assert "user_email = LOWER(%s) AND student_id = %s" in sql
        assert params == ("Hanako@Example.com", "rec_1", 1, 0)

    def test_find_missing(self, favorites):
        assert favorites.find("hanako@example.com", "rec_9") is None

    def test_find_for_user(self, favorites, cursor):
        cursor.fetchall.return_value = [favorite_row(), favorite_row(id="fav_2", student_id="rec_2")]
        cursor.fetchone.return_value = (2,)

        entries = favorites.find_for_user("hanako@example.com")

        assert [e.student_id for e in entries] == ["rec_1", "rec_2"]
        sql, _ = cursor.execute.call_args_list[0].args
        assert "user_email = LOWER(%s)" in sql

    def test_create_schema(self, favorites, cursor, connection_manager):
        favorites.create_schema()

        sql = cursor.execute.call_args.args[0]
        assert sql == CREATE_FAVORITES_TABLE
        assert "ON DELETE CASCADE" in sql
        connection_manager.conn.commit.assert_called_once()


class TestFeedbackRepository:
    """Tests for feedback storage."""

    def test_type_stored_as_value(self, feedback):
        entry = Feedback(
            id="fb_1",
            type=FeedbackType.SUGGESTION,
            title="ダークモード",
            description="夜でも見やすいテーマが欲しいです",
            email="hanako@example.com",
        )

        params = feedback._entity_to_params(entry)

        assert tuple(params) == FEEDBACK_COLUMNS
        assert params["type"] == "suggestion"

    def test_row_restores_type(self, feedback):
        row = ("fb_1", "bug", "検索が遅い", "検索結果の表示に数秒かかります",
               "hanako@example.com", None, datetime(2024, 5, 1))

        entry = feedback._row_to_entity(row)

        assert entry.type is FeedbackType.BUG
        assert entry.name is None

    def test_create_schema(self, feedback, cursor):
        feedback.create_schema()

        assert cursor.execute.call_args.args[0] == CREATE_FEEDBACK_TABLE

    def test_columns_match_table_definition(self):
        for column in FEEDBACK_COLUMNS:
            assert column in CREATE_FEEDBACK_TABLE
