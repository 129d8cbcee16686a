"""Repositories for user favorites and feedback submissions."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from campusdir.shared.database import BaseRepository, ConnectionManager
from campusdir.shared.models import Favorite, Feedback, FeedbackType

logger = logging.getLogger(__name__)


FAVORITE_COLUMNS: Tuple[str, ...] = ("id", "user_email", "student_id", "created_at")

CREATE_FAVORITES_TABLE = """
CREATE TABLE IF NOT EXISTS user_favorites (
    id TEXT PRIMARY KEY,
    user_email TEXT NOT NULL,
    student_id TEXT NOT NULL REFERENCES students(id) ON DELETE CASCADE,
    created_at TIMESTAMP NOT NULL,
    UNIQUE (user_email, student_id)
)
"""

FEEDBACK_COLUMNS: Tuple[str, ...] = (
    "id",
    "type",
    "title",
    "description",
    "email",
    "name",
    "created_at",
)

CREATE_FEEDBACK_TABLE = """
CREATE TABLE IF NOT EXISTS feedback (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    email TEXT NOT NULL,
    name TEXT,
    created_at TIMESTAMP NOT NULL
)
"""


class FavoriteRepository(BaseRepository[Favorite]):
    """Per-user bookmarks of student profiles.

    Emails are stored lower-cased so lookups match however the identity
    provider capitalises them.
    """

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "user_favorites")

    def _row_to_entity(self, row: tuple) -> Favorite:
        return Favorite(**dict(zip(FAVORITE_COLUMNS, row)))

    def _entity_to_params(self, entity: Favorite) -> Dict[str, Any]:
        params = {column: getattr(entity, column) for column in FAVORITE_COLUMNS}
        params["user_email"] = entity.user_email.lower()
        return params

    def create_schema(self) -> None:
        """Create the user_favorites table if it does not exist."""
        with self.connection_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(CREATE_FAVORITES_TABLE)
                conn.commit()

    def find(self, user_email: str, record_id: str) -> Optional[Favorite]:
        """Find one user's favorite entry for a profile."""
        favorites, _ = self.find_where(
            "user_email = LOWER(%s) AND student_id = %s",
            (user_email, record_id),
            limit=1,
        )
        return favorites[0] if favorites else None

    def find_for_user(self, user_email: str) -> List[Favorite]:
        """All favorites of a user, newest first."""
        favorites, _ = self.find_where("user_email = LOWER(%s)", (user_email,))
        return favorites


class FeedbackRepository(BaseRepository[Feedback]):
    """Write-mostly store for feedback submissions."""

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "feedback")

    def _row_to_entity(self, row: tuple) -> Feedback:
        values = dict(zip(FEEDBACK_COLUMNS, row))
        values["type"] = FeedbackType(values["type"])
        return Feedback(**values)

    def _entity_to_params(self, entity: Feedback) -> Dict[str, Any]:
        params = {column: getattr(entity, column) for column in FEEDBACK_COLUMNS}
        params["type"] = entity.type.value
        return params

    def create_schema(self) -> None:
        """Create the feedback table if it does not exist."""
        with self.connection_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(CREATE_FEEDBACK_TABLE)
                conn.commit()
