"""Student repository for the directory and statistics services.

Stores student profiles in the PostgreSQL ``students`` table and serves:
- Directory search with pagination
- Ownership lookups for access checks
- Full snapshots for the statistics dashboard
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from campusdir.shared.database import BaseRepository, ConnectionManager
from campusdir.shared.models import StudentRecord

logger = logging.getLogger(__name__)


# Column order of the students table; rows are mapped positionally
STUDENT_COLUMNS: Tuple[str, ...] = (
    "id",
    "student_id",
    "full_name",
    "cohort",
    "course",
    "hometown",
    "alma_mater",
    "birth_date",
    "blood_type",
    "star_sign",
    "personality_code",
    "hobby",
    "circle",
    "likes",
    "dislikes",
    "good_subjects",
    "image_url",
    "etc_note",
    "owner_email",
    "is_pinned",
    "created_at",
    "updated_at",
)

CREATE_STUDENTS_TABLE = """
CREATE TABLE IF NOT EXISTS students (
    id TEXT PRIMARY KEY,
    student_id TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL,
    cohort TEXT NOT NULL,
    course TEXT NOT NULL,
    hometown TEXT NOT NULL DEFAULT '',
    alma_mater TEXT NOT NULL DEFAULT '',
    birth_date DATE,
    blood_type TEXT,
    star_sign TEXT,
    personality_code TEXT,
    hobby TEXT,
    circle TEXT,
    likes TEXT,
    dislikes TEXT,
    good_subjects TEXT,
    image_url TEXT,
    etc_note TEXT,
    owner_email TEXT,
    is_pinned BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
)
"""

# Columns matched by the free-text directory search
SEARCH_COLUMNS: Tuple[str, ...] = (
    "full_name",
    "student_id",
    "hometown",
    "alma_mater",
    "hobby",
)


def contains_pattern(text: str) -> str:
    """ILIKE pattern matching ``text`` anywhere, with wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class StudentRepository(BaseRepository[StudentRecord]):
    """Repository for student profiles."""

    default_order_by = "full_name ASC"

    def __init__(self, connection_manager: ConnectionManager):
        """Initialize student repository.

        Args:
            connection_manager: Database connection manager
        """
        super().__init__(connection_manager, "students")

    def _row_to_entity(self, row: tuple) -> StudentRecord:
        return StudentRecord(**dict(zip(STUDENT_COLUMNS, row)))

    def _entity_to_params(self, entity: StudentRecord) -> Dict[str, Any]:
        return {column: getattr(entity, column) for column in STUDENT_COLUMNS}

    def create_schema(self) -> None:
        """Create the students table if it does not exist."""
        with self.connection_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(CREATE_STUDENTS_TABLE)
                conn.commit()

        logger.info("STUDENTS_SCHEMA_ENSURED", extra={"table_name": self.table_name})

    def find_by_student_id(self, student_id: str) -> Optional[StudentRecord]:
        """Find a profile by student number."""
        records, _ = self.find_where("student_id = %s", (student_id,), limit=1)
        return records[0] if records else None

    def find_by_owner_email(self, email: str) -> Optional[StudentRecord]:
        """Find the profile owned by a signed-in user.

        Emails compare case-insensitively.
        """
        records, _ = self.find_where("LOWER(owner_email) = LOWER(%s)", (email,), limit=1)
        return records[0] if records else None

    def find_by_ids(self, record_ids: List[str]) -> List[StudentRecord]:
        """Fetch several profiles in one query; unknown ids are skipped."""
        if not record_ids:
            return []
        records, _ = self.find_where("id = ANY(%s)", (list(record_ids),))
        return records

    def search(
        self,
        query: str = "",
        course: Optional[str] = None,
        circle: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[StudentRecord], int]:
        """Search the directory.

        Args:
            query: Substring matched against name, student number, hometown,
                alma mater and hobby (case-insensitive)
            course: Exact course code
            circle: Substring of the circle field
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (page of records ordered by name, total matches)
        """
        conditions: List[str] = []
        params: List[Any] = []

        if course:
            conditions.append("course = %s")
            params.append(course)

        if circle:
            conditions.append("circle ILIKE %s ESCAPE '\\'")
            params.append(contains_pattern(circle))

        if query:
            like = contains_pattern(query)
            conditions.append(
                "(" + " OR ".join(
                    f"{column} ILIKE %s ESCAPE '\\'" for column in SEARCH_COLUMNS
                ) + ")"
            )
            params.extend([like] * len(SEARCH_COLUMNS))

        where = " AND ".join(conditions) if conditions else "TRUE"
        records, total = self.find_where(where, params, limit=limit, offset=offset)

        logger.info(
            "STUDENT_SEARCH_EXECUTED",
            extra={
                "has_query": bool(query),
                "course": course,
                "has_circle": bool(circle),
                "total": total,
            }
        )
        return records, total

    def snapshot(self) -> List[StudentRecord]:
        """Return every profile in one read for dashboard aggregation."""
        records = self.find_all(limit=None)

        logger.info(
            "STUDENT_SNAPSHOT_LOADED",
            extra={"record_count": len(records), "loaded_at": datetime.utcnow().isoformat()}
        )
        return records
