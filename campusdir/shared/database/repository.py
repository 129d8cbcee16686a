"""Base repository pattern for database operations.

Provides common CRUD operations over a single table. Driver errors are
translated into the RepositoryError family so services never depend on
psycopg2 exception types.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

import psycopg2
from psycopg2 import errors

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class NotFoundError(RepositoryError):
    """Entity not found in database."""
    pass


class DuplicateError(RepositoryError):
    """Duplicate entity already exists."""
    pass


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common operations.

    Subclasses implement entity-specific logic while inheriting:
    - Connection management
    - Error handling
    - Logging patterns
    """

    default_order_by = "created_at DESC"

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str,
    ):
        """Initialize repository.

        Args:
            connection_manager: Database connection manager
            table_name: Name of the database table
        """
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={"table_name": table_name}
        )

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        """Convert database row to entity.

        Args:
            row: Database row tuple

        Returns:
            Entity instance
        """
        pass

    @abstractmethod
    def _entity_to_params(self, entity: T) -> Dict[str, Any]:
        """Convert entity to database parameters.

        Args:
            entity: Entity instance

        Returns:
            Dictionary of column names to values
        """
        pass

    def _fetchall(self, query: str, params: Sequence[Any] = ()) -> List[tuple]:
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    return cur.fetchall()
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Query on {self.table_name} failed") from e

    def _fetchone(self, query: str, params: Sequence[Any] = ()) -> Optional[tuple]:
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    return cur.fetchone()
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Query on {self.table_name} failed") from e

    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID.

        Args:
            entity_id: Entity identifier

        Returns:
            Entity if found, None otherwise
        """
        row = self._fetchone(
            f"SELECT * FROM {self.table_name} WHERE id = %s",
            (entity_id,)
        )
        if row is None:
            return None
        return self._row_to_entity(row)

    def get(self, entity_id: str) -> T:
        """Find entity by ID or raise NotFoundError."""
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.table_name}:{entity_id} not found")
        return entity

    def find_all(
        self,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[T]:
        """Find all entities with pagination.

        Args:
            limit: Maximum entities to return (None for no limit)
            offset: Number of entities to skip

        Returns:
            List of entities
        """
        rows = self._fetchall(
            f"SELECT * FROM {self.table_name} ORDER BY {self.default_order_by} "
            f"LIMIT %s OFFSET %s",
            (limit, offset)
        )
        return [self._row_to_entity(row) for row in rows]

    def find_where(
        self,
        where: str,
        params: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[T], int]:
        """Find entities matching a WHERE clause.

        Args:
            where: SQL condition with %s placeholders ("TRUE" for all rows)
            params: Values for the placeholders
            limit: Maximum entities to return (None for no limit)
            offset: Number of entities to skip

        Returns:
            Tuple of (matching page of entities, total matching count)
        """
        rows = self._fetchall(
            f"SELECT * FROM {self.table_name} WHERE {where} "
            f"ORDER BY {self.default_order_by} LIMIT %s OFFSET %s",
            tuple(params) + (limit, offset)
        )
        count_row = self._fetchone(
            f"SELECT COUNT(*) FROM {self.table_name} WHERE {where}",
            tuple(params)
        )
        total = count_row[0] if count_row else 0
        return [self._row_to_entity(row) for row in rows], total

    def save(self, entity: T) -> T:
        """Save entity (insert or update).

        Args:
            entity: Entity to save

        Returns:
            Saved entity

        Raises:
            DuplicateError: A unique constraint other than the id was violated
            RepositoryError: Any other database failure
        """
        params = self._entity_to_params(entity)
        columns = list(params.keys())
        values = list(params.values())
        placeholders = ["%s"] * len(values)

        # Upsert query
        update_clause = ", ".join(f"{col} = EXCLUDED.{col}" for col in columns if col != "id")

        query = f"""
            INSERT INTO {self.table_name} ({", ".join(columns)})
            VALUES ({", ".join(placeholders)})
            ON CONFLICT (id) DO UPDATE SET {update_clause}
            RETURNING *
        """

        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, values)
                    row = cur.fetchone()
                    conn.commit()
        except errors.UniqueViolation as e:
            logger.warning(
                "REPOSITORY_DUPLICATE",
                extra={"table_name": self.table_name, "constraint": e.diag.constraint_name}
            )
            raise DuplicateError(f"Duplicate entry in {self.table_name}") from e
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_SAVE_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Save to {self.table_name} failed") from e

        if row:
            return self._row_to_entity(row)
        return entity

    def delete(self, entity_id: str) -> bool:
        """Delete entity by ID.

        Args:
            entity_id: Entity identifier

        Returns:
            True if deleted, False if not found
        """
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"DELETE FROM {self.table_name} WHERE id = %s",
                        (entity_id,)
                    )
                    conn.commit()
                    return cur.rowcount > 0
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_DELETE_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Delete from {self.table_name} failed") from e

    def count(self) -> int:
        """Count total entities.

        Returns:
            Total count
        """
        row = self._fetchone(f"SELECT COUNT(*) FROM {self.table_name}")
        return row[0] if row else 0
