"""
PostgreSQL connection management shared by the analytics stores.
"""

from contextlib import contextmanager
from typing import Any

import psycopg2
import psycopg2.extras
import structlog

logger = structlog.get_logger(__name__)


class PostgresConnection:
    """Base class for stores backed by a single PostgreSQL connection"""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        connect_timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.connection = None
        self._connect()

    def _connect(self):
        """Establish connection to PostgreSQL"""
        try:
            self.connection = psycopg2.connect(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                connect_timeout=self.connect_timeout,
            )
            logger.info(
                "PostgreSQL connection established",
                host=self.host,
                database=self.database,
            )
        except Exception as e:
            logger.error("Failed to connect to PostgreSQL", host=self.host, error=str(e))
            raise

    @contextmanager
    def get_cursor(self, dict_rows: bool = False):
        """Cursor context manager; commits on success, rolls back on error

        Args:
            dict_rows: Return rows as dicts keyed by column name
        """
        cursor_factory = psycopg2.extras.RealDictCursor if dict_rows else None
        cursor = self.connection.cursor(cursor_factory=cursor_factory)
        try:
            yield cursor
            self.connection.commit()
        except Exception as e:
            self.connection.rollback()
            logger.error("Database operation failed", error=str(e))
            raise
        finally:
            cursor.close()

    def fetch_all(self, query: str, params: Any = None) -> list[dict[str, Any]]:
        """Run a SELECT and return every row as a dict"""
        with self.get_cursor(dict_rows=True) as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def check_health(self) -> bool:
        """Check if database connection is healthy"""
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT 1")
                return cursor.fetchone()[0] == 1
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    def close(self):
        """Close database connection"""
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info("PostgreSQL connection closed", database=self.database)
