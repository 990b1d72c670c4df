"""
PostgreSQL segment store.

Gives detected segments their durable identity. Identifiers come from an
injected generator so detection stays deterministic and testable.
"""

import random
import string
from collections.abc import Callable
from dataclasses import replace

import psycopg2.extras
import structlog

from src.core.database import PostgresConnection

from .models import AnalyticConfig, Segment, SegmentType

logger = structlog.get_logger(__name__)

ID_LENGTH = 20

_ID_ALPHABET = string.ascii_letters + string.digits


def get_random_str(length: int = ID_LENGTH) -> str:
    """Random alphanumeric identifier"""
    return "".join(random.choices(_ID_ALPHABET, k=length))


class SegmentsDatabase(PostgresConnection):
    """Segment persistence"""

    def __init__(
        self,
        config: AnalyticConfig,
        id_generator: Callable[[], str] | None = None,
    ):
        super().__init__(
            host=config.postgres_host,
            port=config.postgres_port,
            database=config.postgres_database,
            user=config.postgres_user,
            password=config.postgres_password,
        )
        self.config = config
        self.id_generator = id_generator or get_random_str

    def insert_segments(self, segments: list[Segment]) -> list[Segment]:
        """Persist segments, assigning an id to those that have none

        Segments that already carry an id overwrite the stored version.

        Returns:
            Copies of the segments with their ids
        """
        if not segments:
            return []

        identified = [
            s if s.id is not None else replace(s, id=self.id_generator()) for s in segments
        ]

        query = """
            INSERT INTO segments (id, start_time, end_time, segment_type, open_ended)
            VALUES (%(id)s, %(from)s, %(to)s, %(segment_type)s, %(open_ended)s)
            ON CONFLICT (id) DO UPDATE SET
                start_time = EXCLUDED.start_time,
                end_time = EXCLUDED.end_time,
                segment_type = EXCLUDED.segment_type,
                open_ended = EXCLUDED.open_ended
        """

        with self.get_cursor() as cursor:
            psycopg2.extras.execute_batch(
                cursor, query, [s.to_dict() for s in identified], page_size=100
            )

        logger.debug("Segments saved", count=len(identified))
        return identified

    def get_segments(self, from_: int, to: int) -> list[Segment]:
        """Segments overlapping [from_, to], ordered by start"""
        query = """
            SELECT id, start_time, end_time, segment_type, open_ended
            FROM segments
            WHERE start_time <= %s AND end_time >= %s
            ORDER BY start_time
        """
        rows = self.fetch_all(query, (to, from_))
        return [
            Segment(
                from_=row["start_time"],
                to=row["end_time"],
                segment_type=SegmentType(row["segment_type"]),
                id=row["id"],
                open_ended=row["open_ended"],
            )
            for row in rows
        ]

    def delete_segments(self, ids: list[str]) -> int:
        """Delete segments by id and return how many were removed"""
        if not ids:
            return 0

        with self.get_cursor() as cursor:
            cursor.execute("DELETE FROM segments WHERE id = ANY(%s)", (list(ids),))
            deleted = cursor.rowcount

        logger.debug("Segments deleted", requested=len(ids), deleted=deleted)
        return deleted

    def ensure_table_exists(self):
        """Create the segments table if it doesn't exist"""
        query = f"""
            CREATE TABLE IF NOT EXISTS segments (
                id VARCHAR({ID_LENGTH}) PRIMARY KEY,
                start_time BIGINT NOT NULL,
                end_time BIGINT NOT NULL,
                segment_type VARCHAR(16) NOT NULL,
                open_ended BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                CHECK (start_time <= end_time)
            );

            CREATE INDEX IF NOT EXISTS idx_segments_range
            ON segments(start_time, end_time);
        """

        with self.get_cursor() as cursor:
            cursor.execute(query)
        logger.info("Ensured segments table exists")
