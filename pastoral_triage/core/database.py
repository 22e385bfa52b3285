"""
Database repository for triage items.

PostgreSQL storage with the source message id as a unique key, so a
message can never produce two triage items.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Json

from pastoral_triage.config import settings
from pastoral_triage.core.errors import PersistenceError
from pastoral_triage.core.logging import get_logger
from pastoral_triage.core.models import CaseAction, TriageItem, TriageStatus

log = get_logger(__name__)

# Statuses a reviewer may move an item to
TRANSITION_STATUSES = {
    TriageStatus.REVIEWED,
    TriageStatus.PROMOTED,
    TriageStatus.REJECTED,
    TriageStatus.SNOOZED,
}

ITEM_COLUMNS = """
    id, message_id, thread_id, mailbox, received_at, subject, sender,
    recipients, cc, body_preview, confidence, extracted, status,
    snooze_until, created_at, updated_at
"""


class TriageStore:
    """PostgreSQL operations for triage items."""

    def __init__(self, connection_string: str | None = None):
        """
        Initialize the store.

        Args:
            connection_string: PostgreSQL connection URL. Uses settings if not provided.
        """
        self.connection_string = connection_string or settings.database_url

    @contextmanager
    def get_connection(self) -> Generator[psycopg.Connection, None, None]:
        """Get a database connection as a context manager."""
        try:
            conn = psycopg.connect(self.connection_string, row_factory=dict_row)
        except psycopg.Error as e:
            raise PersistenceError(f"Could not connect to triage database: {e}") from e
        try:
            yield conn
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e
        finally:
            conn.close()

    def init_schema(self) -> None:
        """Initialize database schema (create tables if not exist)."""
        schema_sql = """
        CREATE TABLE IF NOT EXISTS triage_items (
            id SERIAL PRIMARY KEY,
            message_id VARCHAR(512) UNIQUE NOT NULL,
            thread_id VARCHAR(512),
            mailbox VARCHAR(255) NOT NULL,
            received_at TIMESTAMPTZ NOT NULL,
            subject TEXT NOT NULL DEFAULT '',
            sender VARCHAR(255) NOT NULL DEFAULT '',
            recipients TEXT[] NOT NULL DEFAULT '{}',
            cc TEXT[] NOT NULL DEFAULT '{}',
            body_preview TEXT NOT NULL DEFAULT '',
            confidence DOUBLE PRECISION NOT NULL
                CHECK (confidence >= 0 AND confidence <= 1),
            extracted JSONB NOT NULL DEFAULT '{}',
            status VARCHAR(20) NOT NULL DEFAULT 'New'
                CHECK (status IN ('New', 'Reviewed', 'Promoted', 'Rejected', 'Snoozed')),
            snooze_until TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_triage_received ON triage_items(received_at DESC);
        CREATE INDEX IF NOT EXISTS idx_triage_status ON triage_items(status, received_at DESC);
        CREATE INDEX IF NOT EXISTS idx_triage_confidence ON triage_items(confidence DESC);
        CREATE INDEX IF NOT EXISTS idx_triage_student_email
            ON triage_items((extracted->>'studentEmail'));
        """

        with self.get_connection() as conn:
            conn.execute(schema_sql)
            conn.commit()
            log.info("database_schema_initialized")

    def exists(self, message_id: str) -> bool:
        """Check if a triage item already exists for a source message id."""
        with self.get_connection() as conn:
            result = conn.execute(
                "SELECT 1 FROM triage_items WHERE message_id = %s LIMIT 1",
                (message_id,),
            ).fetchone()
            return result is not None

    def insert(self, item: TriageItem) -> int | None:
        """
        Insert a new triage item.

        The insert is atomic against the unique message id: when another
        writer got there first nothing is written.

        Args:
            item: TriageItem to insert

        Returns:
            The new row ID, or None if an item for this message already exists
        """
        sql = """
        INSERT INTO triage_items (
            message_id, thread_id, mailbox, received_at, subject, sender,
            recipients, cc, body_preview, confidence, extracted, status
        ) VALUES (
            %(message_id)s, %(thread_id)s, %(mailbox)s, %(received_at)s,
            %(subject)s, %(sender)s, %(recipients)s, %(cc)s, %(body_preview)s,
            %(confidence)s, %(extracted)s, %(status)s
        )
        ON CONFLICT (message_id) DO NOTHING
        RETURNING id
        """

        params = {
            "message_id": item.message_id,
            "thread_id": item.thread_id,
            "mailbox": item.mailbox,
            "received_at": item.received_at,
            "subject": item.subject,
            "sender": item.sender,
            "recipients": list(item.to),
            "cc": list(item.cc),
            "body_preview": item.body_preview,
            "confidence": item.confidence,
            "extracted": Json(item.extracted),
            "status": item.status.value,
        }

        with self.get_connection() as conn:
            result = conn.execute(sql, params).fetchone()
            conn.commit()

        if result is None:
            log.info("triage_item_conflict", message_id=item.message_id)
            return None

        log.info(
            "triage_item_inserted",
            item_id=result["id"],
            message_id=item.message_id,
            confidence=item.confidence,
        )
        return result["id"]

    def get(self, item_id: int) -> TriageItem | None:
        """Fetch a single triage item by ID."""
        with self.get_connection() as conn:
            row = conn.execute(
                f"SELECT {ITEM_COLUMNS} FROM triage_items WHERE id = %s",
                (item_id,),
            ).fetchone()
            return self._row_to_item(row) if row else None

    def list_items(
        self,
        status: TriageStatus | None = None,
        min_confidence: float | None = None,
        limit: int = 100,
    ) -> list[TriageItem]:
        """
        Fetch triage items, newest received first.

        Args:
            status: Only return items with this status (optional)
            min_confidence: Only return items at or above this confidence (optional)
            limit: Maximum number of items to return

        Returns:
            List of TriageItem objects
        """
        conditions = []
        params: list[Any] = []
        if status is not None:
            conditions.append("status = %s")
            params.append(status.value)
        if min_confidence is not None:
            conditions.append("confidence >= %s")
            params.append(min_confidence)

        where_sql = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"""
        SELECT {ITEM_COLUMNS}
        FROM triage_items
        {where_sql}
        ORDER BY received_at DESC
        LIMIT %s
        """
        params.append(limit)

        with self.get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_item(row) for row in rows]

    def update_status(
        self,
        item_id: int,
        status: TriageStatus,
        snooze_until: datetime | None = None,
    ) -> TriageItem | None:
        """
        Move a triage item to a review status and stamp updated_at.

        Args:
            item_id: Triage item ID
            status: Target status (Reviewed, Promoted, Rejected or Snoozed)
            snooze_until: Wake-up time, only stored for Snoozed

        Returns:
            The updated item, or None if no item has this ID
        """
        if status not in TRANSITION_STATUSES:
            raise ValueError(f"Cannot transition triage item to {status.value}")

        # Only a snooze touches snooze_until; other transitions keep it
        if status == TriageStatus.SNOOZED:
            assignments = "status = %s, snooze_until = %s, updated_at = NOW()"
            params: tuple = (status.value, snooze_until, item_id)
        else:
            assignments = "status = %s, updated_at = NOW()"
            params = (status.value, item_id)

        sql = f"""
        UPDATE triage_items
        SET {assignments}
        WHERE id = %s
        RETURNING {ITEM_COLUMNS}
        """

        with self.get_connection() as conn:
            row = conn.execute(sql, params).fetchone()
            conn.commit()

        if row is None:
            return None
        log.info("triage_item_status_updated", item_id=item_id, status=status.value)
        return self._row_to_item(row)

    def get_stats(self) -> dict[str, Any]:
        """Get item counts per status."""
        sql = """
        SELECT
            COUNT(*) as total,
            COUNT(*) FILTER (WHERE status = 'New') as new,
            COUNT(*) FILTER (WHERE status = 'Reviewed') as reviewed,
            COUNT(*) FILTER (WHERE status = 'Promoted') as promoted,
            COUNT(*) FILTER (WHERE status = 'Rejected') as rejected,
            COUNT(*) FILTER (WHERE status = 'Snoozed') as snoozed
        FROM triage_items
        """

        with self.get_connection() as conn:
            row = conn.execute(sql).fetchone()
            return dict(row) if row else {}

    @staticmethod
    def _row_to_item(row: dict[str, Any]) -> TriageItem:
        extracted = row["extracted"] or {}
        try:
            action = CaseAction(extracted.get("suggestedCaseAction") or CaseAction.IGNORE.value)
        except ValueError:
            action = CaseAction.IGNORE

        return TriageItem(
            id=row["id"],
            message_id=row["message_id"],
            thread_id=row["thread_id"],
            mailbox=row["mailbox"],
            received_at=row["received_at"],
            subject=row["subject"] or "",
            sender=row["sender"] or "",
            to=list(row["recipients"] or []),
            cc=list(row["cc"] or []),
            body_preview=row["body_preview"] or "",
            confidence=row["confidence"],
            student_email=extracted.get("studentEmail"),
            names=list(extracted.get("names") or []),
            programme=extracted.get("programme"),
            tags=list(extracted.get("tags") or []),
            suggested_case_action=action,
            status=TriageStatus(row["status"]),
            snooze_until=row["snooze_until"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
