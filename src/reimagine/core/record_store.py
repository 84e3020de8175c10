"""SQLite store for generation records."""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from reimagine.core.errors import RecordNotFoundError, RecordStateError
from reimagine.core.models import GenerationRecord, GenerationStatus, GenerationUpdate

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "prompt",
    "original_image_url",
    "generated_image_url",
    "status",
    "error_message",
    "created_at",
)


def _timestamp(moment: datetime) -> str:
    # Fixed-width timestamps so lexical order matches chronological order.
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


class GenerationRecordStore:
    """Persist generation records with a pending -> terminal lifecycle.

    Every operation opens its own connection, so the store can be shared by
    the request threads of the web server.  Writes are serialised with a lock;
    reads are not, and may observe a record mid-update.

    Args:
        db_path: Path to the SQLite database file (created if missing).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()
        self._initialize_db()
        logger.info(f"Initialized generation store at {self.db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS generations (
                    id TEXT PRIMARY KEY,
                    prompt TEXT NOT NULL,
                    original_image_url TEXT,
                    generated_image_url TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    error_message TEXT,
                    created_at TEXT NOT NULL
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_generations_created_at
                ON generations(created_at DESC)
                """)

    @staticmethod
    def _to_record(row: sqlite3.Row) -> GenerationRecord:
        return GenerationRecord.model_validate({column: row[column] for column in _COLUMNS})

    def create(self, prompt: str, original_image_url: str | None = None) -> GenerationRecord:
        """Insert a new ``pending`` record.

        Args:
            prompt: Trimmed user prompt.
            original_image_url: Uploaded image as a data URL, if it is kept.

        Returns:
            The stored record.
        """
        record = GenerationRecord(
            id=str(uuid.uuid4()),
            prompt=prompt,
            original_image_url=original_image_url,
            status=GenerationStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        with self._write_lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO generations
                    (id, prompt, original_image_url, generated_image_url,
                     status, error_message, created_at)
                VALUES (?, ?, ?, NULL, ?, NULL, ?)
                """,
                (
                    record.id,
                    record.prompt,
                    record.original_image_url,
                    record.status.value,
                    _timestamp(record.created_at),
                ),
            )
        logger.debug(f"Created generation {record.id}")
        return record

    def update(self, record_id: str, patch: GenerationUpdate) -> GenerationRecord:
        """Move a pending record to a terminal state.

        Args:
            record_id: Id of the record to update.
            patch: Fields to write; only explicitly set fields are applied.

        Returns:
            The updated record.

        Raises:
            RecordNotFoundError: If no record has ``record_id``.
            RecordStateError: If the record is already terminal, or the patch
                does not describe a valid terminal state.
        """
        changes = patch.model_dump(exclude_unset=True)
        status = changes.get("status")

        if status is None or not GenerationStatus(status).is_terminal:
            raise RecordStateError("Updates must move a record to completed or failed")
        if status == GenerationStatus.COMPLETED and not changes.get("generated_image_url"):
            raise RecordStateError("A completed record needs generated_image_url")
        if status == GenerationStatus.FAILED and not changes.get("error_message"):
            raise RecordStateError("A failed record needs error_message")

        changes["status"] = GenerationStatus(status).value

        with self._write_lock, self._connect() as conn:
            row = conn.execute(
                "SELECT status FROM generations WHERE id = ?",
                (record_id,),
            ).fetchone()
            if row is None:
                raise RecordNotFoundError(f"Generation not found: {record_id}")
            if row["status"] != GenerationStatus.PENDING.value:
                raise RecordStateError(f"Generation {record_id} is already {row['status']}")

            assignments = ", ".join(f"{column} = ?" for column in changes)
            conn.execute(
                f"UPDATE generations SET {assignments} WHERE id = ?",
                (*changes.values(), record_id),
            )
            updated = conn.execute(
                "SELECT * FROM generations WHERE id = ?",
                (record_id,),
            ).fetchone()

        logger.info(f"Generation {record_id} -> {changes['status']}")
        return self._to_record(updated)

    def get(self, record_id: str) -> GenerationRecord | None:
        """Return the record with ``record_id``, or ``None``."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM generations WHERE id = ?",
                (record_id,),
            ).fetchone()
        return self._to_record(row) if row else None

    def list_recent(self, limit: int) -> list[GenerationRecord]:
        """Return up to ``limit`` records, newest first.

        Records created in the same microsecond are ordered by insertion, latest first.
        """
        if limit < 1:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM generations
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [self._to_record(row) for row in rows]

    def count(self) -> int:
        """Return the total number of stored records."""
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM generations").fetchone()
        return row[0] if row else 0
