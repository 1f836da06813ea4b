"""SQL-backed ingestion store.

Each public write is one unit of work on its own pooled connection: the
connection is acquired, the statements run inside a transaction, and the
connection is returned to the pool on success and on error alike.

Keyed writes use the dialect's native `INSERT ... ON CONFLICT DO NOTHING`, so a
re-delivered event is a no-op and the returned row count is 0.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import asdict
from typing import Any

from sqlalchemy import Connection, Engine, Table, create_engine, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.pool import StaticPool

from skillmind_indexer.core.config import StorageConfig
from skillmind_indexer.core.interfaces import IIngestionStore
from skillmind_indexer.core.models import (
    CertificateRecord,
    EnrollmentRecord,
    ExamRecord,
    ExamStatusRecord,
    QuestionRecord,
    TransferRecord,
)
from skillmind_indexer.storage import queries
from skillmind_indexer.storage.schema import (
    certificates,
    enrollments,
    exam_status_changes,
    exams,
    is_current,
    metadata,
    questions,
    transactions,
)

logger = logging.getLogger(__name__)

_UPSERT_INSERTS: dict[str, Callable[[Table], Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def create_store_engine(config: StorageConfig) -> Engine:
    """Create a pooled engine; in-memory SQLite shares a single connection."""
    if config.url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in config.url or config.url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(config.url, echo=config.echo, **kwargs)
    return create_engine(
        config.url,
        echo=config.echo,
        pool_pre_ping=True,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
    )


def _row(record: Any, **renames: str) -> dict[str, Any]:
    """Column values for `record`, opening its validity interval at its block."""
    row = asdict(record)
    for field_name, column_name in renames.items():
        row[column_name] = row.pop(field_name)
    row["_cursor_lower"] = record.block_number
    row["_cursor_upper"] = None
    return row


class SqlIngestionStore(IIngestionStore):
    """Ingestion store over a SQLAlchemy engine (PostgreSQL or SQLite)."""

    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise ValueError(f"Unsupported database dialect: {dialect}")
        self.engine = engine
        self._upsert_insert = _UPSERT_INSERTS[dialect]

    # ---------- lifecycle ----------

    def initialize(self) -> None:
        metadata.create_all(self.engine)
        logger.info("Database initialized successfully")

    def close(self) -> None:
        self.engine.dispose()

    # ---------- helpers ----------

    def _ignore_conflict(self, table: Table, row: dict[str, Any], key: Sequence[str]):
        return self._upsert_insert(table).values(**row).on_conflict_do_nothing(index_elements=list(key))

    def _insert_ignore(self, table: Table, row: dict[str, Any], key: Sequence[str]) -> int:
        with self.engine.begin() as conn:
            return conn.execute(self._ignore_conflict(table, row, key)).rowcount

    def _apply_latest_status(self, conn: Connection, exam_id: str) -> None:
        """Replay the newest recorded status change onto a freshly inserted exam."""
        latest = conn.execute(
            select(exam_status_changes.c.is_active)
            .where(exam_status_changes.c.exam_id == exam_id)
            .order_by(exam_status_changes.c.block_number.desc(), exam_status_changes.c.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        if latest is not None:
            conn.execute(
                update(exams).where(exams.c.exam_id == exam_id, is_current(exams)).values(is_active=latest)
            )

    def _append_status_change(self, conn: Connection, record: ExamStatusRecord) -> None:
        conn.execute(insert(exam_status_changes).values(**_row(record)))

    def _project_exam_status(self, conn: Connection, record: ExamStatusRecord) -> None:
        conn.execute(
            update(exams)
            .where(exams.c.exam_id == record.exam_id, is_current(exams))
            .values(is_active=record.is_active)
        )

    # ---------- keyed writes ----------

    def save_exam(self, record: ExamRecord) -> int:
        # is_active follows the newest status change, even one stored before the exam
        stmt = self._ignore_conflict(exams, _row(record, scheduled_at="datetime"), ("exam_id",))
        with self.engine.begin() as conn:
            written = conn.execute(stmt).rowcount
            if written:
                self._apply_latest_status(conn, record.exam_id)
        return written

    def save_question(self, record: QuestionRecord) -> int:
        return self._insert_ignore(questions, _row(record), ("exam_id", "question_id"))

    def save_enrollment(self, record: EnrollmentRecord) -> int:
        return self._insert_ignore(enrollments, _row(record), ("exam_id", "student"))

    def save_certificate(self, record: CertificateRecord) -> int:
        return self._insert_ignore(certificates, _row(record), ("cert_id",))

    # ---------- append-only writes ----------

    def save_exam_status(self, record: ExamStatusRecord) -> int:
        with self.engine.begin() as conn:
            self._append_status_change(conn, record)
            self._project_exam_status(conn, record)
        return 1

    def save_transfers(self, records: Sequence[TransferRecord]) -> int:
        if not records:
            return 0
        with self.engine.begin() as conn:
            conn.execute(insert(transactions), [_row(r) for r in records])
        return len(records)

    # ---------- reads ----------

    def latest_block(self) -> int | None:
        """Highest block number persisted in any table."""
        with self.engine.connect() as conn:
            return queries.latest_block(conn)
