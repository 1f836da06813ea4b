"""Relational schema: one table per entity kind.

Every table carries the provenance columns (timestamp, block_number, tx_hash)
and a half-open validity interval `[_cursor_lower, _cursor_upper)` in block
numbers. `_cursor_upper IS NULL` means the row is current. The pipeline only
ever writes open intervals.

Amounts are NUMERIC(78, 18): a full uint256 with 18 fractional digits (an
exact decimal string on SQLite).
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    func,
)
from sqlalchemy.sql.elements import ColumnElement

metadata = MetaData()


class ExactDecimal(TypeDecorator):
    """NUMERIC where the backend has it; a plain decimal string on SQLite.

    SQLite only stores floats, which would round an 18-decimal amount.
    """

    impl = Numeric(78, 18)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(Text())
        return dialect.type_descriptor(Numeric(78, 18))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return format(Decimal(value), "f")

    def process_result_value(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return Decimal(value)


def _provenance(*, with_tx_hash: bool = True) -> list[Column]:
    cols = [
        Column("timestamp", BigInteger, nullable=False),
        Column("block_number", BigInteger, nullable=False),
    ]
    if with_tx_hash:
        cols.append(Column("tx_hash", Text, nullable=False))
    return cols


def _bookkeeping() -> list[Column]:
    return [
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
        Column("_cursor_lower", BigInteger, nullable=False),
        Column("_cursor_upper", BigInteger, nullable=True),
    ]


exams = Table(
    "exams",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("exam_id", Text, nullable=False, unique=True),
    Column("title", Text, nullable=False),
    Column("creator", Text, nullable=False),
    Column("datetime", BigInteger, nullable=False),
    Column("duration", BigInteger, nullable=False),
    Column("is_active", Boolean, nullable=False),
    *_provenance(),
    *_bookkeeping(),
    Index("idx_exams_cursor", "_cursor_lower", "_cursor_upper"),
    Index("idx_exams_creator", "creator"),
)

questions = Table(
    "questions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("exam_id", Text, nullable=False),
    Column("question_id", Text, nullable=False),
    *_provenance(),
    *_bookkeeping(),
    UniqueConstraint("exam_id", "question_id", name="uq_questions_exam_question"),
    Index("idx_questions_cursor", "_cursor_lower", "_cursor_upper"),
    Index("idx_questions_exam_id", "exam_id"),
)

enrollments = Table(
    "enrollments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("exam_id", Text, nullable=False),
    Column("student", Text, nullable=False),
    *_provenance(),
    *_bookkeeping(),
    UniqueConstraint("exam_id", "student", name="uq_enrollments_exam_student"),
    Index("idx_enrollments_cursor", "_cursor_lower", "_cursor_upper"),
    Index("idx_enrollments_exam_id", "exam_id"),
    Index("idx_enrollments_student", "student"),
)

exam_status_changes = Table(
    "exam_status_changes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("exam_id", Text, nullable=False),
    Column("is_active", Boolean, nullable=False),
    *_provenance(),
    *_bookkeeping(),
    Index("idx_exam_status_changes_cursor", "_cursor_lower", "_cursor_upper"),
    Index("idx_exam_status_changes_exam_id", "exam_id"),
)

certificates = Table(
    "certificates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("cert_id", Text, nullable=False, unique=True),
    Column("student", Text, nullable=False),
    *_provenance(),
    *_bookkeeping(),
    Index("idx_certificates_cursor", "_cursor_lower", "_cursor_upper"),
    Index("idx_certificates_student", "student"),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tx_hash", Text, nullable=False),
    Column("from_address", Text, nullable=False),
    Column("to_address", Text, nullable=False),
    Column("amount", ExactDecimal(), nullable=False),
    Column("token", Text, nullable=False),
    *_provenance(with_tx_hash=False),
    *_bookkeeping(),
    Index("idx_transactions_cursor", "_cursor_lower", "_cursor_upper"),
    Index("idx_transactions_tx_hash", "tx_hash"),
    Index("idx_transactions_from_address", "from_address"),
    Index("idx_transactions_to_address", "to_address"),
    Index("idx_transactions_token", "token"),
    Index("idx_transactions_block_number", "block_number"),
)

ALL_TABLES: tuple[Table, ...] = (
    exams,
    questions,
    enrollments,
    exam_status_changes,
    certificates,
    transactions,
)


def is_current(table: Table) -> ColumnElement[bool]:
    """Predicate selecting rows whose validity interval is still open."""
    return table.c["_cursor_upper"].is_(None)
