"""
queries.py
----------

Read-side lookups used by the HTTP query service.

Includes:
    - Exams (paginated, optionally by creator) and single exam lookup
    - Questions and enrollments per exam, enrollments per student
    - Certificates per student
    - Token transfers by address or by token
    - Aggregate counts and latest indexed block

Every function takes an open SQLAlchemy `Connection` and returns plain
JSON-ready dicts: amounts become decimal strings, timestamps ISO-8601.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Connection, Row, func, or_, select, union_all

from skillmind_indexer.storage.schema import (
    ALL_TABLES,
    certificates,
    enrollments,
    exam_status_changes,
    exams,
    is_current,
    questions,
    transactions,
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _to_dict(row: Row) -> dict[str, Any]:
    return {k: _jsonable(v) for k, v in row._mapping.items()}


# =====================================================================
# EXAMS
# =====================================================================

def get_exams(conn: Connection, *, limit: int, offset: int, creator: str | None = None) -> list[dict[str, Any]]:
    """Current exams, most recently scheduled first.

    Args:
        conn: Open connection.
        limit: Page size.
        offset: Rows to skip.
        creator: Optional creator address filter.

    Returns:
        List of exam rows.
    """
    stmt = select(exams).where(is_current(exams))
    if creator:
        stmt = stmt.where(exams.c.creator == creator)
    stmt = stmt.order_by(exams.c.datetime.desc(), exams.c.id.desc()).limit(limit).offset(offset)
    return [_to_dict(r) for r in conn.execute(stmt)]


def get_exam_by_id(conn: Connection, exam_id: str) -> dict[str, Any] | None:
    """Single exam by its decimal id, or None."""
    row = conn.execute(select(exams).where(exams.c.exam_id == exam_id)).first()
    return _to_dict(row) if row is not None else None


def get_exam_status_history(conn: Connection, exam_id: str) -> list[dict[str, Any]]:
    """Status-change audit trail of one exam, oldest first."""
    stmt = (
        select(exam_status_changes)
        .where(exam_status_changes.c.exam_id == exam_id)
        .order_by(exam_status_changes.c.block_number, exam_status_changes.c.id)
    )
    return [_to_dict(r) for r in conn.execute(stmt)]


# =====================================================================
# QUESTIONS / ENROLLMENTS
# =====================================================================

def get_questions_by_exam_id(conn: Connection, exam_id: str) -> list[dict[str, Any]]:
    """All questions of an exam ordered by question id."""
    stmt = select(questions).where(questions.c.exam_id == exam_id).order_by(questions.c.question_id)
    return [_to_dict(r) for r in conn.execute(stmt)]


def get_enrollments_by_exam_id(conn: Connection, exam_id: str) -> list[dict[str, Any]]:
    """All enrollments of an exam in insertion order."""
    stmt = select(enrollments).where(enrollments.c.exam_id == exam_id).order_by(enrollments.c.id)
    return [_to_dict(r) for r in conn.execute(stmt)]


def get_enrollments_by_student(
    conn: Connection, student: str, *, limit: int, offset: int
) -> list[dict[str, Any]]:
    """Enrollments of a student joined with exam details, latest exam first.

    Args:
        conn: Open connection.
        student: Student address.
        limit: Page size.
        offset: Rows to skip.

    Returns:
        Enrollment rows extended with title, datetime, duration and is_active.
    """
    stmt = (
        select(
            enrollments,
            exams.c.title,
            exams.c.datetime,
            exams.c.duration,
            exams.c.is_active,
        )
        .join(exams, enrollments.c.exam_id == exams.c.exam_id)
        .where(enrollments.c.student == student)
        .order_by(exams.c.datetime.desc(), enrollments.c.id)
        .limit(limit)
        .offset(offset)
    )
    return [_to_dict(r) for r in conn.execute(stmt)]


# =====================================================================
# CERTIFICATES
# =====================================================================

def get_certificates_by_student(
    conn: Connection, student: str, *, limit: int, offset: int
) -> list[dict[str, Any]]:
    """Certificates claimed by a student, newest first."""
    stmt = (
        select(certificates)
        .where(certificates.c.student == student)
        .order_by(certificates.c.timestamp.desc(), certificates.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [_to_dict(r) for r in conn.execute(stmt)]


# =====================================================================
# TOKEN TRANSFERS
# =====================================================================

def get_transactions_by_address(
    conn: Connection, address: str, *, limit: int, offset: int
) -> list[dict[str, Any]]:
    """Transfers where `address` is sender or receiver, newest block first."""
    stmt = (
        select(transactions)
        .where(or_(transactions.c.from_address == address, transactions.c.to_address == address))
        .order_by(transactions.c.block_number.desc(), transactions.c.timestamp.desc(), transactions.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [_to_dict(r) for r in conn.execute(stmt)]


def get_transactions_by_token(
    conn: Connection, token: str, *, limit: int, offset: int
) -> list[dict[str, Any]]:
    """Transfers of one token contract, newest block first."""
    stmt = (
        select(transactions)
        .where(transactions.c.token == token)
        .order_by(transactions.c.block_number.desc(), transactions.c.timestamp.desc(), transactions.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [_to_dict(r) for r in conn.execute(stmt)]


# =====================================================================
# STATS
# =====================================================================

def count_rows(conn: Connection) -> dict[str, int]:
    """Row count per table, keyed by table name."""
    return {
        table.name: conn.execute(select(func.count()).select_from(table)).scalar_one()
        for table in ALL_TABLES
    }


def latest_block(conn: Connection) -> int | None:
    """Highest block number across all tables, or None when empty."""
    blocks = union_all(*(select(t.c.block_number.label("block_number")) for t in ALL_TABLES)).subquery()
    return conn.execute(select(func.max(blocks.c.block_number))).scalar()
