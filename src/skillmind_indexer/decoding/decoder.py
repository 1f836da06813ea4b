"""Event decoder: one log entry → one typed record, or None.

Transfer tokens are stored in canonical address form (see `normalize_address`).

The leading key of an entry selects its `EventKind` (see `EventCatalog`), and
the data fields are then read according to the layout of that kind:

    ExamCreated        [exam_id.low, exam_id.high, title, creator, datetime, duration, is_active]
    QuestionAdded      [exam_id.low, exam_id.high, question_id.low, question_id.high]
    StudentEnrolled    [exam_id.low, exam_id.high, student]
    ExamStatusChanged  [exam_id.low, exam_id.high, is_active]
    CourseCertClaimed  [cert_id.low, cert_id.high, student]
    Transfer           [from, to, amount.low, amount.high]

Filtering rules:
- unknown selector → None
- fewer data fields than the kind requires → None

A field that cannot be decoded raises `ValueError`; callers decide what to do
with it.
"""

from __future__ import annotations

from collections.abc import Sequence

from skillmind_indexer.core.constants import DECIMALS, TRUE_FELT
from skillmind_indexer.core.models import (
    CertificateRecord,
    EnrollmentRecord,
    EventKind,
    EventRecord,
    ExamRecord,
    ExamStatusRecord,
    LogEntry,
    Meta,
    QuestionRecord,
    TransferRecord,
)
from skillmind_indexer.decoding.catalog import EventCatalog
from skillmind_indexer.decoding.codec import (
    decode_packed_text,
    decode_wide_int,
    felt_to_int,
    normalize_address,
    to_fixed_point,
)

# Minimum number of data fields per kind; checked before any indexing.
MIN_DATA_FIELDS: dict[EventKind, int] = {
    EventKind.EXAM_CREATED: 6,
    EventKind.QUESTION_ADDED: 4,
    EventKind.STUDENT_ENROLLED: 3,
    EventKind.EXAM_STATUS_CHANGED: 3,
    EventKind.COURSE_CERT_CLAIMED: 3,
    EventKind.TRANSFER: 4,
}


# ---------- helpers ----------


def _is_true(data: Sequence[str], i: int) -> bool:
    """Felt boolean at index `i`; missing or anything but 0x1 is False."""
    return len(data) > i and data[i] == TRUE_FELT


def _wide(data: Sequence[str], i: int) -> str:
    """uint256 stored as (low, high) at data[i], data[i + 1]."""
    return decode_wide_int(data[i], data[i + 1])


# ---------- per-kind decoders ----------


def _decode_exam_created(data: Sequence[str], meta: Meta) -> ExamRecord:
    return ExamRecord(
        exam_id=_wide(data, 0),
        title=decode_packed_text(data[2]),
        creator=data[3],
        scheduled_at=felt_to_int(data[4]),
        duration=felt_to_int(data[5]),
        is_active=_is_true(data, 6),
        timestamp=meta.timestamp,
        block_number=meta.block_number,
        tx_hash=meta.tx_hash,
    )


def _decode_question_added(data: Sequence[str], meta: Meta) -> QuestionRecord:
    return QuestionRecord(
        exam_id=_wide(data, 0),
        question_id=_wide(data, 2),
        timestamp=meta.timestamp,
        block_number=meta.block_number,
        tx_hash=meta.tx_hash,
    )


def _decode_student_enrolled(data: Sequence[str], meta: Meta) -> EnrollmentRecord:
    return EnrollmentRecord(
        exam_id=_wide(data, 0),
        student=data[2],
        timestamp=meta.timestamp,
        block_number=meta.block_number,
        tx_hash=meta.tx_hash,
    )


def _decode_exam_status_changed(data: Sequence[str], meta: Meta) -> ExamStatusRecord:
    return ExamStatusRecord(
        exam_id=_wide(data, 0),
        is_active=_is_true(data, 2),
        timestamp=meta.timestamp,
        block_number=meta.block_number,
        tx_hash=meta.tx_hash,
    )


def _decode_course_cert_claimed(data: Sequence[str], meta: Meta) -> CertificateRecord:
    return CertificateRecord(
        cert_id=_wide(data, 0),
        student=data[2],
        timestamp=meta.timestamp,
        block_number=meta.block_number,
        tx_hash=meta.tx_hash,
    )


def _decode_transfer(data: Sequence[str], meta: Meta, token: str, decimals: int) -> TransferRecord:
    return TransferRecord(
        tx_hash=meta.tx_hash,
        from_address=data[0],
        to_address=data[1],
        amount=to_fixed_point(_wide(data, 2), decimals),
        token=token,
        timestamp=meta.timestamp,
        block_number=meta.block_number,
    )


# ---------- main dispatcher ----------


def decode_entry(
    *,
    entry: LogEntry,
    meta: Meta,
    catalog: EventCatalog,
    decimals: int = DECIMALS,
) -> EventRecord | None:
    """Decode one log entry into its typed record, or None if not of interest."""
    kind = catalog.classify(entry)
    if kind is None:
        return None

    data = entry.data
    if len(data) < MIN_DATA_FIELDS[kind]:
        return None

    match kind:
        case EventKind.EXAM_CREATED:
            return _decode_exam_created(data, meta)
        case EventKind.QUESTION_ADDED:
            return _decode_question_added(data, meta)
        case EventKind.STUDENT_ENROLLED:
            return _decode_student_enrolled(data, meta)
        case EventKind.EXAM_STATUS_CHANGED:
            return _decode_exam_status_changed(data, meta)
        case EventKind.COURSE_CERT_CLAIMED:
            return _decode_course_cert_claimed(data, meta)
        case EventKind.TRANSFER:
            return _decode_transfer(data, meta, normalize_address(entry.from_address), decimals)
    return None
