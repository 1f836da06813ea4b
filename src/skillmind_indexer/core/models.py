"""Core data models.

This module defines:
- `Block`, `BlockHeader`, `LogEntry`: blocks as delivered by the stream source.
- `Meta`: provenance stamped on every decoded record.
- Typed records (`ExamRecord`, ..., `TransferRecord`) forming the closed
  `EventRecord` union produced by the decoder.
- `BlockStats` / `RunStats`: counters for observability.

Design notes
------------
- uint256 identifiers are kept as base-10 strings, never ints, so that
  consumers without 256-bit arithmetic do not lose precision.
- Transfer amounts are `Decimal`, never float.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


class EventKind(str, Enum):
    """Logical event kinds understood by the decoder."""

    EXAM_CREATED = "ExamCreated"
    QUESTION_ADDED = "QuestionAdded"
    STUDENT_ENROLLED = "StudentEnrolled"
    EXAM_STATUS_CHANGED = "ExamStatusChanged"
    COURSE_CERT_CLAIMED = "CourseCertClaimed"
    TRANSFER = "Transfer"


# === Stream input ===


@dataclass(slots=True, frozen=True)
class BlockHeader:
    block_number: int
    block_hash: str
    parent_hash: str
    timestamp: str  # ISO-8601

    @property
    def unix_timestamp(self) -> int:
        """Block time in whole seconds since the epoch (naive times are UTC)."""
        dt = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())


@dataclass(slots=True, frozen=True)
class LogEntry:
    """One emitted event: emitting address, key fields and data fields."""

    from_address: str
    keys: tuple[str, ...]
    data: tuple[str, ...]
    tx_hash: str | None = None


@dataclass(slots=True, frozen=True)
class Block:
    header: BlockHeader | None
    entries: tuple[LogEntry, ...] = ()


@dataclass(slots=True, frozen=True)
class Meta:
    """Provenance of a decoded record."""

    timestamp: int
    block_number: int
    tx_hash: str


# === Decoded records ===


@dataclass(slots=True, frozen=True)
class ExamRecord:
    exam_id: str
    title: str
    creator: str
    scheduled_at: int
    duration: int
    is_active: bool
    timestamp: int
    block_number: int
    tx_hash: str


@dataclass(slots=True, frozen=True)
class QuestionRecord:
    exam_id: str
    question_id: str
    timestamp: int
    block_number: int
    tx_hash: str


@dataclass(slots=True, frozen=True)
class EnrollmentRecord:
    exam_id: str
    student: str
    timestamp: int
    block_number: int
    tx_hash: str


@dataclass(slots=True, frozen=True)
class ExamStatusRecord:
    exam_id: str
    is_active: bool
    timestamp: int
    block_number: int
    tx_hash: str


@dataclass(slots=True, frozen=True)
class CertificateRecord:
    cert_id: str
    student: str
    timestamp: int
    block_number: int
    tx_hash: str


@dataclass(slots=True, frozen=True)
class TransferRecord:
    tx_hash: str
    from_address: str
    to_address: str
    amount: Decimal
    token: str
    timestamp: int
    block_number: int


EventRecord = (
    ExamRecord
    | QuestionRecord
    | EnrollmentRecord
    | ExamStatusRecord
    | CertificateRecord
    | TransferRecord
)


# === Stats ===


@dataclass(kw_only=True)
class BlockStats:
    """Outcome of processing one block."""

    block_number: int | None = None
    entries: int = 0
    saved: Counter[EventKind] = field(default_factory=Counter)
    duplicates: int = 0  # keyed records already present
    skipped: int = 0  # unrecognized kind or too few fields
    failed: int = 0  # decode or write error

    @property
    def total_saved(self) -> int:
        return sum(self.saved.values())


@dataclass(kw_only=True)
class RunStats:
    """Aggregated counters over a run of the indexer."""

    blocks: int = 0
    headerless_blocks: int = 0
    entries: int = 0
    saved: Counter[EventKind] = field(default_factory=Counter)
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    last_block: int | None = None

    def add(self, stats: BlockStats) -> None:
        """Fold one block's stats into the run totals."""
        self.blocks += 1
        if stats.block_number is None:
            self.headerless_blocks += 1
        else:
            self.last_block = stats.block_number
        self.entries += stats.entries
        self.saved.update(stats.saved)
        self.duplicates += stats.duplicates
        self.skipped += stats.skipped
        self.failed += stats.failed
