from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from typing import Protocol, runtime_checkable

from skillmind_indexer.core.models import (
    Block,
    CertificateRecord,
    EnrollmentRecord,
    ExamRecord,
    ExamStatusRecord,
    QuestionRecord,
    TransferRecord,
)


# ---------------------------------------------------------------------------
# IBlockSource
# ---------------------------------------------------------------------------

@runtime_checkable
class IBlockSource(Protocol):
    """
    Abstract source of blocks and their filtered log entries.

    Domain expectations:
    - Blocks are delivered in increasing block-number order.
    - Only entries matching the subscribed filter are included.
    - Ordering and finality are the source's responsibility; the pipeline
      trusts them and never re-verifies.
    """

    def blocks(self) -> AsyncGenerator[Block, None]:
        """
        Yield blocks one at a time.

        Implementations:
        - JSONL replay file
        - HTTP NDJSON stream
        - In-memory list for testing
        """
        ...


# ---------------------------------------------------------------------------
# IIngestionStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IIngestionStore(Protocol):
    """
    Idempotent sink for decoded records.

    Domain expectations:
    - Keyed writes are insert-or-ignore on the natural key; they return the
      number of rows actually written (0 for a duplicate).
    - Each call is one unit of work: it commits entirely or not at all.
    - Append-only writes (status changes, transfers) are not deduplicated;
      the caller must not resubmit committed ones.
    """

    def initialize(self) -> None:
        """Ensure the backing schema exists."""
        ...

    def save_exam(self, record: ExamRecord) -> int: ...

    def save_question(self, record: QuestionRecord) -> int: ...

    def save_enrollment(self, record: EnrollmentRecord) -> int: ...

    def save_certificate(self, record: CertificateRecord) -> int: ...

    def save_exam_status(self, record: ExamStatusRecord) -> int:
        """Append the audit row and project `is_active` onto the exam, atomically."""
        ...

    def save_transfers(self, records: Sequence[TransferRecord]) -> int:
        """Append a batch of transfers in a single unit of work."""
        ...
