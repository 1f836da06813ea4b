from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from enum import Enum

from skillmind_indexer.core.constants import DECIMALS
from skillmind_indexer.core.interfaces import IBlockSource, IIngestionStore
from skillmind_indexer.core.models import (
    Block,
    BlockStats,
    CertificateRecord,
    EnrollmentRecord,
    EventKind,
    EventRecord,
    ExamRecord,
    ExamStatusRecord,
    LogEntry,
    Meta,
    QuestionRecord,
    RunStats,
    TransferRecord,
)
from skillmind_indexer.decoding.catalog import EventCatalog
from skillmind_indexer.decoding.decoder import decode_entry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-entry outcome
# ---------------------------------------------------------------------------


class Outcome(str, Enum):
    SAVED = "saved"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    FAILED = "failed"


_SUMMARY_LABELS: dict[EventKind, str] = {
    EventKind.EXAM_CREATED: "new exams",
    EventKind.QUESTION_ADDED: "questions",
    EventKind.STUDENT_ENROLLED: "enrollments",
    EventKind.EXAM_STATUS_CHANGED: "exam status changes",
    EventKind.COURSE_CERT_CLAIMED: "certificates",
    EventKind.TRANSFER: "token transfers",
}


# ---------------------------------------------------------------------------
# Block processor
# ---------------------------------------------------------------------------


class BlockProcessor:
    """
    Decode and persist the log entries of one block at a time.

    Entries are handled strictly in delivery order. A failure on one entry
    (bad payload, write error) is logged and counted, and processing moves on
    to the next entry: nothing raised while handling an entry escapes
    `process_block`.
    """

    def __init__(
        self,
        store: IIngestionStore,
        catalog: EventCatalog,
        *,
        decimals: int = DECIMALS,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._decimals = decimals

    def _persist(self, record: EventRecord) -> tuple[EventKind, int]:
        """Hand `record` to its store operation; return (kind, rows written)."""
        match record:
            case ExamRecord():
                return EventKind.EXAM_CREATED, self._store.save_exam(record)
            case QuestionRecord():
                return EventKind.QUESTION_ADDED, self._store.save_question(record)
            case EnrollmentRecord():
                return EventKind.STUDENT_ENROLLED, self._store.save_enrollment(record)
            case ExamStatusRecord():
                return EventKind.EXAM_STATUS_CHANGED, self._store.save_exam_status(record)
            case CertificateRecord():
                return EventKind.COURSE_CERT_CLAIMED, self._store.save_certificate(record)
            case TransferRecord():
                return EventKind.TRANSFER, self._store.save_transfers([record])
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def _handle_entry(self, entry: LogEntry, meta: Meta, stats: BlockStats) -> Outcome:
        try:
            record = decode_entry(entry=entry, meta=meta, catalog=self._catalog, decimals=self._decimals)
            if record is None:
                return Outcome.SKIPPED
            kind, written = self._persist(record)
        except Exception as e:
            key = entry.keys[0] if entry.keys else "<no key>"
            logger.warning(
                "Error processing event with key %s in block %s: %s: %s",
                key,
                meta.block_number,
                type(e).__name__,
                e,
            )
            return Outcome.FAILED

        if written == 0:
            return Outcome.DUPLICATE
        stats.saved[kind] += 1
        return Outcome.SAVED

    def process_block(self, block: Block) -> BlockStats:
        """Process every entry of `block`; headerless blocks are skipped."""
        stats = BlockStats()
        if block.header is None:
            return stats

        header = block.header
        try:
            timestamp = header.unix_timestamp
        except ValueError:
            logger.warning("Skipping block %s: bad timestamp %r", header.block_number, header.timestamp)
            return stats
        stats.block_number = header.block_number

        for entry in block.entries:
            stats.entries += 1
            meta = Meta(
                timestamp=timestamp,
                block_number=header.block_number,
                tx_hash=entry.tx_hash or "",
            )
            outcome = self._handle_entry(entry, meta, stats)
            if outcome is Outcome.DUPLICATE:
                stats.duplicates += 1
            elif outcome is Outcome.SKIPPED:
                stats.skipped += 1
            elif outcome is Outcome.FAILED:
                stats.failed += 1

        return stats


def log_block_summary(stats: BlockStats) -> None:
    """Log what a block produced, one line per kind that saved anything."""
    logger.info("Processed %d events from block %s", stats.entries, stats.block_number)
    for kind, label in _SUMMARY_LABELS.items():
        if stats.saved[kind] > 0:
            logger.info("Saved %d %s", stats.saved[kind], label)
    if stats.failed:
        logger.warning("%d events failed in block %s", stats.failed, stats.block_number)


# ---------------------------------------------------------------------------
# Domain service – IndexerService
# ---------------------------------------------------------------------------


class IndexerService:
    """
    Drive a block source through the block processor.

    Blocks are consumed one at a time, in the order the source delivers them;
    the next block is not read until the current one is fully persisted.
    Storage calls are blocking, so each block runs in a worker thread to keep
    the event loop (and the source's connection) responsive.
    """

    def __init__(self, source: IBlockSource, processor: BlockProcessor) -> None:
        self._source = source
        self._processor = processor

    async def run(self, *, max_blocks: int | None = None) -> RunStats:
        """
        Consume blocks until the source is exhausted or `max_blocks` is reached.

        Errors raised by the source itself propagate; redelivery is the
        source's responsibility.
        """
        stats = RunStats()
        if max_blocks is not None and max_blocks <= 0:
            return stats

        async with aclosing(self._source.blocks()) as blocks:
            async for block in blocks:
                block_stats = await asyncio.to_thread(self._processor.process_block, block)
                stats.add(block_stats)
                if block_stats.block_number is not None:
                    log_block_summary(block_stats)
                if max_blocks is not None and stats.blocks >= max_blocks:
                    break

        return stats
