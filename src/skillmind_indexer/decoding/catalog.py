"""Event catalog: selectors, classification and the stream filter.

A selector is the Starknet identifier of an event name: the keccak-256 of the
ASCII name truncated to 250 bits. The catalog computes the selectors once and
uses them in both directions:

- `build_filter()` → the (address, key) pairs the stream source must deliver
- `classify(entry)` → which `EventKind` a delivered log entry is

Education events are emitted by the primary contract. `Transfer` is shared by
every token contract, so it is only recognised when the emitting address is
one of the configured token contracts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from eth_utils import keccak

from skillmind_indexer.core.config import IndexerConfig
from skillmind_indexer.core.models import EventKind, LogEntry
from skillmind_indexer.decoding.codec import felt_to_int, format_felt, normalize_address

SELECTOR_MASK = (1 << 250) - 1

EDUCATION_EVENTS: tuple[EventKind, ...] = (
    EventKind.EXAM_CREATED,
    EventKind.QUESTION_ADDED,
    EventKind.STUDENT_ENROLLED,
    EventKind.EXAM_STATUS_CHANGED,
    EventKind.COURSE_CERT_CLAIMED,
)


def get_selector_from_name(name: str) -> int:
    """Return the Starknet selector of an event or function name."""
    return int.from_bytes(keccak(text=name), "big") & SELECTOR_MASK


# ---- Stream filter ----


@dataclass(frozen=True)
class EventFilter:
    """One (emitting address, leading key) subscription."""

    from_address: str
    keys: tuple[str, ...]
    include_transaction: bool = True
    include_receipt: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "fromAddress": self.from_address,
            "keys": list(self.keys),
            "includeTransaction": self.include_transaction,
            "includeReceipt": self.include_receipt,
        }


@dataclass(frozen=True)
class StreamFilter:
    """Static filter declared once to the stream source."""

    events: tuple[EventFilter, ...]
    weak_header: bool = True

    def to_dict(self) -> dict[str, object]:
        return {
            "header": {"weak": self.weak_header},
            "events": [ev.to_dict() for ev in self.events],
        }


# ---- Catalog ----


@dataclass(frozen=True)
class EventCatalog:
    """Selector ↔ event-kind mapping plus the contracts that emit them."""

    contract_address: str
    token_contracts: frozenset[str] = frozenset()
    selectors: Mapping[int, EventKind] = field(default_factory=dict)

    @classmethod
    def build(cls, contract_address: str, token_contracts: Iterable[str] = ()) -> EventCatalog:
        """Compute every selector from its event name."""
        return cls(
            contract_address=contract_address,
            token_contracts=frozenset(normalize_address(t) for t in token_contracts if t),
            selectors={get_selector_from_name(kind.value): kind for kind in EventKind},
        )

    @classmethod
    def from_config(cls, config: IndexerConfig) -> EventCatalog:
        return cls.build(config.contract_address, config.token_contracts)

    def selector_of(self, kind: EventKind) -> int:
        for selector, k in self.selectors.items():
            if k is kind:
                return selector
        raise KeyError(kind)

    def is_token_contract(self, address: str) -> bool:
        try:
            return normalize_address(address) in self.token_contracts
        except ValueError:
            return False

    def classify(self, entry: LogEntry) -> EventKind | None:
        """Return the kind of `entry`, or None if it is not an event of interest."""
        if not entry.keys:
            return None
        try:
            key = felt_to_int(entry.keys[0])
        except ValueError:
            return None
        kind = self.selectors.get(key)
        if kind is EventKind.TRANSFER and not self.is_token_contract(entry.from_address):
            return None
        return kind

    def build_filter(self) -> StreamFilter:
        """Build the subscription: education events on the primary contract,
        `Transfer` on each token contract."""
        events = [
            EventFilter(
                from_address=self.contract_address,
                keys=(format_felt(self.selector_of(kind)),),
            )
            for kind in EDUCATION_EVENTS
        ]
        transfer_key = format_felt(self.selector_of(EventKind.TRANSFER))
        for token in sorted(self.token_contracts):
            events.append(EventFilter(from_address=token, keys=(transfer_key,)))
        return StreamFilter(events=tuple(events))
