"""Event decoding.

This package provides:
- Felt codec (wide integers, packed text, fixed-point amounts)
- Event catalog (selectors, classification, stream filter)
- Decoder that turns a log entry into a typed record
"""

from skillmind_indexer.decoding.catalog import (
    EventCatalog,
    EventFilter,
    StreamFilter,
    get_selector_from_name,
)
from skillmind_indexer.decoding.codec import (
    decode_packed_text,
    decode_wide_int,
    to_fixed_point,
)
from skillmind_indexer.decoding.decoder import decode_entry

__all__ = [
    "EventCatalog",
    "EventFilter",
    "StreamFilter",
    "get_selector_from_name",
    "decode_packed_text",
    "decode_wide_int",
    "to_fixed_point",
    "decode_entry",
]
