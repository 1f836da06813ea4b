"""Protocol and service constants."""

from __future__ import annotations

# Token decimal places used to rescale raw transfer amounts
DECIMALS = 18

# The only encoding of a felt boolean that reads as True
TRUE_FELT = "0x1"

# Finality tags understood by the stream source
FINALITY_PENDING = "DATA_STATUS_PENDING"
FINALITY_ACCEPTED = "DATA_STATUS_ACCEPTED"
FINALITY_FINALIZED = "DATA_STATUS_FINALIZED"

# Read API pagination
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
