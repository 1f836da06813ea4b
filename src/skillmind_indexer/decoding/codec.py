"""Felt codec: wide integers, packed text and fixed-point amounts.

Every payload field of a log entry arrives as a 0x-prefixed hex felt. This
module turns those strings into Python values:

- `decode_wide_int`: uint256 from (low, high) 128-bit limbs → base-10 string
- `decode_packed_text`: zero-padded byte string → printable text
- `to_fixed_point`: raw integer amount → exact `Decimal` with `decimals` places

All functions are pure.
"""

from __future__ import annotations

import string
from decimal import Decimal, localcontext

LIMB_BITS = 128
_LIMB_BOUND = 1 << LIMB_BITS
_HEX_DIGITS = frozenset(string.hexdigits)


def strip_hex_prefix(h: str) -> str:
    """Return `h` without a leading 0x/0X."""
    return h[2:] if h[:2].lower() == "0x" else h


def felt_to_int(h: str) -> int:
    """Parse a hex felt (with or without 0x) into an int."""
    return int(h, 16)


def format_felt(value: int) -> str:
    """Format an int as a lowercase 0x-prefixed hex felt (no padding)."""
    return hex(value)


def normalize_address(address: str) -> str:
    """Canonical form of a contract address, insensitive to case and zero-padding."""
    return format_felt(felt_to_int(address))


def decode_wide_int(low_hex: str, high_hex: str) -> str:
    """Rebuild a uint256 from its two 128-bit limbs and return it in base 10.

    Raises
    ------
    ValueError
        If a limb is not hex or does not fit in 128 bits.
    """
    low = felt_to_int(low_hex)
    high = felt_to_int(high_hex)
    for name, limb in (("low", low), ("high", high)):
        if not 0 <= limb < _LIMB_BOUND:
            raise ValueError(f"uint256 {name} limb out of range: {limb:#x}")
    return str((high << LIMB_BITS) + low)


def split_wide_int(value: int) -> tuple[str, str]:
    """Split a uint256 into (low, high) hex limbs."""
    if not 0 <= value < 1 << (2 * LIMB_BITS):
        raise ValueError("value does not fit in 256 bits")
    return format_felt(value & (_LIMB_BOUND - 1)), format_felt(value >> LIMB_BITS)


def decode_packed_text(h: str) -> str:
    """Decode a hex byte string into text, dropping zero bytes.

    Zero bytes are padding and are always dropped, including ones embedded in
    the middle of the payload. Pairs that are not valid hex are skipped and an
    odd trailing nibble is read as its own byte value, so this never raises.
    """
    clean = strip_hex_prefix(h)
    out: list[str] = []
    for i in range(0, len(clean), 2):
        pair = clean[i : i + 2]
        if not _HEX_DIGITS.issuperset(pair):
            continue
        code = int(pair, 16)
        if code > 0:
            out.append(chr(code))
    return "".join(out)


def encode_packed_text(text: str) -> str:
    """Encode single-byte text as a 0x-prefixed hex string."""
    return "0x" + text.encode("latin-1").hex()


def to_fixed_point(value: int | str, decimals: int) -> Decimal:
    """Rescale a raw integer amount by `10**decimals` without rounding."""
    raw = Decimal(int(value))
    with localcontext() as ctx:
        # uint256 has at most 78 digits; keep every one of them
        ctx.prec = 80 + decimals
        return raw.scaleb(-decimals)
