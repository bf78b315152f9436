"""Numeric and address conversions for Plugwise payloads."""

import struct

from .constants import EMPTY_TIMESTAMP, INVALID_TIMESTAMP, LOG_ADDRESS_OFFSET, LOG_ADDRESS_STEP, VENDOR_PREFIX

MINUTES_PER_DAY = 60 * 24


def hex_to_float(value: str) -> float:
    """
    Decode a calibration constant.

    Calibration values travel as 8 hex digits holding a big-endian
    IEEE-754 single precision float.

    Example:
        >>> hex_to_float("3F800000")
        1.0
    """
    if len(value) != 8:
        raise ValueError(f"Float field must be 8 hex digits, got {value!r}")
    return struct.unpack(">f", bytes.fromhex(value))[0]


def decode_timestamp(value: str) -> str:
    """
    Decode a Circle timestamp to ``YYYYMMDDHHmm``.

    The 4 byte field holds the year since 2000, the month and the
    minutes elapsed since the start of that month. ``FFFFFFFF`` marks an
    empty log slot and decodes to ``"000000000000"``.

    Example:
        >>> decode_timestamp("0C0A05A0")
        '201210020000'
    """
    if value.upper() == EMPTY_TIMESTAMP:
        return INVALID_TIMESTAMP
    if len(value) != 8:
        raise ValueError(f"Timestamp must be 8 hex digits, got {value!r}")

    year = 2000 + int(value[0:2], 16)
    month = int(value[2:4], 16)
    minutes = int(value[4:8], 16)

    day = minutes // MINUTES_PER_DAY + 1
    time_of_day = minutes % MINUTES_PER_DAY
    hours = time_of_day // 60
    minutes = time_of_day % 60

    return f"{year:04d}{month:02d}{day:02d}{hours:02d}{minutes:02d}"


def decode_log_address(value: str) -> int:
    """Convert an absolute log address (8 hex digits) to a slot index."""
    return (int(value, 16) - LOG_ADDRESS_OFFSET) // LOG_ADDRESS_STEP


def encode_log_address(index: int) -> str:
    """Convert a log slot index to the absolute address sent on the wire."""
    if index < 0:
        raise ValueError(f"Log index must be >= 0, got {index}")
    return f"{index * LOG_ADDRESS_STEP + LOG_ADDRESS_OFFSET:08X}"


def short_to_long(address: str) -> str:
    """
    Expand a short Circle address to the full 16 digit MAC.

    Example:
        >>> short_to_long("ABCDEF")
        '000D6F0000ABCDEF'
    """
    try:
        value = int(address, 16)
    except ValueError:
        raise ValueError(f"Invalid Circle address: {address!r}") from None
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"Invalid Circle address: {address!r}")
    return f"{VENDOR_PREFIX}{value:08X}"


def long_to_short(address: str) -> str:
    """
    Reduce a 16 digit MAC to its short form (low 4 bytes, canonical hex).

    Example:
        >>> long_to_short("000D6F0000ABCDEF")
        'ABCDEF'
    """
    if len(address) != 16:
        raise ValueError(f"Long address must be 16 hex digits, got {address!r}")
    return f"{int(address[-8:], 16):06X}"


def split_addresses(targets: str | list[str]) -> list[str]:
    """Normalise a comma separated target list to canonical short addresses."""
    if isinstance(targets, str):
        targets = targets.split(",")
    addresses = [t.strip() for t in targets if t.strip()]
    if not addresses:
        raise ValueError("No Circle address given")
    return [long_to_short(short_to_long(a)) for a in addresses]
