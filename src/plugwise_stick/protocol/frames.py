"""Frame construction and extraction for the Plugwise protocol.

A frame on the wire is::

    [05 05 03 03][PAYLOAD (ASCII hex)][CRC (4 ASCII hex)][0D 0A]

The payload starts with a 4 digit opcode followed by the hex-encoded
arguments. The checksum is calculated over the payload text.
"""

import logging
import re

from .constants import CRC_LEN, FRAME_PREAMBLE, FRAME_TERMINATOR
from .crc import crc16, verify_crc16

logger = logging.getLogger(__name__)

FRAME_PATTERN = re.compile(re.escape(FRAME_PREAMBLE) + rb"(\w+)" + re.escape(FRAME_TERMINATOR))


def encode(payload: str) -> bytes:
    """
    Convert a command payload to bytes for transmission.

    Args:
        payload: Opcode plus hex-encoded arguments, e.g. ``"0023000D6F0000ABCDEF"``

    Returns:
        Complete frame as bytes

    Example:
        >>> encode("000A")
        b'\\x05\\x05\\x03\\x03000AB43C\\r\\n'
    """
    return FRAME_PREAMBLE + payload.encode("ascii") + crc16(payload).encode("ascii") + FRAME_TERMINATOR


def extract_one(buffer: bytearray) -> str | None:
    """
    Extract the first complete frame from a receive buffer.

    On a match, everything up to and including the frame terminator is
    removed from ``buffer``. Without a complete frame the buffer is left
    untouched so a partial frame can be completed by the next read.

    Args:
        buffer: Accumulated receive bytes (modified in place)

    Returns:
        Frame body (payload + checksum) as text, or None
    """
    match = FRAME_PATTERN.search(buffer)
    if match is None:
        return None

    if match.start() > 0:
        logger.debug("Discarding %d bytes before frame preamble", match.start())

    body = match.group(1).decode("ascii")
    del buffer[: match.end()]
    return body


def split_body(body: str) -> tuple[str, str]:
    """Split an extracted frame body into payload and checksum."""
    return body[:-CRC_LEN], body[-CRC_LEN:]


def verify(body: str) -> bool:
    """Check the checksum of an extracted frame body."""
    if len(body) <= CRC_LEN:
        return False
    payload, checksum = split_body(body)
    return verify_crc16(payload, checksum)


def response_seq(payload: str) -> int | None:
    """Sequence number of a Stick response (the 4 digits after the opcode)."""
    try:
        return int(payload[4:8], 16)
    except ValueError:
        return None
