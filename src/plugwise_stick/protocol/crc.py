"""CRC-16 calculation for Plugwise protocol frames."""

POLYNOMIAL = 0x1021


def _as_bytes(data: str | bytes) -> bytes:
    if isinstance(data, str):
        return data.encode("ascii")
    return bytes(data)


def crc16(data: str | bytes) -> str:
    """
    Calculate the frame checksum.

    CRC-16/XMODEM: polynomial 0x1021, zero initial value, no reflection
    and no final XOR. The checksum covers the ASCII-hex text of the
    payload, not the binary it encodes.

    Args:
        data: Payload as hex text (str or ASCII bytes)

    Returns:
        Checksum as 4 upper-case hex digits

    Example:
        >>> crc16("000A")
        'B43C'
    """
    crc = 0

    for byte in _as_bytes(data):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = (crc << 1) ^ POLYNOMIAL
            else:
                crc <<= 1
            crc &= 0xFFFF

    return f"{crc:04X}"


def verify_crc16(data: str | bytes, expected: str) -> bool:
    """
    Verify a checksum received on the wire.

    Args:
        data: Payload hex text (excluding checksum)
        expected: Checksum as sent by the Stick

    Returns:
        True if checksum matches, False otherwise
    """
    return crc16(data) == expected.upper()
