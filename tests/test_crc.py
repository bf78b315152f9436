"""Unit tests for CRC-16 calculation."""

from plugwise_stick.protocol.crc import crc16, verify_crc16


def test_crc_empty_data():
    """Test CRC calculation with empty data."""
    assert crc16("") == "0000"


def test_crc_check_value():
    """Test the standard CRC-16/XMODEM check value."""
    assert crc16("123456789") == "31C3"


def test_crc_init_request():
    """Test checksum of the init request as seen on the wire."""
    assert crc16("000A") == "B43C"


def test_crc_accepts_bytes():
    """Test that str and bytes give the same checksum."""
    assert crc16(b"000A") == crc16("000A")


def test_crc_is_four_hex_digits():
    """Test that the checksum is always 4 upper-case hex digits."""
    for payload in ("0", "0017000D6F0000ABCDEF01", "FFFF" * 10):
        result = crc16(payload)
        assert len(result) == 4
        assert result == result.upper()
        int(result, 16)


def test_crc_different_data():
    """Test that different data produces different CRC."""
    assert crc16("0023000D6F0000ABCDEF") != crc16("0023000D6F0000ABCDEE")


def test_verify_crc_valid():
    """Test CRC verification with valid CRC."""
    assert verify_crc16("000A", "B43C") is True


def test_verify_crc_lower_case():
    """Test CRC verification ignores checksum case."""
    assert verify_crc16("000A", "b43c") is True


def test_verify_crc_invalid():
    """Test CRC verification with invalid CRC."""
    assert verify_crc16("000A", "B43D") is False
