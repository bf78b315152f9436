"""Protocol constants for Plugwise Stick communication."""

# ============================================================================
# Frame Structure
# ============================================================================

FRAME_PREAMBLE = b"\x05\x05\x03\x03"
FRAME_TERMINATOR = b"\r\n"
CRC_LEN = 4  # hex digits

# ============================================================================
# Addresses
# ============================================================================

VENDOR_PREFIX = "000D6F00"  # High 4 bytes of every Circle long address
EMPTY_MAC = "FFFFFFFFFFFFFFFF"  # Unused circle-list slot

# ============================================================================
# Request Opcodes
# ============================================================================

INIT_REQUEST = "000A"
POWER_REQUEST = "0012"
SWITCH_REQUEST = "0017"
CIRCLE_LIST_REQUEST = "0018"
STATUS_REQUEST = "0023"
CALIBRATION_REQUEST = "0026"
HISTORY_REQUEST = "0048"

# ============================================================================
# Response Opcodes
# ============================================================================

ACK_RESPONSE = "0000"
INIT_RESPONSE = "0011"
POWER_RESPONSE = "0013"
CIRCLE_LIST_RESPONSE = "0019"
STATUS_RESPONSE = "0024"
CALIBRATION_RESPONSE = "0027"
HISTORY_RESPONSE = "0049"

# Secondary status codes carried by 0000 frames
ACK_SUCCESS = "00C1"
ACK_REINIT = "00C2"
ACK_SWITCHED_ON = "00D8"
ACK_SWITCHED_OFF = "00DE"

# ============================================================================
# Numeric Model
# ============================================================================

PULSES_PER_KWS = 468.9385193
LOG_ADDRESS_OFFSET = 278528
LOG_ADDRESS_STEP = 8
INVALID_TIMESTAMP = "000000000000"
EMPTY_TIMESTAMP = "FFFFFFFF"

# ============================================================================
# Communication Settings
# ============================================================================

SERIAL_BAUD = 115200
READ_SIZE = 2048  # Bytes requested per transport read
REQUEST_TIMEOUT = 5.0  # Seconds before an unanswered request is abandoned
SCAN_COUNT = 16  # Circle+ slots enumerated by a network scan
