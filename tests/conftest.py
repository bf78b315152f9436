"""Shared test fixtures."""

import asyncio

import pytest

from plugwise_stick.protocol.frames import encode
from plugwise_stick.protocol.handler import Stick

CIRCLE_PLUS = "000D6F0000123456"
STICK_MAC = "000D6F0000987654"


class FakeConnection:
    """In-memory byte stream standing in for a serial or TCP connection."""

    def __init__(self) -> None:
        self.name = "fake"
        self.connected = True
        self.written: list[bytes] = []
        self._chunks: list[bytes] = []
        self.closed = False

    def feed(self, *payloads: str) -> None:
        """Queue framed payloads as one chunk of incoming bytes."""
        self._chunks.append(b"".join(encode(p) for p in payloads))

    def feed_raw(self, data: bytes) -> None:
        self._chunks.append(data)

    @property
    def written_payloads(self) -> list[str]:
        """Payloads of all written frames (preamble, checksum and CRLF stripped)."""
        return [frame[4:-6].decode("ascii") for frame in self.written]

    async def connect(self) -> bool:
        self.connected = True
        return True

    async def disconnect(self) -> None:
        self.connected = False
        self.closed = True

    async def write(self, data: bytes) -> None:
        if not self.connected:
            raise ConnectionError("Not connected to fake")
        self.written.append(data)

    async def read(self, n: int = 2048, timeout: float | None = None) -> bytes:
        if not self.connected:
            raise ConnectionError("closed")
        if self._chunks:
            return self._chunks.pop(0)
        await asyncio.sleep(min(timeout or 0.01, 0.01))
        raise TimeoutError


def ack(seq: int) -> str:
    return f"0000{seq:04X}00C1"


def init_response(seq: int, short_key: str = "BABE") -> str:
    return f"0011{seq:04X}{STICK_MAC}0101{CIRCLE_PLUS}{short_key}FF"


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def stick(connection: FakeConnection) -> Stick:
    return Stick(connection, request_timeout=5.0)
