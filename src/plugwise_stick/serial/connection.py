"""Byte-stream connections to the Stick (serial line or TCP)."""

import asyncio
import logging

import serial
import serial_asyncio
from serial import SerialException

from plugwise_stick.protocol.constants import SERIAL_BAUD

logger = logging.getLogger(__name__)


class StreamConnection:
    """Duplex byte stream built on asyncio StreamReader/StreamWriter."""

    def __init__(self, name: str, timeout: float = 1.0):
        """
        Initialize connection manager.

        Args:
            name: Human readable endpoint name for logging
            timeout: Default read timeout in seconds
        """
        self.name = name
        self.timeout = timeout

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        """Check if currently connected."""
        return self._connected and self._writer is not None and not self._writer.is_closing()

    async def _open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        raise NotImplementedError

    async def connect(self) -> bool:
        """
        Open the connection.

        Returns:
            True if connection successful, False otherwise
        """
        async with self._lock:
            if self.connected:
                logger.debug("Already connected to %s", self.name)
                return True

            try:
                logger.info("Connecting to %s", self.name)
                self._reader, self._writer = await self._open()
                self._connected = True
                logger.info("Successfully connected to %s", self.name)
                return True

            except (OSError, SerialException) as e:
                logger.error("Failed to connect to %s: %s", self.name, e)
                self._connected = False
                return False

    async def disconnect(self) -> None:
        """Close the connection."""
        async with self._lock:
            if not self._connected:
                return

            logger.info("Disconnecting from %s", self.name)

            if self._writer:
                try:
                    self._writer.close()
                    await self._writer.wait_closed()
                except (OSError, SerialException) as e:
                    logger.error("Error closing writer: %s", e)

            self._reader = None
            self._writer = None
            self._connected = False
            logger.info("Disconnected from %s", self.name)

    async def read(self, n: int = 2048, timeout: float | None = None) -> bytes:
        """
        Read whatever bytes are available, waiting up to ``timeout``.

        Args:
            n: Maximum number of bytes to return
            timeout: Seconds to wait (None uses the connection default)

        Returns:
            Bytes read

        Raises:
            ConnectionError: If not connected or the peer closed the stream
            TimeoutError: If nothing arrived in time
        """
        if not self.connected or not self._reader:
            raise ConnectionError(f"Not connected to {self.name}")

        try:
            data = await asyncio.wait_for(self._reader.read(n), timeout=timeout if timeout is not None else self.timeout)
        except TimeoutError:
            logger.debug("Read timeout on %s", self.name)
            raise
        except (OSError, SerialException) as e:
            logger.error("Read error: %s", e)
            self._connected = False
            raise ConnectionError(f"error: {e}") from e

        if not data:
            self._connected = False
            raise ConnectionError("closed")
        return data

    async def write(self, data: bytes) -> None:
        """
        Write to the connection.

        Args:
            data: Bytes to write

        Raises:
            ConnectionError: If not connected or the write fails
        """
        if not self.connected or not self._writer:
            raise ConnectionError(f"Not connected to {self.name}")

        try:
            self._writer.write(data)
            await self._writer.drain()

        except (OSError, SerialException) as e:
            logger.error("Write error: %s", e)
            self._connected = False
            raise ConnectionError(f"error: {e}") from e

    async def close(self) -> None:
        await self.disconnect()

    async def __aenter__(self):
        """Async context manager entry."""
        if not await self.connect():
            raise ConnectionError(f"Could not connect to {self.name}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()


class SerialConnection(StreamConnection):
    """Stick attached to a local serial line (raw 8-N-1)."""

    def __init__(self, port: str, baudrate: int = SERIAL_BAUD, timeout: float = 1.0):
        super().__init__(port, timeout)
        self.port = port
        self.baudrate = baudrate

    async def _open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        logger.debug("Opening %s at %d baud", self.port, self.baudrate)
        return await serial_asyncio.open_serial_connection(
            url=self.port,
            baudrate=self.baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
        )


class TcpConnection(StreamConnection):
    """Stick reachable through a serial-to-TCP bridge."""

    def __init__(self, host: str, port: int, timeout: float = 1.0):
        super().__init__(f"{host}:{port}", timeout)
        self.host = host
        self.port = port

    async def _open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        return await asyncio.open_connection(self.host, self.port)


def open_connection(device: str, baudrate: int = SERIAL_BAUD, timeout: float = 1.0) -> StreamConnection:
    """
    Create the connection matching a device string.

    Paths (anything containing a slash or backslash) are serial lines,
    everything else is ``host:port``.

    Args:
        device: Serial device path or host:port
        baudrate: Line speed for serial devices
        timeout: Default read timeout of the connection

    Raises:
        ValueError: If the device string cannot be interpreted
    """
    if "/" in device or "\\" in device:
        return SerialConnection(device, baudrate=baudrate, timeout=timeout)

    if device == "discover":
        raise ValueError("Stick discovery is not supported, give host:port explicitly")

    host, sep, port = device.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Expected a serial device path or host:port, got {device!r}")
    return TcpConnection(host, int(port), timeout=timeout)
