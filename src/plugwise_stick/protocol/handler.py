"""Protocol engine for the Plugwise Stick.

Owns the receive buffer, the command queue and the device registry.
Callers drive it through two entry points: ``command()`` to submit
requests and ``read()`` to pump the link for the next decoded event.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from plugwise_stick.core.config import Settings
from plugwise_stick.core.models import (
    INTERNAL_EVENTS,
    Ack,
    BridgeIdentity,
    ErrorReason,
    Event,
    ProtocolError,
    Reinit,
    StickConnected,
)
from plugwise_stick.core.registry import DeviceRegistry
from plugwise_stick.serial.connection import StreamConnection, open_connection

from .codec import split_addresses
from .commands import (
    build_calibration,
    build_circle_list,
    build_history,
    build_init,
    build_livepower,
    build_status,
    build_switch,
)
from .constants import READ_SIZE, REQUEST_TIMEOUT, SCAN_COUNT
from .decoder import ResponseDecoder
from .frames import encode, extract_one, response_seq, split_body, verify
from .queue import CommandQueue, OutboundCommand

logger = logging.getLogger(__name__)

COMMANDS = ("on", "off", "status", "livepower", "history")


class Stick:
    """Request/response engine on top of a Stick byte stream.

    Only one request is outstanding at a time; everything else waits in
    the command queue until the Stick has answered.
    """

    def __init__(
        self,
        connection: StreamConnection,
        scan_count: int = SCAN_COUNT,
        request_timeout: float = REQUEST_TIMEOUT,
        read_size: int = READ_SIZE,
    ):
        """Initialize the engine.

        Args:
            connection: Byte stream to the Stick.
            scan_count: Circle+ slots enumerated by a network scan.
            request_timeout: Seconds before an unanswered request is abandoned.
            read_size: Bytes requested per transport read.
        """
        self._connection = connection
        self._scan_count = scan_count
        self._read_size = read_size

        self._registry = DeviceRegistry()
        self._queue = CommandQueue(request_timeout=request_timeout)
        self._decoder = ResponseDecoder(self._registry, self._queue)
        self._buffer = bytearray()
        self._lock = asyncio.Lock()
        self._stats = {
            "frames_read": 0,
            "frames_invalid": 0,
            "bytes_read": 0,
            "frames_written": 0,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "Stick":
        """Build an engine and its connection from settings."""
        return cls(
            open_connection(settings.device, baudrate=settings.baudrate, timeout=settings.read_timeout),
            scan_count=settings.scan_count,
            request_timeout=settings.request_timeout,
            read_size=settings.read_size,
        )

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def queue(self) -> CommandQueue:
        return self._queue

    @property
    def identity(self) -> BridgeIdentity:
        """Identity reported by the Stick at init."""
        return self._registry.identity

    @property
    def stats(self) -> dict:
        """Get engine statistics."""
        return self._stats.copy()

    # -- lifecycle -----------------------------------------------------------

    async def connect(self, timeout: float = 5.0) -> BridgeIdentity:
        """Open the connection and initialise the Stick.

        Args:
            timeout: Seconds to wait for the init response.

        Returns:
            The Stick identity.

        Raises:
            ConnectionError: If the connection cannot be opened.
            TimeoutError: If the Stick does not answer the init request.
        """
        if not self._connection.connected:
            if not await self._connection.connect():
                raise ConnectionError(f"Could not connect to {self._connection.name}")

        await self.stick_init()

        loop = asyncio.get_event_loop()
        deadline = loop.time() + timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TimeoutError("Stick did not answer the init request")

            event = await self.read(timeout=remaining)
            if isinstance(event, StickConnected):
                return self._registry.identity
            if event is not None:
                logger.debug("Ignoring %s while waiting for init", event.kind)

    async def close(self) -> None:
        """Drop pending requests and close the connection."""
        async with self._lock:
            self._queue.clear()
            self._buffer.clear()
        await self._connection.disconnect()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # -- commands ------------------------------------------------------------

    async def command(
        self,
        name: str,
        targets: str | list[str],
        index: int | None = None,
        callback: Callable[[Any], None] | None = None,
    ) -> None:
        """Queue a command for one or more Circles.

        Args:
            name: One of ``on``, ``off``, ``status``, ``livepower``, ``history``.
            targets: Short address, comma separated addresses, or a list.
            index: Log slot, required for ``history``.
            callback: Called with the resolving event of each request.

        Raises:
            ValueError: On an unknown command, bad address or missing index.
        """
        if name not in COMMANDS:
            raise ValueError(f"Unknown command {name!r}, expected one of {', '.join(COMMANDS)}")
        if name == "history" and index is None:
            raise ValueError("The history command needs a log slot index")

        addresses = split_addresses(targets)

        async with self._lock:
            for address in addresses:
                circle = self._registry.get_or_create(address)

                if name in ("livepower", "history") and not circle.calibrated:
                    logger.debug("No calibration for %s yet, requesting it first", address)
                    await self._enqueue(build_calibration(address))

                if name == "on":
                    cmd = build_switch(address, True, callback)
                elif name == "off":
                    cmd = build_switch(address, False, callback)
                elif name == "status":
                    cmd = build_status(address, callback)
                elif name == "livepower":
                    cmd = build_livepower(address, callback)
                else:
                    cmd = build_history(address, index, callback)

                await self._enqueue(cmd)

    async def stick_init(self) -> None:
        """Queue the Stick init request."""
        async with self._lock:
            await self._enqueue(build_init())

    async def query_calibration(self, address: str) -> None:
        """Queue a calibration request for a Circle."""
        (address,) = split_addresses([address])
        async with self._lock:
            self._registry.get_or_create(address)
            await self._enqueue(build_calibration(address))

    async def query_connected_circles(self, count: int | None = None) -> None:
        """Ask the Circle+ for the first ``count`` entries of its device table.

        Every Circle found is registered and its calibration requested.

        Raises:
            RuntimeError: If the Stick has not been initialised.
        """
        identity = self._registry.identity
        if not identity.connected or identity.network_key is None:
            raise RuntimeError("Stick is not connected, call connect() first")

        count = self._scan_count if count is None else count
        async with self._lock:
            for slot in range(count):
                await self._enqueue(build_circle_list(identity.network_key, slot))

    def status(self) -> dict[str, Any]:
        """Snapshot of the Stick identity and all known Circles."""
        return self._registry.as_dict()

    # -- pump ----------------------------------------------------------------

    async def read(self, timeout: float | None = None) -> Event | None:
        """Pump the link until a caller-visible event is decoded.

        Args:
            timeout: Seconds to wait in total (None waits indefinitely).

        Returns:
            The next event, or None on timeout.

        Raises:
            ConnectionError: If the connection is closed or fails.
        """
        loop = asyncio.get_event_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            async with self._lock:
                event = await self._process_buffer()
                if event is not None:
                    return event
                next_cmd = self._queue.expire()
                if next_cmd is not None:
                    await self._write(next_cmd)

            # Wake up at least once per request timeout to expire stale requests
            read_timeout = self._queue.request_timeout
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None
                read_timeout = min(remaining, read_timeout)

            try:
                chunk = await self._connection.read(self._read_size, timeout=read_timeout)
            except TimeoutError:
                continue

            async with self._lock:
                self._buffer.extend(chunk)
                self._stats["bytes_read"] += len(chunk)
                logger.debug("Received %d bytes: %r", len(chunk), chunk)

    async def _process_buffer(self) -> Event | None:
        """Decode buffered frames until one produces a caller-visible event."""
        while True:
            body = extract_one(self._buffer)
            if body is None:
                return None

            if not verify(body):
                self._stats["frames_invalid"] += 1
                logger.error("Checksum mismatch, dropping frame %s", body)
                return ProtocolError(reason=ErrorReason.CHECKSUM, text=f"Checksum mismatch in frame {body}")

            self._stats["frames_read"] += 1
            payload, _ = split_body(body)
            event, follow_ups = self._decoder.decode(payload)

            if isinstance(event, Ack):
                # The answer often arrives in the same read, look for it
                continue

            if isinstance(event, Reinit):
                # Init goes first, then the interrupted request is sent again
                next_cmd = self._queue.interrupt(*follow_ups)
                if next_cmd is not None:
                    await self._write(next_cmd)
                continue

            if self._queue.pop_stale(response_seq(payload)):
                logger.warning("Late answer to an abandoned request: %s", payload)
                for cmd in follow_ups:
                    await self._enqueue(cmd)
            else:
                for cmd in follow_ups:
                    self._queue.push(cmd)
                next_cmd = self._queue.resolve(event)
                if next_cmd is not None:
                    await self._write(next_cmd)

            if isinstance(event, INTERNAL_EVENTS):
                continue
            return event

    async def _enqueue(self, command: OutboundCommand, priority: bool = False) -> None:
        to_write = self._queue.enqueue(command, priority=priority)
        if to_write is not None:
            await self._write(to_write)

    async def _write(self, command: OutboundCommand) -> None:
        frame = encode(command.payload)
        await self._connection.write(frame)
        self._stats["frames_written"] += 1
        logger.debug("Frame written: %s (%r)", command.description, frame)
