"""Single-flight command queue with sequence number tracking.

The Stick handles one request at a time. Commands wait in a FIFO and
the next one is only released once the in-flight request has been fully
answered (an ACK alone is not enough).
"""

import logging
import time
from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Any

from .constants import REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

# Sequence numbers of abandoned requests kept to recognise late answers
STALE_SEQ_LIMIT = 32


class OutboundCommand:
    """A request waiting for, or occupying, the write slot."""

    def __init__(self, payload: str, description: str = "", callback: Callable[[Any], None] | None = None):
        """
        Initialize a command.

        Args:
            payload: Opcode plus hex-encoded arguments
            description: Human readable description for logging
            callback: Called with the resolving event once answered
        """
        self.payload = payload
        self.description = description or payload
        self.callback = callback

    @property
    def opcode(self) -> str:
        return self.payload[:4]

    @property
    def address(self) -> str | None:
        """Long address targeted by the command, if any."""
        if len(self.payload) >= 20:
            return self.payload[4:20]
        return None

    def __repr__(self) -> str:
        return f"OutboundCommand({self.payload!r}, {self.description!r})"


class InFlightRequest:
    """A request acknowledged by the Stick under a sequence number."""

    def __init__(self, command: OutboundCommand | None, received_ok: bool = False):
        self.command = command
        self.received_ok = received_ok

    @property
    def kind(self) -> str | None:
        """Opcode of the acknowledged request."""
        return self.command.opcode if self.command else None


class QueueState(str, Enum):
    """Write slot state."""

    IDLE = "idle"
    WRITING = "writing"
    WAITING_QUEUED = "waiting_queued"


class CommandQueue:
    """FIFO of outbound commands with at most one request in flight."""

    def __init__(self, request_timeout: float = REQUEST_TIMEOUT, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the queue.

        Args:
            request_timeout: Seconds before an unanswered request is abandoned
            clock: Monotonic time source
        """
        self.request_timeout = request_timeout
        self._clock = clock
        self._pending: deque[OutboundCommand] = deque()
        self._in_flight: OutboundCommand | None = None
        self._sent_at: float | None = None
        self._requests: dict[int, InFlightRequest] = {}
        self._stale: deque[int] = deque(maxlen=STALE_SEQ_LIMIT)

    @property
    def state(self) -> QueueState:
        if self._in_flight is None:
            return QueueState.IDLE
        if self._pending:
            return QueueState.WAITING_QUEUED
        return QueueState.WRITING

    @property
    def awaiting_response(self) -> bool:
        """Whether a written request is still unanswered."""
        return self._in_flight is not None

    @property
    def in_flight(self) -> OutboundCommand | None:
        return self._in_flight

    @property
    def pending(self) -> int:
        """Number of commands waiting behind the in-flight one."""
        return len(self._pending)

    @property
    def requests(self) -> dict[int, InFlightRequest]:
        """Acknowledged requests keyed by sequence number."""
        return self._requests.copy()

    def enqueue(self, command: OutboundCommand, priority: bool = False) -> OutboundCommand | None:
        """
        Queue a command.

        Args:
            command: Command to send
            priority: Put the command at the head of the FIFO

        Returns:
            The command to write now, or None if the write slot is taken
        """
        self.push(command, priority=priority)

        if self._in_flight is not None:
            logger.debug("Queued %s behind %s (%d waiting)", command, self._in_flight, len(self._pending))
            return None

        return self._dequeue()

    def push(self, command: OutboundCommand, priority: bool = False) -> None:
        """Add a command to the FIFO without touching the write slot."""
        if priority:
            self._pending.appendleft(command)
        else:
            self._pending.append(command)

    def acknowledge(self, seq: int) -> InFlightRequest:
        """Record the Stick's ACK for the in-flight command.

        The write slot stays taken until the actual response arrives.
        """
        request = self._requests.get(seq)
        if request is None:
            request = InFlightRequest(self._in_flight)
            self._requests[seq] = request
        request.received_ok = True
        return request

    def lookup(self, seq: int) -> InFlightRequest | None:
        """Find the request acknowledged under ``seq``."""
        return self._requests.get(seq)

    def forget(self, seq: int) -> InFlightRequest | None:
        """Drop the tracking entry for ``seq``."""
        return self._requests.pop(seq, None)

    def resolve(self, event: Any = None) -> OutboundCommand | None:
        """
        Release the write slot after the in-flight request was answered.

        The next command is taken from the FIFO before the callback runs,
        so a failing callback cannot stall the queue.

        Args:
            event: Event passed to the resolved command's callback

        Returns:
            The next command to write, or None
        """
        command = self._in_flight
        self._in_flight = None
        self._sent_at = None
        next_command = self._dequeue() if self._pending else None

        if command is not None and command.callback is not None:
            try:
                command.callback(event)
            except Exception as e:
                logger.error("Callback for %s failed: %s", command, e)

        return next_command

    def interrupt(self, *first: OutboundCommand) -> OutboundCommand | None:
        """
        Put the in-flight command back at the FIFO head without answering it.

        Used when the Stick drops a request it cannot handle right now.
        ``first`` is queued ahead of the interrupted command; a command
        with the same payload as one of them is not queued twice.

        Returns:
            The next command to write, or None
        """
        command = self._in_flight
        self._in_flight = None
        self._sent_at = None

        if command is not None:
            self._requests = {seq: r for seq, r in self._requests.items() if r.command is not command}
            if command.payload not in {c.payload for c in first}:
                self._pending.appendleft(command)
                logger.debug("Re-queued interrupted %s", command)

        for cmd in reversed(first):
            self._pending.appendleft(cmd)

        if not self._pending:
            return None
        return self._dequeue()

    def expire(self) -> OutboundCommand | None:
        """
        Abandon the in-flight request once it exceeds the request timeout.

        Sequence numbers the Stick acknowledged for it are remembered, so a
        late answer can be told apart from the answer to the next request.

        Returns:
            The next command to write, or None
        """
        if self._in_flight is None or self._sent_at is None:
            return None
        if self._clock() - self._sent_at < self.request_timeout:
            return None

        logger.warning("No response to %s after %.1fs, giving up", self._in_flight, self.request_timeout)
        for seq, request in list(self._requests.items()):
            if request.command is self._in_flight:
                self._stale.append(seq)
                del self._requests[seq]
        self._in_flight = None
        self._sent_at = None

        if not self._pending:
            return None
        return self._dequeue()

    def pop_stale(self, seq: int | None) -> bool:
        """Consume ``seq`` if it belongs to an abandoned request."""
        if seq is None or seq not in self._stale:
            return False
        self._stale.remove(seq)
        return True

    def clear(self) -> None:
        """Drop all queued and tracked requests."""
        self._pending.clear()
        self._requests.clear()
        self._stale.clear()
        self._in_flight = None
        self._sent_at = None

    def _dequeue(self) -> OutboundCommand:
        command = self._pending.popleft()
        self._in_flight = command
        self._sent_at = self._clock()
        return command
