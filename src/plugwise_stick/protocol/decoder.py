"""Response decoder for Plugwise frames.

Turns a checksum-verified payload into a typed event, updating the
device registry and the in-flight request table along the way.
"""

import logging
import re
from collections.abc import Callable

from plugwise_stick.core.models import (
    Ack,
    Calibration,
    CircleEnergy,
    CirclePower,
    CircleStatus,
    CircleSwitched,
    ErrorReason,
    Event,
    HistoryBlock,
    NoData,
    ProtocolError,
    Reinit,
    StickConnected,
)
from plugwise_stick.core.registry import DeviceRegistry

from .codec import decode_log_address, decode_timestamp, hex_to_float, long_to_short
from .commands import build_calibration, build_init
from .constants import (
    ACK_REINIT,
    ACK_RESPONSE,
    ACK_SUCCESS,
    ACK_SWITCHED_OFF,
    ACK_SWITCHED_ON,
    CALIBRATION_REQUEST,
    CALIBRATION_RESPONSE,
    CIRCLE_LIST_RESPONSE,
    EMPTY_MAC,
    HISTORY_RESPONSE,
    INIT_RESPONSE,
    INVALID_TIMESTAMP,
    POWER_RESPONSE,
    STATUS_RESPONSE,
)
from .power import interval_energy, live_power
from .queue import CommandQueue, OutboundCommand

logger = logging.getLogger(__name__)

H = "[0-9A-F]"
SEQ = f"({H}{{4}})"
MAC = f"({H}{{16}})"

ACK_PATTERN = re.compile(rf"^{ACK_RESPONSE}{SEQ}{ACK_SUCCESS}$")
REINIT_PATTERN = re.compile(rf"^{ACK_RESPONSE}{SEQ}{ACK_REINIT}$")
ERROR_PATTERN = re.compile(rf"^{ACK_RESPONSE}{SEQ}({H}{{4}}){MAC}?$")
INIT_PATTERN = re.compile(rf"^{INIT_RESPONSE}{SEQ}{MAC}({H}{{4}}){MAC}({H}{{4}})")
SWITCH_PATTERN = re.compile(rf"^{ACK_RESPONSE}{SEQ}({ACK_SWITCHED_ON}|{ACK_SWITCHED_OFF}){MAC}$")
POWER_PATTERN = re.compile(rf"^{POWER_RESPONSE}{SEQ}{MAC}({H}{{4}})({H}{{4}})")
CIRCLE_LIST_PATTERN = re.compile(rf"^{CIRCLE_LIST_RESPONSE}{SEQ}{MAC}{MAC}({H}{{2}})")
STATUS_PATTERN = re.compile(rf"^{STATUS_RESPONSE}{SEQ}{MAC}({H}{{8}})({H}{{8}})({H}{{2}})")
CALIBRATION_PATTERN = re.compile(rf"^{CALIBRATION_RESPONSE}{SEQ}{MAC}({H}{{8}})({H}{{8}})({H}{{8}})({H}{{8}})")
HISTORY_PATTERN = re.compile(rf"^{HISTORY_RESPONSE}{SEQ}{MAC}{MAC}{MAC}{MAC}{MAC}({H}{{8}})")


class ResponseDecoder:
    """Dispatches payloads by opcode to the matching handler.

    ``decode()`` returns the event plus any commands the engine has to
    queue as a consequence (re-init, calibration of newly found Circles).
    """

    def __init__(self, registry: DeviceRegistry, queue: CommandQueue):
        self._registry = registry
        self._queue = queue
        # ACK, re-init and switch confirmations are special cases of the error shape
        self._handlers: list[tuple[re.Pattern, Callable[[re.Match], tuple[Event, list[OutboundCommand]]]]] = [
            (ACK_PATTERN, self._handle_ack),
            (REINIT_PATTERN, self._handle_reinit),
            (INIT_PATTERN, self._handle_init),
            (SWITCH_PATTERN, self._handle_switch),
            (ERROR_PATTERN, self._handle_error),
            (POWER_PATTERN, self._handle_power),
            (CIRCLE_LIST_PATTERN, self._handle_circle_list),
            (STATUS_PATTERN, self._handle_status),
            (CALIBRATION_PATTERN, self._handle_calibration),
            (HISTORY_PATTERN, self._handle_history),
        ]

    def decode(self, payload: str) -> tuple[Event, list[OutboundCommand]]:
        """
        Decode one frame payload (checksum already stripped).

        Args:
            payload: Opcode plus hex fields

        Returns:
            Tuple of (event, follow-up commands)
        """
        payload = payload.upper()
        for pattern, handler in self._handlers:
            match = pattern.match(payload)
            if match:
                return handler(match)

        logger.debug("Unhandled frame: %s", payload)
        return NoData(), []

    # -- Stick acknowledgements ----------------------------------------------

    def _handle_ack(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        request = self._queue.acknowledge(seq)
        logger.debug("ACK seq=%d for %s", seq, request.command)
        return Ack(seq=seq), []

    def _handle_reinit(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        self._queue.forget(seq)
        logger.warning("Stick requested re-initialisation (seq=%d)", seq)
        return Reinit(seq=seq), [build_init()]

    def _handle_error(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        code = match.group(2)

        request = self._queue.forget(seq)
        command = request.command if request is not None else self._queue.in_flight

        address = None
        if match.group(3) is not None:
            address = long_to_short(match.group(3))
        elif command is not None and command.address is not None:
            address = long_to_short(command.address)

        if address is not None and command is not None and command.opcode == CALIBRATION_REQUEST:
            # The Circle no longer answers; assume it left the network
            self._registry.remove(address)

        payload = command.payload if command is not None else None
        logger.error("Stick returned error %s for %s", code, payload)
        return (
            ProtocolError(
                reason=ErrorReason.STICK_ERROR,
                text="Received error response",
                address=address,
                command=payload,
                code=code,
            ),
            [],
        )

    def _handle_init(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        stick_mac = match.group(2)[-12:]
        identity = self._registry.set_identity(mac=stick_mac, network_key=match.group(4), short_key=match.group(5))
        self._queue.forget(seq)
        logger.info("Stick %s connected to network %s", identity.mac, identity.network_key)
        return (
            StickConnected(mac=identity.mac, network_key=identity.network_key, short_key=identity.short_key),
            [],
        )

    # -- Circle responses ----------------------------------------------------

    def _handle_switch(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        address = long_to_short(match.group(3))
        onoff = "on" if match.group(2) == ACK_SWITCHED_ON else "off"

        request = self._queue.forget(seq)
        kind = request.kind if request is not None else None

        self._registry.get_or_create(address).onoff = onoff
        return CircleSwitched(address=address, onoff=onoff, request=kind), []

    def _handle_power(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        address = long_to_short(match.group(2))
        self._queue.forget(seq)

        circle = self._registry.get_or_create(address)
        circle.pulse1 = int(match.group(3), 16)
        circle.pulse8 = int(match.group(4), 16)

        if circle.calibration is None:
            return self._calibration_missing(address), []

        return (
            CirclePower(
                address=address,
                current=live_power(circle.pulse1, circle.calibration),
                current8=live_power(circle.pulse8 / 8, circle.calibration),
            ),
            [],
        )

    def _handle_circle_list(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        mac = match.group(3)
        self._queue.forget(seq)

        if mac == EMPTY_MAC:
            return NoData(), []

        address = long_to_short(mac)
        self._registry.get_or_create(address)
        logger.info("Found Circle %s in slot %d", address, int(match.group(4), 16))
        return NoData(), [build_calibration(address)]

    def _handle_status(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        address = long_to_short(match.group(2))
        self._queue.forget(seq)

        onoff = "off" if match.group(5) == "00" else "on"
        log_address = decode_log_address(match.group(4))
        circle_time = decode_timestamp(match.group(3))

        circle = self._registry.get_or_create(address)
        circle.onoff = onoff
        circle.log_address = log_address
        circle.datetime = circle_time

        return CircleStatus(address=address, onoff=onoff, log_address=log_address, datetime=circle_time), []

    def _handle_calibration(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        address = long_to_short(match.group(2))
        self._queue.forget(seq)

        self._registry.get_or_create(address).calibration = Calibration(
            gain_a=hex_to_float(match.group(3)),
            gain_b=hex_to_float(match.group(4)),
            off_tot=hex_to_float(match.group(5)),
            off_noise=hex_to_float(match.group(6)),
        )
        logger.debug("Calibration stored for %s", address)
        return NoData(), []

    def _handle_history(self, match: re.Match) -> tuple[Event, list[OutboundCommand]]:
        seq = int(match.group(1), 16)
        address = long_to_short(match.group(2))
        self._queue.forget(seq)

        log_address = decode_log_address(match.group(7))
        circle = self._registry.get_or_create(address)
        circle.history = HistoryBlock(log_address=log_address, info=list(match.group(3, 4, 5, 6)))

        if circle.calibration is None:
            return self._calibration_missing(address), []

        circle_time, energy = interval_energy(circle.history.info[0], circle.calibration)
        if circle_time == INVALID_TIMESTAMP:
            return (
                ProtocolError(
                    reason=ErrorReason.NO_DATA_IN_INTERVAL,
                    text=f"No valid data in log slot {log_address}",
                    address=address,
                ),
                [],
            )

        return CircleEnergy(address=address, energy=energy, datetime=circle_time, log_address=log_address), []

    @staticmethod
    def _calibration_missing(address: str) -> ProtocolError:
        logger.error("Calibration data missing for Circle %s", address)
        return ProtocolError(
            reason=ErrorReason.CALIBRATION_MISSING,
            text="Calibration data missing, request calibration first",
            address=address,
        )
