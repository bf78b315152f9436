"""Plugwise protocol implementation."""

from plugwise_stick.protocol.codec import decode_timestamp, hex_to_float, long_to_short, short_to_long
from plugwise_stick.protocol.crc import crc16, verify_crc16
from plugwise_stick.protocol.decoder import ResponseDecoder
from plugwise_stick.protocol.frames import encode, extract_one
from plugwise_stick.protocol.power import interval_energy, live_power, pulse_correction
from plugwise_stick.protocol.queue import CommandQueue, OutboundCommand, QueueState

# Stick imported lazily to avoid circular import with serial.connection
# (serial.connection -> protocol.constants -> protocol.__init__ -> handler -> serial.connection)


def __getattr__(name: str):
    if name == "Stick":
        from plugwise_stick.protocol.handler import Stick

        return Stick
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "CommandQueue",
    "OutboundCommand",
    "QueueState",
    "ResponseDecoder",
    "Stick",
    "crc16",
    "verify_crc16",
    "encode",
    "extract_one",
    "decode_timestamp",
    "hex_to_float",
    "long_to_short",
    "short_to_long",
    "interval_energy",
    "live_power",
    "pulse_correction",
]
