"""Builders for the requests understood by the Stick and Circles."""

from collections.abc import Callable
from typing import Any

from .codec import encode_log_address, short_to_long
from .constants import (
    CALIBRATION_REQUEST,
    CIRCLE_LIST_REQUEST,
    HISTORY_REQUEST,
    INIT_REQUEST,
    POWER_REQUEST,
    STATUS_REQUEST,
    SWITCH_REQUEST,
)
from .queue import OutboundCommand

Callback = Callable[[Any], None] | None


def build_init() -> OutboundCommand:
    """Build the Stick init request."""
    return OutboundCommand(INIT_REQUEST, "initialise stick")


def build_switch(address: str, on: bool, callback: Callback = None) -> OutboundCommand:
    """Build a relay switch request."""
    state = "01" if on else "00"
    return OutboundCommand(
        f"{SWITCH_REQUEST}{short_to_long(address)}{state}",
        f"switch {address} {'on' if on else 'off'}",
        callback,
    )


def build_status(address: str, callback: Callback = None) -> OutboundCommand:
    """Build a Circle status request."""
    return OutboundCommand(f"{STATUS_REQUEST}{short_to_long(address)}", f"status {address}", callback)


def build_livepower(address: str, callback: Callback = None) -> OutboundCommand:
    """Build a live power request."""
    return OutboundCommand(f"{POWER_REQUEST}{short_to_long(address)}", f"livepower {address}", callback)


def build_calibration(address: str, callback: Callback = None) -> OutboundCommand:
    """Build a calibration request."""
    return OutboundCommand(f"{CALIBRATION_REQUEST}{short_to_long(address)}", f"calibration {address}", callback)


def build_history(address: str, index: int, callback: Callback = None) -> OutboundCommand:
    """Build a history buffer request for log slot ``index``."""
    return OutboundCommand(
        f"{HISTORY_REQUEST}{short_to_long(address)}{encode_log_address(index)}",
        f"history {address} slot {index}",
        callback,
    )


def build_circle_list(circle_plus: str, slot: int) -> OutboundCommand:
    """Build a request for one slot of the Circle+ device table.

    Args:
        circle_plus: Long address of the Circle+
        slot: Table index (0-255)
    """
    if not 0 <= slot <= 0xFF:
        raise ValueError(f"Circle list slot out of range: {slot}")
    return OutboundCommand(f"{CIRCLE_LIST_REQUEST}{circle_plus}{slot:02X}", f"circle list slot {slot}")
