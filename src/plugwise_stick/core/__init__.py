"""Core application functionality."""

from .config import Settings, setup_logging
from .models import BridgeIdentity, Calibration, Circle, ErrorReason, HistoryBlock
from .registry import DeviceRegistry

__all__ = [
    "BridgeIdentity",
    "Calibration",
    "Circle",
    "DeviceRegistry",
    "ErrorReason",
    "HistoryBlock",
    "Settings",
    "setup_logging",
]
