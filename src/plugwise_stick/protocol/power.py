"""Calibrated power and energy calculations."""

from plugwise_stick.core.models import Calibration

from .codec import decode_timestamp
from .constants import PULSES_PER_KWS


def pulse_correction(pulses: float, calibration: Calibration) -> float:
    """
    Apply the Circle calibration constants to a raw pulse count.

    The quadratic term XORs the integer part of the offset pulse count
    with 2, exactly as the firmware calibration formula is applied in
    the field. Negative results are clamped to 0.

    Args:
        pulses: Raw pulse count (may be fractional for averaged counters)
        calibration: Constants read from the Circle

    Returns:
        Corrected pulse count
    """
    value = pulses + calibration.off_noise
    corrected = ((int(value) ^ 2) * calibration.gain_b) + (value * calibration.gain_a) + calibration.off_tot
    if corrected < 0:
        return 0.0
    return corrected


def live_power(pulses: float, calibration: Calibration) -> float:
    """Convert a 1 second pulse count to kW, rounded to whole watts."""
    watts = pulse_correction(pulses, calibration) * 1000 / PULSES_PER_KWS
    return int(watts + 0.5) / 1000


def interval_energy(info: str, calibration: Calibration) -> tuple[str, float]:
    """
    Compute the energy of one logged hour.

    Args:
        info: 16 hex digits, timestamp (8) followed by the pulse count (8)
        calibration: Constants read from the Circle

    Returns:
        Tuple of (timestamp string, kWh)
    """
    timestamp = decode_timestamp(info[0:8])
    pulses = int(info[8:16], 16)
    energy = pulse_correction(pulses, calibration) / 3600 / PULSES_PER_KWS
    return timestamp, energy
