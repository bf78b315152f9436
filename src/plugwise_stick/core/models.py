"""Data models for the Plugwise protocol engine."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator


class Calibration(BaseModel):
    """Per-Circle constants converting raw pulses to physical units."""

    gain_a: float = Field(..., description="Linear gain")
    gain_b: float = Field(..., description="Quadratic gain")
    off_tot: float = Field(..., description="Total offset")
    off_noise: float = Field(..., description="Noise offset")


class HistoryBlock(BaseModel):
    """Last history buffer read from a Circle."""

    log_address: int = Field(..., description="Log slot index of the block")
    info: list[str] = Field(..., min_length=4, max_length=4, description="Raw timestamp+pulses fields")


class Circle(BaseModel):
    """A relay/power-meter device known to the registry."""

    address: str = Field(..., min_length=6, max_length=8, description="Short address")
    onoff: Literal["on", "off"] | None = Field(None, description="Last known relay state")
    calibration: Calibration | None = Field(None, description="Calibration constants")
    pulse1: int | None = Field(None, description="Last 1 second pulse count")
    pulse8: int | None = Field(None, description="Last 8 second pulse count")
    log_address: int | None = Field(None, description="Current log slot index")
    datetime: str | None = Field(None, description="Last reported Circle clock")
    history: HistoryBlock | None = Field(None, description="Last history block")

    @property
    def calibrated(self) -> bool:
        """Whether calibration constants have been received."""
        return self.calibration is not None


class BridgeIdentity(BaseModel):
    """Identity of the Stick and the network it coordinates."""

    mac: str | None = Field(None, description="Stick hardware address (12 hex digits)")
    network_key: str | None = Field(None, description="Network key, also the Circle+ MAC")
    short_key: str | None = Field(None, description="Short network key")
    connected: bool = Field(False, description="Whether the Stick answered init")

    @field_validator("mac", "network_key", "short_key")
    @classmethod
    def validate_hex(cls, v: str | None) -> str | None:
        """Ensure identity fields are hex text."""
        if v is not None:
            int(v, 16)
            return v.upper()
        return v


# ============================================================================
# Decoded Events
# ============================================================================


class ErrorReason(str, Enum):
    """Why an error event was produced."""

    CHECKSUM = "checksum"
    STICK_ERROR = "stick_error"
    CALIBRATION_MISSING = "calibration_missing"
    NO_DATA_IN_INTERVAL = "no_data_in_interval"


class StickConnected(BaseModel):
    """The Stick answered the init request."""

    kind: Literal["connected"] = "connected"
    mac: str
    network_key: str
    short_key: str


class CircleSwitched(BaseModel):
    """A Circle confirmed a relay switch."""

    kind: Literal["output"] = "output"
    address: str
    onoff: Literal["on", "off"]
    request: str | None = Field(None, description="Opcode of the request being confirmed")


class CirclePower(BaseModel):
    """Live power reading."""

    kind: Literal["power"] = "power"
    address: str
    current: float = Field(..., ge=0, description="1 second average")
    current8: float = Field(..., ge=0, description="8 second average")
    unit: Literal["kW"] = "kW"


class CircleStatus(BaseModel):
    """Circle status report."""

    kind: Literal["status"] = "status"
    address: str
    onoff: Literal["on", "off"]
    log_address: int
    datetime: str


class CircleEnergy(BaseModel):
    """Energy consumed in one logged hour."""

    kind: Literal["energy"] = "energy"
    address: str
    energy: float = Field(..., ge=0)
    unit: Literal["kWh"] = "kWh"
    datetime: str
    log_address: int


class ProtocolError(BaseModel):
    """A protocol level failure reported to the caller."""

    kind: Literal["error"] = "error"
    reason: ErrorReason
    text: str
    address: str | None = None
    command: str | None = Field(None, description="Payload of the command that failed")
    code: str | None = Field(None, description="Status code returned by the Stick")


class Ack(BaseModel):
    """Stick accepted a request; the answer follows later."""

    kind: Literal["ack"] = "ack"
    seq: int


class Reinit(BaseModel):
    """Stick asked to be initialised again."""

    kind: Literal["re-init"] = "re-init"
    seq: int


class NoData(BaseModel):
    """Frame handled without anything to report."""

    kind: Literal["no_data"] = "no_data"


Event = Annotated[
    Union[
        StickConnected,
        CircleSwitched,
        CirclePower,
        CircleStatus,
        CircleEnergy,
        ProtocolError,
        Ack,
        Reinit,
        NoData,
    ],
    Field(discriminator="kind"),
]

INTERNAL_EVENTS = (Ack, Reinit, NoData)
