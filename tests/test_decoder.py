"""Unit tests for the response decoder."""

import pytest

from plugwise_stick.core.models import (
    Ack,
    Calibration,
    CircleEnergy,
    CirclePower,
    CircleStatus,
    CircleSwitched,
    ErrorReason,
    NoData,
    ProtocolError,
    Reinit,
    StickConnected,
)
from plugwise_stick.core.registry import DeviceRegistry
from plugwise_stick.protocol.commands import build_calibration, build_switch
from plugwise_stick.protocol.constants import PULSES_PER_KWS
from plugwise_stick.protocol.decoder import ResponseDecoder
from plugwise_stick.protocol.queue import CommandQueue

from .conftest import CIRCLE_PLUS, STICK_MAC, ack, init_response

MAC = "000D6F0000ABCDEF"
CALIBRATION_FIELDS = "3F800000" "3F000000" "40000000" "3F800000"


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


@pytest.fixture
def queue() -> CommandQueue:
    return CommandQueue()


@pytest.fixture
def decoder(registry: DeviceRegistry, queue: CommandQueue) -> ResponseDecoder:
    return ResponseDecoder(registry, queue)


def calibrate(registry: DeviceRegistry, address: str = "ABCDEF") -> None:
    registry.get_or_create(address).calibration = Calibration(gain_a=1.0, gain_b=0.5, off_tot=2.0, off_noise=1.0)


# ============================================================================
# Stick acknowledgements
# ============================================================================


class TestAcknowledgements:
    """Tests for 0000 frames."""

    def test_ack_records_request(self, decoder, queue):
        """Test a generic ACK marks the in-flight request as received."""
        cmd = build_switch("ABCDEF", True)
        queue.enqueue(cmd)

        event, follow_ups = decoder.decode(ack(0x12))

        assert event == Ack(seq=0x12)
        assert follow_ups == []
        assert queue.lookup(0x12).command is cmd
        assert queue.lookup(0x12).received_ok is True
        assert queue.awaiting_response is True

    def test_reinit_issues_init(self, decoder):
        """Test 00C2 answers with a Stick init request."""
        event, follow_ups = decoder.decode("0000000300C2")

        assert event == Reinit(seq=3)
        assert [c.payload for c in follow_ups] == ["000A"]

    def test_error_response(self, decoder, queue):
        """Test an error carries the failing command and the code."""
        cmd = build_switch("ABCDEF", True)
        queue.enqueue(cmd)
        decoder.decode(ack(4))

        event, _ = decoder.decode("0000000400E1")

        assert isinstance(event, ProtocolError)
        assert event.reason == ErrorReason.STICK_ERROR
        assert event.command == cmd.payload
        assert event.code == "00E1"
        assert event.address == "ABCDEF"
        assert queue.lookup(4) is None

    def test_calibration_error_removes_circle(self, decoder, queue, registry):
        """Test a failed calibration request deregisters the Circle."""
        registry.get_or_create("ABCDEF")
        queue.enqueue(build_calibration("ABCDEF"))
        decoder.decode(ack(5))

        event, _ = decoder.decode("0000000500E1")

        assert isinstance(event, ProtocolError)
        assert event.command == "0026" + MAC
        assert "ABCDEF" not in registry

    def test_error_without_ack_uses_in_flight(self, decoder, queue, registry):
        """Test an error for an unknown sequence blames the in-flight command."""
        registry.get_or_create("ABCDEF")
        queue.enqueue(build_calibration("ABCDEF"))

        event, _ = decoder.decode("0000000900E1")

        assert event.command == "0026" + MAC
        assert "ABCDEF" not in registry

    def test_error_with_mac_removes_circle(self, decoder, queue, registry):
        """Test an unreachable Circle reported with its MAC is deregistered."""
        registry.get_or_create("ABCDEF")
        queue.enqueue(build_calibration("ABCDEF"))
        decoder.decode(ack(1))

        event, _ = decoder.decode(f"0000000100E1{MAC}")

        assert isinstance(event, ProtocolError)
        assert event.reason == ErrorReason.STICK_ERROR
        assert event.code == "00E1"
        assert event.address == "ABCDEF"
        assert "ABCDEF" not in registry

    def test_error_address_taken_from_frame(self, decoder, queue):
        queue.enqueue(build_switch("ABCDEE", True))

        event, _ = decoder.decode(f"0000000200E1{MAC}")

        assert event.address == "ABCDEF"
        assert event.command == build_switch("ABCDEE", True).payload

    def test_other_error_keeps_circle(self, decoder, queue, registry):
        registry.get_or_create("ABCDEF")
        queue.enqueue(build_switch("ABCDEF", False))
        decoder.decode(ack(6))

        decoder.decode("0000000600E1")

        assert "ABCDEF" in registry


# ============================================================================
# Stick init
# ============================================================================


class TestInit:
    """Tests for the 0011 init response."""

    def test_identity(self, decoder, registry):
        event, _ = decoder.decode(init_response(1, short_key="BABE"))

        assert event == StickConnected(mac=STICK_MAC[-12:], network_key=CIRCLE_PLUS, short_key="BABE")
        assert registry.identity.connected is True
        assert registry.identity.short_key == "BABE"
        assert registry.identity.network_key == CIRCLE_PLUS
        assert registry.identity.mac == "6F0000987654"


# ============================================================================
# Circle responses
# ============================================================================


class TestSwitch:
    """Tests for relay switch confirmations."""

    def test_on(self, decoder, queue, registry):
        queue.enqueue(build_switch("ABCDEF", True))
        decoder.decode(ack(2))

        event, _ = decoder.decode(f"0000000200D8{MAC}")

        assert event == CircleSwitched(address="ABCDEF", onoff="on", request="0017")
        assert registry.get("ABCDEF").onoff == "on"
        assert queue.lookup(2) is None

    def test_off(self, decoder, registry):
        event, _ = decoder.decode("0000000300DE000D6F0000ABCDEE")

        assert event == CircleSwitched(address="ABCDEE", onoff="off", request=None)
        assert registry.get("ABCDEE").onoff == "off"


class TestPower:
    """Tests for live power responses."""

    def test_power(self, decoder, registry):
        """Test calibrated 1s and 8s power values in kW."""
        calibrate(registry)

        event, _ = decoder.decode(f"00130007{MAC}00640190000000000000")

        assert event == CirclePower(address="ABCDEF", current=0.329, current8=0.165)
        assert registry.get("ABCDEF").pulse1 == 100
        assert registry.get("ABCDEF").pulse8 == 400

    def test_missing_calibration(self, decoder, registry):
        event, _ = decoder.decode(f"00130007{MAC}00640190")

        assert isinstance(event, ProtocolError)
        assert event.reason == ErrorReason.CALIBRATION_MISSING
        assert event.address == "ABCDEF"
        assert registry.get("ABCDEF").pulse1 == 100


class TestCircleList:
    """Tests for circle-list entries."""

    def test_new_circle(self, decoder, registry):
        """Test a found Circle is registered and calibration requested."""
        event, follow_ups = decoder.decode(f"00190008{CIRCLE_PLUS}{MAC}03")

        assert event == NoData()
        assert "ABCDEF" in registry
        assert [c.payload for c in follow_ups] == ["0026" + MAC]

    def test_empty_slot(self, decoder, registry):
        event, follow_ups = decoder.decode(f"00190008{CIRCLE_PLUS}FFFFFFFFFFFFFFFF04")

        assert event == NoData()
        assert follow_ups == []
        assert len(registry) == 0


class TestStatus:
    """Tests for status responses."""

    def test_status(self, decoder, registry):
        event, _ = decoder.decode(f"0024000A{MAC}0C0A21C30004402001850000473000744F4E0E")

        assert event == CircleStatus(address="ABCDEF", onoff="on", log_address=4, datetime="201210070003")
        circle = registry.get("ABCDEF")
        assert circle.onoff == "on"
        assert circle.log_address == 4
        assert circle.datetime == "201210070003"

    def test_relay_off(self, decoder):
        event, _ = decoder.decode(f"0024000A{MAC}0C0A21C3000440000085")

        assert event.onoff == "off"
        assert event.log_address == 0


class TestCalibration:
    """Tests for calibration responses."""

    def test_calibration_stored(self, decoder, registry):
        event, _ = decoder.decode(f"0027000B{MAC}{CALIBRATION_FIELDS}")

        assert event == NoData()
        assert registry.get("ABCDEF").calibration == Calibration(gain_a=1.0, gain_b=0.5, off_tot=2.0, off_noise=1.0)


class TestHistory:
    """Tests for history block responses."""

    INFO = "0C0A05A000000E10" + "FFFFFFFFFFFFFFFF" * 3

    def test_energy(self, decoder, registry):
        calibrate(registry)

        event, _ = decoder.decode(f"0049000C{MAC}{self.INFO}00044020")

        assert isinstance(event, CircleEnergy)
        assert event.address == "ABCDEF"
        assert event.datetime == "201210020000"
        assert event.log_address == 4
        assert event.energy == pytest.approx(5404.5 / 3600 / PULSES_PER_KWS)
        assert registry.get("ABCDEF").history.info[0] == "0C0A05A000000E10"

    def test_missing_calibration(self, decoder, registry):
        event, _ = decoder.decode(f"0049000C{MAC}{self.INFO}00044020")

        assert event.reason == ErrorReason.CALIBRATION_MISSING
        assert registry.get("ABCDEF").history.log_address == 4

    def test_empty_interval(self, decoder, registry):
        calibrate(registry)

        event, _ = decoder.decode(f"0049000C{MAC}{'FFFFFFFFFFFFFFFF' * 4}00044020")

        assert isinstance(event, ProtocolError)
        assert event.reason == ErrorReason.NO_DATA_IN_INTERVAL


class TestUnknown:
    """Tests for frames the decoder does not understand."""

    def test_unknown_opcode(self, decoder):
        assert decoder.decode("00610001") == (NoData(), [])

    def test_lower_case_payload(self, decoder, registry):
        event, _ = decoder.decode("0000000300de000d6f0000abcdee")

        assert event.onoff == "off"
        assert event.address == "ABCDEE"
