"""
Unit tests for MoveAxis jog control.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from exceptions import (
    ConcurrencyConflictException,
    InvalidValueException,
    NotConnectedException,
    ParkedException,
)
from tts160_moveaxis import GUIDE_RATE, AxisMotionController, rate_preset
from tts160_types import TelescopeAxes


PRIMARY = TelescopeAxes.axisPrimary
SECONDARY = TelescopeAxes.axisSecondary


@pytest.fixture
def controller(fake_mount, motion_state, telemetry, mock_logger, fake_clock):
    return AxisMotionController(fake_mount, motion_state, telemetry, mock_logger,
                                sleep=fake_clock.sleep, clock=fake_clock)


class TestRatePresets:
    """Test rate to preset command mapping."""

    @pytest.mark.unit
    @pytest.mark.parametrize("rate,command", [
        (GUIDE_RATE, ':RG#'),
        (-GUIDE_RATE, ':RG#'),
        (1.4, ':RC#'),
        (2.2, ':RM#'),
        (-3.0, ':RS#'),
        (1.4 + 5e-7, ':RC#'),
    ])
    def test_supported_rates(self, rate, command):
        """Supported magnitudes should map to their preset within tolerance."""
        assert rate_preset(rate) == command

    @pytest.mark.unit
    @pytest.mark.parametrize("rate", [0.5, 1.0, 2.5, 4.0, 1.41])
    def test_unsupported_rates(self, rate):
        """Other magnitudes should have no preset."""
        assert rate_preset(rate) is None


class TestMoveAxis:
    """Test starting a jog."""

    @pytest.mark.unit
    @pytest.mark.parametrize("axis,rate,expected", [
        (PRIMARY, 1.4, [':RC#', ':Me#']),
        (PRIMARY, -2.2, [':RM#', ':Mw#']),
        (SECONDARY, 3.0, [':RS#', ':Mn#']),
        (SECONDARY, -GUIDE_RATE, [':RG#', ':Ms#']),
    ])
    def test_move_sends_preset_then_direction(self, controller, fake_mount, motion_state,
                                              axis, rate, expected):
        """A jog should select the rate preset then send the direction."""
        controller.move_axis(axis, rate)

        assert fake_mount.sent == expected
        assert motion_state.is_axis_moving(axis)
        assert motion_state.is_slewing

    @pytest.mark.unit
    @pytest.mark.parametrize("rate", [0.5, 1.0, -2.0, 5.0])
    def test_invalid_rate_sends_nothing(self, controller, fake_mount, rate):
        """An unsupported rate should raise InvalidValue before any I/O."""
        with pytest.raises(InvalidValueException):
            controller.move_axis(PRIMARY, rate)
        assert fake_mount.sent == []

    @pytest.mark.unit
    def test_tertiary_axis_rejected(self, controller, fake_mount):
        """The tertiary axis cannot be jogged."""
        with pytest.raises(InvalidValueException):
            controller.move_axis(TelescopeAxes.axisTertiary, 1.4)
        assert fake_mount.sent == []

    @pytest.mark.unit
    def test_not_connected(self, controller, fake_mount):
        """Jogging requires an open transport."""
        fake_mount.connected = False
        with pytest.raises(NotConnectedException):
            controller.move_axis(PRIMARY, 1.4)

    @pytest.mark.unit
    def test_parked(self, controller, motion_state):
        """Jogging is refused while parked."""
        motion_state.is_parked = True
        with pytest.raises(ParkedException):
            controller.move_axis(PRIMARY, 1.4)

    @pytest.mark.unit
    def test_axis_already_moving(self, controller, fake_mount):
        """A second jog on a moving axis should conflict."""
        controller.move_axis(PRIMARY, 1.4)
        with pytest.raises(ConcurrencyConflictException):
            controller.move_axis(PRIMARY, 2.2)

    @pytest.mark.unit
    def test_other_axis_may_move(self, controller, motion_state):
        """Both axes may jog at once."""
        controller.move_axis(PRIMARY, 1.4)
        controller.move_axis(SECONDARY, 1.4)
        assert motion_state.moving_primary and motion_state.moving_secondary

    @pytest.mark.unit
    @pytest.mark.parametrize("axis", [PRIMARY, SECONDARY])
    def test_conflicts_with_guide_on_same_axis(self, controller, fake_mount, motion_state, axis):
        """A jog on an axis being pulse guided should conflict."""
        motion_state.guiding_axes.add(axis)

        with pytest.raises(ConcurrencyConflictException):
            controller.move_axis(axis, 1.4)
        assert fake_mount.sent == []

    @pytest.mark.unit
    def test_guide_on_other_axis_allowed(self, controller, motion_state):
        """A guide on the other axis should not block the jog."""
        motion_state.guiding_axes.add(SECONDARY)

        controller.move_axis(PRIMARY, 1.4)
        assert motion_state.moving_primary

    @pytest.mark.unit
    def test_conflicts_with_goto(self, controller, motion_state):
        """No jog while a GoTo is in flight."""
        motion_state.is_slewing_to_target = True
        with pytest.raises(ConcurrencyConflictException):
            controller.move_axis(SECONDARY, 1.4)


class TestStopAxis:
    """Test halting a jog with rate 0."""

    @pytest.mark.unit
    @pytest.mark.parametrize("axis,expected", [
        (PRIMARY, [':Qe#', ':Qw#']),
        (SECONDARY, [':Qn#', ':Qs#']),
    ])
    def test_stop_sends_both_halts(self, controller, fake_mount, motion_state, axis, expected):
        """Rate 0 should send both halt commands for the axis."""
        motion_state.set_axis_moving(axis, True)
        motion_state.is_slewing = True

        controller.move_axis(axis, 0)

        assert fake_mount.sent[:2] == expected
        assert not motion_state.is_axis_moving(axis)
        assert not motion_state.is_slewing

    @pytest.mark.unit
    def test_stop_keeps_slewing_while_other_axis_moves(self, controller, motion_state):
        """is_slewing stays true while the other axis is still jogging."""
        controller.move_axis(PRIMARY, 1.4)
        controller.move_axis(SECONDARY, 1.4)

        controller.move_axis(PRIMARY, 0)

        assert motion_state.is_slewing
        assert motion_state.moving_secondary

    @pytest.mark.unit
    def test_stop_waits_for_tracking_when_commanded_on(self, controller, fake_mount,
                                                      motion_state, fake_clock):
        """With tracking commanded on, the halt polls until tracking resumes."""
        motion_state.track_set_follower = True
        motion_state.moving_primary = True
        fake_mount.tracking_script = [False, False, True]

        controller.move_axis(PRIMARY, 0)

        assert fake_mount.commands(':GW#') == [':GW#'] * 3
        assert fake_clock.sleeps == [0.1, 0.1]

    @pytest.mark.unit
    def test_stop_wait_gives_up_after_two_seconds(self, controller, fake_mount,
                                                 motion_state, fake_clock):
        """If tracking never resumes the halt returns after about 2 s."""
        motion_state.track_set_follower = True
        motion_state.moving_primary = True
        fake_mount.tracking = False

        controller.move_axis(PRIMARY, 0)

        assert sum(fake_clock.sleeps) == pytest.approx(2.0, abs=0.11)
        assert not motion_state.moving_primary

    @pytest.mark.unit
    def test_stop_waits_even_with_tracking_commanded_off(self, controller, fake_mount,
                                                         motion_state, fake_clock):
        """The halt wait runs whatever tracking state was last commanded."""
        motion_state.track_set_follower = False
        fake_mount.tracking_script = [False, True]

        controller.move_axis(SECONDARY, 0)

        assert fake_mount.commands(':GW#') == [':GW#'] * 2
        assert fake_clock.sleeps == [0.1]
