"""
Unit tests for GoTo control: preconditions, the two blocking completion
paths, poll-driven async completion, settle timing and abort.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from exceptions import (
    ConcurrencyConflictException,
    InvalidOperationException,
    NotConnectedException,
    OperationRejectedException,
    ParkedException,
    SlewStallException,
    SlewTimeoutException,
    ValueNotSetException,
)
from tts160_slew import STALL_COUNT, SlewController
from tts160_types import TelescopeAxes


TARGET = (10.5, 20.0)


@pytest.fixture
def make_controller(fake_mount, motion_state, telemetry, mock_logger, fake_clock):
    def factory(settle_time=0.0):
        return SlewController(fake_mount, motion_state, telemetry, settle_time=settle_time,
                              logger=mock_logger, sleep=fake_clock.sleep, clock=fake_clock)
    return factory


@pytest.fixture
def controller(make_controller):
    return make_controller()


@pytest.fixture
def armed(motion_state):
    motion_state.target.set_right_ascension(TARGET[0])
    motion_state.target.set_declination(TARGET[1])
    return motion_state


class TestPreconditions:
    """Test the checks made before :MS# is sent."""

    @pytest.mark.unit
    def test_not_connected(self, controller, fake_mount, armed):
        """GoTo requires an open transport."""
        fake_mount.connected = False
        with pytest.raises(NotConnectedException):
            controller.slew_to_target()

    @pytest.mark.unit
    def test_parked(self, controller, armed):
        """GoTo is refused while parked."""
        armed.is_parked = True
        with pytest.raises(ParkedException):
            controller.slew_to_target()

    @pytest.mark.unit
    @pytest.mark.parametrize("set_ra,set_dec", [(False, False), (True, False), (False, True)])
    def test_target_must_be_complete(self, controller, fake_mount, motion_state, set_ra, set_dec):
        """Both RA and Dec must be set before a GoTo."""
        if set_ra:
            motion_state.target.set_right_ascension(TARGET[0])
        if set_dec:
            motion_state.target.set_declination(TARGET[1])

        with pytest.raises(ValueNotSetException):
            controller.slew_to_target_async()
        assert fake_mount.commands(':MS#') == []

    @pytest.mark.unit
    def test_target_disarmed_after_success(self, controller, fake_mount, armed):
        """A second GoTo needs the target written again."""
        fake_mount.tracking_script = [True, True]
        controller.slew_to_target()

        with pytest.raises(ValueNotSetException):
            controller.slew_to_target()
        assert armed.target.right_ascension == TARGET[0]

    @pytest.mark.unit
    def test_target_disarmed_after_abort(self, controller, armed):
        """Abort also requires the target to be written again."""
        controller.slew_to_target_async()
        controller.abort_slew()

        with pytest.raises(ValueNotSetException):
            controller.slew_to_target_async()

    @pytest.mark.unit
    def test_requires_tracking(self, controller, fake_mount, armed):
        """An equatorial GoTo needs tracking on."""
        fake_mount.tracking = False
        with pytest.raises(InvalidOperationException):
            controller.slew_to_target()
        assert fake_mount.commands(':MS#') == []

    @pytest.mark.unit
    def test_override_allows_untracked_goto(self, controller, fake_mount, armed):
        """The Alt/Az override lifts the tracking requirement."""
        fake_mount.tracking = False
        armed.slew_altaz_track_override = True

        controller.slew_to_target_async()
        assert armed.is_slewing_to_target

    @pytest.mark.unit
    def test_single_goto_in_flight(self, controller, fake_mount, armed, fake_clock):
        """A second GoTo while one is in flight fails immediately."""
        controller.slew_to_target_async()
        armed.target.set_right_ascension(1.0)
        armed.target.set_declination(2.0)
        sleeps_before = list(fake_clock.sleeps)

        with pytest.raises(ConcurrencyConflictException):
            controller.slew_to_target()
        with pytest.raises(ConcurrencyConflictException):
            controller.slew_to_target_async()

        assert fake_mount.commands(':MS#') == [':MS#']
        assert fake_clock.sleeps == sleeps_before

    @pytest.mark.unit
    def test_rejected_goto(self, controller, fake_mount, armed):
        """A refused :MS# raises OperationRejected and leaves no slew flags."""
        fake_mount.goto_rejected = True
        armed.slew_altaz_track_override = True

        with pytest.raises(OperationRejectedException):
            controller.slew_to_target()

        assert not armed.is_slewing
        assert not armed.is_slewing_to_target
        assert not armed.slew_altaz_track_override


class TestBlockingWhileTracking:
    """Test completion by tracking resuming."""

    @pytest.mark.unit
    def test_returns_when_tracking_resumes(self, controller, fake_mount, armed, fake_clock):
        """Tracking resuming marks arrival."""
        fake_mount.tracking_script = [True, False, False, True]

        controller.slew_to_target()

        assert fake_clock.sleeps == [0.2, 0.2, 0.2]
        assert not armed.is_slewing
        assert not armed.is_slewing_to_target

    @pytest.mark.unit
    def test_settle_time_applied(self, make_controller, fake_mount, armed, fake_clock):
        """The settle time is slept after arrival."""
        controller = make_controller(settle_time=2)
        fake_mount.tracking_script = [True, True]

        controller.slew_to_target()

        assert fake_clock.sleeps[-1] == 2

    @pytest.mark.unit
    def test_timeout_halts_mount(self, controller, fake_mount, armed, fake_clock):
        """If tracking never resumes, :Q# is sent and the GoTo times out."""
        fake_mount.tracking_script = [True]
        fake_mount.tracking = False

        with pytest.raises(SlewTimeoutException):
            controller.slew_to_target()

        assert fake_mount.commands(':Q#') == [':Q#']
        assert sum(fake_clock.sleeps) == pytest.approx(300.0, abs=0.21)
        assert not armed.is_slewing_to_target

    @pytest.mark.unit
    def test_timeout_aborts_and_restores_tracking(self, controller, fake_mount, armed):
        """A timed-out GoTo is aborted, so commanded tracking is switched back on."""
        armed.track_set_follower = True
        armed.moving_primary = True
        fake_mount.tracking_script = [True]
        fake_mount.tracking = False

        with pytest.raises(SlewTimeoutException):
            controller.slew_to_target()

        assert fake_mount.sent[-2:] == [':Q#', ':T1#']
        assert not armed.moving_primary
        assert not armed.target.is_target_set


class TestBlockingConvergence:
    """Test completion by position samples when not tracking."""

    @pytest.fixture
    def untracked(self, fake_mount, armed):
        fake_mount.tracking = False
        armed.slew_altaz_track_override = True
        return armed

    @pytest.mark.unit
    def test_converges_on_target(self, controller, fake_mount, untracked, fake_clock):
        """Three still samples near the target complete the GoTo."""
        fake_mount.positions = [
            (2.0, 60.0), (4.0, 50.0), (6.0, 40.0), (8.0, 30.0), (10.0, 22.0),
            TARGET,
        ]

        controller.slew_to_target()

        assert fake_mount.commands(':MS#') == [':MS#']
        assert fake_mount.commands(':Q#') == []
        assert not untracked.is_slewing
        assert not untracked.is_slewing_to_target
        # Five moving samples, then three still ones on the target
        assert fake_clock.sleeps.count(0.1) == 8

    @pytest.mark.unit
    @pytest.mark.parametrize("target_ra,positions", [
        (0.0, [(22.0, 40.0), (23.0, 30.0), (23.9997, 20.0)]),
        (23.9999, [(2.0, 40.0), (1.0, 30.0), (0.0002, 20.0)]),
    ])
    def test_converges_across_zero_hours(self, controller, fake_mount, untracked,
                                         target_ra, positions):
        """A target on the other side of 0h RA is still reached, not stalled."""
        untracked.target.set_right_ascension(target_ra)
        fake_mount.positions = positions

        controller.slew_to_target()

        assert fake_mount.commands(':Q#') == []
        assert not untracked.is_slewing_to_target

    @pytest.mark.unit
    def test_brief_pause_is_not_arrival(self, controller, fake_mount, untracked):
        """A still sample followed by motion resets the arrival count."""
        fake_mount.positions = [
            (2.0, 60.0), (4.0, 50.0), (4.0, 50.0), (6.0, 40.0), (8.0, 30.0), TARGET,
        ]
        controller.slew_to_target()
        assert not untracked.is_slewing_to_target

    @pytest.mark.unit
    def test_stuck_motor_stalls(self, controller, fake_mount, untracked, fake_clock):
        """A position that never changes raises Stall and halts exactly once."""
        fake_mount.positions = [(2.0, 60.0)]

        with pytest.raises(SlewStallException):
            controller.slew_to_target()

        assert fake_mount.commands(':Q#') == [':Q#']
        assert fake_clock.sleeps.count(0.1) == STALL_COUNT
        assert not untracked.is_slewing
        assert not untracked.is_slewing_to_target

    @pytest.mark.unit
    def test_still_far_from_target_is_not_arrival(self, controller, fake_mount, untracked):
        """Standing still outside the target window never counts as arrival."""
        fake_mount.positions = [(0.0, -60.0)]
        with pytest.raises(SlewStallException):
            controller.slew_to_target()


class TestAsyncSlewing:
    """Test poll-driven progress of an async GoTo."""

    @pytest.mark.unit
    def test_async_returns_immediately(self, controller, fake_mount, armed, fake_clock):
        """SlewToTargetAsync returns after :MS# with the flags raised."""
        controller.slew_to_target_async()

        assert fake_clock.sleeps == []
        assert armed.is_slewing and armed.is_slewing_async and armed.is_slewing_to_target

    @pytest.mark.unit
    def test_poll_idempotent_without_settle(self, controller, fake_mount, armed):
        """With settle 0 the first post-resume poll ends the slew for good."""
        fake_mount.tracking_script = [True, False]
        controller.slew_to_target_async()

        assert controller.is_slewing() is True

        fake_mount.tracking = True
        assert controller.is_slewing() is False
        assert not armed.is_slewing_to_target
        assert not armed.is_slewing_async
        assert controller.is_slewing() is False

    @pytest.mark.unit
    def test_settle_timing(self, make_controller, fake_mount, armed, fake_clock):
        """Slewing stays true until 2 s after the first post-resume poll."""
        controller = make_controller(settle_time=2)
        controller.slew_to_target_async()

        assert controller.is_slewing() is True
        fake_clock.advance(1.0)
        assert controller.is_slewing() is True
        fake_clock.advance(0.5)
        assert controller.is_slewing() is True
        fake_clock.advance(0.5)
        assert controller.is_slewing() is False
        assert controller.is_slewing() is False

    @pytest.mark.unit
    def test_async_completion_disarms_target(self, controller, armed):
        """Async completion disarms the target like a blocking GoTo."""
        controller.slew_to_target_async()
        controller.is_slewing()
        assert not armed.target.is_target_set

    @pytest.mark.unit
    def test_altaz_async_uses_position(self, controller, fake_mount, armed, fake_clock):
        """Without a tracking signal, async completion comes from position samples."""
        fake_mount.tracking = False
        armed.slew_altaz_track_override = True
        fake_mount.positions = [(5.0, 50.0), TARGET, TARGET]
        controller.slew_to_target_async()

        assert controller.is_slewing() is True   # first sample only
        fake_clock.advance(0.5)
        assert controller.is_slewing() is True   # moved
        fake_clock.advance(0.5)
        assert controller.is_slewing() is False  # still, on target
        assert not armed.slew_altaz_track_override

    @pytest.mark.unit
    def test_jog_slewing_passthrough(self, controller, armed):
        """Outside a GoTo, is_slewing reports the raw jog flag."""
        armed.is_slewing = True
        assert controller.is_slewing() is True
        armed.is_slewing = False
        assert controller.is_slewing() is False


class TestAbort:
    """Test AbortSlew."""

    @pytest.mark.unit
    def test_abort_clears_everything(self, controller, fake_mount, armed):
        """Abort halts and clears every motion flag."""
        controller.slew_to_target_async()
        armed.moving_primary = True
        armed.guiding_axes.add(TelescopeAxes.axisPrimary)
        armed.slew_settle_start = 1.0

        controller.abort_slew()

        assert ':Q#' in fake_mount.sent
        assert not armed.is_slewing
        assert not armed.is_slewing_async
        assert not armed.is_slewing_to_target
        assert not armed.moving_primary
        assert not armed.is_pulse_guiding
        assert armed.slew_settle_start is None

    @pytest.mark.unit
    @pytest.mark.parametrize("follower,command", [(True, ':T1#'), (False, ':T0#')])
    def test_abort_restores_tracking(self, controller, fake_mount, armed, follower, command):
        """Abort re-applies the last commanded tracking state."""
        armed.track_set_follower = follower
        controller.abort_slew()
        assert fake_mount.sent[-1] == command

    @pytest.mark.unit
    def test_abort_never_raises(self, controller, fake_mount, armed):
        """Device errors during abort are logged, not raised."""
        fake_mount.connected = False
        armed.is_slewing = True

        controller.abort_slew()

        assert not armed.is_slewing

    @pytest.mark.unit
    def test_abort_ends_blocking_wait(self, controller, fake_mount, armed, fake_clock):
        """A blocking wait returns quietly once an abort clears the GoTo."""
        fake_mount.tracking_script = [True]
        fake_mount.tracking = False
        original_sleep = fake_clock.sleep

        def sleep_then_abort(seconds):
            original_sleep(seconds)
            if len(fake_clock.sleeps) == 3:
                controller.abort_slew()

        controller._sleep = sleep_then_abort
        controller.slew_to_target()

        assert len(fake_clock.sleeps) == 3
        assert not armed.is_slewing_to_target
