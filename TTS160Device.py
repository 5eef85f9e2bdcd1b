# File: TTS160Device.py
"""
TTS160 telescope device.

Presents the mount through the ASCOM ITelescope surface. Motion is delegated
to the jog, GoTo and pulse-guide controllers, which share one ``MotionState``
and one ``SerialManager``.
"""

import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from logging import Logger
from typing import Callable, List, Optional

from exceptions import (
    ConcurrencyConflictException,
    DriverException,
    InvalidValueException,
    NotConnectedException,
    NotImplementedException,
    ParkedException,
    ValueNotSetException,
)
from tts160_guide import PulseGuideController
from tts160_moveaxis import GUIDE_RATE, AxisMotionController
from tts160_slew import SlewController
from tts160_state import MotionState
from tts160_telemetry import MountTelemetry
from tts160_transform import CoordinateTransform, degrees_to_dms, hours_to_hms
from tts160_types import (
    AlignmentModes,
    CommandType,
    DriveRates,
    EquatorialCoordinateType,
    GuideDirections,
    Rate,
    TelescopeAxes,
)
from TTS160Config import DriverSettings


class TelescopeMetadata:
    """Static driver identity reported to clients."""
    Name = 'TTS160'
    Version = '2.0.0'
    Description = 'TTS-160 Panther telescope mount'
    Info = 'Alpaca driver for the TTS-160 Panther mount (LX200 protocol)'
    InterfaceVersion = 4


TRACKING_RATE_COMMANDS = {
    DriveRates.driveSidereal: ':TQ#',
    DriveRates.driveLunar: ':TL#',
    DriveRates.driveSolar: ':TS#',
}

MAX_SLEW_SETTLE_TIME = 30


class CapabilitiesMixin:
    """Fixed ASCOM capability flags for the TTS160."""

    CanFindHome = False
    CanPark = True
    CanPulseGuide = True
    CanSetDeclinationRate = False
    CanSetGuideRates = False
    CanSetPark = False
    CanSetPierSide = False
    CanSetRightAscensionRate = False
    CanSetTracking = True
    CanSlew = True
    CanSlewAltAz = True
    CanSlewAltAzAsync = True
    CanSlewAsync = True
    CanSync = True
    CanSyncAltAz = True
    CanUnpark = False

    _AxisRates = [Rate(GUIDE_RATE, GUIDE_RATE), Rate(1.4, 1.4), Rate(2.2, 2.2), Rate(3.0, 3.0)]

    def CanMoveAxis(self, axis: TelescopeAxes) -> bool:
        """Mount can jog the primary and secondary axes, not the tertiary."""
        return _to_axis(axis) in (TelescopeAxes.axisPrimary, TelescopeAxes.axisSecondary)

    def AxisRates(self, axis: TelescopeAxes) -> List[Rate]:
        """
        Get angular rates at which mount may be moved about specified axis.

        Returns:
            List[Rate]: The guide rate and the three slew presets (deg/sec),
                empty for the tertiary axis
        """
        if self.CanMoveAxis(axis):
            return list(self._AxisRates)
        return []

    @property
    def TrackingRates(self) -> List[DriveRates]:
        return list(TRACKING_RATE_COMMANDS)

    @property
    def AlignmentMode(self) -> AlignmentModes:
        return AlignmentModes.algAltAz

    @property
    def Name(self) -> str:
        return TelescopeMetadata.Name

    @property
    def Description(self) -> str:
        return TelescopeMetadata.Description

    @property
    def DriverVersion(self) -> str:
        return TelescopeMetadata.Version

    @property
    def DriverInfo(self) -> str:
        return TelescopeMetadata.Info

    @property
    def InterfaceVersion(self) -> int:
        return TelescopeMetadata.InterfaceVersion

    @property
    def SupportedActions(self) -> List[str]:
        return []


def _to_axis(axis) -> TelescopeAxes:
    try:
        return TelescopeAxes(axis)
    except ValueError as ex:
        raise InvalidValueException(f"Invalid axis: {axis}") from ex


class TTS160Device(CapabilitiesMixin):
    """TTS160 mount with ASCOM-style properties and methods."""

    def __init__(
        self,
        logger: Logger,
        config=None,
        serial_manager=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Create the device in the disconnected state.

        Args:
            logger: Logger shared by the device and its controllers
            config: Driver profile; the global ``TTS160Config`` if omitted
            serial_manager: Transport; the global ``SerialManager`` if omitted
            sleep: Blocking wait used by the controllers
            clock: Monotonic time source used by the controllers
        """
        if not isinstance(logger, Logger):
            raise TypeError(f"logger must be a Logger instance, got {type(logger)}")

        self._logger = logger
        self._lock = threading.RLock()

        if config is None or serial_manager is None:
            import TTS160Global
            config = config or TTS160Global.get_config()
            serial_manager = serial_manager or TTS160Global.get_serial_manager(logger)

        self._config = config
        self._serial_manager = serial_manager
        self._Connected = False
        self._settings: Optional[DriverSettings] = None

        self._state = MotionState()
        self._telemetry = MountTelemetry(serial_manager, logger)
        self._axis = AxisMotionController(serial_manager, self._state, self._telemetry,
                                          logger, sleep=sleep, clock=clock)
        self._slew = SlewController(serial_manager, self._state, self._telemetry,
                                    logger=logger, sleep=sleep, clock=clock)
        self._guide = PulseGuideController(serial_manager, self._state, self._telemetry,
                                           logger=logger, sleep=sleep)

        self._logger.info("TTS160Device initialized")

    # -------------
    # Connection
    # -------------

    @property
    def Connected(self) -> bool:
        return self._Connected and self._serial_manager.is_connected

    @Connected.setter
    def Connected(self, value: bool) -> None:
        if value:
            self.Connect()
        else:
            self.Disconnect()

    @property
    def Connecting(self) -> bool:
        """Connect() completes synchronously, so this is never True."""
        return False

    def Connect(self) -> None:
        """
        Open the serial port and prepare the controllers.

        The profile is read once here and cached for the session. Motion
        state is reset, then the last commanded tracking state and the park
        state are seeded from the mount.
        """
        with self._lock:
            if self._Connected:
                return

            settings = self._config.snapshot()
            port = self._config.dev_port
            self._logger.info(f"Connecting to TTS160 on {port}")
            self._serial_manager.connect(port)

            try:
                self._state.reset()
                self._apply_settings(settings)
                self._state.track_set_follower = self._telemetry.tracking()
                self._state.is_parked = self._telemetry.parked()
                if settings.tracking_rate_on_connect is not None:
                    self._set_tracking_rate(settings.tracking_rate_on_connect)
            except DriverException:
                self._serial_manager.disconnect()
                raise

            self._Connected = True
            self._logger.info(
                f"Connected; tracking {'on' if self._state.track_set_follower else 'off'}, "
                f"settle {settings.slew_settle_time}s"
            )

    def Disconnect(self) -> None:
        with self._lock:
            if not self._Connected:
                return
            self._Connected = False
            self._serial_manager.disconnect()
            self._logger.info("Disconnected from TTS160")

    def _apply_settings(self, settings: DriverSettings) -> None:
        self._settings = settings
        self._slew.settle_time = settings.slew_settle_time
        self._guide.altitude_compensation = settings.pulse_guide_altitude_compensation
        self._guide.max_compensation = settings.pulse_guide_max_compensation
        self._guide.compensation_buffer = settings.pulse_guide_compensation_buffer

    def _check_connected(self, operation: str) -> None:
        if not self.Connected:
            raise NotConnectedException(f"{operation}: device not connected")

    def _check_not_parked(self, operation: str) -> None:
        if self._state.is_parked:
            raise ParkedException(f"{operation}: mount is parked")

    # -------------
    # Position
    # -------------

    @property
    def RightAscension(self) -> float:
        self._check_connected("RightAscension")
        return self._telemetry.right_ascension()

    @property
    def Declination(self) -> float:
        self._check_connected("Declination")
        return self._telemetry.declination()

    @property
    def Altitude(self) -> float:
        self._check_connected("Altitude")
        return self._telemetry.altitude()

    @property
    def Azimuth(self) -> float:
        self._check_connected("Azimuth")
        return self._telemetry.azimuth()

    @property
    def SiderealTime(self) -> float:
        self._check_connected("SiderealTime")
        return self._telemetry.sidereal_time()

    @property
    def SiteLatitude(self) -> float:
        self._check_connected("SiteLatitude")
        return self._telemetry.site_latitude()

    @property
    def SiteLongitude(self) -> float:
        """Site longitude in degrees, east positive, as reported by the mount."""
        self._check_connected("SiteLongitude")
        return self._telemetry.site_longitude()

    @property
    def SiteElevation(self) -> float:
        return self._config.site_elevation

    def _transform(self) -> CoordinateTransform:
        return CoordinateTransform(
            self._config.site_latitude,
            self._config.site_longitude,
            self._config.site_elevation,
            self._logger
        )

    # -------------
    # Tracking
    # -------------

    @property
    def Tracking(self) -> bool:
        self._check_connected("Tracking")
        return self._telemetry.tracking()

    @Tracking.setter
    def Tracking(self, value: bool) -> None:
        self._check_connected("Tracking")
        self._check_not_parked("Tracking")
        self._serial_manager.send_command(':T1#' if value else ':T0#', CommandType.BLIND)
        self._state.track_set_follower = bool(value)
        self._logger.info(f"Tracking set {'on' if value else 'off'}")

    @property
    def TrackingRate(self) -> DriveRates:
        self._check_connected("TrackingRate")
        return self._state.tracking_rate_current

    @TrackingRate.setter
    def TrackingRate(self, value: DriveRates) -> None:
        self._check_connected("TrackingRate")
        self._set_tracking_rate(value)

    def _set_tracking_rate(self, value) -> None:
        try:
            rate = DriveRates(value)
            command = TRACKING_RATE_COMMANDS[rate]
        except (ValueError, KeyError) as ex:
            raise InvalidValueException(f"Unsupported tracking rate: {value}") from ex

        self._serial_manager.send_command(command, CommandType.BLIND)
        self._state.tracking_rate_current = rate
        self._logger.info(f"Tracking rate set to {rate.name}")

    # -------------
    # Target
    # -------------

    @property
    def TargetRightAscension(self) -> float:
        value = self._state.target.right_ascension
        if value is None:
            raise ValueNotSetException("Target right ascension not set")
        return value

    @TargetRightAscension.setter
    def TargetRightAscension(self, value: float) -> None:
        self._check_connected("TargetRightAscension")
        if not (0 <= value < 24):
            raise InvalidValueException(f"Right ascension {value} outside range 0-24 hours")

        hms = hours_to_hms(value)
        if not self._serial_manager.send_command(f":Sr{hms}#", CommandType.BOOL):
            raise InvalidValueException(f"Mount rejected target right ascension {hms}")

        with self._state.lock:
            self._state.target.set_right_ascension(value)
        self._logger.debug(f"Target RA set to {hms}")

    @property
    def TargetDeclination(self) -> float:
        value = self._state.target.declination
        if value is None:
            raise ValueNotSetException("Target declination not set")
        return value

    @TargetDeclination.setter
    def TargetDeclination(self, value: float) -> None:
        self._check_connected("TargetDeclination")
        if not (-90 <= value <= 90):
            raise InvalidValueException(f"Declination {value} outside range ±90 degrees")

        dms = degrees_to_dms(value)
        if not self._serial_manager.send_command(f":Sd{dms}#", CommandType.BOOL):
            raise InvalidValueException(f"Mount rejected target declination {dms}")

        with self._state.lock:
            self._state.target.set_declination(value)
        self._logger.debug(f"Target Dec set to {dms}")

    def _set_target(self, right_ascension: float, declination: float) -> None:
        self.TargetRightAscension = right_ascension
        self.TargetDeclination = declination

    # -------------
    # GoTo
    # -------------

    @property
    def Slewing(self) -> bool:
        """True while a GoTo or jog is in progress or settling.

        Reading this property advances an asynchronous GoTo.
        """
        self._check_connected("Slewing")
        return self._slew.is_slewing()

    def SlewToTarget(self) -> None:
        self._check_connected("SlewToTarget")
        self._slew.slew_to_target()

    def SlewToTargetAsync(self) -> None:
        self._check_connected("SlewToTargetAsync")
        self._slew.slew_to_target_async()

    def _check_can_retarget(self, operation: str) -> None:
        """Fail before any target write if a GoTo could not start anyway."""
        self._check_connected(operation)
        self._check_not_parked(operation)
        if self._state.is_slewing_to_target:
            raise ConcurrencyConflictException(f"{operation}: GoTo already in progress")

    def SlewToCoordinates(self, ra: float, dec: float) -> None:
        self._check_can_retarget("SlewToCoordinates")
        self._set_target(ra, dec)
        self._slew.slew_to_target()

    def SlewToCoordinatesAsync(self, ra: float, dec: float) -> None:
        self._check_can_retarget("SlewToCoordinatesAsync")
        self._set_target(ra, dec)
        self._slew.slew_to_target_async()

    def SlewToAltAz(self, azimuth: float, altitude: float) -> None:
        self._slew_altaz("SlewToAltAz", azimuth, altitude, asynchronous=False)

    def SlewToAltAzAsync(self, azimuth: float, altitude: float) -> None:
        self._slew_altaz("SlewToAltAzAsync", azimuth, altitude, asynchronous=True)

    def _slew_altaz(self, operation: str, azimuth: float, altitude: float, asynchronous: bool) -> None:
        """GoTo a horizontal position; allowed with tracking off."""
        self._check_can_retarget(operation)
        right_ascension, declination = self._transform().altaz_to_radec(azimuth, altitude)
        self._set_target(right_ascension, declination)

        with self._state.lock:
            self._state.slew_altaz_track_override = True
        try:
            if asynchronous:
                self._slew.slew_to_target_async()
            else:
                self._slew.slew_to_target()
        except DriverException:
            with self._state.lock:
                self._state.slew_altaz_track_override = False
            raise

    def AbortSlew(self) -> None:
        """Stop all motion. Never raises."""
        self._slew.abort_slew()

    # -------------
    # Sync
    # -------------

    def SyncToTarget(self) -> None:
        self._check_connected("SyncToTarget")
        self._check_not_parked("SyncToTarget")
        if not self._state.target.is_target_set:
            raise ValueNotSetException("SyncToTarget: target not set")
        self._serial_manager.send_command(':CM#', CommandType.STRING)
        self._logger.info("Synced to target")

    def SyncToCoordinates(self, ra: float, dec: float) -> None:
        self._check_connected("SyncToCoordinates")
        self._check_not_parked("SyncToCoordinates")
        self._set_target(ra, dec)
        self.SyncToTarget()

    def SyncToAltAz(self, azimuth: float, altitude: float) -> None:
        self._check_connected("SyncToAltAz")
        right_ascension, declination = self._transform().altaz_to_radec(azimuth, altitude)
        self.SyncToCoordinates(right_ascension, declination)

    # -------------
    # Jog and guide
    # -------------

    def MoveAxis(self, axis: TelescopeAxes, rate: float) -> None:
        self._check_connected("MoveAxis")
        self._axis.move_axis(_to_axis(axis), rate)

    def PulseGuide(self, direction: GuideDirections, duration: int) -> None:
        self._check_connected("PulseGuide")
        try:
            guide_direction = GuideDirections(direction)
        except ValueError as ex:
            raise InvalidValueException(f"Invalid guide direction: {direction}") from ex
        self._guide.pulse_guide(guide_direction, duration)

    @property
    def IsPulseGuiding(self) -> bool:
        self._check_connected("IsPulseGuiding")
        return self._state.is_pulse_guiding

    # -------------
    # Park
    # -------------

    @property
    def AtPark(self) -> bool:
        return self._state.is_parked

    def Park(self) -> None:
        self._check_connected("Park")
        if self._state.is_parked:
            return
        if self._state.is_slewing_to_target or self._state.is_jogging:
            raise ConcurrencyConflictException("Park: mount is moving")

        self._serial_manager.send_command(':hP#', CommandType.BLIND)
        with self._state.lock:
            self._state.is_parked = True
        self._logger.info("Mount parked")

    def Unpark(self) -> None:
        raise NotImplementedException("Unpark is not supported by the TTS160 firmware")

    @property
    def AtHome(self) -> bool:
        """The mount has no home position, so it is never at home."""
        self._check_connected("AtHome")
        return False

    def FindHome(self) -> None:
        raise NotImplementedException("FindHome is not supported by the TTS160")

    def SetPark(self) -> None:
        raise NotImplementedException("SetPark is not supported by the TTS160")

    # -------------
    # Fixed and unsupported members
    # -------------

    @property
    def UTCDate(self) -> datetime:
        """
        Current UTC date and time.

        The mount keeps local time only, so this is the host clock. Setting
        it is not supported.
        """
        self._check_connected("UTCDate")
        return datetime.now(timezone.utc)

    @UTCDate.setter
    def UTCDate(self, value) -> None:
        raise NotImplementedException("Setting UTCDate is not supported")

    @property
    def EquatorialSystem(self) -> EquatorialCoordinateType:
        self._check_connected("EquatorialSystem")
        return EquatorialCoordinateType.equTopocentric

    @property
    def RightAscensionRate(self) -> float:
        self._check_connected("RightAscensionRate")
        return 0.0

    @RightAscensionRate.setter
    def RightAscensionRate(self, value: float) -> None:
        raise NotImplementedException("Setting RightAscensionRate is not supported")

    @property
    def DeclinationRate(self) -> float:
        self._check_connected("DeclinationRate")
        return 0.0

    @DeclinationRate.setter
    def DeclinationRate(self, value: float) -> None:
        raise NotImplementedException("Setting DeclinationRate is not supported")

    @property
    def DoesRefraction(self) -> bool:
        raise NotImplementedException("DoesRefraction is not supported")

    @DoesRefraction.setter
    def DoesRefraction(self, value: bool) -> None:
        raise NotImplementedException("DoesRefraction is not supported")

    @property
    def SideOfPier(self):
        raise NotImplementedException("SideOfPier is not supported by an alt-az mount")

    @SideOfPier.setter
    def SideOfPier(self, value) -> None:
        raise NotImplementedException("SideOfPier is not supported by an alt-az mount")

    def DestinationSideOfPier(self, right_ascension: float, declination: float):
        raise NotImplementedException("DestinationSideOfPier is not supported by an alt-az mount")

    @property
    def GuideRateRightAscension(self) -> float:
        raise NotImplementedException("GuideRateRightAscension is not supported")

    @GuideRateRightAscension.setter
    def GuideRateRightAscension(self, value: float) -> None:
        raise NotImplementedException("GuideRateRightAscension is not supported")

    @property
    def GuideRateDeclination(self) -> float:
        raise NotImplementedException("GuideRateDeclination is not supported")

    @GuideRateDeclination.setter
    def GuideRateDeclination(self, value: float) -> None:
        raise NotImplementedException("GuideRateDeclination is not supported")

    @property
    def ApertureArea(self) -> float:
        raise NotImplementedException("ApertureArea is not known to the driver")

    @property
    def ApertureDiameter(self) -> float:
        raise NotImplementedException("ApertureDiameter is not known to the driver")

    @property
    def FocalLength(self) -> float:
        raise NotImplementedException("FocalLength is not known to the driver")

    # -------------
    # Settings
    # -------------

    @property
    def SlewSettleTime(self) -> int:
        return int(self._slew.settle_time)

    @SlewSettleTime.setter
    def SlewSettleTime(self, value: int) -> None:
        if not (0 <= value <= MAX_SLEW_SETTLE_TIME):
            raise InvalidValueException(
                f"Invalid slew settle time {value}, must be 0-{MAX_SLEW_SETTLE_TIME} seconds"
            )

        with self._lock:
            self._config.slew_settle_time = value
            self._config.save()
            if self._settings is not None:
                self._settings = replace(self._settings, slew_settle_time=value)
            self._slew.settle_time = value

    # -------------
    # Pass-through commands
    # -------------

    def CommandBlind(self, command: str, raw: bool = False) -> None:
        self._check_connected("CommandBlind")
        self._serial_manager.send_command(command, CommandType.BLIND, raw=raw)

    def CommandBool(self, command: str, raw: bool = False) -> bool:
        self._check_connected("CommandBool")
        return self._serial_manager.send_command(command, CommandType.BOOL, raw=raw)

    def CommandString(self, command: str, raw: bool = False) -> str:
        self._check_connected("CommandString")
        return self._serial_manager.send_command(command, CommandType.STRING, raw=raw).rstrip('#')
