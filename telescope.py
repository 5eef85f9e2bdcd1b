# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# telescope.py - Alpaca API responders for the TTS160 telescope
#
# Part of the AlpycaDevice Alpaca skeleton/template device driver
#
# Author:   Robert B. Denny <rdenny@dc3.com> (rbd)
#
# Python Compatibility: Requires Python 3.7 or later
# GitHub: https://github.com/ASCOMInitiative/AlpycaDevice
#
# -----------------------------------------------------------------------------
# MIT License
#
# Copyright (c) 2022-2024 Bob Denny
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
# -----------------------------------------------------------------------------
"""
Falcon responder classes for ``/api/v1/telescope/{devnum}/{endpoint}``.

Each lower-case class name is the endpoint; ``app.init_routes`` discovers
them by inspection. Driver errors come back as HTTP 200 with a non-zero
``ErrorNumber``; anything else reaches the app's uncaught-exception handler.
"""

from logging import Logger
from typing import Any, Callable, Optional

from falcon import Request, Response, before

import TTS160Global
from exceptions import DriverException, NotConnectedException, NotImplementedException
from shr import (
    MethodResponse,
    PreProcessRequest,
    PropertyResponse,
    get_request_field,
    to_bool,
    to_float,
    to_int,
)
from TTS160Device import TelescopeMetadata

logger: Optional[Logger] = None
TTS160_dev = None

maxdev = 0


def start_TTS160_dev(logger: Logger):
    global TTS160_dev
    TTS160_dev = TTS160Global.get_device(logger)
    return TTS160_dev


# -------------
# Responder helpers
# -------------

def _property(req: Request, resp: Response, getter: Callable[[], Any], requires_connection: bool = True) -> None:
    if requires_connection and not TTS160_dev.Connected:
        resp.text = PropertyResponse(None, req, NotConnectedException('Device not connected')).json
        return
    try:
        resp.text = PropertyResponse(getter(), req).json
    except DriverException as ex:
        if logger is not None:
            logger.warning(f'{req.path}: {ex}')
        resp.text = PropertyResponse(None, req, ex).json


def _method(req: Request, resp: Response, action: Callable[[], Any], returns_value: bool = False) -> None:
    try:
        value = action()
        resp.text = MethodResponse(req, value=value if returns_value else None).json
    except DriverException as ex:
        if logger is not None:
            logger.warning(f'{req.path}: {ex}')
        resp.text = MethodResponse(req, ex).json


def _connected_method(req: Request, resp: Response, action: Callable[[], Any], returns_value: bool = False) -> None:
    if not TTS160_dev.Connected:
        resp.text = MethodResponse(req, NotConnectedException('Device not connected')).json
        return
    _method(req, resp, action, returns_value)


def _set_attribute(name: str, value: Any) -> None:
    setattr(TTS160_dev, name, value)


# -------------
# Common device members
# -------------

@before(PreProcessRequest(maxdev))
class action:
    def on_put(self, req: Request, resp: Response, devnum: int):
        resp.text = MethodResponse(req, NotImplementedException('No custom actions are supported')).json


@before(PreProcessRequest(maxdev))
class commandblind:
    def on_put(self, req: Request, resp: Response, devnum: int):
        command = get_request_field('Command', req)
        raw = to_bool(get_request_field('Raw', req, False, 'false'))
        _connected_method(req, resp, lambda: TTS160_dev.CommandBlind(command, raw))


@before(PreProcessRequest(maxdev))
class commandbool:
    def on_put(self, req: Request, resp: Response, devnum: int):
        command = get_request_field('Command', req)
        raw = to_bool(get_request_field('Raw', req, False, 'false'))
        _connected_method(req, resp, lambda: TTS160_dev.CommandBool(command, raw), returns_value=True)


@before(PreProcessRequest(maxdev))
class commandstring:
    def on_put(self, req: Request, resp: Response, devnum: int):
        command = get_request_field('Command', req)
        raw = to_bool(get_request_field('Raw', req, False, 'false'))
        _connected_method(req, resp, lambda: TTS160_dev.CommandString(command, raw), returns_value=True)


@before(PreProcessRequest(maxdev))
class connect:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _method(req, resp, TTS160_dev.Connect)


@before(PreProcessRequest(maxdev))
class connected:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Connected, requires_connection=False)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_bool(get_request_field('Connected', req))
        _method(req, resp, lambda: _set_attribute('Connected', value))


@before(PreProcessRequest(maxdev))
class connecting:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Connecting, requires_connection=False)


@before(PreProcessRequest(maxdev))
class disconnect:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _method(req, resp, TTS160_dev.Disconnect)


@before(PreProcessRequest(maxdev))
class description:
    def on_get(self, req: Request, resp: Response, devnum: int):
        resp.text = PropertyResponse(TelescopeMetadata.Description, req).json


@before(PreProcessRequest(maxdev))
class driverinfo:
    def on_get(self, req: Request, resp: Response, devnum: int):
        resp.text = PropertyResponse(TelescopeMetadata.Info, req).json


@before(PreProcessRequest(maxdev))
class driverversion:
    def on_get(self, req: Request, resp: Response, devnum: int):
        resp.text = PropertyResponse(TelescopeMetadata.Version, req).json


@before(PreProcessRequest(maxdev))
class interfaceversion:
    def on_get(self, req: Request, resp: Response, devnum: int):
        resp.text = PropertyResponse(TelescopeMetadata.InterfaceVersion, req).json


@before(PreProcessRequest(maxdev))
class name:
    def on_get(self, req: Request, resp: Response, devnum: int):
        resp.text = PropertyResponse(TelescopeMetadata.Name, req).json


@before(PreProcessRequest(maxdev))
class supportedactions:
    def on_get(self, req: Request, resp: Response, devnum: int):
        resp.text = PropertyResponse([], req).json


# -------------
# Capabilities
# -------------

@before(PreProcessRequest(maxdev))
class alignmentmode:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.AlignmentMode, requires_connection=False)


@before(PreProcessRequest(maxdev))
class axisrates:
    def on_get(self, req: Request, resp: Response, devnum: int):
        axis = to_int(get_request_field('Axis', req))
        _property(req, resp, lambda: TTS160_dev.AxisRates(axis), requires_connection=False)


@before(PreProcessRequest(maxdev))
class canmoveaxis:
    def on_get(self, req: Request, resp: Response, devnum: int):
        axis = to_int(get_request_field('Axis', req))
        _property(req, resp, lambda: TTS160_dev.CanMoveAxis(axis), requires_connection=False)


def _capability(flag: str):
    """Build a responder reporting one fixed ``Can*`` flag."""

    @before(PreProcessRequest(maxdev))
    class responder:
        def on_get(self, req: Request, resp: Response, devnum: int):
            _property(req, resp, lambda: getattr(TTS160_dev, flag), requires_connection=False)

    return responder


canfindhome = _capability('CanFindHome')
canpark = _capability('CanPark')
canpulseguide = _capability('CanPulseGuide')
cansetdeclinationrate = _capability('CanSetDeclinationRate')
cansetguiderates = _capability('CanSetGuideRates')
cansetpark = _capability('CanSetPark')
cansetpierside = _capability('CanSetPierSide')
cansetrightascensionrate = _capability('CanSetRightAscensionRate')
cansettracking = _capability('CanSetTracking')
canslew = _capability('CanSlew')
canslewaltaz = _capability('CanSlewAltAz')
canslewaltazasync = _capability('CanSlewAltAzAsync')
canslewasync = _capability('CanSlewAsync')
cansync = _capability('CanSync')
cansyncaltaz = _capability('CanSyncAltAz')
canunpark = _capability('CanUnpark')


@before(PreProcessRequest(maxdev))
class trackingrates:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.TrackingRates, requires_connection=False)


# -------------
# Position
# -------------

@before(PreProcessRequest(maxdev))
class altitude:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Altitude)


@before(PreProcessRequest(maxdev))
class azimuth:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Azimuth)


@before(PreProcessRequest(maxdev))
class declination:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Declination)


@before(PreProcessRequest(maxdev))
class rightascension:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.RightAscension)


@before(PreProcessRequest(maxdev))
class siderealtime:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.SiderealTime)


@before(PreProcessRequest(maxdev))
class siteelevation:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.SiteElevation, requires_connection=False)


@before(PreProcessRequest(maxdev))
class sitelatitude:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.SiteLatitude)


@before(PreProcessRequest(maxdev))
class sitelongitude:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.SiteLongitude)


# -------------
# Tracking and targets
# -------------

@before(PreProcessRequest(maxdev))
class tracking:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Tracking)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_bool(get_request_field('Tracking', req))
        _connected_method(req, resp, lambda: _set_attribute('Tracking', value))


@before(PreProcessRequest(maxdev))
class trackingrate:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.TrackingRate)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_int(get_request_field('TrackingRate', req))
        _connected_method(req, resp, lambda: _set_attribute('TrackingRate', value))


@before(PreProcessRequest(maxdev))
class targetdeclination:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.TargetDeclination)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_float(get_request_field('TargetDeclination', req))
        _connected_method(req, resp, lambda: _set_attribute('TargetDeclination', value))


@before(PreProcessRequest(maxdev))
class targetrightascension:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.TargetRightAscension)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_float(get_request_field('TargetRightAscension', req))
        _connected_method(req, resp, lambda: _set_attribute('TargetRightAscension', value))


# -------------
# Slewing
# -------------

@before(PreProcessRequest(maxdev))
class slewing:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.Slewing)


@before(PreProcessRequest(maxdev))
class slewsettletime:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.SlewSettleTime, requires_connection=False)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_int(get_request_field('SlewSettleTime', req))
        _method(req, resp, lambda: _set_attribute('SlewSettleTime', value))


@before(PreProcessRequest(maxdev))
class slewtotarget:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _connected_method(req, resp, TTS160_dev.SlewToTarget)


@before(PreProcessRequest(maxdev))
class slewtotargetasync:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _connected_method(req, resp, TTS160_dev.SlewToTargetAsync)


@before(PreProcessRequest(maxdev))
class slewtocoordinates:
    def on_put(self, req: Request, resp: Response, devnum: int):
        ra = to_float(get_request_field('RightAscension', req))
        dec = to_float(get_request_field('Declination', req))
        _connected_method(req, resp, lambda: TTS160_dev.SlewToCoordinates(ra, dec))


@before(PreProcessRequest(maxdev))
class slewtocoordinatesasync:
    def on_put(self, req: Request, resp: Response, devnum: int):
        ra = to_float(get_request_field('RightAscension', req))
        dec = to_float(get_request_field('Declination', req))
        _connected_method(req, resp, lambda: TTS160_dev.SlewToCoordinatesAsync(ra, dec))


@before(PreProcessRequest(maxdev))
class slewtoaltaz:
    def on_put(self, req: Request, resp: Response, devnum: int):
        az = to_float(get_request_field('Azimuth', req))
        alt = to_float(get_request_field('Altitude', req))
        _connected_method(req, resp, lambda: TTS160_dev.SlewToAltAz(az, alt))


@before(PreProcessRequest(maxdev))
class slewtoaltazasync:
    def on_put(self, req: Request, resp: Response, devnum: int):
        az = to_float(get_request_field('Azimuth', req))
        alt = to_float(get_request_field('Altitude', req))
        _connected_method(req, resp, lambda: TTS160_dev.SlewToAltAzAsync(az, alt))


@before(PreProcessRequest(maxdev))
class abortslew:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _connected_method(req, resp, TTS160_dev.AbortSlew)


# -------------
# Sync
# -------------

@before(PreProcessRequest(maxdev))
class synctotarget:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _connected_method(req, resp, TTS160_dev.SyncToTarget)


@before(PreProcessRequest(maxdev))
class synctocoordinates:
    def on_put(self, req: Request, resp: Response, devnum: int):
        ra = to_float(get_request_field('RightAscension', req))
        dec = to_float(get_request_field('Declination', req))
        _connected_method(req, resp, lambda: TTS160_dev.SyncToCoordinates(ra, dec))


@before(PreProcessRequest(maxdev))
class synctoaltaz:
    def on_put(self, req: Request, resp: Response, devnum: int):
        az = to_float(get_request_field('Azimuth', req))
        alt = to_float(get_request_field('Altitude', req))
        _connected_method(req, resp, lambda: TTS160_dev.SyncToAltAz(az, alt))


# -------------
# Jog and guide
# -------------

@before(PreProcessRequest(maxdev))
class moveaxis:
    def on_put(self, req: Request, resp: Response, devnum: int):
        axis = to_int(get_request_field('Axis', req))
        rate = to_float(get_request_field('Rate', req))
        _connected_method(req, resp, lambda: TTS160_dev.MoveAxis(axis, rate))


@before(PreProcessRequest(maxdev))
class pulseguide:
    def on_put(self, req: Request, resp: Response, devnum: int):
        direction = to_int(get_request_field('Direction', req))
        duration = to_int(get_request_field('Duration', req))
        _connected_method(req, resp, lambda: TTS160_dev.PulseGuide(direction, duration))


@before(PreProcessRequest(maxdev))
class ispulseguiding:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.IsPulseGuiding)


# -------------
# Park
# -------------

@before(PreProcessRequest(maxdev))
class atpark:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.AtPark)


@before(PreProcessRequest(maxdev))
class park:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _connected_method(req, resp, TTS160_dev.Park)


@before(PreProcessRequest(maxdev))
class unpark:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _connected_method(req, resp, TTS160_dev.Unpark)


@before(PreProcessRequest(maxdev))
class athome:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.AtHome)


@before(PreProcessRequest(maxdev))
class findhome:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _method(req, resp, TTS160_dev.FindHome)


@before(PreProcessRequest(maxdev))
class setpark:
    def on_put(self, req: Request, resp: Response, devnum: int):
        _method(req, resp, TTS160_dev.SetPark)


# -------------
# Fixed and unsupported members
# -------------

@before(PreProcessRequest(maxdev))
class utcdate:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.UTCDate)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = get_request_field('UTCDate', req)
        _method(req, resp, lambda: _set_attribute('UTCDate', value))


@before(PreProcessRequest(maxdev))
class equatorialsystem:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.EquatorialSystem)


@before(PreProcessRequest(maxdev))
class rightascensionrate:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.RightAscensionRate)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_float(get_request_field('RightAscensionRate', req))
        _method(req, resp, lambda: _set_attribute('RightAscensionRate', value))


@before(PreProcessRequest(maxdev))
class declinationrate:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.DeclinationRate)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_float(get_request_field('DeclinationRate', req))
        _method(req, resp, lambda: _set_attribute('DeclinationRate', value))


@before(PreProcessRequest(maxdev))
class doesrefraction:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.DoesRefraction, requires_connection=False)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_bool(get_request_field('DoesRefraction', req))
        _method(req, resp, lambda: _set_attribute('DoesRefraction', value))


@before(PreProcessRequest(maxdev))
class sideofpier:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.SideOfPier, requires_connection=False)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_int(get_request_field('SideOfPier', req))
        _method(req, resp, lambda: _set_attribute('SideOfPier', value))


@before(PreProcessRequest(maxdev))
class destinationsideofpier:
    def on_get(self, req: Request, resp: Response, devnum: int):
        ra = to_float(get_request_field('RightAscension', req))
        dec = to_float(get_request_field('Declination', req))
        _property(req, resp, lambda: TTS160_dev.DestinationSideOfPier(ra, dec), requires_connection=False)


@before(PreProcessRequest(maxdev))
class guideraterightascension:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.GuideRateRightAscension, requires_connection=False)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_float(get_request_field('GuideRateRightAscension', req))
        _method(req, resp, lambda: _set_attribute('GuideRateRightAscension', value))


@before(PreProcessRequest(maxdev))
class guideratedeclination:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.GuideRateDeclination, requires_connection=False)

    def on_put(self, req: Request, resp: Response, devnum: int):
        value = to_float(get_request_field('GuideRateDeclination', req))
        _method(req, resp, lambda: _set_attribute('GuideRateDeclination', value))


@before(PreProcessRequest(maxdev))
class aperturearea:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.ApertureArea, requires_connection=False)


@before(PreProcessRequest(maxdev))
class aperturediameter:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.ApertureDiameter, requires_connection=False)


@before(PreProcessRequest(maxdev))
class focallength:
    def on_get(self, req: Request, resp: Response, devnum: int):
        _property(req, resp, lambda: TTS160_dev.FocalLength, requires_connection=False)
