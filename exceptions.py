# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# exceptions.py - Alpaca exception classes for the TTS160 driver
#
# Part of the AlpycaDevice Alpaca skeleton/template device driver
#
# Author:   Robert B. Denny <rdenny@dc3.com> (rbd)
#           Enhanced by: Reid W. Smythe <rwsmythe@gmail.com> (rws)
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
Driver exception taxonomy.

Every exception raised by the driver core carries the Alpaca error number it
maps to, so the HTTP layer can turn it into an ``ErrorNumber``/``ErrorMessage``
pair without knowing which controller raised it.
"""

from logging import Logger
from typing import Optional

logger: Optional[Logger] = None


class DriverException(Exception):
    """Base class for all driver errors (Alpaca 0x500)."""

    number = 0x500

    def __init__(self, message: str = 'Internal driver error', number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if number is not None:
            self.number = number

    def __str__(self) -> str:
        return self.message


class Success:
    """Placeholder error object for responses that carry no error."""

    number = 0
    message = ''


class NotImplementedException(DriverException):
    """Operation is not supported by the mount."""
    number = 0x400


class InvalidValueException(DriverException):
    """Out-of-range coordinate, duration, axis or rate."""
    number = 0x401


class ValueNotSetException(DriverException):
    """A value was read before it was ever written."""
    number = 0x402


class NotConnectedException(DriverException):
    """Operation attempted without an open transport."""
    number = 0x407


class CommunicationError(NotConnectedException):
    """Serial I/O failed while talking to the mount."""


class ParkedException(DriverException):
    """Motion requested while the mount is parked."""
    number = 0x408


class InvalidOperationException(DriverException):
    """Operation not allowed in the current mount state."""
    number = 0x40B


class ConcurrencyConflictException(InvalidOperationException):
    """Axis already busy, or a GoTo is already in flight."""


class OperationRejectedException(InvalidOperationException):
    """The mount refused the command, e.g. a GoTo target below the horizon."""


class SlewStallException(DriverException):
    """No motion detected for the whole convergence window during a GoTo."""


class SlewTimeoutException(DriverException):
    """Tracking did not resume within the GoTo time limit."""


class ProtocolError(DriverException):
    """Unexpected, empty or malformed reply from the mount."""
