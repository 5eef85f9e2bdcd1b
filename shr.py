# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# shr.py - Shared Alpaca request/response helpers
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
Request parsing and JSON response shapes shared by the Alpaca responders.

Alpaca GET parameters are matched case-insensitively; PUT form fields are
matched exactly unless ``caseless`` is requested.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import IntEnum
from logging import Logger
from threading import Lock
from typing import Any, Optional

from falcon import HTTPBadRequest, Request

from exceptions import Success

logger: Optional[Logger] = None

_bad_title = 'Bad Alpaca Request'

_lock = Lock()
_stid = 0


def set_shr_logger(lgr: Logger) -> None:
    global logger
    logger = lgr


def getNextTransId() -> int:
    """Server transaction id, incremented for every response."""
    global _stid
    with _lock:
        _stid += 1
        return _stid


def get_request_field(name: str, req: Request, caseless: bool = False, default: Any = None) -> str:
    """Return a request field as text, or raise 400 if it is missing and has no default."""
    if req.method == 'GET':
        for key, value in req.params.items():
            if key.lower() == name.lower():
                return value
    else:
        formdata = req.get_media() or {}
        if caseless:
            for key, value in formdata.items():
                if key.lower() == name.lower():
                    return value
        elif name in formdata:
            return formdata[name]

    if default is None:
        raise HTTPBadRequest(title=_bad_title, description=f'Request has missing Alpaca parameter {name}')
    return default


def to_bool(text: str) -> bool:
    value = str(text).lower()
    if value == 'true':
        return True
    if value == 'false':
        return False
    raise HTTPBadRequest(title=_bad_title, description=f'Bad boolean value "{text}"')


def to_int(text: str) -> int:
    try:
        return int(text)
    except (TypeError, ValueError):
        raise HTTPBadRequest(title=_bad_title, description=f'Bad integer value "{text}"') from None


def to_float(text: str) -> float:
    try:
        return float(text)
    except (TypeError, ValueError):
        raise HTTPBadRequest(title=_bad_title, description=f'Bad numeric value "{text}"') from None


def _jsonable(value: Any) -> Any:
    if isinstance(value, IntEnum):
        return int(value)
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, datetime):
        # ISO 8601 UTC with a Z suffix
        return value.isoformat().replace('+00:00', 'Z')
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class _AlpacaResponse:
    """Common ``ServerTransactionID``/``ClientTransactionID``/error fields."""

    def __init__(self, req: Request, err=None):
        err = err if err is not None else Success()
        self.ServerTransactionID = getNextTransId()
        self.ClientTransactionID = to_int(get_request_field('ClientTransactionID', req, True, 0))
        self.ErrorNumber = err.number
        self.ErrorMessage = err.message

    @property
    def json(self) -> str:
        return json.dumps(self.__dict__)


class PropertyResponse(_AlpacaResponse):
    """Response to a property read; ``Value`` is omitted on error."""

    def __init__(self, value: Any, req: Request, err=None):
        super().__init__(req, err)
        if self.ErrorNumber == 0 and value is not None:
            self.Value = _jsonable(value)


class MethodResponse(_AlpacaResponse):
    """Response to a method call or property write."""

    def __init__(self, req: Request, err=None, value: Any = None):
        super().__init__(req, err)
        if self.ErrorNumber == 0 and value is not None:
            self.Value = _jsonable(value)


class PreProcessRequest:
    """Falcon ``before`` hook validating the device number and client ids."""

    def __init__(self, maxdev: int):
        self.maxdev = maxdev

    def _check_id(self, name: str, req: Request) -> None:
        text = get_request_field(name, req, True, '0')
        try:
            value = int(text)
        except ValueError:
            raise HTTPBadRequest(title=_bad_title, description=f'{name} "{text}" is not an integer') from None
        if value < 0:
            raise HTTPBadRequest(title=_bad_title, description=f'{name} {value} is negative')

    def __call__(self, req: Request, resp, resource, params) -> None:
        devnum = params['devnum']
        if devnum > self.maxdev:
            raise HTTPBadRequest(title=_bad_title, description=f'Device number {devnum} does not exist')
        self._check_id('ClientID', req)
        self._check_id('ClientTransactionID', req)
        log_request(req)


def log_request(req: Request) -> None:
    if logger is not None:
        logger.debug(f'{req.remote_addr} -> {req.method} {req.path}')
