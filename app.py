# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# app.py - Application module for the TTS160 Alpaca driver
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

import inspect
import sys
import traceback
from enum import IntEnum

from falcon import App, HTTPInternalServerError, Request, Response
from waitress import serve as waitress_serve

import exceptions
import log
import telescope
import TTS160Global
from shr import set_shr_logger

server_cfg = None

API_VERSION = 1


def init_routes(app: App, devname: str, module):
    """Initialize Falcon routing from URI to responder classes

    Inspects a module and finds all classes, assuming they are Falcon
    responder classes, and calls Falcon to route the corresponding
    Alpaca URI to each responder. The URI template is built from the
    name the class is bound to in the module.

    Args:
        app (App): The instance of the Falcon processor app
        devname (str): The name of the device (e.g. 'telescope')
        module (module): Module object containing responder classes

    Notes:
        * The device number is extracted from the URI by an **int**
          placeholder with ``min=0``, so Falcon answers a negative
          device number with ``400 Bad Request``.
    """
    memlist = inspect.getmembers(module, inspect.isclass)
    for cname, ctype in memlist:
        # Only classes *defined* in the module and not the enum classes
        if ctype.__module__ == module.__name__ and not issubclass(ctype, IntEnum):
            app.add_route(f'/api/v{API_VERSION}/{devname}/{{devnum:int(min=0)}}/{cname.lower()}', ctype())


def custom_excepthook(exc_type, exc_value, exc_traceback):
    """Last-chance exception handler

    Assures that any unhandled exception is logged to the log file. A
    config option provides for a full traceback to be logged.
    """
    # Do not print exception when user cancels the program
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    log.logger.error(f'An uncaught {exc_type.__name__} exception occurred:')
    log.logger.error(exc_value)

    if server_cfg is not None and server_cfg.verbose_driver_exceptions and exc_traceback:
        for line in traceback.format_tb(exc_traceback):
            log.logger.error(repr(line))


def falcon_uncaught_exception_handler(req: Request, resp: Response, ex: BaseException, params):
    """Log an exception that escaped a responder, then answer 500."""
    exc = sys.exc_info()
    custom_excepthook(exc[0] or type(ex), exc[1] or ex, exc[2])
    raise HTTPInternalServerError(title='Internal Server Error',
                                  description='Alpaca endpoint responder failed. See logfile.')


def create_app() -> App:
    """Build the Falcon WSGI app with every telescope endpoint routed."""
    falc_app = App()
    init_routes(falc_app, 'telescope', telescope)
    falc_app.add_error_handler(Exception, falcon_uncaught_exception_handler)
    return falc_app


def main():
    """Application startup"""
    global server_cfg

    server_cfg = TTS160Global.get_serverconfig()
    logger = log.init_logging(server_cfg)
    # Share this logger throughout
    log.logger = logger
    exceptions.logger = logger
    set_shr_logger(logger)
    telescope.logger = logger
    telescope.start_TTS160_dev(logger)

    sys.excepthook = custom_excepthook

    falc_app = create_app()

    host = server_cfg.ip_address if server_cfg.ip_address else '0.0.0.0'
    port = server_cfg.port
    threads = server_cfg.threads

    logger.info(f'==STARTUP== Serving Alpaca API on {host}:{port} with {threads} worker threads. Time stamps are UTC.')

    try:
        waitress_serve(falc_app, host=host, port=port, threads=threads)
    finally:
        logger.info('==SHUTDOWN== Closing serial port')
        TTS160Global.reset_serial_manager()


if __name__ == '__main__':
    main()
