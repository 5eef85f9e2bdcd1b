# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# log.py - Shared logger for the TTS160 Alpaca driver
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

import logging
import logging.handlers
import time
from typing import Optional

logger: Optional[logging.Logger] = None

LOG_FILE_NAME = 'tts160.log'
LOG_FORMAT = '%(asctime)s.%(msecs)03d %(levelname)s %(threadName)s %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%dT%H:%M:%S'


def init_logging(server_cfg=None, log_file: str = LOG_FILE_NAME) -> logging.Logger:
    """Create the shared logger from the server configuration.

    Logs go to a rotating file with UTC time stamps. A fresh file is started
    on each run; the previous ones are kept up to ``num_keep_logs``. When
    ``log_to_stdout`` is set the console handler is kept as well.

    Args:
        server_cfg: Server ``Config``; the global one is used if omitted
        log_file: Log file path

    Returns:
        The root logger, configured
    """
    if server_cfg is None:
        import TTS160Global
        server_cfg = TTS160Global.get_serverconfig()

    level = server_cfg.log_level
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    formatter.converter = time.gmtime

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(level)

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        mode='w',
        delay=True,
        backupCount=server_cfg.num_keep_logs,
        maxBytes=server_cfg.max_size_mb * 1000000
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.doRollover()
    root.addHandler(handler)

    if server_cfg.log_to_stdout:
        root.addHandler(console)

    return root
