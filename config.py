# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# config.py - Server configuration file with TOML persistence
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

import logging
import sys
import threading
from pathlib import Path
from typing import Any, Type

import toml


class ConfigError(Exception):
    """Custom exception for configuration errors"""
    pass


class TomlConfig:
    """Thread-safe TOML settings with an optional docker override file.

    Subclasses name their file and override path. Values in the override
    file win over the primary file, and writes go to the override file once
    it exists.
    """

    DEFAULT_CONFIG_FILE = 'config.toml'
    OVERRIDE_CONFIG_PATH = '/alpyca/config.toml'
    error_class: Type[Exception] = ConfigError

    def get_config_dir(self) -> Path:
        if getattr(sys, 'frozen', False):
            return Path(sys.executable).parent
        return Path(sys.path[0])

    def __init__(self):
        """Initialize configuration by loading TOML files."""
        self._lock = threading.RLock()
        self._dict = {}
        self._dict2 = {}

        self._config_file = self.get_config_dir() / self.DEFAULT_CONFIG_FILE
        self._override_file = Path(self.OVERRIDE_CONFIG_PATH)

        self._load_config()

    def _load_config(self) -> None:
        with self._lock:
            try:
                self._dict = toml.load(self._config_file)
            except (FileNotFoundError, toml.TomlDecodeError) as e:
                raise self.error_class(
                    f"Failed to load primary config file {self._config_file}: {e}"
                ) from e

            try:
                if self._override_file.exists():
                    self._dict2 = toml.load(self._override_file)
            except toml.TomlDecodeError as e:
                raise self.error_class(
                    f"Failed to load override config file {self._override_file}: {e}"
                ) from e

    def _get_toml(self, sect: str, item: str, default: Any = '') -> Any:
        """Return the override value, else the primary value, else ``default``."""
        with self._lock:
            for source in (self._dict2, self._dict):
                try:
                    return source[sect][item]
                except KeyError:
                    continue
            return default

    def _put_toml(self, sect: str, item: str, setting: Any) -> None:
        with self._lock:
            target = self._dict2 if (self._dict2 or self._override_file.exists()) else self._dict
            target.setdefault(sect, {})[item] = setting

    def save(self) -> None:
        """Save configuration to file, overwriting existing.

        Raises:
            ConfigError: If configuration cannot be saved.
        """
        with self._lock:
            try:
                if self._dict2 or self._override_file.exists():
                    self._override_file.parent.mkdir(parents=True, exist_ok=True)
                    with self._override_file.open('w', encoding='utf-8') as f:
                        toml.dump(self._dict2, f)
                else:
                    with self._config_file.open('w', encoding='utf-8') as f:
                        toml.dump(self._dict, f)
            except OSError as e:
                raise self.error_class(f"Failed to save configuration: {e}") from e

    def reload(self) -> None:
        """Reload configuration from files."""
        with self._lock:
            self._dict = {}
            self._dict2 = {}
            self._load_config()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"config_file='{self._config_file}', "
            f"override_file='{self._override_file}')"
        )


class Config(TomlConfig):
    """Alpaca server configuration (network, server and logging sections)."""

    DEFAULT_CONFIG_FILE = 'config.toml'
    OVERRIDE_CONFIG_PATH = '/alpyca/config.toml'

    NETWORK_SECTION = 'network'
    SERVER_SECTION = 'server'
    LOGGING_SECTION = 'logging'

    # ---------------
    # Network Section
    # ---------------

    @property
    def ip_address(self) -> str:
        """Address to bind; empty means all interfaces."""
        return self._get_toml(self.NETWORK_SECTION, 'ip_address')

    @ip_address.setter
    def ip_address(self, value: str) -> None:
        self._put_toml(self.NETWORK_SECTION, 'ip_address', value)

    @property
    def port(self) -> int:
        return self._get_toml(self.NETWORK_SECTION, 'port', 5555)

    @port.setter
    def port(self, value: int) -> None:
        self._put_toml(self.NETWORK_SECTION, 'port', value)

    @property
    def threads(self) -> int:
        """waitress worker thread count."""
        return self._get_toml(self.NETWORK_SECTION, 'threads', 4)

    @threads.setter
    def threads(self, value: int) -> None:
        self._put_toml(self.NETWORK_SECTION, 'threads', value)

    # --------------
    # Server Section
    # --------------

    @property
    def location(self) -> str:
        return self._get_toml(self.SERVER_SECTION, 'location')

    @location.setter
    def location(self, value: str) -> None:
        self._put_toml(self.SERVER_SECTION, 'location', value)

    @property
    def verbose_driver_exceptions(self) -> bool:
        """Log full tracebacks for uncaught exceptions."""
        return self._get_toml(self.SERVER_SECTION, 'verbose_driver_exceptions', False)

    @verbose_driver_exceptions.setter
    def verbose_driver_exceptions(self, value: bool) -> None:
        self._put_toml(self.SERVER_SECTION, 'verbose_driver_exceptions', value)

    # ---------------
    # Logging Section
    # ---------------

    @property
    def log_level(self) -> int:
        """Logging level as integer."""
        return logging.getLevelName(self._get_toml(self.LOGGING_SECTION, 'log_level', 'INFO'))

    @log_level.setter
    def log_level(self, value: str) -> None:
        """Set log level using string value."""
        self._put_toml(self.LOGGING_SECTION, 'log_level', value)

    @property
    def log_to_stdout(self) -> bool:
        return self._get_toml(self.LOGGING_SECTION, 'log_to_stdout', False)

    @log_to_stdout.setter
    def log_to_stdout(self, value: bool) -> None:
        self._put_toml(self.LOGGING_SECTION, 'log_to_stdout', value)

    @property
    def max_size_mb(self) -> int:
        """Maximum log file size in MB."""
        return self._get_toml(self.LOGGING_SECTION, 'max_size_mb', 5)

    @max_size_mb.setter
    def max_size_mb(self, value: int) -> None:
        self._put_toml(self.LOGGING_SECTION, 'max_size_mb', value)

    @property
    def num_keep_logs(self) -> int:
        """Number of rotated log files to keep."""
        return self._get_toml(self.LOGGING_SECTION, 'num_keep_logs', 10)

    @num_keep_logs.setter
    def num_keep_logs(self, value: int) -> None:
        self._put_toml(self.LOGGING_SECTION, 'num_keep_logs', value)
