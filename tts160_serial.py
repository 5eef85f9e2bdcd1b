# File: tts160_serial.py
"""
Serialized LX200 command transport for the TTS160 mount.

All device traffic goes through a single ``SerialManager``. Each command holds
the manager's lock for the whole request/response cycle, so commands issued by
the jog, guide and GoTo controllers never interleave on the wire.

Example:
    >>> with SerialManager(logger) as serial_mgr:
    ...     serial_mgr.connect('/dev/ttyUSB0')
    ...     ra = serial_mgr.send_command(':GR#', CommandType.STRING)
    ...     serial_mgr.send_command('Q', CommandType.BLIND, raw=False)
"""

import logging
import threading
import time
from typing import Optional, Union

import serial

from exceptions import (
    CommunicationError,
    InvalidValueException,
    NotConnectedException,
    ProtocolError,
)
from tts160_types import CommandType


# Constants
DEFAULT_BAUDRATE = 9600
DEFAULT_TIMEOUT = 0.5
BLIND_COMMAND_DELAY = 0.01
MS_COMMAND = ":MS#"


class SerialManager:
    """
    Thread-safe serial command dispatcher for the TTS160.

    Commands are classified as blind (no reply), boolean (one byte, ``'1'``
    is true) or string (reply terminated with ``'#'``). No retry is attempted
    here; a failed exchange raises immediately and the caller decides.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize serial manager with optional logger.

        Args:
            logger: Optional logger instance. If None, creates module logger.
        """
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._serial: Optional[serial.Serial] = None
        self._connection_count = 0

        self._logger.info("TTS160 SerialManager initialized")

    def __enter__(self) -> 'SerialManager':
        """Context manager entry - connection must be established separately."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - cleanup all connections."""
        self.cleanup()

    def connect(self, port: str, baudrate: int = DEFAULT_BAUDRATE) -> None:
        """
        Establish serial connection with reference counting.

        Args:
            port: Serial port path (e.g., '/dev/ttyUSB0' or 'COM3')
            baudrate: Communication baud rate

        Raises:
            InvalidValueException: If parameters are invalid
            CommunicationError: If the port cannot be opened
        """
        if not port or not isinstance(port, str):
            raise InvalidValueException("Port must be a non-empty string")

        if not isinstance(baudrate, int) or baudrate <= 0:
            raise InvalidValueException("Baudrate must be a positive integer")

        with self._lock:
            if self._connection_count == 0:
                self._establish_connection(port, baudrate)

            self._connection_count += 1
            self._logger.info(f"Serial connection count: {self._connection_count}")

    def disconnect(self) -> None:
        """Decrement connection count and close when reaching zero."""
        with self._lock:
            if self._connection_count > 0:
                self._connection_count -= 1
                self._logger.info(f"Serial connection count: {self._connection_count}")

                if self._connection_count == 0:
                    self._close_connection()

    def cleanup(self) -> None:
        """Force immediate connection cleanup regardless of reference count."""
        with self._lock:
            self._connection_count = 0
            self._close_connection()
            self._logger.info("Serial connection forcibly cleaned up")

    @property
    def is_connected(self) -> bool:
        """Check if serial connection is active."""
        with self._lock:
            return self._serial is not None and self._serial.is_open

    @property
    def connection_count(self) -> int:
        """Get current connection reference count."""
        with self._lock:
            return self._connection_count

    def send_command(
        self,
        command: str,
        command_type: CommandType,
        raw: bool = True
    ) -> Union[None, bool, str]:
        """
        Send one command and read its reply under the transport lock.

        Args:
            command: Command text. Sent as-is when ``raw`` is True, otherwise
                framed as ``:<command>#``.
            command_type: Expected reply kind
            raw: Whether the command is already framed

        Returns:
            None for blind commands, bool for boolean commands, the reply
            (including the trailing '#') for string commands

        Raises:
            InvalidValueException: If the command is malformed
            NotConnectedException: If the port is not open
            CommunicationError: If serial I/O fails
            ProtocolError: If the mount sends no reply
        """
        if not command or not isinstance(command, str):
            raise InvalidValueException("Command must be a non-empty string")

        if not raw:
            command = f":{command}#"

        if not command.startswith(':') or not command.endswith('#'):
            raise InvalidValueException("Command must start with ':' and end with '#'")

        with self._lock:
            if not self.is_connected:
                raise NotConnectedException("Serial port not connected")

            try:
                # Stale bytes would be read as the reply to this command
                self._serial.reset_input_buffer()

                self._logger.debug(f"Sending command: {command}")
                self._serial.write(command.encode('ascii'))
                self._serial.flush()

                return self._parse_response(command, command_type)

            except (serial.SerialException, UnicodeDecodeError) as ex:
                self._logger.error(f"Serial communication error on {command}: {ex}")
                raise CommunicationError(f"Serial communication error: {ex}") from ex

    def _establish_connection(self, port: str, baudrate: int) -> None:
        """Establish the physical serial connection."""
        try:
            self._serial = serial.Serial(
                port=port,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=DEFAULT_TIMEOUT
            )

            if not self._serial.is_open:
                self._serial.open()

            self._logger.info(f"Serial connection opened: {port} @ {baudrate} baud")

        except (serial.SerialException, OSError, ValueError) as ex:
            self._serial = None
            self._logger.error(f"Failed to open serial connection on {port}: {ex}")
            raise CommunicationError(f"Serial connection failed: {ex}") from ex

    def _close_connection(self) -> None:
        """Close the physical serial connection."""
        if self._serial:
            try:
                if self._serial.is_open:
                    self._serial.close()
                    self._logger.info("Serial connection closed")
            except serial.SerialException as ex:
                self._logger.warning(f"Error closing serial connection: {ex}")
            finally:
                self._serial = None

    def _parse_response(self, command: str, command_type: CommandType) -> Union[None, bool, str]:
        """Parse command response based on expected type."""
        if command_type == CommandType.BLIND:
            time.sleep(BLIND_COMMAND_DELAY)  # Small delay for command processing
            return None

        elif command_type == CommandType.BOOL:
            return self._parse_boolean_response(command)

        elif command_type == CommandType.STRING:
            return self._parse_string_response(command)

        else:
            raise InvalidValueException(f"Invalid command type: {command_type}")

    def _parse_boolean_response(self, command: str) -> bool:
        """Parse single character boolean response."""
        response = self._serial.read(1).decode('ascii')
        if not response:
            raise ProtocolError(f"No boolean response received for {command}")

        result = response == '1'
        self._logger.debug(f"Boolean response: {response} -> {result}")

        # A refused GoTo is followed by a '#'-terminated reason string
        if result and command == MS_COMMAND:
            extra = self._serial.read_until(b'#').decode('ascii')
            self._logger.debug(f"Cleared extra {MS_COMMAND} response: {extra}")

        return result

    def _parse_string_response(self, command: str) -> str:
        """Parse string response terminated with '#'."""
        response = self._serial.read_until(b'#').decode('ascii')
        if not response:
            raise ProtocolError(f"No string response received for {command}")

        self._logger.debug(f"String response: {response}")
        return response
