"""Core types shared by every serial port implementation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

NO_TIMEOUT = None
"""Pass to ``set_read_timeout`` to make reads block until data arrives."""


class Parity(IntEnum):
    """Parity setting of a serial port."""

    NONE = 0
    ODD = 1
    EVEN = 2
    MARK = 3
    SPACE = 4


class StopBits(IntEnum):
    """Number of stop bits of a serial port."""

    ONE = 0
    ONE_POINT_FIVE = 1
    TWO = 2


class PortErrorCode(IntEnum):
    """Kind of failure reported by a :class:`PortError`."""

    PORT_BUSY = 0
    PORT_NOT_FOUND = 1
    INVALID_SERIAL_PORT = 2
    PERMISSION_DENIED = 3
    INVALID_SPEED = 4
    INVALID_DATA_BITS = 5
    INVALID_PARITY = 6
    INVALID_STOP_BITS = 7
    INVALID_TIMEOUT_VALUE = 8
    ERROR_ENUMERATING_PORTS = 9
    PORT_CLOSED = 10
    FUNCTION_NOT_IMPLEMENTED = 11


_DESCRIPTIONS = {
    PortErrorCode.PORT_BUSY: "Serial port busy",
    PortErrorCode.PORT_NOT_FOUND: "Serial port not found",
    PortErrorCode.INVALID_SERIAL_PORT: "Invalid serial port",
    PortErrorCode.PERMISSION_DENIED: "Permission denied",
    PortErrorCode.INVALID_SPEED: "Port speed invalid or not supported",
    PortErrorCode.INVALID_DATA_BITS: "Port data bits invalid or not supported",
    PortErrorCode.INVALID_PARITY: "Port parity invalid or not supported",
    PortErrorCode.INVALID_STOP_BITS: "Port stop bits invalid or not supported",
    PortErrorCode.INVALID_TIMEOUT_VALUE: "Timeout value invalid or not supported",
    PortErrorCode.ERROR_ENUMERATING_PORTS: "Could not enumerate serial ports",
    PortErrorCode.PORT_CLOSED: "Port has been closed",
    PortErrorCode.FUNCTION_NOT_IMPLEMENTED: "Function not implemented",
}


class PortError(Exception):
    """Platform independent error raised by serial port operations."""

    def __init__(
        self,
        code: PortErrorCode | int = PortErrorCode.PORT_BUSY,
        caused_by: BaseException | None = None,
    ) -> None:
        try:
            self._code: PortErrorCode | int = PortErrorCode(code)
        except ValueError:
            self._code = code
        self.caused_by = caused_by
        super().__init__(self._message())

    def encoded_error_string(self) -> str:
        """Return a short text describing the error code."""
        return _DESCRIPTIONS.get(self._code, "Other error")

    def code(self) -> PortErrorCode | int:
        """Return the identifier of the kind of error."""
        return self._code

    def _message(self) -> str:
        text = self.encoded_error_string()
        if self.caused_by is not None:
            return f"{text}: {self.caused_by}"
        return text

    def __str__(self) -> str:
        return self._message()


@dataclass(frozen=True)
class ModemStatusBits:
    """Modem input status bits of a serial port."""

    cts: bool = False
    dsr: bool = False
    ri: bool = False
    dcd: bool = False


@dataclass(frozen=True)
class ModemOutputBits:
    """Modem output bits, used to give their state when a port is opened."""

    rts: bool = False
    dtr: bool = False


@dataclass
class Mode:
    """Serial port configuration; zero values select 9600 baud and 8 data bits."""

    baud_rate: int = 0
    data_bits: int = 0
    parity: Parity = Parity.NONE
    stop_bits: StopBits = StopBits.ONE
    initial_status_bits: ModemOutputBits | None = None