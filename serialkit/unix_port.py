"""Serial ports on unix systems, driven through termios and ioctl calls."""

from __future__ import annotations

import errno
import fcntl
import os
import platform
import struct
import termios
import threading
import time
from contextlib import contextmanager, suppress
from typing import Iterator

from .base import ModemStatusBits, Mode, PortError, PortErrorCode
from .termios_settings import (
    PlatformProfile,
    TermSettings,
    current_profile,
    set_baudrate,
    set_cts_rts,
    set_data_bits,
    set_parity,
    set_raw_mode,
    set_stop_bits,
    settings_from_list,
)
from .unixutils import FDSet, Pipe, select_fds

_OS_ERRORS = (OSError, termios.error)

_IOCTL_REQUESTS = {
    "linux": {
        "TIOCMGET": 0x5415,
        "TIOCMSET": 0x5418,
        "TIOCEXCL": 0x540C,
        "TIOCNXCL": 0x540D,
        "TIOCSBRK": 0x5427,
        "TIOCCBRK": 0x5428,
    },
    "bsd": {
        "TIOCMGET": 0x4004746A,
        "TIOCMSET": 0x8004746D,
        "TIOCEXCL": 0x2000740D,
        "TIOCNXCL": 0x2000740E,
        "TIOCSBRK": 0x2000747B,
        "TIOCCBRK": 0x2000747A,
    },
}

_TIOCM_DTR = getattr(termios, "TIOCM_DTR", 0x002)
_TIOCM_RTS = getattr(termios, "TIOCM_RTS", 0x004)
_TIOCM_CTS = getattr(termios, "TIOCM_CTS", 0x020)
_TIOCM_CD = getattr(termios, "TIOCM_CD", getattr(termios, "TIOCM_CAR", 0x040))
_TIOCM_RI = getattr(termios, "TIOCM_RI", getattr(termios, "TIOCM_RNG", 0x080))
_TIOCM_DSR = getattr(termios, "TIOCM_DSR", 0x100)

# struct termios2 and its ioctls, used on Linux for non-standard speeds
_TERMIOS2 = struct.Struct("4IB19s2I")
_TCGETS2 = 0x802C542A
_TCSETS2 = 0x402C542B
_CBAUD = 0o10017
_BOTHER = 0o10000
_TERMIOS2_UNSUPPORTED_MACHINES = ("ppc", "powerpc", "mips", "sparc", "alpha")

_DARWIN_IOSSIOSPEED = 0x80045402


class _ReadersLock:
    """Many readers at once, or one exclusive writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writing = False

    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @contextmanager
    def writing(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class UnixPort:
    """An open serial port on a unix system."""

    def __init__(self, fd: int, profile: PlatformProfile | None = None) -> None:
        self._fd = fd
        self._profile = profile or current_profile()
        self._read_timeout: float | None = None
        self._opened = True
        self._state_lock = threading.Lock()
        self._readers = _ReadersLock()
        self._close_signal: Pipe | None = None

    # -- public interface -------------------------------------------------

    def set_mode(self, mode: Mode) -> None:
        """Apply parity, data bits, stop bits and speed from mode."""
        profile = self._profile
        settings = self._get_term_settings()
        set_parity(mode.parity, settings, profile)
        set_data_bits(mode.data_bits, settings, profile)
        set_stop_bits(mode.stop_bits, settings)
        special = set_baudrate(mode.baud_rate, settings, profile)
        if (
            special
            and profile.name == "linux"
            and settings.ispeed not in profile.baudrate_map.values()
        ):
            # A speed left over from an earlier special setup is not a valid
            # standard code; the special setup below overrides it anyway.
            settings.ispeed = settings.ospeed = profile.baudrate_map[0]
        self._set_term_settings(settings)
        if special:
            # Must come last: macOS rejects the port otherwise.
            self._set_special_baudrate(mode.baud_rate)

    def read(self, size: int) -> bytes:
        """Read up to size bytes; return b"" when the read timeout expires."""
        with self._readers.reading():
            if not self._opened:
                raise PortError(PortErrorCode.PORT_CLOSED)
            deadline = (
                None
                if self._read_timeout is None
                else time.monotonic() + self._read_timeout
            )
            signal_fd = self._close_signal.read_fd() if self._close_signal else -1
            fds = FDSet(self._fd, signal_fd) if signal_fd >= 0 else FDSet(self._fd)
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                result = select_fds(fds, None, fds, timeout)
                if result.is_readable(signal_fd):
                    raise PortError(PortErrorCode.PORT_CLOSED)
                if not result.is_readable(self._fd):
                    return b""
                data = os.read(self._fd, size)
            except (OSError, ValueError) as exc:
                if not self._opened:
                    raise PortError(PortErrorCode.PORT_CLOSED, exc) from exc
                raise
            if not data:
                # A disconnected device is left readable with no data.
                raise PortError(PortErrorCode.PORT_CLOSED)
            return data

    def write(self, data: bytes) -> int:
        """Send data and return the number of bytes written."""
        return os.write(self._fd, data)

    def drain(self) -> None:
        """Wait until all queued output has been sent."""
        termios.tcdrain(self._fd)

    def reset_input_buffer(self) -> None:
        """Discard data received but not yet read."""
        termios.tcflush(self._fd, termios.TCIFLUSH)

    def reset_output_buffer(self) -> None:
        """Discard data written but not yet sent."""
        termios.tcflush(self._fd, termios.TCOFLUSH)

    def set_dtr(self, dtr: bool) -> None:
        """Set the Data Terminal Ready output bit."""
        self._set_modem_bit(_TIOCM_DTR, dtr)

    def set_rts(self, rts: bool) -> None:
        """Set the Request To Send output bit."""
        self._set_modem_bit(_TIOCM_RTS, rts)

    def get_modem_status_bits(self) -> ModemStatusBits:
        """Return the modem input bits (CTS, DSR, RI, DCD)."""
        status = self._get_modem_bits()
        return ModemStatusBits(
            cts=bool(status & _TIOCM_CTS),
            dsr=bool(status & _TIOCM_DSR),
            ri=bool(status & _TIOCM_RI),
            dcd=bool(status & _TIOCM_CD),
        )

    def set_read_timeout(self, timeout: float | None) -> None:
        """Set the read timeout in seconds; None makes reads block."""
        if timeout is not None and timeout < 0:
            raise PortError(PortErrorCode.INVALID_TIMEOUT_VALUE)
        self._read_timeout = timeout

    def send_break(self, duration: float) -> None:
        """Hold a break condition on the line for duration seconds."""
        fcntl.ioctl(self._fd, self._request("TIOCSBRK"), 0)
        time.sleep(duration)
        fcntl.ioctl(self._fd, self._request("TIOCCBRK"), 0)

    def close(self) -> None:
        """Close the port and wake pending reads; closing twice does nothing."""
        with self._state_lock:
            if not self._opened:
                return
            self._opened = False
        self._release_exclusive_access()
        os.close(self._fd)
        if self._close_signal is not None:
            with suppress(OSError):
                self._close_signal.write(b"\0")
            with self._readers.writing():
                self._close_signal.close()

    def __enter__(self) -> "UnixPort":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # -- system calls -----------------------------------------------------

    def _request(self, name: str) -> int:
        table = _IOCTL_REQUESTS["linux" if self._profile.name == "linux" else "bsd"]
        return getattr(termios, name, table[name])

    def _get_term_settings(self) -> TermSettings:
        return settings_from_list(termios.tcgetattr(self._fd))

    def _set_term_settings(self, settings: TermSettings) -> None:
        termios.tcsetattr(self._fd, termios.TCSANOW, settings.as_list())

    def _get_modem_bits(self) -> int:
        packed = fcntl.ioctl(self._fd, self._request("TIOCMGET"), struct.pack("i", 0))
        return struct.unpack("i", packed)[0]

    def _set_modem_bits(self, status: int) -> None:
        fcntl.ioctl(self._fd, self._request("TIOCMSET"), struct.pack("i", status))

    def _set_modem_bit(self, bit: int, value: bool) -> None:
        status = self._get_modem_bits()
        status = status | bit if value else status & ~bit
        self._set_modem_bits(status)

    def _acquire_exclusive_access(self) -> None:
        with suppress(OSError):
            fcntl.ioctl(self._fd, self._request("TIOCEXCL"), 0)

    def _release_exclusive_access(self) -> None:
        with suppress(OSError):
            fcntl.ioctl(self._fd, self._request("TIOCNXCL"), 0)

    def _set_special_baudrate(self, speed: int) -> None:
        name = self._profile.name
        if name == "darwin":
            fcntl.ioctl(self._fd, _DARWIN_IOSSIOSPEED, struct.pack("i", speed))
            return
        machine = platform.machine().lower()
        if name != "linux" or machine.startswith(_TERMIOS2_UNSUPPORTED_MACHINES):
            raise PortError(PortErrorCode.INVALID_SPEED)
        buffer = bytearray(_TERMIOS2.size)
        fcntl.ioctl(self._fd, _TCGETS2, buffer, True)
        iflag, oflag, cflag, lflag, line, cc, _, _ = _TERMIOS2.unpack(buffer)
        cflag = (cflag & ~_CBAUD) | _BOTHER
        fcntl.ioctl(
            self._fd,
            _TCSETS2,
            _TERMIOS2.pack(iflag, oflag, cflag, lflag, line, cc, speed, speed),
        )

    def _abort(self) -> None:
        with suppress(*_OS_ERRORS, PortError, RuntimeError):
            self.close()


@contextmanager
def _configuring(port: UnixPort, what: str) -> Iterator[None]:
    try:
        yield
    except (*_OS_ERRORS, PortError) as exc:
        port._abort()
        raise PortError(
            PortErrorCode.INVALID_SERIAL_PORT, RuntimeError(f"error {what}: {exc}")
        ) from exc


def open_port(port_name: str, mode: Mode | None = None) -> UnixPort:
    """Open a serial port by name (relative to /dev) or by absolute path."""
    mode = mode if mode is not None else Mode()
    profile = current_profile()
    path = os.path.join(profile.dev_folder, port_name)
    try:
        fd = os.open(path, os.O_RDWR | os.O_NOCTTY | os.O_NONBLOCK)
    except OSError as exc:
        if exc.errno == errno.EBUSY:
            raise PortError(PortErrorCode.PORT_BUSY) from exc
        if exc.errno == errno.EACCES:
            raise PortError(PortErrorCode.PERMISSION_DENIED) from exc
        raise
    port = UnixPort(fd, profile)

    with _configuring(port, "getting term settings"):
        settings = port._get_term_settings()

    set_raw_mode(settings, profile)
    set_cts_rts(False, settings, profile)

    with _configuring(port, "setting term settings"):
        port._set_term_settings(settings)

    initial = mode.initial_status_bits
    if initial is not None:
        with _configuring(port, "getting modem bits status"):
            status = port._get_modem_bits()
        status = status | _TIOCM_DTR if initial.dtr else status & ~_TIOCM_DTR
        status = status | _TIOCM_RTS if initial.rts else status & ~_TIOCM_RTS
        with _configuring(port, "setting modem bits status"):
            port._set_modem_bits(status)

    # macOS requires this to be the last configuration step.
    with _configuring(port, "configuring port"):
        port.set_mode(mode)

    os.set_blocking(fd, True)
    port._acquire_exclusive_access()

    signal = Pipe()
    with _configuring(port, "opening signaling pipe"):
        signal.open()
    port._close_signal = signal
    return port


def get_ports_list() -> list[str]:
    """Return the names of the serial ports found in the device folder."""
    profile = current_profile()
    with os.scandir(profile.dev_folder) as entries:
        candidates = sorted(entries, key=lambda entry: entry.name)

    ports: list[str] = []
    for entry in candidates:
        if entry.is_dir(follow_symlinks=False):
            continue
        if not profile.port_filter.search(entry.name):
            continue
        # ttyS and ttyHS nodes may be placeholders with no hardware behind them.
        if entry.name.startswith(("ttyS", "ttyHS")):
            try:
                port = open_port(entry.name, Mode())
            except (PortError, *_OS_ERRORS):
                continue
            port.close()
        ports.append(entry.name)
    return ports