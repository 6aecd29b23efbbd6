"""Discovery of serial ports together with their USB details."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass

from .base import PortError, PortErrorCode

_SYSFS_TTY = "/sys/class/tty"


@dataclass
class PortDetails:
    """Detailed information about a serial port."""

    name: str = ""
    is_usb: bool = False
    vid: str = ""
    pid: str = ""
    serial_number: str = ""
    product: str = ""
    """OS-dependent description of the port; may be empty."""


class PortEnumerationError(Exception):
    """Raised when the detailed list of serial ports cannot be built."""

    def __init__(self, caused_by: BaseException | None = None) -> None:
        self.caused_by = caused_by
        super().__init__(str(self))

    def __str__(self) -> str:
        reason = "Error while enumerating serial ports"
        if self.caused_by is not None:
            reason += f": {self.caused_by}"
        return reason


def get_detailed_ports_list() -> list[PortDetails]:
    """Return every serial port with its USB VID, PID and serial number.

    Only Linux is supported; elsewhere :class:`PortEnumerationError` is raised.
    """
    system = platform.system().lower()
    if system == "linux":
        return _linux_detailed_ports_list()
    if system.startswith(("freebsd", "openbsd")):
        raise PortEnumerationError()
    raise PortEnumerationError(PortError(PortErrorCode.FUNCTION_NOT_IMPLEMENTED))


def _linux_detailed_ports_list() -> list[PortDetails]:
    from .unix_port import get_ports_list

    try:
        ports = get_ports_list()
    except (PortError, OSError) as exc:
        raise PortEnumerationError(exc) from exc

    result = []
    for port in ports:
        try:
            result.append(get_port_details(port))
        except (OSError, EOFError) as exc:
            raise PortEnumerationError(exc) from exc
    return result


def _real_path(path: str) -> str:
    try:
        return os.path.realpath(path, strict=True)
    except OSError as exc:
        raise OSError(f"Can't determine real path of {path}: {exc}") from exc


def get_port_details(port_path: str) -> PortDetails:
    """Read the sysfs description of one port.

    A port with no sysfs device entry yields an empty :class:`PortDetails`.
    """
    port_name = os.path.basename(port_path)
    device_path = os.path.join(_SYSFS_TTY, port_name, "device")
    if not os.path.exists(device_path):
        return PortDetails()
    real_device_path = _real_path(device_path)
    subsystem = os.path.basename(
        _real_path(os.path.join(real_device_path, "subsystem"))
    )

    details = PortDetails(name=port_path)
    if subsystem == "usb-serial":
        parse_usb_sysfs(os.path.dirname(os.path.dirname(real_device_path)), details)
    elif subsystem == "usb":
        parse_usb_sysfs(os.path.dirname(real_device_path), details)
    return details


def parse_usb_sysfs(usb_device_path: str, details: PortDetails) -> PortDetails:
    """Fill details from the attribute files of a sysfs USB device folder."""
    vid = read_line(os.path.join(usb_device_path, "idVendor"))
    pid = read_line(os.path.join(usb_device_path, "idProduct"))
    serial_number = read_line(os.path.join(usb_device_path, "serial"))
    details.is_usb = True
    details.vid = vid
    details.pid = pid
    details.serial_number = serial_number
    return details


def read_line(filename: str) -> str:
    """Return the first line of a file, or "" if the file does not exist.

    An empty file raises :class:`EOFError`.
    """
    try:
        with open(filename, "rb") as file:
            line = file.readline()
    except FileNotFoundError:
        return ""
    if not line:
        raise EOFError(f"{filename}: unexpected end of file")
    if line.endswith(b"\r\n"):
        line = line[:-2]
    elif line.endswith(b"\n"):
        line = line[:-1]
    return line.decode("utf-8", errors="replace")