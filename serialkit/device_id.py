"""Parsing of Windows device instance identifiers."""

from __future__ import annotations

import re

from .enumerator import PortDetails

_USB_PATTERN = re.compile(r"VID_(....)&PID_(....)(\\(\w+)$)?", re.ASCII)
_FTDI_PATTERN = re.compile(r"VID_(....)\+PID_(....)(\+(\w+))?", re.ASCII)


def parse_device_id(device_id: str) -> PortDetails:
    """Extract USB VID, PID and serial number from a device instance id.

    Identifiers that are not recognised give details with ``is_usb`` False.
    """
    details = PortDetails()
    if device_id.startswith("USB"):
        pattern = _USB_PATTERN
    elif device_id.startswith("FTDIBUS"):
        pattern = _FTDI_PATTERN
    else:
        return details

    match = pattern.search(device_id)
    if match is None:
        return details
    details.is_usb = True
    details.vid = match.group(1)
    details.pid = match.group(2)
    details.serial_number = match.group(4) or ""
    return details