"""Command that lists the serial ports available on this machine."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from .enumerator import PortDetails, PortEnumerationError, get_detailed_ports_list


def _format_port(port: PortDetails) -> str:
    lines = [f"Port: {port.name}\n"]
    if port.product:
        lines.append(f"   Product Name: {port.product}\n")
    if port.is_usb:
        lines.append(f"   USB ID      : {port.vid}:{port.pid}\n")
        lines.append(f"   USB serial  : {port.serial_number}\n")
    return "".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Print every serial port with its details; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="portlist", description="List the available serial ports."
    )
    parser.parse_args(argv)

    try:
        ports = get_detailed_ports_list()
    except PortEnumerationError as exc:
        print(exc, file=sys.stderr)
        return 1
    for port in ports:
        sys.stdout.write(_format_port(port))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())