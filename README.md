# serialkit

Open, configure and talk to serial ports on Linux, macOS, FreeBSD and
OpenBSD, and, on Linux, find out which of them are USB devices.

The package has no dependencies beyond the standard library.

## Installation

```
pip install serialkit
```

## Listing ports

`serialkit.unix_port.get_ports_list()` returns the names of the serial
devices found in `/dev`, sorted by name. On Linux these are names such as
`ttyUSB0`, `ttyACM0` or `ttyS0`; on macOS and the BSDs, names that start
with `cu.` or `tty.`. `ttyS*` and `ttyHS*` nodes are listed only if they can
actually be opened.

```python
from serialkit.unix_port import get_ports_list

for name in get_ports_list():
    print("Found port:", name)
```

For USB details (vendor id, product id, serial number), use the enumerator.
It reads them from sysfs and works on Linux only:

```python
from serialkit.enumerator import get_detailed_ports_list

for port in get_detailed_ports_list():
    print(port.name)
    if port.is_usb:
        print(f"   USB ID     {port.vid}:{port.pid}")
        print(f"   USB serial {port.serial_number}")
```

Each entry is a `PortDetails` with the fields `name`, `is_usb`, `vid`,
`pid`, `serial_number` and `product`. On any other system, or when the
listing fails, `PortEnumerationError` is raised.

The same listing is available from the command line:

```
serialkit-portlist
```

It prints one `Port:` line per port, followed by the product name and the
USB id and serial number where known. If enumeration fails it prints the
error to standard error and exits with status 1.

## Opening a port

A `Mode` describes the line settings. Fields left out take the defaults:
9600 baud, 8 data bits, no parity, one stop bit.

```python
from serialkit.base import Mode, Parity, StopBits
from serialkit.unix_port import open_port

mode = Mode(baud_rate=57600, data_bits=7, parity=Parity.EVEN,
            stop_bits=StopBits.ONE)

with open_port("ttyUSB0", mode) as port:
    port.write(b"10,20,30\n\r")
    port.set_read_timeout(1.0)
    data = port.read(100)
    print(data)
```

The port name is taken relative to `/dev`; an absolute path works too. The
port is opened in raw mode with RTS/CTS flow control off, and is claimed for
exclusive access while it stays open.

`read(size)` blocks until at least one byte arrives. With a read timeout set
(in seconds) it returns an empty `bytes` when the timeout expires;
`set_read_timeout(None)` makes reads block again. Closing the port from
another thread wakes a pending `read`, which then raises a `PortError`.
Closing a port twice does nothing.

The settings can be changed at any time with `port.set_mode(mode)`.

Other operations on an open port:

- `drain()` waits until all written data has been sent;
- `reset_input_buffer()` and `reset_output_buffer()` discard pending data;
- `send_break(duration)` holds a break on the line for `duration` seconds.

Speeds outside the standard table of the system are set specially: through
`termios2` on Linux and through the speed ioctl on macOS. On FreeBSD and
OpenBSD, and on Linux for PowerPC, MIPS, SPARC and Alpha machines, such a
speed raises `PortError` with `PortErrorCode.INVALID_SPEED`.

## Modem lines

```python
status = port.get_modem_status_bits()
print(status.cts, status.dsr, status.ri, status.dcd)

port.set_dtr(False)
port.set_rts(True)
```

The initial state of DTR and RTS can be chosen at open time with
`Mode(initial_status_bits=ModemOutputBits(rts=True, dtr=False))`.

## Terminal settings

`serialkit.termios_settings` holds the functions that edit terminal
attributes (`set_parity`, `set_data_bits`, `set_stop_bits`, `set_cts_rts`,
`set_raw_mode`, `set_baudrate`) together with a `PlatformProfile` of
constants per operating system, returned by `profile_for(system)` or
`current_profile()`. Mark and space parity are supported on Linux only;
1.5 stop bits are not supported anywhere.

## Windows device ids

`serialkit.device_id.parse_device_id()` extracts the vendor id, product id
and serial number from a Windows device instance id, for the stock USB
driver and for FTDI devices:

```python
from serialkit.device_id import parse_device_id

details = parse_device_id(r"USB\VID_1234&PID_5678\ABC123")
print(details.vid, details.pid, details.serial_number)  # 1234 5678 ABC123
```

## Errors

Failures are raised as `serialkit.base.PortError`. Its `code()` method
returns a `PortErrorCode` that identifies the kind of failure (port busy,
permission denied, invalid speed, port closed and so on), and
`encoded_error_string()` gives a short description. Enumeration failures
are raised as `serialkit.enumerator.PortEnumerationError`.

## What it does not do

- It cannot open or list serial ports on Windows; only the parsing of
  Windows device ids is provided.
- Detailed (USB) port listing works on Linux only.

## Running the tests

```
pip install -e .[test]
pytest
```