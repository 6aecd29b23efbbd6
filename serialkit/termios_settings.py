"""Platform termios profiles and the functions that edit terminal settings."""

from __future__ import annotations

import platform
import re
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from .base import Parity, PortError, PortErrorCode, StopBits

try:
    import termios as _termios
except ImportError:  # not a unix host
    _termios = None


@dataclass
class TermSettings:
    """Terminal attributes in the layout used by ``termios.tcgetattr``."""

    iflag: int = 0
    oflag: int = 0
    cflag: int = 0
    lflag: int = 0
    ispeed: int = 0
    ospeed: int = 0
    cc: list[Any] = field(default_factory=list)

    def as_list(self) -> list[Any]:
        """Return the attributes as a list suitable for ``termios.tcsetattr``."""
        return [
            self.iflag,
            self.oflag,
            self.cflag,
            self.lflag,
            self.ispeed,
            self.ospeed,
            list(self.cc),
        ]


def settings_from_list(attrs: Sequence[Any]) -> TermSettings:
    """Build settings from the list returned by ``termios.tcgetattr``."""
    iflag, oflag, cflag, lflag, ispeed, ospeed, cc = attrs
    return TermSettings(
        iflag=iflag,
        oflag=oflag,
        cflag=cflag,
        lflag=lflag,
        ispeed=ispeed,
        ospeed=ospeed,
        cc=list(cc),
    )


@dataclass(frozen=True)
class _Flags:
    # input modes
    ignbrk: int
    brkint: int
    ignpar: int
    parmrk: int
    inpck: int
    istrip: int
    inlcr: int
    igncr: int
    icrnl: int
    ixon: int
    ixoff: int
    ixany: int
    # output modes
    opost: int
    # control modes
    csize: int
    cs5: int
    cs6: int
    cs7: int
    cs8: int
    cstopb: int
    cread: int
    parenb: int
    parodd: int
    clocal: int
    # local modes
    isig: int
    icanon: int
    echo: int
    echoe: int
    echok: int
    echonl: int
    echoctl: int
    echoprt: int
    echoke: int
    iexten: int
    # control characters
    vmin: int
    vtime: int


@dataclass(frozen=True)
class PlatformProfile:
    """Termios constants and serial port conventions of one operating system."""

    name: str
    dev_folder: str
    port_filter: re.Pattern[str]
    baudrate_map: Mapping[int, int]
    databits_map: Mapping[int, int]
    cmspar: int
    iuclc: int
    crtscts: int
    baud_in_cflag: bool
    flags: _Flags


_LINUX_FLAGS = _Flags(
    ignbrk=0o1, brkint=0o2, ignpar=0o4, parmrk=0o10, inpck=0o20, istrip=0o40,
    inlcr=0o100, igncr=0o200, icrnl=0o400, ixon=0o2000, ixoff=0o10000,
    ixany=0o4000,
    opost=0o1,
    csize=0o60, cs5=0o0, cs6=0o20, cs7=0o40, cs8=0o60, cstopb=0o100,
    cread=0o200, parenb=0o400, parodd=0o1000, clocal=0o4000,
    isig=0o1, icanon=0o2, echo=0o10, echoe=0o20, echok=0o40, echonl=0o100,
    echoctl=0o1000, echoprt=0o2000, echoke=0o4000, iexten=0o100000,
    vmin=6, vtime=5,
)

_BSD_FLAGS = _Flags(
    ignbrk=0x1, brkint=0x2, ignpar=0x4, parmrk=0x8, inpck=0x10, istrip=0x20,
    inlcr=0x40, igncr=0x80, icrnl=0x100, ixon=0x200, ixoff=0x400, ixany=0x800,
    opost=0x1,
    csize=0x300, cs5=0x0, cs6=0x100, cs7=0x200, cs8=0x300, cstopb=0x400,
    cread=0x800, parenb=0x1000, parodd=0x2000, clocal=0x8000,
    isig=0x80, icanon=0x100, echo=0x8, echoe=0x2, echok=0x4, echonl=0x10,
    echoctl=0x40, echoprt=0x20, echoke=0x1, iexten=0x400,
    vmin=16, vtime=17,
)

_LINUX_BAUDS = {
    50: 0o1, 75: 0o2, 110: 0o3, 134: 0o4, 150: 0o5, 200: 0o6, 300: 0o7,
    600: 0o10, 1200: 0o11, 1800: 0o12, 2400: 0o13, 4800: 0o14, 9600: 0o15,
    19200: 0o16, 38400: 0o17, 57600: 0o10001, 115200: 0o10002,
    230400: 0o10003, 460800: 0o10004, 500000: 0o10005, 576000: 0o10006,
    921600: 0o10007, 1000000: 0o10010, 1152000: 0o10011, 1500000: 0o10012,
    2000000: 0o10013, 2500000: 0o10014, 3000000: 0o10015, 3500000: 0o10016,
    4000000: 0o10017,
}

_BSD_RATES = (
    50, 75, 110, 134, 150, 200, 300, 600, 1200, 1800, 2400, 4800, 9600,
    19200, 38400, 57600, 115200, 230400,
)

_CCTS_OFLOW = 0x00010000
_CRTS_IFLOW = 0x00020000

_LINUX_FILTER = re.compile(
    r"(ttyS|ttyHS|ttyUSB|ttyACM|ttyAMA|rfcomm|ttyO|ttymxc)_?[0-9a-zA-Z]+"
)
_BSD_FILTER = re.compile(r"^(cu|tty)\..*")


def _make_profile(
    name: str,
    flags: _Flags,
    bauds: Mapping[int, int],
    *,
    port_filter: re.Pattern[str],
    cmspar: int,
    iuclc: int,
    crtscts: int,
    baud_in_cflag: bool,
) -> PlatformProfile:
    baudrate_map = {0: bauds[9600], **bauds}
    databits_map = {
        0: flags.cs8,
        5: flags.cs5,
        6: flags.cs6,
        7: flags.cs7,
        8: flags.cs8,
    }
    return PlatformProfile(
        name=name,
        dev_folder="/dev",
        port_filter=port_filter,
        baudrate_map=MappingProxyType(baudrate_map),
        databits_map=MappingProxyType(databits_map),
        cmspar=cmspar,
        iuclc=iuclc,
        crtscts=crtscts,
        baud_in_cflag=baud_in_cflag,
        flags=flags,
    )


def _bsd_bauds(extra: Sequence[int] = ()) -> dict[int, int]:
    return {rate: rate for rate in (*_BSD_RATES, *extra)}


_PROFILES = {
    "linux": _make_profile(
        "linux",
        _LINUX_FLAGS,
        _LINUX_BAUDS,
        port_filter=_LINUX_FILTER,
        cmspar=0o10000000000,
        iuclc=0o1000,
        crtscts=0o20000000000,
        baud_in_cflag=True,
    ),
    "darwin": _make_profile(
        "darwin",
        _BSD_FLAGS,
        _bsd_bauds(),
        port_filter=_BSD_FILTER,
        cmspar=0,
        iuclc=0,
        crtscts=_CCTS_OFLOW | _CRTS_IFLOW,
        baud_in_cflag=False,
    ),
    "freebsd": _make_profile(
        "freebsd",
        _BSD_FLAGS,
        _bsd_bauds((460800, 921600)),
        port_filter=_BSD_FILTER,
        cmspar=0,
        iuclc=0,
        crtscts=_CCTS_OFLOW,
        baud_in_cflag=True,
    ),
    "openbsd": _make_profile(
        "openbsd",
        _BSD_FLAGS,
        _bsd_bauds(),
        port_filter=_BSD_FILTER,
        cmspar=0,
        iuclc=0,
        crtscts=_CCTS_OFLOW,
        baud_in_cflag=True,
    ),
}


def profile_for(system: str) -> PlatformProfile:
    """Return the profile of an operating system, e.g. ``"Linux"`` or ``"darwin"``."""
    key = system.strip().lower()
    for name, profile in _PROFILES.items():
        if key.startswith(name):
            return profile
    raise PortError(
        PortErrorCode.FUNCTION_NOT_IMPLEMENTED,
        ValueError(f"unsupported operating system: {system!r}"),
    )


def _with_host_constants(profile: PlatformProfile) -> PlatformProfile:
    """Replace tabulated constants with those the running host reports."""
    if _termios is None:
        return profile
    overrides = {
        f.name: getattr(_termios, f.name.upper())
        for f in fields(_Flags)
        if hasattr(_termios, f.name.upper())
    }
    flags = replace(profile.flags, **overrides)
    bauds = {
        rate: getattr(_termios, f"B{rate}", value)
        for rate, value in profile.baudrate_map.items()
        if rate != 0
    }
    cmspar, iuclc, crtscts = profile.cmspar, profile.iuclc, profile.crtscts
    if profile.name == "linux":
        cmspar = getattr(_termios, "CMSPAR", cmspar)
        iuclc = getattr(_termios, "IUCLC", iuclc)
        crtscts = getattr(_termios, "CRTSCTS", crtscts)
    return _make_profile(
        profile.name,
        flags,
        bauds,
        port_filter=profile.port_filter,
        cmspar=cmspar,
        iuclc=iuclc,
        crtscts=crtscts,
        baud_in_cflag=profile.baud_in_cflag,
    )


@lru_cache(maxsize=None)
def current_profile() -> PlatformProfile:
    """Return the profile of the running operating system."""
    return _with_host_constants(profile_for(platform.system()))


def set_parity(parity: Parity | int, settings: TermSettings, profile: PlatformProfile) -> None:
    """Configure the parity bits of settings."""
    try:
        parity = Parity(parity)
    except ValueError:
        raise PortError(PortErrorCode.INVALID_PARITY) from None
    f = profile.flags
    if parity in (Parity.MARK, Parity.SPACE) and profile.cmspar == 0:
        raise PortError(PortErrorCode.INVALID_PARITY)

    if parity is Parity.NONE:
        settings.cflag &= ~(f.parenb | f.parodd | profile.cmspar)
        settings.iflag &= ~f.inpck
        return

    settings.cflag |= f.parenb
    settings.iflag |= f.inpck
    if parity in (Parity.ODD, Parity.MARK):
        settings.cflag |= f.parodd
    else:
        settings.cflag &= ~f.parodd
    if parity in (Parity.MARK, Parity.SPACE):
        settings.cflag |= profile.cmspar
    else:
        settings.cflag &= ~profile.cmspar


def set_data_bits(bits: int, settings: TermSettings, profile: PlatformProfile) -> None:
    """Set the character size; 0 selects 8 bits."""
    try:
        databits = profile.databits_map[bits]
    except KeyError:
        raise PortError(PortErrorCode.INVALID_DATA_BITS) from None
    settings.cflag &= ~profile.flags.csize
    settings.cflag |= databits


def set_stop_bits(bits: StopBits | int, settings: TermSettings) -> None:
    """Set one or two stop bits; 1.5 stop bits are not supported."""
    cstopb = current_profile().flags.cstopb
    if bits == StopBits.ONE:
        settings.cflag &= ~cstopb
    elif bits == StopBits.TWO:
        settings.cflag |= cstopb
    else:
        raise PortError(PortErrorCode.INVALID_STOP_BITS)


def set_cts_rts(enable: bool, settings: TermSettings, profile: PlatformProfile) -> None:
    """Enable or disable RTS/CTS hardware flow control."""
    if enable:
        settings.cflag |= profile.crtscts
    else:
        settings.cflag &= ~profile.crtscts


def set_raw_mode(settings: TermSettings, profile: PlatformProfile) -> None:
    """Put settings in raw mode with blocking single-byte reads."""
    f = profile.flags
    settings.cflag |= f.cread | f.clocal

    settings.lflag &= ~(
        f.icanon | f.echo | f.echoe | f.echok | f.echonl | f.echoctl
        | f.echoprt | f.echoke | f.isig | f.iexten
    )
    settings.iflag &= ~(
        f.ixon | f.ixoff | f.ixany | f.inpck | f.ignpar | f.parmrk | f.istrip
        | f.ignbrk | f.brkint | f.inlcr | f.igncr | f.icrnl | profile.iuclc
    )
    settings.oflag &= ~f.opost

    settings.cc[f.vmin] = 1
    settings.cc[f.vtime] = 0


def set_baudrate(speed: int, settings: TermSettings, profile: PlatformProfile) -> bool:
    """Set a standard speed; return True when speed needs a special setup instead."""
    baudrate = profile.baudrate_map.get(speed)
    if baudrate is None:
        return True
    if profile.baud_in_cflag:
        for rate in profile.baudrate_map.values():
            settings.cflag &= ~rate
        settings.cflag |= baudrate
    settings.ispeed = baudrate
    settings.ospeed = baudrate
    return False