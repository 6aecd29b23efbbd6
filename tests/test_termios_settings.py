import pytest

from serialkit.base import Parity, PortError, PortErrorCode, StopBits
from serialkit.termios_settings import (
    TermSettings,
    current_profile,
    profile_for,
    set_baudrate,
    set_cts_rts,
    set_data_bits,
    set_parity,
    set_raw_mode,
    set_stop_bits,
    settings_from_list,
)

ALL_SYSTEMS = ["linux", "darwin", "freebsd", "openbsd"]


def _fresh(cflag=0, iflag=0, lflag=0, oflag=0):
    return TermSettings(iflag=iflag, oflag=oflag, cflag=cflag, lflag=lflag, cc=[0] * 32)


def test_list_round_trip():
    attrs = [1, 2, 3, 4, 5, 6, [b"\x00"] * 32]
    settings = settings_from_list(attrs)
    assert settings.as_list() == attrs


def test_settings_from_list_copies_cc():
    cc = [0] * 32
    settings = settings_from_list([0, 0, 0, 0, 0, 0, cc])
    settings.cc[0] = 9
    assert cc[0] == 0
    out = settings.as_list()
    out[6][1] = 7
    assert settings.cc[1] == 0


@pytest.mark.parametrize("name", ["Linux", "linux", "Darwin", "FreeBSD", "OpenBSD", "freebsd13"])
def test_profile_for_known_systems(name):
    profile = profile_for(name)
    assert name.lower().startswith(profile.name)
    assert profile.dev_folder == "/dev"


def test_profile_for_unknown_system():
    with pytest.raises(PortError) as info:
        profile_for("Plan9")
    assert info.value.code() == PortErrorCode.FUNCTION_NOT_IMPLEMENTED


def test_supported_speeds_per_platform():
    linux = profile_for("linux").baudrate_map
    assert 4000000 in linux and 500000 in linux
    freebsd = profile_for("freebsd").baudrate_map
    assert 921600 in freebsd and 500000 not in freebsd
    assert max(profile_for("openbsd").baudrate_map) == 230400
    assert max(profile_for("darwin").baudrate_map) == 230400


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_defaults_for_zero_values(system):
    profile = profile_for(system)
    assert profile.baudrate_map[0] == profile.baudrate_map[9600]
    assert profile.databits_map[0] == profile.databits_map[8]
    assert set(profile.databits_map) == {0, 5, 6, 7, 8}


def test_flow_control_constants():
    assert profile_for("freebsd").crtscts == 0x00010000
    assert profile_for("openbsd").crtscts == 0x00010000
    assert profile_for("darwin").crtscts == 0x00010000 | 0x00020000
    assert profile_for("darwin").cmspar == 0


def test_port_filters():
    linux = profile_for("linux").port_filter
    assert linux.search("ttyUSB0")
    assert linux.search("ttyACM1")
    assert not linux.search("tty0")
    darwin = profile_for("darwin").port_filter
    assert darwin.match("cu.usbmodem1")
    assert not darwin.match("ttys000")


def test_current_profile_is_cached():
    profile = current_profile()
    assert profile is current_profile()
    assert profile.name in ALL_SYSTEMS
    assert profile.dev_folder == "/dev"


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_parity_none_clears_bits(system):
    profile = profile_for(system)
    f = profile.flags
    settings = _fresh(cflag=f.parenb | f.parodd | f.cs8, iflag=f.inpck)
    set_parity(Parity.NONE, settings, profile)
    assert settings.cflag == f.cs8
    assert settings.iflag == 0


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_parity_odd_and_even(system):
    profile = profile_for(system)
    f = profile.flags
    settings = _fresh()
    set_parity(Parity.ODD, settings, profile)
    assert settings.cflag & f.parenb and settings.cflag & f.parodd
    assert settings.iflag & f.inpck
    set_parity(Parity.EVEN, settings, profile)
    assert settings.cflag & f.parenb
    assert settings.cflag & f.parodd == 0


def test_mark_and_space_parity_on_linux():
    profile = profile_for("linux")
    f = profile.flags
    settings = _fresh()
    set_parity(Parity.MARK, settings, profile)
    assert settings.cflag & profile.cmspar
    assert settings.cflag & f.parodd
    set_parity(Parity.SPACE, settings, profile)
    assert settings.cflag & profile.cmspar
    assert settings.cflag & f.parodd == 0
    set_parity(Parity.EVEN, settings, profile)
    assert settings.cflag & profile.cmspar == 0


@pytest.mark.parametrize("system", ["darwin", "freebsd", "openbsd"])
@pytest.mark.parametrize("parity", [Parity.MARK, Parity.SPACE])
def test_mark_and_space_parity_unsupported(system, parity):
    settings = _fresh()
    with pytest.raises(PortError) as info:
        set_parity(parity, settings, profile_for(system))
    assert info.value.code() == PortErrorCode.INVALID_PARITY
    assert settings.cflag == 0


def test_invalid_parity_value():
    with pytest.raises(PortError) as info:
        set_parity(42, _fresh(), profile_for("linux"))
    assert info.value.code() == PortErrorCode.INVALID_PARITY


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_data_bits_replace_previous_size(system):
    profile = profile_for(system)
    f = profile.flags
    settings = _fresh(cflag=f.cs8 | f.cread)
    set_data_bits(7, settings, profile)
    assert settings.cflag & f.csize == f.cs7
    assert settings.cflag & f.cread
    set_data_bits(0, settings, profile)
    assert settings.cflag & f.csize == f.cs8


def test_invalid_data_bits():
    with pytest.raises(PortError) as info:
        set_data_bits(9, _fresh(), profile_for("linux"))
    assert info.value.code() == PortErrorCode.INVALID_DATA_BITS


def test_stop_bits_one_and_two():
    cstopb = current_profile().flags.cstopb
    settings = _fresh()
    set_stop_bits(StopBits.TWO, settings)
    assert settings.cflag == cstopb
    set_stop_bits(StopBits.ONE, settings)
    assert settings.cflag == 0


@pytest.mark.parametrize("bits", [StopBits.ONE_POINT_FIVE, 7])
def test_unsupported_stop_bits(bits):
    with pytest.raises(PortError) as info:
        set_stop_bits(bits, _fresh())
    assert info.value.code() == PortErrorCode.INVALID_STOP_BITS


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_cts_rts_toggle(system):
    profile = profile_for(system)
    settings = _fresh(cflag=profile.flags.cread)
    set_cts_rts(True, settings, profile)
    assert settings.cflag == profile.flags.cread | profile.crtscts
    set_cts_rts(False, settings, profile)
    assert settings.cflag == profile.flags.cread


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_raw_mode(system):
    profile = profile_for(system)
    f = profile.flags
    full = 0xFFFFFFFF
    settings = TermSettings(iflag=full, oflag=full, cflag=0, lflag=full, cc=[5] * 32)
    set_raw_mode(settings, profile)
    assert settings.cc[f.vmin] == 1
    assert settings.cc[f.vtime] == 0
    assert settings.cflag & f.cread and settings.cflag & f.clocal
    assert settings.lflag & (f.icanon | f.echo | f.isig | f.iexten) == 0
    assert settings.iflag & (f.ixon | f.icrnl | f.istrip | profile.iuclc) == 0
    assert settings.oflag & f.opost == 0


def test_linux_baudrate_replaces_previous():
    profile = profile_for("linux")
    cs8 = profile.flags.cs8
    settings = _fresh(cflag=cs8 | profile.baudrate_map[9600])
    assert set_baudrate(115200, settings, profile) is False
    assert settings.cflag == cs8 | profile.baudrate_map[115200]
    assert settings.ispeed == settings.ospeed == profile.baudrate_map[115200]


@pytest.mark.parametrize("system", ["freebsd", "openbsd"])
def test_bsd_baudrate_sets_cflag_and_speeds(system):
    profile = profile_for(system)
    settings = _fresh()
    assert set_baudrate(19200, settings, profile) is False
    assert settings.cflag & 19200 == 19200
    assert settings.ispeed == settings.ospeed == 19200


def test_darwin_baudrate_leaves_cflag():
    profile = profile_for("darwin")
    settings = _fresh(cflag=profile.flags.cs8)
    assert set_baudrate(57600, settings, profile) is False
    assert settings.cflag == profile.flags.cs8
    assert settings.ispeed == settings.ospeed == 57600


@pytest.mark.parametrize("system", ALL_SYSTEMS)
def test_unlisted_speed_needs_special_setup(system):
    profile = profile_for(system)
    settings = _fresh(cflag=profile.flags.cs8)
    before = settings.as_list()
    assert set_baudrate(12345, settings, profile) is True
    assert settings.as_list() == before


def test_zero_speed_defaults_to_9600():
    profile = profile_for("linux")
    settings = _fresh()
    assert set_baudrate(0, settings, profile) is False
    assert settings.ispeed == profile.baudrate_map[9600]