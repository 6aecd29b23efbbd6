import pytest

from serialkit.unixutils import FDResultSets, FDSet, Pipe, select_fds


@pytest.fixture
def pipe():
    p = Pipe()
    p.open()
    yield p
    if p.read_fd() != -1:
        p.close()


def test_unopened_pipe_descriptors():
    p = Pipe()
    assert p.read_fd() == -1
    assert p.write_fd() == -1


def test_unopened_pipe_operations_raise():
    p = Pipe()
    with pytest.raises(RuntimeError, match="Pipe not opened"):
        p.write(b"x")
    with pytest.raises(RuntimeError, match="Pipe not opened"):
        p.read(1)
    with pytest.raises(RuntimeError, match="Pipe not opened"):
        p.close()


def test_pipe_round_trip(pipe):
    assert pipe.read_fd() >= 0
    assert pipe.write_fd() >= 0
    assert pipe.read_fd() != pipe.write_fd()
    payload = b"hello pipe"
    assert pipe.write(payload) == len(payload)
    assert pipe.read(len(payload)) == payload


def test_close_twice_raises(pipe):
    pipe.close()
    assert pipe.read_fd() == -1
    with pytest.raises(RuntimeError):
        pipe.close()


def test_pipe_context_manager():
    with Pipe() as p:
        p.write(b"\x00")
        assert p.read(1) == b"\x00"
    assert p.read_fd() == -1


def test_fdset_add_tracks_max():
    s = FDSet(3, 7)
    s.add(5, 2)
    assert s.max_fd == 7
    assert list(s) == [2, 3, 5, 7]
    assert 5 in s
    assert 4 not in s
    assert len(s) == 4


def test_empty_fdset():
    s = FDSet()
    assert len(s) == 0
    assert s.max_fd == 0


def test_select_times_out_without_data(pipe):
    fds = FDSet(pipe.read_fd())
    res = select_fds(fds, None, fds, 0)
    assert not res.is_readable(pipe.read_fd())
    assert not res.is_error(pipe.read_fd())


def test_select_reports_readable_after_write(pipe):
    fds = FDSet(pipe.read_fd())
    pipe.write(b"\x00")
    res = select_fds(fds, None, None, 1.0)
    assert res.is_readable(pipe.read_fd())
    assert res.errors is None


def test_select_reports_writable(pipe):
    res = select_fds(None, FDSet(pipe.write_fd()), None, 1.0)
    assert res.is_writable(pipe.write_fd())
    assert not res.is_readable(pipe.write_fd())
    assert res.readable is None


def test_select_leaves_input_sets_untouched(pipe):
    fds = FDSet(pipe.read_fd(), pipe.write_fd())
    before = list(fds)
    select_fds(fds, None, None, 0)
    assert list(fds) == before


def test_select_negative_timeout_blocks_until_event(pipe):
    pipe.write(b"\x01")
    res = select_fds(FDSet(pipe.read_fd()), None, None, -1)
    assert res.is_readable(pipe.read_fd())


def test_result_sets_membership():
    res = FDResultSets(readable=frozenset({4}), writable=frozenset(), errors=None)
    assert res.is_readable(4)
    assert not res.is_readable(5)
    assert not res.is_writable(4)
    assert not res.is_error(4)