"""Unix helpers: a signalling pipe and a thin wrapper around select()."""

from __future__ import annotations

import os
import select
from dataclasses import dataclass
from typing import Iterable, Iterator


class Pipe:
    """A unix pipe that must be opened before use."""

    def __init__(self) -> None:
        self._opened = False
        self._rd = -1
        self._wr = -1

    def open(self) -> None:
        """Create the pipe."""
        self._rd, self._wr = os.pipe()
        self._opened = True

    def read_fd(self) -> int:
        """Return the read end's descriptor, or -1 when not opened."""
        return self._rd if self._opened else -1

    def write_fd(self) -> int:
        """Return the write end's descriptor, or -1 when not opened."""
        return self._wr if self._opened else -1

    def write(self, data: bytes) -> int:
        """Write data to the pipe and return the number of bytes written."""
        self._ensure_open()
        return os.write(self._wr, data)

    def read(self, size: int) -> bytes:
        """Read up to size bytes from the pipe."""
        self._ensure_open()
        return os.read(self._rd, size)

    def close(self) -> None:
        """Close both ends of the pipe; raises if it is not open."""
        self._ensure_open()
        errors: list[OSError] = []
        for fd in (self._rd, self._wr):
            try:
                os.close(fd)
            except OSError as exc:
                errors.append(exc)
        self._opened = False
        if errors:
            raise errors[0]

    def _ensure_open(self) -> None:
        if not self._opened:
            raise RuntimeError("Pipe not opened")

    def __enter__(self) -> "Pipe":
        if not self._opened:
            self.open()
        return self

    def __exit__(self, *args: object) -> None:
        if self._opened:
            self.close()


class FDSet:
    """A set of file descriptors for :func:`select_fds`."""

    def __init__(self, *fds: int) -> None:
        self._fds: set[int] = set()
        self.max_fd = 0
        self.add(*fds)

    def add(self, *args: int) -> None:
        """Add the given descriptors to the set."""
        for fd in args:
            self._fds.add(fd)
            self.max_fd = max(self.max_fd, fd)

    def __contains__(self, fd: object) -> bool:
        return fd in self._fds

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._fds))

    def __len__(self) -> int:
        return len(self._fds)


@dataclass(frozen=True)
class FDResultSets:
    """Descriptors with pending events after a :func:`select_fds` call."""

    readable: frozenset[int] | None = None
    writable: frozenset[int] | None = None
    errors: frozenset[int] | None = None

    def is_readable(self, fd: int) -> bool:
        """Whether fd is ready to be read."""
        return self.readable is not None and fd in self.readable

    def is_writable(self, fd: int) -> bool:
        """Whether fd is ready to be written."""
        return self.writable is not None and fd in self.writable

    def is_error(self, fd: int) -> bool:
        """Whether fd is in an error state."""
        return self.errors is not None and fd in self.errors


def _as_list(fds: FDSet | None) -> list[int]:
    return list(fds) if fds is not None else []


def _result(fds: FDSet | None, ready: Iterable[int]) -> frozenset[int] | None:
    return frozenset(ready) if fds is not None else None


def select_fds(
    rd: FDSet | None,
    wr: FDSet | None,
    er: FDSet | None,
    timeout: float | None,
) -> FDResultSets:
    """Wait for read, write or error events on the given sets.

    ``timeout`` is in seconds; None or a negative value blocks until an
    event happens. The given sets are left untouched.
    """
    if timeout is not None and timeout < 0:
        timeout = None
    readable, writable, errored = select.select(
        _as_list(rd), _as_list(wr), _as_list(er), timeout
    )
    return FDResultSets(
        readable=_result(rd, readable),
        writable=_result(wr, writable),
        errors=_result(er, errored),
    )