"""Random-access file abstraction and a host-disk implementation."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import BinaryIO

from .errors import ErrorKind, Save3dsError


def divide_up(value: int, unit: int) -> int:
    """Integer division rounding up."""
    return (value + unit - 1) // unit


def align_up(value: int, unit: int) -> int:
    """Round ``value`` up to a multiple of ``unit``."""
    return divide_up(value, unit) * unit


class RandomAccessFile(ABC):
    """A fixed-size byte store that can be read and written at any offset."""

    @abstractmethod
    def read(self, pos: int, size: int) -> bytes:
        """Return ``size`` bytes starting at ``pos``."""

    @abstractmethod
    def write(self, pos: int, data: bytes) -> None:
        """Write ``data`` starting at ``pos``."""

    @abstractmethod
    def __len__(self) -> int:
        """Size of the file in bytes."""

    @abstractmethod
    def commit(self) -> None:
        """Make all pending changes durable."""


class DiskFile(RandomAccessFile):
    """A `RandomAccessFile` backed by an open binary file on the host."""

    def __init__(self, file: BinaryIO) -> None:
        self._file = file
        try:
            self._len = os.fstat(file.fileno()).st_size
        except OSError as e:
            raise Save3dsError(ErrorKind.IO, str(e)) from e

    def _check(self, pos: int, size: int) -> None:
        if pos < 0 or pos + size > self._len:
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)

    def read(self, pos: int, size: int) -> bytes:
        self._check(pos, size)
        try:
            self._file.seek(pos)
            data = self._file.read(size)
        except OSError as e:
            raise Save3dsError(ErrorKind.IO, str(e)) from e
        if len(data) != size:
            raise Save3dsError(ErrorKind.IO, "unexpected end of file")
        return data

    def write(self, pos: int, data: bytes) -> None:
        self._check(pos, len(data))
        try:
            self._file.seek(pos)
            self._file.write(data)
        except OSError as e:
            raise Save3dsError(ErrorKind.IO, str(e)) from e

    def __len__(self) -> int:
        return self._len

    def commit(self) -> None:
        try:
            self._file.flush()
        except OSError as e:
            raise Save3dsError(ErrorKind.IO, str(e)) from e