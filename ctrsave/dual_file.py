"""A file stored as two images, one of which is active at a time."""

from __future__ import annotations

from typing import Sequence

from .errors import ErrorKind, Save3dsError
from .storage import RandomAccessFile


class DualFile(RandomAccessFile):
    """Two equally sized images selected by a one-byte selector file.

    Writes go to the inactive image; committing flips the selector so the
    change becomes visible atomically.
    """

    def __init__(self, selector: RandomAccessFile, pair: Sequence[RandomAccessFile]) -> None:
        first, second = pair
        length = len(first)
        if len(second) != length:
            raise Save3dsError(ErrorKind.SIZE_MISMATCH)
        if len(selector) != 1:
            raise Save3dsError(ErrorKind.SIZE_MISMATCH)
        self._selector = selector
        self._pair = (first, second)
        self._modified = False
        self._len = length

    def _active(self) -> int:
        return self._selector.read(0, 1)[0]

    def read(self, pos: int, size: int) -> bytes:
        if pos + size > self._len:
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)
        select = self._active() ^ int(self._modified)
        return self._pair[select].read(pos, size)

    def write(self, pos: int, data: bytes) -> None:
        end = pos + len(data)
        if end > self._len:
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)
        prev = self._active()
        cur = 1 - prev
        self._pair[cur].write(pos, data)
        if not self._modified:
            if pos != 0:
                self._pair[cur].write(0, self._pair[prev].read(0, pos))
            if end != self._len:
                self._pair[cur].write(end, self._pair[prev].read(end, self._len - end))
            self._modified = True

    def __len__(self) -> int:
        return self._len

    def commit(self) -> None:
        if self._modified:
            self._selector.write(0, bytes([1 - self._active()]))
            self._modified = False