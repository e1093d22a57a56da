"""One DPFS level: per-block selection between two data images."""

from __future__ import annotations

from typing import Sequence

from .errors import ErrorKind, Save3dsError
from .storage import RandomAccessFile, divide_up

_MASK32 = 0xFFFF_FFFF


class DpfsLevel(RandomAccessFile):
    """Two data images with one selector bit per block.

    The selector file holds the bits as 32-bit little-endian words, most
    significant bit first. Writes go to the inactive image of each block and
    are made visible by flipping the bits on commit.
    """

    def __init__(
        self,
        selector: RandomAccessFile,
        pair: Sequence[RandomAccessFile],
        block_len: int,
    ) -> None:
        first, second = pair
        length = len(first)
        if len(second) != length:
            raise Save3dsError(ErrorKind.SIZE_MISMATCH)
        chunk_count = divide_up(divide_up(length, block_len), 32)
        if chunk_count * 4 > len(selector):
            raise Save3dsError(ErrorKind.SIZE_MISMATCH)
        self._selector = selector
        self._pair = (first, second)
        self._block_len = block_len
        self._len = length
        self._dirty = [0] * chunk_count

    def _ranges(self, pos: int, end: int):
        """Yield (chunk index, selector word, block index) for the span."""
        begin_block = pos // self._block_len
        end_block = divide_up(end, self._block_len)
        begin_chunk = begin_block // 32
        end_chunk = divide_up(end_block, 32)
        raw = self._selector.read(begin_chunk * 4, (end_chunk - begin_chunk) * 4)
        for chunk_i in range(begin_chunk, end_chunk):
            offset = (chunk_i - begin_chunk) * 4
            word = int.from_bytes(raw[offset:offset + 4], "little")
            first = max(chunk_i * 32, begin_block)
            last = min((chunk_i + 1) * 32, end_block)
            yield chunk_i, word, range(first, last)

    def read(self, pos: int, size: int) -> bytes:
        end = pos + size
        if end > self._len:
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)
        out = bytearray(size)
        for chunk_i, word, blocks in self._ranges(pos, end):
            # clean blocks come from the active image, dirty ones from the other
            select = self._dirty[chunk_i] ^ word
            for block_i in blocks:
                bit = (select >> (31 - (block_i - chunk_i * 32))) & 1
                data_begin = max(block_i * self._block_len, pos)
                data_end = min((block_i + 1) * self._block_len, end)
                out[data_begin - pos:data_end - pos] = self._pair[bit].read(
                    data_begin, data_end - data_begin
                )
        return bytes(out)

    def write(self, pos: int, data: bytes) -> None:
        end = pos + len(data)
        if end > self._len:
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)
        for chunk_i, word, blocks in self._ranges(pos, end):
            select = ~word & _MASK32
            for block_i in blocks:
                shift = 31 - (block_i - chunk_i * 32)
                bit = (select >> shift) & 1
                target = self._pair[bit]

                block_begin = block_i * self._block_len
                block_end = min((block_i + 1) * self._block_len, self._len)
                data_begin = max(block_begin, pos)
                data_end = min(block_end, end)

                target.write(data_begin, data[data_begin - pos:data_end - pos])

                # a clean block partly written needs its margins copied over
                if not (self._dirty[chunk_i] >> shift) & 1:
                    source = self._pair[1 - bit]
                    if data_begin > block_begin:
                        target.write(
                            block_begin, source.read(block_begin, data_begin - block_begin)
                        )
                    if data_end < block_end:
                        target.write(data_end, source.read(data_end, block_end - data_end))

                self._dirty[chunk_i] |= 1 << shift

    def __len__(self) -> int:
        return self._len

    def commit(self) -> None:
        for i, word in enumerate(self._dirty):
            if word:
                old = int.from_bytes(self._selector.read(i * 4, 4), "little")
                self._selector.write(i * 4, (old ^ word).to_bytes(4, "little"))
                self._dirty[i] = 0