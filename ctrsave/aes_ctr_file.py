"""AES-128-CTR encryption layer over another random-access file."""

from __future__ import annotations

from collections import OrderedDict

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ErrorKind, Save3dsError
from .storage import RandomAccessFile, divide_up

_BLOCK = 16
_CACHE_SIZE = 16
_MASK64 = (1 << 64) - 1
# With the counter-reuse quirk the pad sequence repeats every 512 bytes.
_REPEAT_BLOCKS = 0x20


def _xor(a: bytes, b: bytes) -> bytes:
    return (int.from_bytes(a, "little") ^ int.from_bytes(b, "little")).to_bytes(
        len(a), "little"
    )


class AesCtrFile(RandomAccessFile):
    """Transparently encrypts and decrypts ``data`` with AES-128 in CTR mode.

    Only the low 64 bits of the counter are incremented per block; the high
    64 bits stay fixed. With ``repeat_ctr`` the counter wraps every 512 bytes,
    mirroring a quirk of the console's cartridge save encryption.
    """

    def __init__(
        self,
        data: RandomAccessFile,
        key: bytes,
        ctr: bytes,
        repeat_ctr: bool = False,
    ) -> None:
        key = bytes(key)
        ctr = bytes(ctr)
        if len(key) != _BLOCK:
            raise ValueError("AES key must be 16 bytes")
        if len(ctr) != _BLOCK:
            raise ValueError("counter must be 16 bytes")
        self._data = data
        self._len = len(data)
        self._encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
        self._ctr_high = ctr[:8]
        self._ctr_low = int.from_bytes(ctr[8:], "big")
        self._repeat_ctr = repeat_ctr
        self._cache: OrderedDict[int, bytes] = OrderedDict()

    def _pad(self, block_index: int) -> bytes:
        """Return the XOR pad for one 16-byte block, using a small LRU cache."""
        if self._repeat_ctr:
            block_index %= _REPEAT_BLOCKS
        cached = self._cache.get(block_index)
        if cached is not None:
            self._cache.move_to_end(block_index)
            return cached
        low = (self._ctr_low + block_index) & _MASK64
        counter = self._ctr_high + low.to_bytes(8, "big")
        pad = self._encryptor.update(counter)
        self._cache[block_index] = pad
        if len(self._cache) > _CACHE_SIZE:
            self._cache.popitem(last=False)
        return pad

    def _keystream(self, pos: int, size: int) -> bytes:
        begin_block = pos // _BLOCK
        end_block = divide_up(pos + size, _BLOCK)
        stream = b"".join(self._pad(i) for i in range(begin_block, end_block))
        offset = pos - begin_block * _BLOCK
        return stream[offset:offset + size]

    def _check(self, pos: int, size: int) -> None:
        if pos < 0 or pos + size > self._len:
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)

    def read(self, pos: int, size: int) -> bytes:
        self._check(pos, size)
        encrypted = self._data.read(pos, size)
        return _xor(encrypted, self._keystream(pos, size))

    def write(self, pos: int, data: bytes) -> None:
        data = bytes(data)
        self._check(pos, len(data))
        self._data.write(pos, _xor(data, self._keystream(pos, len(data))))

    def __len__(self) -> int:
        return self._len

    def commit(self) -> None:
        """Nothing is buffered at this layer."""