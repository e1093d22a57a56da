"""On-disk descriptors of a DIFI partition and the arithmetic that lays one out."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import ClassVar

from .errors import ErrorKind, Save3dsError
from .storage import RandomAccessFile, align_up, divide_up

_log = logging.getLogger(__name__)

_HASH_LEN = 0x20
_LEVEL_FORMAT = "QQII"


def _unpack(fmt: struct.Struct, data: bytes) -> tuple:
    if len(data) < fmt.size:
        raise Save3dsError(ErrorKind.SIZE_MISMATCH, f"need {fmt.size} bytes, got {len(data)}")
    return fmt.unpack_from(data)


@dataclass(frozen=True)
class DifiPartitionParam:
    """Block sizes and data length that determine a DIFI partition's layout."""

    dpfs_level2_block_len: int
    dpfs_level3_block_len: int
    ivfc_level1_block_len: int
    ivfc_level2_block_len: int
    ivfc_level3_block_len: int
    ivfc_level4_block_len: int
    data_len: int
    external_ivfc_level4: bool

    def align(self) -> int:
        """The largest block length, to which the partition is aligned."""
        return max(
            self.dpfs_level2_block_len,
            self.dpfs_level3_block_len,
            self.ivfc_level1_block_len,
            self.ivfc_level2_block_len,
            self.ivfc_level3_block_len,
            self.ivfc_level4_block_len,
        )


@dataclass(frozen=True)
class DifiHeader:
    """The DIFI header at the start of a partition descriptor."""

    magic: bytes
    version: int
    ivfc_descriptor_offset: int
    ivfc_descriptor_size: int
    dpfs_descriptor_offset: int
    dpfs_descriptor_size: int
    partition_hash_offset: int
    partition_hash_size: int
    external_ivfc_level4: bool
    dpfs_selector: int
    ivfc_level4_offset: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sIQQQQQQBBHQ")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(
            self.magic,
            self.version,
            self.ivfc_descriptor_offset,
            self.ivfc_descriptor_size,
            self.dpfs_descriptor_offset,
            self.dpfs_descriptor_size,
            self.partition_hash_offset,
            self.partition_hash_size,
            int(self.external_ivfc_level4),
            self.dpfs_selector,
            0,
            self.ivfc_level4_offset,
        )

    @classmethod
    def unpack(cls, data: bytes) -> DifiHeader:
        (magic, version, ivfc_off, ivfc_size, dpfs_off, dpfs_size, hash_off, hash_size,
         external, selector, _padding, level4_off) = _unpack(cls._STRUCT, data)
        return cls(
            magic=magic,
            version=version,
            ivfc_descriptor_offset=ivfc_off,
            ivfc_descriptor_size=ivfc_size,
            dpfs_descriptor_offset=dpfs_off,
            dpfs_descriptor_size=dpfs_size,
            partition_hash_offset=hash_off,
            partition_hash_size=hash_size,
            external_ivfc_level4=external != 0,
            dpfs_selector=selector,
            ivfc_level4_offset=level4_off,
        )


@dataclass(frozen=True)
class IvfcDescriptor:
    """Offsets, sizes and block sizes of the four IVFC hash levels."""

    magic: bytes
    version: int
    master_hash_size: int
    level1_offset: int
    level1_size: int
    level1_block_log: int
    level2_offset: int
    level2_size: int
    level2_block_log: int
    level3_offset: int
    level3_size: int
    level3_block_log: int
    level4_offset: int
    level4_size: int
    level4_block_log: int
    descriptor_size: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sIQ" + _LEVEL_FORMAT * 4 + "Q")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(
            self.magic,
            self.version,
            self.master_hash_size,
            self.level1_offset, self.level1_size, self.level1_block_log, 0,
            self.level2_offset, self.level2_size, self.level2_block_log, 0,
            self.level3_offset, self.level3_size, self.level3_block_log, 0,
            self.level4_offset, self.level4_size, self.level4_block_log, 0,
            self.descriptor_size,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IvfcDescriptor:
        (magic, version, master,
         o1, s1, b1, _p1, o2, s2, b2, _p2, o3, s3, b3, _p3, o4, s4, b4, _p4,
         descriptor_size) = _unpack(cls._STRUCT, data)
        return cls(
            magic=magic,
            version=version,
            master_hash_size=master,
            level1_offset=o1, level1_size=s1, level1_block_log=b1,
            level2_offset=o2, level2_size=s2, level2_block_log=b2,
            level3_offset=o3, level3_size=s3, level3_block_log=b3,
            level4_offset=o4, level4_size=s4, level4_block_log=b4,
            descriptor_size=descriptor_size,
        )


@dataclass(frozen=True)
class DpfsDescriptor:
    """Offsets, sizes and block sizes of the three DPFS levels."""

    magic: bytes
    version: int
    level1_offset: int
    level1_size: int
    level1_block_log: int
    level2_offset: int
    level2_size: int
    level2_block_log: int
    level3_offset: int
    level3_size: int
    level3_block_log: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sI" + _LEVEL_FORMAT * 3)
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(
            self.magic,
            self.version,
            self.level1_offset, self.level1_size, self.level1_block_log, 0,
            self.level2_offset, self.level2_size, self.level2_block_log, 0,
            self.level3_offset, self.level3_size, self.level3_block_log, 0,
        )

    @classmethod
    def unpack(cls, data: bytes) -> DpfsDescriptor:
        (magic, version, o1, s1, b1, _p1, o2, s2, b2, _p2, o3, s3, b3, _p3) = _unpack(
            cls._STRUCT, data
        )
        return cls(
            magic=magic,
            version=version,
            level1_offset=o1, level1_size=s1, level1_block_log=b1,
            level2_offset=o2, level2_size=s2, level2_block_log=b2,
            level3_offset=o3, level3_size=s3, level3_block_log=b3,
        )


@dataclass(frozen=True)
class _DifiLayout:
    header: DifiHeader
    ivfc: IvfcDescriptor
    dpfs: DpfsDescriptor
    descriptor_len: int
    partition_len: int


def _ilog(block_len: int) -> int:
    return block_len.bit_length() - 1


def _ivfc_align(offset: int, length: int, block_len: int) -> int:
    if length >= 4 * block_len:
        return align_up(offset, block_len)
    return align_up(offset, 8)


def _calculate_layout(param: DifiPartitionParam) -> _DifiLayout:
    ivfc_level4_len = param.data_len
    ivfc_level3_len = divide_up(ivfc_level4_len, param.ivfc_level4_block_len) * _HASH_LEN
    ivfc_level2_len = divide_up(ivfc_level3_len, param.ivfc_level3_block_len) * _HASH_LEN
    ivfc_level1_len = divide_up(ivfc_level2_len, param.ivfc_level2_block_len) * _HASH_LEN
    master_hash_len = divide_up(ivfc_level1_len, param.ivfc_level1_block_len) * _HASH_LEN

    ivfc_level1_offset = 0
    ivfc_level2_offset = _ivfc_align(
        ivfc_level1_offset + ivfc_level1_len, ivfc_level2_len, param.ivfc_level2_block_len
    )
    ivfc_level3_offset = _ivfc_align(
        ivfc_level2_offset + ivfc_level2_len, ivfc_level3_len, param.ivfc_level3_block_len
    )
    ivfc_level4_offset = _ivfc_align(
        ivfc_level3_offset + ivfc_level3_len, ivfc_level4_len, param.ivfc_level4_block_len
    )
    ivfc_end = ivfc_level4_offset + ivfc_level4_len

    duplicate_data_len = ivfc_level4_offset if param.external_ivfc_level4 else ivfc_end

    dpfs_level3_len = align_up(duplicate_data_len, param.dpfs_level3_block_len)
    dpfs_level2_len = align_up(
        (1 + (dpfs_level3_len // param.dpfs_level3_block_len - 1) // 32) * 4,
        param.dpfs_level2_block_len,
    )
    dpfs_level1_len = (1 + (dpfs_level2_len // param.dpfs_level2_block_len - 1) // 32) * 4

    dpfs_level1_offset = 0
    dpfs_level2_offset = dpfs_level1_offset + dpfs_level1_len * 2
    dpfs_level3_offset = align_up(
        dpfs_level2_offset + dpfs_level2_len * 2, param.dpfs_level3_block_len
    )
    dpfs_end = dpfs_level3_offset + dpfs_level3_len * 2

    if param.external_ivfc_level4:
        external_offset = align_up(dpfs_end, param.ivfc_level4_block_len)
        partition_len = external_offset + ivfc_level4_len
    else:
        external_offset = 0
        partition_len = dpfs_end

    dpfs = DpfsDescriptor(
        magic=b"DPFS",
        version=0x10000,
        level1_offset=dpfs_level1_offset,
        level1_size=dpfs_level1_len,
        level1_block_log=0,
        level2_offset=dpfs_level2_offset,
        level2_size=dpfs_level2_len,
        level2_block_log=_ilog(param.dpfs_level2_block_len),
        level3_offset=dpfs_level3_offset,
        level3_size=dpfs_level3_len,
        level3_block_log=_ilog(param.dpfs_level3_block_len),
    )

    ivfc = IvfcDescriptor(
        magic=b"IVFC",
        version=0x20000,
        master_hash_size=master_hash_len,
        level1_offset=ivfc_level1_offset,
        level1_size=ivfc_level1_len,
        level1_block_log=_ilog(param.ivfc_level1_block_len),
        level2_offset=ivfc_level2_offset,
        level2_size=ivfc_level2_len,
        level2_block_log=_ilog(param.ivfc_level2_block_len),
        level3_offset=ivfc_level3_offset,
        level3_size=ivfc_level3_len,
        level3_block_log=_ilog(param.ivfc_level3_block_len),
        level4_offset=ivfc_level4_offset,
        level4_size=ivfc_level4_len,
        level4_block_log=_ilog(param.ivfc_level4_block_len),
        descriptor_size=IvfcDescriptor.SIZE,
    )

    ivfc_descriptor_offset = DifiHeader.SIZE
    dpfs_descriptor_offset = ivfc_descriptor_offset + IvfcDescriptor.SIZE
    master_hash_offset = dpfs_descriptor_offset + DpfsDescriptor.SIZE
    descriptor_len = master_hash_offset + master_hash_len

    header = DifiHeader(
        magic=b"DIFI",
        version=0x10000,
        ivfc_descriptor_offset=ivfc_descriptor_offset,
        ivfc_descriptor_size=IvfcDescriptor.SIZE,
        dpfs_descriptor_offset=dpfs_descriptor_offset,
        dpfs_descriptor_size=DpfsDescriptor.SIZE,
        partition_hash_offset=master_hash_offset,
        partition_hash_size=master_hash_len,
        external_ivfc_level4=param.external_ivfc_level4,
        dpfs_selector=0,
        ivfc_level4_offset=external_offset,
    )

    return _DifiLayout(header, ivfc, dpfs, descriptor_len, partition_len)


def difi_calculate_size(param: DifiPartitionParam) -> tuple[int, int]:
    """Return ``(descriptor_len, partition_len)`` for a partition with ``param``."""
    layout = _calculate_layout(param)
    return layout.descriptor_len, layout.partition_len


def format_difi_descriptor(descriptor: RandomAccessFile, param: DifiPartitionParam) -> None:
    """Write the DIFI header and the IVFC and DPFS descriptors for ``param``."""
    layout = _calculate_layout(param)
    descriptor.write(0, layout.header.pack())
    descriptor.write(layout.header.ivfc_descriptor_offset, layout.ivfc.pack())
    descriptor.write(layout.header.dpfs_descriptor_offset, layout.dpfs.pack())


def read_difi_descriptor(
    descriptor: RandomAccessFile,
) -> tuple[DifiHeader, IvfcDescriptor, DpfsDescriptor]:
    """Read and validate the header and level descriptors of a DIFI partition."""
    header = DifiHeader.unpack(descriptor.read(0, DifiHeader.SIZE))
    if header.magic != b"DIFI" or header.version != 0x10000:
        _log.error("Unexpected DIFI magic %r %X", header.magic, header.version)
        raise Save3dsError(ErrorKind.MAGIC_MISMATCH)

    if header.ivfc_descriptor_size != IvfcDescriptor.SIZE:
        _log.error("Unexpected ivfc_descriptor_size %d", header.ivfc_descriptor_size)
        raise Save3dsError(ErrorKind.SIZE_MISMATCH)
    ivfc = IvfcDescriptor.unpack(
        descriptor.read(header.ivfc_descriptor_offset, IvfcDescriptor.SIZE)
    )
    if ivfc.magic != b"IVFC" or ivfc.version != 0x20000:
        _log.error("Unexpected IVFC magic %r %X", ivfc.magic, ivfc.version)
        raise Save3dsError(ErrorKind.MAGIC_MISMATCH)
    if header.partition_hash_size != ivfc.master_hash_size:
        _log.error("Unexpected partition_hash_size %d", header.partition_hash_size)
        raise Save3dsError(ErrorKind.SIZE_MISMATCH)

    if header.dpfs_descriptor_size != DpfsDescriptor.SIZE:
        _log.error("Unexpected dpfs_descriptor_size %d", header.dpfs_descriptor_size)
        raise Save3dsError(ErrorKind.SIZE_MISMATCH)
    dpfs = DpfsDescriptor.unpack(
        descriptor.read(header.dpfs_descriptor_offset, DpfsDescriptor.SIZE)
    )
    if dpfs.magic != b"DPFS" or dpfs.version != 0x10000:
        _log.error("Unexpected DPFS magic %r %X", dpfs.magic, dpfs.version)
        raise Save3dsError(ErrorKind.MAGIC_MISMATCH)

    return header, ivfc, dpfs