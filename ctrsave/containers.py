"""Headers and size arithmetic of the DIFF and DISA container formats."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple

from .errors import ErrorKind, Save3dsError
from .layout import DifiPartitionParam, difi_calculate_size
from .storage import align_up

_TABLE_OFFSET = 0x200

Region = Tuple[int, int]


def _unpack(fmt: struct.Struct, data: bytes) -> tuple:
    if len(data) < fmt.size:
        raise Save3dsError(ErrorKind.SIZE_MISMATCH, f"need {fmt.size} bytes, got {len(data)}")
    return fmt.unpack_from(data)


@dataclass(frozen=True)
class DiffHeader:
    """Header of a DIFF container, which holds one DIFI partition."""

    magic: bytes
    version: int
    secondary_table_offset: int
    primary_table_offset: int
    table_size: int
    partition_offset: int
    partition_size: int
    active_table: int
    sha: bytes
    unique_id: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sI5QB3x32sQ")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(
            self.magic,
            self.version,
            self.secondary_table_offset,
            self.primary_table_offset,
            self.table_size,
            self.partition_offset,
            self.partition_size,
            self.active_table,
            self.sha,
            self.unique_id,
        )

    @classmethod
    def unpack(cls, data: bytes) -> DiffHeader:
        (magic, version, secondary, primary, table_size, partition_offset,
         partition_size, active_table, sha, unique_id) = _unpack(cls._STRUCT, data)
        return cls(
            magic=magic,
            version=version,
            secondary_table_offset=secondary,
            primary_table_offset=primary,
            table_size=table_size,
            partition_offset=partition_offset,
            partition_size=partition_size,
            active_table=active_table,
            sha=sha,
            unique_id=unique_id,
        )


@dataclass(frozen=True)
class DisaHeader:
    """Header of a DISA container, which holds one or two DIFI partitions.

    ``partition_descriptors`` and ``partitions`` each hold two
    ``(offset, size)`` pairs; the second is zero when there is one partition.
    """

    magic: bytes
    version: int
    partition_count: int
    secondary_table_offset: int
    primary_table_offset: int
    table_size: int
    partition_descriptors: Tuple[Region, Region]
    partitions: Tuple[Region, Region]
    active_table: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sIII3Q8QB")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        (da_off, da_len), (db_off, db_len) = self.partition_descriptors
        (pa_off, pa_len), (pb_off, pb_len) = self.partitions
        return self._STRUCT.pack(
            self.magic,
            self.version,
            self.partition_count,
            0,
            self.secondary_table_offset,
            self.primary_table_offset,
            self.table_size,
            da_off, da_len, db_off, db_len,
            pa_off, pa_len, pb_off, pb_len,
            self.active_table,
        )

    @classmethod
    def unpack(cls, data: bytes) -> DisaHeader:
        (magic, version, count, _padding, secondary, primary, table_size,
         da_off, da_len, db_off, db_len, pa_off, pa_len, pb_off, pb_len,
         active_table) = _unpack(cls._STRUCT, data)
        return cls(
            magic=magic,
            version=version,
            partition_count=count,
            secondary_table_offset=secondary,
            primary_table_offset=primary,
            table_size=table_size,
            partition_descriptors=((da_off, da_len), (db_off, db_len)),
            partitions=((pa_off, pa_len), (pb_off, pb_len)),
            active_table=active_table,
        )


@dataclass(frozen=True)
class _DiffLayout:
    secondary_table_offset: int
    primary_table_offset: int
    table_len: int
    partition_offset: int
    partition_len: int
    end: int


def _diff_layout(param: DifiPartitionParam) -> _DiffLayout:
    descriptor_len, partition_len = difi_calculate_size(param)
    table_len = descriptor_len
    primary = align_up(_TABLE_OFFSET + table_len, 8)
    partition_offset = align_up(primary + table_len, param.align())
    return _DiffLayout(
        secondary_table_offset=_TABLE_OFFSET,
        primary_table_offset=primary,
        table_len=table_len,
        partition_offset=partition_offset,
        partition_len=partition_len,
        end=partition_offset + partition_len,
    )


@dataclass(frozen=True)
class _DisaLayout:
    secondary_table_offset: int
    primary_table_offset: int
    table_len: int
    descriptors: Tuple[Region, Region]
    partitions: Tuple[Region, Region]
    end: int


def _disa_layout(
    param_a: DifiPartitionParam, param_b: Optional[DifiPartitionParam]
) -> _DisaLayout:
    descriptor_a_len, partition_a_len = difi_calculate_size(param_a)
    descriptor_b_len, partition_b_len = (
        difi_calculate_size(param_b) if param_b is not None else (0, 0)
    )
    descriptor_a_offset = 0
    if param_b is not None:
        descriptor_b_offset = align_up(descriptor_a_offset + descriptor_a_len, 8)
        table_len = align_up(descriptor_b_offset + descriptor_b_len, 8)
    else:
        # the table length is not aligned to 8 when there is one partition
        descriptor_b_offset = 0
        table_len = descriptor_a_len

    primary = align_up(_TABLE_OFFSET + table_len, 8)
    partition_a_offset = align_up(primary + table_len, param_a.align())

    if param_b is not None:
        partition_b_offset = align_up(partition_a_offset + partition_a_len, param_b.align())
        end = partition_b_offset + partition_b_len
    else:
        partition_b_offset = 0
        end = partition_a_offset + partition_a_len

    return _DisaLayout(
        secondary_table_offset=_TABLE_OFFSET,
        primary_table_offset=primary,
        table_len=table_len,
        descriptors=(
            (descriptor_a_offset, descriptor_a_len),
            (descriptor_b_offset, descriptor_b_len),
        ),
        partitions=(
            (partition_a_offset, partition_a_len),
            (partition_b_offset, partition_b_len),
        ),
        end=end,
    )


def diff_calculate_size(param: DifiPartitionParam) -> int:
    """Total size of a DIFF container holding a partition laid out by ``param``."""
    return _diff_layout(param).end


def disa_calculate_size(
    param_a: DifiPartitionParam, param_b: Optional[DifiPartitionParam] = None
) -> int:
    """Total size of a DISA container holding one or two partitions."""
    return _disa_layout(param_a, param_b).end