import random

import pytest

from ctrsave.errors import ErrorKind, Save3dsError
from ctrsave.layout import (
    DifiHeader,
    DifiPartitionParam,
    DpfsDescriptor,
    IvfcDescriptor,
    difi_calculate_size,
    format_difi_descriptor,
    read_difi_descriptor,
)
from ctrsave.storage import RandomAccessFile


class _Mem(RandomAccessFile):
    def __init__(self, size):
        self.buf = bytearray(size)

    def read(self, pos, size):
        if pos + size > len(self.buf):
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)
        return bytes(self.buf[pos:pos + size])

    def write(self, pos, data):
        if pos + len(data) > len(self.buf):
            raise Save3dsError(ErrorKind.OUT_OF_BOUND)
        self.buf[pos:pos + len(data)] = data

    def __len__(self):
        return len(self.buf)

    def commit(self):
        pass


def _random_param(seed):
    rng = random.Random(seed)
    return DifiPartitionParam(
        dpfs_level2_block_len=1 << rng.randrange(1, 10),
        dpfs_level3_block_len=1 << rng.randrange(1, 10),
        ivfc_level1_block_len=1 << rng.randrange(6, 10),
        ivfc_level2_block_len=1 << rng.randrange(6, 10),
        ivfc_level3_block_len=1 << rng.randrange(6, 10),
        ivfc_level4_block_len=1 << rng.randrange(6, 10),
        data_len=rng.randrange(1, 10_000),
        external_ivfc_level4=rng.random() < 0.5,
    )


def _formatted(param):
    descriptor_len, _ = difi_calculate_size(param)
    mem = _Mem(descriptor_len)
    format_difi_descriptor(mem, param)
    return mem


def _sample_ivfc():
    return IvfcDescriptor(b"IVFC", 0x20000, 0x20, 0, 0x20, 9, 8, 0x20, 9, 0x28, 0x40, 12,
                          0x1000, 0x2000, 12, 0x78)


def _sample_dpfs():
    return DpfsDescriptor(b"DPFS", 0x10000, 0, 4, 0, 8, 128, 7, 4096, 8192, 12)


def test_struct_size():
    header = DifiHeader(b"DIFI", 0x10000, 0x44, 0x78, 0xBC, 0x50, 0x10C, 0x20, True, 1, 0x3000)
    assert len(header.pack()) == DifiHeader.SIZE == 0x44
    assert len(_sample_ivfc().pack()) == IvfcDescriptor.SIZE == 0x78
    assert len(_sample_dpfs().pack()) == DpfsDescriptor.SIZE == 0x50


def test_align_is_largest_block():
    param = DifiPartitionParam(128, 4096, 512, 512, 4096, 2048, 100, True)
    assert param.align() == 4096


@pytest.mark.parametrize("seed", range(20))
def test_format_then_read(seed):
    param = _random_param(seed)
    descriptor_len, _ = difi_calculate_size(param)
    header, ivfc, dpfs = read_difi_descriptor(_formatted(param))
    assert header.magic == b"DIFI"
    assert ivfc.magic == b"IVFC"
    assert dpfs.magic == b"DPFS"
    assert header.external_ivfc_level4 == param.external_ivfc_level4
    assert ivfc.level4_size == param.data_len
    assert 1 << ivfc.level4_block_log == param.ivfc_level4_block_len
    assert 1 << ivfc.level1_block_log == param.ivfc_level1_block_len
    assert 1 << dpfs.level3_block_log == param.dpfs_level3_block_len
    assert header.partition_hash_offset + header.partition_hash_size == descriptor_len
    assert header.partition_hash_size == ivfc.master_hash_size


@pytest.mark.parametrize("seed", range(20))
def test_layout_invariants(seed):
    param = _random_param(seed)
    descriptor_len, partition_len = difi_calculate_size(param)
    header, ivfc, dpfs = read_difi_descriptor(_formatted(param))
    assert (descriptor_len - 0x44 - 0x78 - 0x50) % 0x20 == 0
    assert descriptor_len > 0x44 + 0x78 + 0x50
    assert dpfs.level3_offset % param.dpfs_level3_block_len == 0
    assert dpfs.level3_offset + 2 * dpfs.level3_size <= partition_len
    assert dpfs.level2_offset + 2 * dpfs.level2_size <= dpfs.level3_offset
    if param.external_ivfc_level4:
        assert header.ivfc_level4_offset + param.data_len == partition_len
        assert header.ivfc_level4_offset % param.ivfc_level4_block_len == 0
        assert ivfc.level4_offset <= dpfs.level3_size
    else:
        assert header.ivfc_level4_offset == 0
        assert ivfc.level4_offset + ivfc.level4_size <= dpfs.level3_size
        assert partition_len == dpfs.level3_offset + 2 * dpfs.level3_size


def test_header_round_trip():
    header = DifiHeader(b"DIFI", 0x10000, 0x44, 0x78, 0xBC, 0x50, 0x10C, 0x20, True, 1, 0x3000)
    packed = header.pack()
    assert len(packed) == 0x44
    assert DifiHeader.unpack(packed) == header


def test_descriptor_round_trips():
    ivfc = _sample_ivfc()
    dpfs = _sample_dpfs()
    assert IvfcDescriptor.unpack(ivfc.pack()) == ivfc
    assert DpfsDescriptor.unpack(dpfs.pack()) == dpfs
    assert ivfc.pack()[:4] == b"IVFC"


def test_unpack_too_short():
    with pytest.raises(Save3dsError) as info:
        DifiHeader.unpack(b"\x00" * 10)
    assert info.value.kind is ErrorKind.SIZE_MISMATCH


def test_bad_difi_magic():
    mem = _formatted(_random_param(1))
    mem.buf[0:4] = b"XXXX"
    with pytest.raises(Save3dsError) as info:
        read_difi_descriptor(mem)
    assert info.value.kind is ErrorKind.MAGIC_MISMATCH


def test_bad_ivfc_descriptor_size():
    mem = _formatted(_random_param(2))
    mem.buf[16:24] = (0x79).to_bytes(8, "little")
    with pytest.raises(Save3dsError) as info:
        read_difi_descriptor(mem)
    assert info.value.kind is ErrorKind.SIZE_MISMATCH


def test_bad_ivfc_magic():
    mem = _formatted(_random_param(3))
    mem.buf[0x44:0x48] = b"XXXX"
    with pytest.raises(Save3dsError) as info:
        read_difi_descriptor(mem)
    assert info.value.kind is ErrorKind.MAGIC_MISMATCH


def test_partition_hash_size_mismatch():
    mem = _formatted(_random_param(4))
    mem.buf[48:56] = (0x12345).to_bytes(8, "little")
    with pytest.raises(Save3dsError) as info:
        read_difi_descriptor(mem)
    assert info.value.kind is ErrorKind.SIZE_MISMATCH


def test_bad_dpfs_magic():
    mem = _formatted(_random_param(5))
    mem.buf[0xBC:0xC0] = b"XXXX"
    with pytest.raises(Save3dsError) as info:
        read_difi_descriptor(mem)
    assert info.value.kind is ErrorKind.MAGIC_MISMATCH


def test_descriptor_too_small_for_format():
    param = _random_param(6)
    with pytest.raises(Save3dsError) as info:
        format_difi_descriptor(_Mem(0x40), param)
    assert info.value.kind is ErrorKind.OUT_OF_BOUND