import pytest

from ctrsave.errors import ErrorKind, Save3dsError
from ctrsave.storage import DiskFile, RandomAccessFile, align_up, divide_up


def test_divide_up_exact_and_zero():
    assert divide_up(0, 16) == 0
    assert divide_up(32, 16) == 2


@pytest.mark.parametrize("value", [0, 1, 7, 8, 9, 100, 4095, 4096, 4097])
@pytest.mark.parametrize("unit", [1, 8, 16, 4096])
def test_align_up_invariants(value, unit):
    aligned = align_up(value, unit)
    assert aligned % unit == 0
    assert value <= aligned < value + unit
    assert divide_up(value, unit) * unit == aligned


def test_random_access_file_is_abstract():
    with pytest.raises(TypeError):
        RandomAccessFile()


def _make(tmp_path, content):
    path = tmp_path / "image.bin"
    path.write_bytes(content)
    return path


def test_disk_file_read_write_round_trip(tmp_path):
    path = _make(tmp_path, bytes(range(64)))
    with open(path, "r+b") as handle:
        f = DiskFile(handle)
        assert len(f) == 64
        assert f.read(10, 4) == bytes([10, 11, 12, 13])
        f.write(20, b"\xaa\xbb\xcc")
        assert f.read(19, 5) == bytes([19, 0xAA, 0xBB, 0xCC, 23])
        f.commit()
    data = path.read_bytes()
    assert data[20:23] == b"\xaa\xbb\xcc"
    assert len(data) == 64


def test_disk_file_out_of_bound(tmp_path):
    path = _make(tmp_path, bytes(16))
    with open(path, "r+b") as handle:
        f = DiskFile(handle)
        with pytest.raises(Save3dsError) as info:
            f.read(10, 7)
        assert info.value.kind is ErrorKind.OUT_OF_BOUND
        with pytest.raises(Save3dsError) as info:
            f.write(16, b"x")
        assert info.value.kind is ErrorKind.OUT_OF_BOUND
    assert path.read_bytes() == bytes(16)


def test_disk_file_reads_to_end(tmp_path):
    path = _make(tmp_path, b"abcdef")
    with open(path, "rb") as handle:
        f = DiskFile(handle)
        assert f.read(0, len(f)) == b"abcdef"
        assert f.read(6, 0) == b""