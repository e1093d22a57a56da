# ctrsave

Building blocks for reading and writing Nintendo 3DS save containers.

Every storage layer is a random-access file: it reads and writes byte
ranges within a fixed length and has a `commit()` that makes pending
changes permanent. Layers stack on top of each other, so a container is
a chain of them over a plain file on disk. Alongside the layers, the
package describes the on-disk headers of DIFI partitions and of the DIFF
and DISA containers, and computes how large a freshly formatted one is.

## Install

```
pip install ctrsave
```

For running the tests:

```
pip install "ctrsave[test]"
pytest
```

## Modules

- `ctrsave.storage`: `RandomAccessFile`, the abstract interface
  (`read(pos, size)` returns bytes, `write(pos, data)`, `len()`,
  `commit()`), and `DiskFile`, which wraps an open binary file and takes
  its length from the file's size when created. Also `divide_up` and
  `align_up`, the rounding helpers used by the layouts.
- `ctrsave.dual_file`: `DualFile(selector, pair)`, two images of equal
  length with a one-byte selector file saying which is live. Writes go
  to the inactive image; `commit()` flips the selector.
- `ctrsave.dpfs_level`: `DpfsLevel(selector, pair, block_len)`, the same
  idea per block, with one selector bit per block stored as 32-bit
  little-endian words, most significant bit first.
- `ctrsave.aes_ctr_file`: `AesCtrFile(data, key, ctr, repeat_ctr=False)`,
  transparent AES-128-CTR encryption over another file. Key and counter
  are 16 bytes each. With `repeat_ctr=True` the counter starts over every
  512 bytes, as the console's cartridge saves do. `commit()` does
  nothing at this layer; commit the file underneath.
- `ctrsave.layout`: `DifiPartitionParam` (block lengths, data length and
  whether IVFC level 4 lies outside the DPFS area; `align()` gives the
  largest block length), the records `DifiHeader`, `IvfcDescriptor` and
  `DpfsDescriptor` with `pack()`, `unpack()` and a `SIZE` attribute, and
  the functions `difi_calculate_size(param)` (returns
  `(descriptor_len, partition_len)`), `format_difi_descriptor(descriptor,
  param)` and `read_difi_descriptor(descriptor)`, which checks magics,
  versions and descriptor sizes and returns the three records.
- `ctrsave.containers`: the records `DiffHeader` and `DisaHeader` with
  `pack()`, `unpack()` and `SIZE`, and `diff_calculate_size(param)` and
  `disa_calculate_size(param_a, param_b=None)`.

Errors are raised as `ctrsave.errors.Save3dsError`. Its `kind` is a
member of `ErrorKind` (for example `ErrorKind.OUT_OF_BOUND`,
`ErrorKind.SIZE_MISMATCH` or `ErrorKind.MAGIC_MISMATCH`), whose
`message` is the human-readable text; `detail` holds extra text when
there is any. Reading or writing past the end of any layer raises
`OUT_OF_BOUND`; unpacking a record from too few bytes raises
`SIZE_MISMATCH`.

## Example

```python
from ctrsave.storage import DiskFile
from ctrsave.aes_ctr_file import AesCtrFile

with open("save.bin", "r+b") as raw:
    disk = DiskFile(raw)
    key = bytes(16)  # placeholder key
    plain = AesCtrFile(disk, key, bytes(16), repeat_ctr=False)
    header = plain.read(0, 0x200)
    plain.write(0x100, b"\x00" * 16)
    disk.commit()
```

Sizes of freshly formatted containers can be computed up front:

```python
from ctrsave.layout import DifiPartitionParam
from ctrsave.containers import diff_calculate_size, disa_calculate_size

param = DifiPartitionParam(
    dpfs_level2_block_len=128,
    dpfs_level3_block_len=4096,
    ivfc_level1_block_len=512,
    ivfc_level2_block_len=512,
    ivfc_level3_block_len=4096,
    ivfc_level4_block_len=4096,
    data_len=0x10000,
    external_ivfc_level4=True,
)
print(diff_calculate_size(param))
print(disa_calculate_size(param, param))
```

## What it does not do

- There is no IVFC hash layer, so data is never checked against SHA-256
  hashes, and no layer that assembles a whole DIFI partition from its
  DPFS and IVFC levels.
- DIFF and DISA containers cannot be opened, formatted or signed as a
  whole: the package gives their header records and sizes only.
- There is no file system on top: no directories, files, FAT, extdata,
  title databases or cartridge saves.
- There is no in-memory file class; implement `RandomAccessFile` over a
  `bytearray` if you need one.
- There is no command-line tool.