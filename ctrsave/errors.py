"""Error kinds raised by the storage layers."""

from __future__ import annotations

import logging
from enum import Enum

_log = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Reasons an operation on save data can fail; each value is its message."""

    IO = "IO error from host file system"
    HASH_MISMATCH = "SHA256 mismatch, caused by either corrupted data or uninitialized data"
    OUT_OF_BOUND = "Out-of-bound access, caused by corrupted data"
    MAGIC_MISMATCH = "Magic mismatch, caused by corrupted data"
    SIZE_MISMATCH = "Size mismatch, caused by corrupted data"
    INVALID_VALUE = "Invalid value, caused by corrupted data"
    BROKEN_FAT = "Broken FAT,  caused by corrupted data"
    NO_SPACE = "Insufficient space for the operation"
    NOT_FOUND = "The requested file or directory is not found"
    ALREADY_EXIST = "The file or directory to create already exists"
    DELETING_ROOT = "Trying to delete the root directory"
    SIGNATURE_MISMATCH = "Signature mismatch, caused by corrupted data"
    MISSING_BOOT9 = "Missing boot9.bin"
    MISSING_SD = "Cannot open SD due to missing SD or movable.sed"
    MISSING_NAND = "Missing NAND"
    MISSING_GAME = "Missing game"
    MISSING_PRIV = "Missing private header"
    MISSING_KEY_Y2F = "Missing 0x2F key Y"
    MISSING_KEY_X19 = "Missing 0x19 key X"
    MISSING_KEY_X1A = "Missing 0x1A key X"
    MISSING_OTP = "Missing OTP"
    BROKEN_SD = "Corrupted SD"
    NOT_EMPTY = "Trying to delete a non-empty directory"
    UNSUPPORTED = "The operation is not supported on this archive"
    UNIQUE_ID_MISMATCH = "Extdata unique ID mismatch, caused by corrupted data"
    BROKEN_OTP = "Corrupted OTP"
    BUSY = "The file or directory is currently used by other program"
    BROKEN_GAME = "Provided game file is broken"

    @property
    def message(self) -> str:
        return self.value


class Save3dsError(Exception):
    """An error of a given kind, with optional detail text."""

    def __init__(self, kind: ErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        text = kind.message if detail is None else f"{kind.message}: {detail}"
        super().__init__(text)
        if kind is ErrorKind.IO:
            _log.error("Host IO error: %s", detail)
        else:
            _log.info("Error thrown: %s", kind.name)