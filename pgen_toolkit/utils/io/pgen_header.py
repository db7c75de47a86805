"""PGEN header parsing.

PGEN Header Layout (fixed, 11 bytes):
- Bytes 0-1: magic number, always 0x6C 0x1B
- Byte 2: storage mode, 0x10 is the only mode this package decodes
- Bytes 3-6: uint32 little-endian - number of variants
- Bytes 7-10: uint32 little-endian - number of samples
- Data: genotype calls, starting at byte 11

Format Notes:
- The mode byte is always checked. A file carrying any other mode (the
  compressed or variable-width record layouts of the wider PLINK 2 family)
  is rejected instead of being decoded as garbage.
- The data size depends on the packing model chosen by the caller; see
  ``GenotypePacking``.
"""

from __future__ import annotations

import enum
import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from .errors import GenotypeIOError, PgenFormatError, UnsupportedModeError


logger = logging.getLogger(__name__)

PGEN_MAGIC = b"\x6c\x1b"
PGEN_PACKED_MODE = 0x10
# magic (2) + mode (1) + variant count (4) + sample count (4)
PGEN_HEADER_SIZE = 11

_COUNTS = struct.Struct("<II")


class StorageMode(enum.Enum):
    """Storage modes recognised in the header mode byte."""

    PACKED_2BIT = PGEN_PACKED_MODE
    UNSUPPORTED = -1

    @classmethod
    def from_byte(cls, value: int) -> "StorageMode":
        if value == PGEN_PACKED_MODE:
            return cls.PACKED_2BIT
        return cls.UNSUPPORTED


class GenotypePacking(str, enum.Enum):
    """How genotype calls are laid out after the header.

    BYTE: one call per byte, only the low 2 bits are significant.
    TWO_BIT: four calls per byte, lowest bits first, with no padding
    between variants.

    In both models call ``(v, s)`` has element index ``v * sample_count + s``.
    """

    BYTE = "byte"
    TWO_BIT = "2bit"

    @property
    def calls_per_byte(self) -> int:
        return 1 if self is GenotypePacking.BYTE else 4

    def data_size(self, element_count: int) -> int:
        """Number of data bytes needed to hold ``element_count`` calls."""
        per_byte = self.calls_per_byte
        return (element_count + per_byte - 1) // per_byte


@dataclass(frozen=True)
class MatrixHeader:
    """Parsed PGEN header. Immutable once read."""

    magic_valid: bool
    storage_mode: StorageMode
    variant_count: int
    sample_count: int
    data_offset: int
    file_size: int

    @property
    def shape(self) -> tuple[int, int]:
        """Logical (variants, samples) shape of the matrix."""
        return (self.variant_count, self.sample_count)

    def expected_data_size(self, packing: GenotypePacking) -> int:
        return packing.data_size(self.variant_count * self.sample_count)

    def expected_file_size(self, packing: GenotypePacking) -> int:
        return self.data_offset + self.expected_data_size(packing)

    def to_metadata(self, packing: GenotypePacking = GenotypePacking.BYTE) -> dict[str, Any]:
        """Return header facts as a flat dictionary for display."""
        expected = self.expected_file_size(packing)
        return {
            "format": "pgen",
            "storage_mode": f"0x{PGEN_PACKED_MODE:02x}",
            "packing": packing.value,
            "variant_count": self.variant_count,
            "sample_count": self.sample_count,
            "shape": self.shape,
            "data_offset": self.data_offset,
            "file_size_bytes": self.file_size,
            "file_size_mb": round(self.file_size / (1024 * 1024), 2),
            "expected_size_bytes": expected,
            "size_match": self.file_size == expected,
        }


def _read_exact(handle: BinaryIO, size: int, what: str) -> bytes:
    data = handle.read(size)
    if len(data) < size:
        raise PgenFormatError(
            f"Invalid PGEN file: truncated {what} ({len(data)} of {size} bytes)"
        )
    return data


def read_pgen_header(handle: BinaryIO) -> MatrixHeader:
    """Parse and validate the header from an open binary handle.

    On success the handle is left positioned at the first genotype byte.

    Raises:
        PgenFormatError: Magic bytes are wrong or the header is truncated.
        UnsupportedModeError: The storage mode byte is not 0x10.
        GenotypeIOError: Seeking in the handle failed.
    """
    try:
        handle.seek(0)
    except OSError as exc:
        raise GenotypeIOError(f"Cannot seek to PGEN header: {exc}") from exc

    magic = _read_exact(handle, 2, "magic number")
    if magic != PGEN_MAGIC:
        raise PgenFormatError(f"Invalid PGEN file: bad magic number {magic.hex(' ')}")

    mode = _read_exact(handle, 1, "storage mode")[0]
    if StorageMode.from_byte(mode) is StorageMode.UNSUPPORTED:
        raise UnsupportedModeError(mode)

    variant_count, sample_count = _COUNTS.unpack(_read_exact(handle, _COUNTS.size, "counts"))

    try:
        file_size = handle.seek(0, os.SEEK_END)
        handle.seek(PGEN_HEADER_SIZE)
    except OSError as exc:
        raise GenotypeIOError(f"Cannot seek in PGEN file: {exc}") from exc

    logger.debug(
        "PGEN header: %d variants, %d samples, %d bytes", variant_count, sample_count, file_size
    )
    return MatrixHeader(
        magic_valid=True,
        storage_mode=StorageMode.PACKED_2BIT,
        variant_count=variant_count,
        sample_count=sample_count,
        data_offset=PGEN_HEADER_SIZE,
        file_size=file_size,
    )


def read_pgen_header_file(file_path: str | Path) -> MatrixHeader:
    """Open ``file_path``, parse its header and close it again."""
    try:
        f = open(file_path, "rb")
    except OSError as exc:
        raise GenotypeIOError(f"Cannot open PGEN file {file_path}: {exc}") from exc
    with f:
        return read_pgen_header(f)
