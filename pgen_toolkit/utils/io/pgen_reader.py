"""Windowed genotype reader for PGEN files.

This module reads rectangular windows of genotype calls out of a PGEN
matrix without loading the whole file. Calls are stored variant-major,
sample-minor, and each window is returned sample-major:
``window[sample - s0][variant - v0]``.

Decoding:
- Raw 2-bit code 0, 1, 2 -> genotype 0, 1, 2
- Raw 2-bit code 3 -> MISSING_GENOTYPE (-1)

Every read seeks before reading, so nothing depends on where an earlier
call left the file position. One reader owns one handle; use one reader
per thread.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator

import numpy as np

from .errors import GenotypeIOError, GenotypeRangeError
from .pgen_header import GenotypePacking, MatrixHeader, read_pgen_header


logger = logging.getLogger(__name__)

MISSING_GENOTYPE = -1
MISSING_CODE = 0x03
GENOTYPE_DTYPE = np.int8
# Bit offsets of the four calls in a 2-bit packed byte, lowest first.
PACKED_SHIFTS = np.array([0, 2, 4, 6], dtype=np.uint8)

DEFAULT_VARIANT_CHUNK = 32
DEFAULT_SAMPLE_CHUNK = 64


def decode_genotypes(codes: np.ndarray) -> np.ndarray:
    """Map raw 2-bit codes onto genotype values.

    Args:
        codes: Array of raw codes. Only the low 2 bits are used.

    Returns:
        Array of int8 values in {0, 1, 2, MISSING_GENOTYPE}.
    """
    values = (np.asarray(codes, dtype=np.uint8) & MISSING_CODE).view(GENOTYPE_DTYPE)
    values[values == MISSING_CODE] = MISSING_GENOTYPE
    return values


def check_range(start: int, end: int, count: int, label: str) -> None:
    """Validate a half-open ``[start, end)`` range against ``count``.

    Raises:
        GenotypeRangeError: Unless ``0 <= start < end <= count``.
    """
    for value in (start, end):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise GenotypeRangeError(f"{label} bounds must be integers, got {value!r}")
    if not 0 <= start < end <= count:
        raise GenotypeRangeError(
            f"Requested {label} range [{start}, {end}) is out of range for {count} {label}s"
        )


class PgenReader:
    """Reader for PGEN genotype matrices.

    Supports:
    - Header validation on open (magic, storage mode, counts)
    - Random access to arbitrary variant x sample windows
    - Tiled iteration over the whole matrix

    Assumptions:
    - Storage mode 0x10 with a fixed 11-byte header
    - Calls stored variant-major, using the packing passed at construction
    """

    def __init__(
        self,
        file_path: str | Path,
        packing: GenotypePacking | str = GenotypePacking.BYTE,
    ) -> None:
        """Open the file and validate its header.

        Args:
            file_path: Path to the .pgen file.
            packing: Data layout after the header, ``"byte"`` or ``"2bit"``.

        Raises:
            GenotypeIOError: The file cannot be opened or read.
            PgenFormatError: The header is invalid.
            UnsupportedModeError: The storage mode is not supported.
        """
        self.file_path = Path(file_path)
        self.packing = GenotypePacking(packing)
        try:
            self._file = open(self.file_path, "rb")
        except OSError as exc:
            raise GenotypeIOError(f"Cannot open PGEN file {self.file_path}: {exc}") from exc

        try:
            self.header: MatrixHeader = read_pgen_header(self._file)
        except Exception:
            self._file.close()
            raise

        expected = self.header.expected_file_size(self.packing)
        if self.header.file_size != expected:
            logger.warning(
                "%s: file is %d bytes, header and %s packing imply %d",
                self.file_path,
                self.header.file_size,
                self.packing.value,
                expected,
            )

    @property
    def variant_count(self) -> int:
        return self.header.variant_count

    @property
    def sample_count(self) -> int:
        return self.header.sample_count

    @property
    def file_size(self) -> int:
        return self.header.file_size

    @property
    def closed(self) -> bool:
        return self._file.closed

    def get_metadata(self) -> dict[str, Any]:
        """Return header facts plus the file path."""
        metadata = {"file_path": str(self.file_path)}
        metadata.update(self.header.to_metadata(self.packing))
        return metadata

    def _read_bytes(self, offset: int, size: int) -> np.ndarray:
        if self._file.closed:
            raise GenotypeIOError(f"Reader for {self.file_path} is closed")
        try:
            self._file.seek(offset)
            data = self._file.read(size)
        except OSError as exc:
            raise GenotypeIOError(f"Read failed at offset {offset}: {exc}") from exc
        if len(data) < size:
            raise GenotypeIOError(
                f"Short read at offset {offset}: expected {size} bytes, got {len(data)}"
            )
        return np.frombuffer(data, dtype=np.uint8)

    def read_window(
        self, start_variant: int, end_variant: int, start_sample: int, end_sample: int
    ) -> np.ndarray:
        """Read the genotype window ``[start_variant, end_variant) x [start_sample, end_sample)``.

        Args:
            start_variant: First variant index (inclusive).
            end_variant: Last variant index (exclusive).
            start_sample: First sample index (inclusive).
            end_sample: Last sample index (exclusive).

        Returns:
            int8 array of shape (end_sample - start_sample, end_variant - start_variant).

        Raises:
            GenotypeRangeError: A range is empty or exceeds the header counts.
            GenotypeIOError: The file holds fewer bytes than the window needs.
        """
        check_range(start_variant, end_variant, self.variant_count, "variant")
        check_range(start_sample, end_sample, self.sample_count, "sample")

        variants = end_variant - start_variant
        samples = end_sample - start_sample
        row_length = self.sample_count

        if start_sample == 0 and end_sample == row_length:
            # Whole rows are contiguous on disk.
            codes = self._read_codes(start_variant * row_length, variants * row_length)
            codes = codes.reshape(variants, samples)
        else:
            codes = np.empty((variants, samples), dtype=np.uint8)
            for row, variant in enumerate(range(start_variant, end_variant)):
                codes[row] = self._read_codes(variant * row_length + start_sample, samples)

        return np.ascontiguousarray(decode_genotypes(codes).T)

    def _read_codes(self, first: int, count: int) -> np.ndarray:
        """Return the raw codes of ``count`` consecutive calls from element ``first``."""
        data_offset = self.header.data_offset
        if self.packing is GenotypePacking.BYTE:
            return self._read_bytes(data_offset + first, count)

        per_byte = self.packing.calls_per_byte
        first_byte = first // per_byte
        last_byte = (first + count - 1) // per_byte
        packed = self._read_bytes(data_offset + first_byte, last_byte - first_byte + 1)
        unpacked = (packed[:, None] >> PACKED_SHIFTS) & MISSING_CODE
        skip = first - first_byte * per_byte
        return unpacked.reshape(-1)[skip : skip + count]

    def read_variant(self, index: int) -> np.ndarray:
        """Return the genotypes of one variant across all samples."""
        return self.read_window(index, index + 1, 0, self.sample_count)[:, 0]

    def iter_windows(
        self,
        variant_chunk: int = DEFAULT_VARIANT_CHUNK,
        sample_chunk: int = DEFAULT_SAMPLE_CHUNK,
    ) -> Iterator[tuple[int, int, int, int, np.ndarray]]:
        """Generator over tiles covering the whole matrix.

        Tiles are produced variant-chunk by variant-chunk; the last tile in
        each direction is clipped to the matrix edge.

        Yields:
            Tuples of (start_variant, end_variant, start_sample, end_sample, window).
        """
        if variant_chunk < 1 or sample_chunk < 1:
            raise ValueError("Chunk sizes must be at least 1")

        for v0 in range(0, self.variant_count, variant_chunk):
            v1 = min(v0 + variant_chunk, self.variant_count)
            for s0 in range(0, self.sample_count, sample_chunk):
                s1 = min(s0 + sample_chunk, self.sample_count)
                yield v0, v1, s0, s1, self.read_window(v0, v1, s0, s1)

    def __len__(self) -> int:
        """Return the number of variants."""
        return self.variant_count

    def close(self) -> None:
        """Close the underlying file. Safe to call more than once."""
        if not self._file.closed:
            self._file.close()
            logger.debug("Closed %s", self.file_path)

    def __enter__(self) -> "PgenReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
