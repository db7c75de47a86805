"""Random access to one field of a line-oriented metadata file.

The .pvar and .psam companions of a PGEN file are tab-delimited text with a
header line followed by one record per line. Record ``i`` describes variant
(or sample) ``i`` of the matrix and always sits on line ``header_lines + i``.
A blank line between records is a malformed record; blank lines at the end
of the file are ignored.

The byte offset of every record is collected once when the file is opened,
so each ``read_field_range`` call seeks straight to its first record instead
of rescanning the file from the top.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np

from .errors import GenotypeIOError, MetadataFormatError
from .pgen_reader import check_range


logger = logging.getLogger(__name__)

PVAR_ID_FIELD = 1
PSAM_ID_FIELD = 0


class LineIndexer:
    """Index and read one delimited field per record of a text file.

    Supports:
    - Record offset index built on open
    - Range reads of a single field
    - Bounds checked against a count declared elsewhere (the PGEN header)
    """

    def __init__(
        self,
        file_path: str | Path,
        field_index: int,
        declared_count: int | None = None,
        header_lines: int = 1,
        delimiter: str = "\t",
        encoding: str = "utf-8",
    ) -> None:
        """Open the file and index its records.

        Args:
            file_path: Path to the .pvar or .psam file.
            field_index: Zero-based field to extract from each record.
            declared_count: Number of records promised by the PGEN header.
                Requests are bounded by this value when given, otherwise by
                the number of records found in the file.
            header_lines: Number of leading lines to skip.
            delimiter: Field separator.
            encoding: Text encoding of the file.
        """
        if field_index < 0:
            raise ValueError(f"field_index must be non-negative, got {field_index}")
        self.file_path = Path(file_path)
        self.field_index = field_index
        self.header_lines = header_lines
        self.delimiter = delimiter
        self.encoding = encoding
        self._header: list[str] = []

        try:
            self._file = open(self.file_path, "rb")
        except OSError as exc:
            raise GenotypeIOError(f"Cannot open metadata file {self.file_path}: {exc}") from exc

        try:
            self._offsets = self._build_index()
        except Exception:
            self._file.close()
            raise

        self.indexed_count = len(self._offsets)
        self.record_count = self.indexed_count if declared_count is None else declared_count
        if declared_count is not None and declared_count != self.indexed_count:
            logger.warning(
                "%s: header declares %d records, file holds %d",
                self.file_path,
                declared_count,
                self.indexed_count,
            )

    def _build_index(self) -> np.ndarray:
        offsets: list[int] = []
        last_record = 0
        position = 0
        for line_number, line in enumerate(self._file):
            if line_number < self.header_lines:
                if line_number == self.header_lines - 1:
                    self._header = self._split(line)
            else:
                offsets.append(position)
                if line.strip(b"\r\n"):
                    last_record = len(offsets)
            position += len(line)

        # Blank lines only count as records when something follows them.
        del offsets[last_record:]
        logger.debug("Indexed %d records in %s", len(offsets), self.file_path)
        return np.asarray(offsets, dtype=np.int64)

    def _split(self, line: bytes) -> list[str]:
        try:
            text = line.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise MetadataFormatError(f"{self.file_path}: undecodable line: {exc}") from exc
        return text.rstrip("\r\n").split(self.delimiter)

    @property
    def columns(self) -> list[str]:
        """Column names from the last header line, leading '#' removed."""
        if not self._header:
            return []
        columns = list(self._header)
        columns[0] = columns[0].lstrip("#")
        return columns

    def _extract(self, line: bytes, record: int) -> str:
        fields = self._split(line)
        if len(fields) < 2 or len(fields) <= self.field_index:
            raise MetadataFormatError(
                f"{self.file_path}: record {record} has no field {self.field_index} "
                f"(found {len(fields)} '{self.delimiter!r}'-delimited fields)"
            )
        return fields[self.field_index]

    def read_field_range(self, start: int, end: int) -> list[str]:
        """Read the selected field of records ``[start, end)``.

        Raises:
            GenotypeRangeError: The range is empty or exceeds ``record_count``.
            MetadataFormatError: A record lacks the field, or the file has
                fewer records than declared.
            GenotypeIOError: The reader is closed or the file cannot be read.
        """
        check_range(start, end, self.record_count, "record")
        if end > self.indexed_count:
            raise MetadataFormatError(
                f"{self.file_path}: record {self.indexed_count} requested but the file "
                f"holds only {self.indexed_count} records"
            )
        if self._file.closed:
            raise GenotypeIOError(f"Reader for {self.file_path} is closed")

        values: list[str] = []
        try:
            self._file.seek(int(self._offsets[start]))
            record = start
            while record < end:
                line = self._file.readline()
                if not line:
                    raise MetadataFormatError(f"{self.file_path}: unexpected end of file")
                values.append(self._extract(line, record))
                record += 1
        except OSError as exc:
            raise GenotypeIOError(f"Read failed in {self.file_path}: {exc}") from exc
        return values

    def read_field(self, index: int) -> str:
        """Read the selected field of a single record."""
        return self.read_field_range(index, index + 1)[0]

    def get_metadata(self) -> dict[str, Any]:
        return {
            "file_path": str(self.file_path),
            "columns": self.columns,
            "field_index": self.field_index,
            "record_count": self.record_count,
            "indexed_count": self.indexed_count,
        }

    def __len__(self) -> int:
        return self.record_count

    def close(self) -> None:
        """Close the underlying file. Safe to call more than once."""
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> "LineIndexer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
