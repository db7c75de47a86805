"""Validation helpers for PGEN filesets.

This module checks a .pgen file and, when given, its .pvar/.psam companions
without raising on the first problem. Every check is recorded in a
``FilesetReport`` so that all issues with a fileset surface at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, NamedTuple

import numpy as np

from .io import LineIndexer, MatrixHeader, PgenError, PgenReader, read_pgen_header_file
from .io.dataset_reader import fileset_paths, open_sample_index, open_variant_index
from .io.pgen_reader import MISSING_GENOTYPE
from .settings import ReaderSettings


FAILING_SEVERITIES = ("error", "fatal")


class CheckResult(NamedTuple):
    check: str
    result: str
    details: str
    severity: str


@dataclass
class FilesetReport:
    """Outcome of every check run against one fileset."""

    entries: list[CheckResult] = field(default_factory=list)

    def add(self, check: str, result: str, details: str, severity: str) -> None:
        self.entries.append(CheckResult(check, result, details, severity))

    @property
    def failures(self) -> list[CheckResult]:
        return [entry for entry in self.entries if entry.severity in FAILING_SEVERITIES]

    @property
    def is_valid(self) -> bool:
        return not self.failures


class FilesetValidator:
    """Validate PGEN filesets with progress reporting.

    Metadata files are read with the same header line counts, delimiter and
    id columns as ``Plink2Dataset`` uses for the given settings.
    """

    def __init__(
        self,
        settings: ReaderSettings | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> None:
        self.settings = settings or ReaderSettings()
        self.packing = self.settings.genotype_packing
        self._progress_callback = progress_callback

    def validate_prefix(self, prefix: str | Path) -> FilesetReport:
        """Validate ``<prefix>.pgen`` together with its .pvar and .psam."""
        return self.validate(*fileset_paths(prefix))

    def validate(
        self,
        pgen_path: str | Path,
        pvar_path: str | Path | None = None,
        psam_path: str | Path | None = None,
    ) -> FilesetReport:
        report = FilesetReport()
        steps = 4
        current_step = 0

        def step() -> None:
            nonlocal current_step
            current_step += 1
            if self._progress_callback:
                self._progress_callback(current_step, steps)

        try:
            header = self._validate_header(Path(pgen_path), report)
            step()
            if header is not None:
                self._validate_sample_decode(Path(pgen_path), header, report)
            step()
            if header is not None and pvar_path is not None:
                self._validate_metadata(
                    open_variant_index, Path(pvar_path), header.variant_count, "Variant", report
                )
            step()
            if header is not None and psam_path is not None:
                self._validate_metadata(
                    open_sample_index, Path(psam_path), header.sample_count, "Sample", report
                )
        finally:
            if self._progress_callback:
                self._progress_callback(steps, steps)

        return report

    def _validate_header(self, path: Path, report: FilesetReport) -> MatrixHeader | None:
        if not path.exists():
            report.add("File exists", "Missing", f"File not found: {path}", "fatal")
            return None

        try:
            header = read_pgen_header_file(path)
        except PgenError as exc:
            report.add("Header", "Invalid", str(exc), "fatal")
            return None

        report.add("Magic number", "OK", "6c 1b", "ok")
        report.add("Storage mode", "OK", "0x10", "ok")
        report.add(
            "Counts",
            "OK",
            f"{header.variant_count} variants, {header.sample_count} samples",
            "ok",
        )
        if header.variant_count == 0 or header.sample_count == 0:
            report.add("Matrix size", "Empty", "Header declares an empty matrix", "warning")

        expected = header.expected_file_size(self.packing)
        if header.file_size < expected:
            report.add(
                "Header vs size",
                "Truncated",
                f"expected {expected}, got {header.file_size}",
                "error",
            )
        elif header.file_size > expected:
            report.add(
                "Header vs size",
                "Mismatch",
                f"expected {expected}, got {header.file_size} ({self.packing.value} packing)",
                "warning",
            )
        else:
            report.add("Header vs size", "OK", "Matches expected layout", "ok")

        return header

    def _validate_sample_decode(
        self, path: Path, header: MatrixHeader, report: FilesetReport
    ) -> None:
        if header.variant_count == 0 or header.sample_count == 0:
            return
        try:
            with PgenReader(path, packing=self.packing) as reader:
                calls = reader.read_variant(0)
        except PgenError as exc:
            report.add("Sample decode", "Failed", str(exc), "error")
            return

        missing = int(np.count_nonzero(calls == MISSING_GENOTYPE))
        if missing == len(calls):
            report.add("Sample decode", "Warning", "First variant is all missing", "warning")
        else:
            report.add(
                "Sample decode", "OK", f"{missing}/{len(calls)} missing in first variant", "ok"
            )

    def _validate_metadata(
        self,
        open_index: Callable[..., LineIndexer],
        path: Path,
        declared: int,
        label: str,
        report: FilesetReport,
    ) -> None:
        check = f"{label} records"
        try:
            with open_index(path, self.settings, declared) as indexer:
                found = indexer.indexed_count
                if found < declared:
                    report.add(
                        check, "Missing", f"header declares {declared}, file holds {found}", "error"
                    )
                    return
                if found > declared:
                    report.add(
                        check, "Mismatch", f"header declares {declared}, file holds {found}", "warning"
                    )
                else:
                    report.add(check, "OK", str(found), "ok")
                if declared:
                    indexer.read_field_range(0, declared)
                    report.add(f"{label} ids", "OK", f"field {indexer.field_index} present", "ok")
        except PgenError as exc:
            report.add(f"{label} ids", "Invalid", str(exc), "error")
