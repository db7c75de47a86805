"""Combined reader for a PGEN fileset (.pgen + .pvar + .psam).

The three files are opened together and stay open for the lifetime of the
dataset. Metadata reads are bounded by the counts in the PGEN header, so a
variant or sample id can only be requested for a column or row that exists
in the genotype matrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import numpy as np

from ..settings import ReaderSettings
from .line_indexer import LineIndexer
from .pgen_reader import PgenReader


logger = logging.getLogger(__name__)


def fileset_paths(prefix: str | Path) -> tuple[Path, Path, Path]:
    """Return the .pgen, .pvar and .psam paths for ``prefix``.

    A trailing ``.pgen``, ``.pvar`` or ``.psam`` on the prefix is ignored, so
    any member of the fileset can be passed in its place.
    """
    prefix = str(prefix)
    for suffix in (".pgen", ".pvar", ".psam"):
        if prefix.endswith(suffix):
            prefix = prefix[: -len(suffix)]
            break
    return Path(f"{prefix}.pgen"), Path(f"{prefix}.pvar"), Path(f"{prefix}.psam")


def open_variant_index(
    pvar_path: str | Path, settings: ReaderSettings, declared_count: int | None = None
) -> LineIndexer:
    return LineIndexer(
        pvar_path,
        field_index=settings.variant_id_field,
        declared_count=declared_count,
        header_lines=settings.pvar_header_lines,
        delimiter=settings.delimiter,
    )


def open_sample_index(
    psam_path: str | Path, settings: ReaderSettings, declared_count: int | None = None
) -> LineIndexer:
    return LineIndexer(
        psam_path,
        field_index=settings.sample_id_field,
        declared_count=declared_count,
        header_lines=settings.psam_header_lines,
        delimiter=settings.delimiter,
    )


@dataclass
class GenotypeChunk:
    """One tile of the genotype matrix with its identifiers."""

    start_variant: int
    end_variant: int
    start_sample: int
    end_sample: int
    genotypes: np.ndarray
    variant_ids: list[str]
    sample_ids: list[str]

    @property
    def shape(self) -> tuple[int, int]:
        return self.genotypes.shape


class Plink2Dataset:
    """Reader for a PGEN genotype matrix and its variant/sample files."""

    def __init__(
        self,
        pgen_path: str | Path,
        pvar_path: str | Path,
        psam_path: str | Path,
        settings: ReaderSettings | None = None,
    ) -> None:
        self.settings = settings or ReaderSettings()
        self._opened: list[Any] = []
        try:
            self.genotypes = self._track(
                PgenReader(pgen_path, packing=self.settings.genotype_packing)
            )
            self.variants = self._track(
                open_variant_index(pvar_path, self.settings, self.genotypes.variant_count)
            )
            self.samples = self._track(
                open_sample_index(psam_path, self.settings, self.genotypes.sample_count)
            )
        except Exception:
            self.close()
            raise

        logger.debug(
            "Opened %s: %d variants x %d samples",
            self.genotypes.file_path,
            self.variant_count,
            self.sample_count,
        )

    def _track(self, reader: Any) -> Any:
        self._opened.append(reader)
        return reader

    @classmethod
    def from_prefix(
        cls, prefix: str | Path, settings: ReaderSettings | None = None
    ) -> "Plink2Dataset":
        """Open ``<prefix>.pgen``, ``<prefix>.pvar`` and ``<prefix>.psam``."""
        return cls(*fileset_paths(prefix), settings=settings)

    @property
    def variant_count(self) -> int:
        return self.genotypes.variant_count

    @property
    def sample_count(self) -> int:
        return self.genotypes.sample_count

    @property
    def file_size(self) -> int:
        return self.genotypes.file_size

    def read_genotypes(
        self, start_variant: int, end_variant: int, start_sample: int, end_sample: int
    ) -> np.ndarray:
        """Read a sample-major genotype window. See ``PgenReader.read_window``."""
        return self.genotypes.read_window(start_variant, end_variant, start_sample, end_sample)

    def read_variant_ids(self, start_variant: int, end_variant: int) -> list[str]:
        return self.variants.read_field_range(start_variant, end_variant)

    def read_sample_ids(self, start_sample: int, end_sample: int) -> list[str]:
        return self.samples.read_field_range(start_sample, end_sample)

    def iter_chunks(
        self,
        variant_chunk: int | None = None,
        sample_chunk: int | None = None,
    ) -> Iterator[GenotypeChunk]:
        """Generator over tiles of the matrix together with their ids.

        Args:
            variant_chunk: Variants per tile (defaults to the settings value).
            sample_chunk: Samples per tile (defaults to the settings value).
        """
        if variant_chunk is None:
            variant_chunk = self.settings.variant_chunk_size
        if sample_chunk is None:
            sample_chunk = self.settings.sample_chunk_size

        variant_ids: list[str] = []
        current_block = -1
        for v0, v1, s0, s1, window in self.genotypes.iter_windows(variant_chunk, sample_chunk):
            if v0 != current_block:
                variant_ids = self.read_variant_ids(v0, v1)
                current_block = v0
            yield GenotypeChunk(
                start_variant=v0,
                end_variant=v1,
                start_sample=s0,
                end_sample=s1,
                genotypes=window,
                variant_ids=list(variant_ids),
                sample_ids=self.read_sample_ids(s0, s1),
            )

    def get_metadata(self) -> dict[str, Any]:
        metadata = self.genotypes.get_metadata()
        metadata["pvar_path"] = str(self.variants.file_path)
        metadata["psam_path"] = str(self.samples.file_path)
        metadata["pvar_records"] = self.variants.indexed_count
        metadata["psam_records"] = self.samples.indexed_count
        metadata["pvar_columns"] = self.variants.columns
        metadata["psam_columns"] = self.samples.columns
        return metadata

    def close(self) -> None:
        """Close every open file. Safe to call more than once."""
        while self._opened:
            self._opened.pop().close()

    def __enter__(self) -> "Plink2Dataset":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
