"""Chunked export of PGEN genotypes to NPY and HDF5.

The full matrix is written sample-major, shape (samples, variants), in
blocks of variants so only one block is held in memory at a time.
Progress is reported after every block.
"""

from pathlib import Path
from typing import Any, Callable

import h5py
import numpy as np

from .dataset_reader import Plink2Dataset
from .pgen_reader import GENOTYPE_DTYPE, MISSING_GENOTYPE


# Default number of variants per export block
DEFAULT_EXPORT_CHUNK = 1024


class GenotypeExporter:
    """Exporter for PGEN genotype matrices.

    Supports:
    - PGEN to NPY (memory-mapped output)
    - PGEN to HDF5, with variant and sample ids stored alongside
    - Progress callbacks and cancellation
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_EXPORT_CHUNK,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> None:
        """Initialize the exporter.

        Args:
            chunk_size: Number of variants to process per block.
            progress_callback: Optional callback function(current, total) for progress updates.
        """
        if chunk_size < 1:
            raise ValueError("Chunk size must be at least 1")
        self.chunk_size = chunk_size
        self.progress_callback = progress_callback
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation of the current operation."""
        self._cancelled = True

    def _report_progress(self, current: int, total: int) -> None:
        if self.progress_callback:
            self.progress_callback(current, total)

    @staticmethod
    def _check_not_empty(dataset: Plink2Dataset) -> None:
        if dataset.variant_count == 0 or dataset.sample_count == 0:
            raise ValueError("Cannot export an empty genotype matrix")

    def _blocks(self, dataset: Plink2Dataset):
        total = dataset.variant_count
        processed = 0
        while processed < total:
            if self._cancelled:
                raise RuntimeError("Export cancelled")
            block_end = min(processed + self.chunk_size, total)
            window = dataset.read_genotypes(processed, block_end, 0, dataset.sample_count)
            yield processed, block_end, window
            processed = block_end
            self._report_progress(processed, total)

    def to_npy(self, dataset: Plink2Dataset, output_path: str | Path) -> dict[str, Any]:
        """Write the genotype matrix to a .npy file.

        Returns:
            Dictionary with export statistics.

        Raises:
            ValueError: If the matrix is empty.
            RuntimeError: If the export is cancelled. The partial output is removed.
        """
        self._cancelled = False
        output_path = Path(output_path)
        self._check_not_empty(dataset)
        shape = (dataset.sample_count, dataset.variant_count)

        output_array = np.lib.format.open_memmap(
            str(output_path), mode="w+", dtype=GENOTYPE_DTYPE, shape=shape
        )
        try:
            for start, end, window in self._blocks(dataset):
                output_array[:, start:end] = window
            output_array.flush()
        except Exception:
            del output_array
            output_path.unlink(missing_ok=True)
            raise
        del output_array

        return {
            "input_path": str(dataset.genotypes.file_path),
            "output_path": str(output_path),
            "variants_exported": dataset.variant_count,
            "shape": shape,
            "dtype": np.dtype(GENOTYPE_DTYPE).name,
        }

    def to_hdf5(
        self,
        dataset: Plink2Dataset,
        output_path: str | Path,
        dataset_name: str = "genotypes",
        compression: str | None = "gzip",
        compression_opts: int | None = 4,
    ) -> dict[str, Any]:
        """Write the genotype matrix and ids to an HDF5 file.

        Args:
            dataset: Open PGEN fileset to export.
            output_path: Path for the output .h5 file.
            dataset_name: Name of the genotype dataset in the HDF5 file.
            compression: Compression algorithm (None, 'gzip', 'lzf').
            compression_opts: Compression level (for gzip: 0-9).

        Returns:
            Dictionary with export statistics.
        """
        self._cancelled = False
        output_path = Path(output_path)
        self._check_not_empty(dataset)
        shape = (dataset.sample_count, dataset.variant_count)

        try:
            with h5py.File(str(output_path), "w") as f:
                chunks = (shape[0], min(self.chunk_size, shape[1]))
                genotypes = f.create_dataset(
                    dataset_name,
                    shape=shape,
                    dtype=GENOTYPE_DTYPE,
                    chunks=chunks,
                    compression=compression,
                    compression_opts=compression_opts if compression == "gzip" else None,
                )
                genotypes.attrs["source_file"] = str(dataset.genotypes.file_path)
                genotypes.attrs["source_format"] = "pgen"
                genotypes.attrs["missing_value"] = MISSING_GENOTYPE
                genotypes.attrs["layout"] = "sample_major"

                for start, end, window in self._blocks(dataset):
                    genotypes[:, start:end] = window

                string_dtype = h5py.string_dtype(encoding="utf-8")
                f.create_dataset(
                    "variant_ids",
                    data=dataset.read_variant_ids(0, dataset.variant_count),
                    dtype=string_dtype,
                )
                f.create_dataset(
                    "sample_ids",
                    data=dataset.read_sample_ids(0, dataset.sample_count),
                    dtype=string_dtype,
                )
        except Exception:
            output_path.unlink(missing_ok=True)
            raise

        return {
            "input_path": str(dataset.genotypes.file_path),
            "output_path": str(output_path),
            "dataset_name": dataset_name,
            "variants_exported": dataset.variant_count,
            "shape": shape,
            "dtype": np.dtype(GENOTYPE_DTYPE).name,
            "compression": compression,
        }


def export_genotypes(
    dataset: Plink2Dataset,
    output_path: str | Path,
    chunk_size: int = DEFAULT_EXPORT_CHUNK,
    progress_callback: Callable[[int, int], None] | None = None,
) -> dict[str, Any]:
    """Convenience function choosing the output format from the suffix.

    ``.npy`` writes a bare array; ``.h5``/``.hdf5`` writes genotypes and ids.
    """
    exporter = GenotypeExporter(chunk_size=chunk_size, progress_callback=progress_callback)
    suffix = Path(output_path).suffix.lower()
    if suffix == ".npy":
        return exporter.to_npy(dataset, output_path)
    if suffix in (".h5", ".hdf5"):
        return exporter.to_hdf5(dataset, output_path)
    raise ValueError(f"Unsupported export format: {suffix}")
