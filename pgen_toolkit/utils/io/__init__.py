"""I/O utilities for reading PGEN genotype filesets."""

from .errors import (
    GenotypeIOError,
    GenotypeRangeError,
    MetadataFormatError,
    PgenError,
    PgenFormatError,
    UnsupportedModeError,
)
from .pgen_header import (
    PGEN_HEADER_SIZE,
    GenotypePacking,
    MatrixHeader,
    StorageMode,
    read_pgen_header,
    read_pgen_header_file,
)
from .pgen_reader import MISSING_GENOTYPE, PgenReader, decode_genotypes
from .line_indexer import LineIndexer
from .dataset_reader import GenotypeChunk, Plink2Dataset, fileset_paths
from .exporter import GenotypeExporter, export_genotypes

__all__ = [
    "PgenError",
    "PgenFormatError",
    "MetadataFormatError",
    "UnsupportedModeError",
    "GenotypeRangeError",
    "GenotypeIOError",
    "PGEN_HEADER_SIZE",
    "GenotypePacking",
    "MatrixHeader",
    "StorageMode",
    "read_pgen_header",
    "read_pgen_header_file",
    "MISSING_GENOTYPE",
    "PgenReader",
    "decode_genotypes",
    "LineIndexer",
    "GenotypeChunk",
    "Plink2Dataset",
    "fileset_paths",
    "GenotypeExporter",
    "export_genotypes",
]
