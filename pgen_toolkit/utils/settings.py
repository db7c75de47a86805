"""Reader configuration.

Settings are plain values with sensible defaults. They can be overridden
from a JSON file so that scripted runs and the CLI share one configuration.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .io.pgen_header import GenotypePacking


@dataclass
class ReaderSettings:
    """Options shared by the dataset reader, exporter and CLI."""

    packing: str = "byte"
    variant_chunk_size: int = 32
    sample_chunk_size: int = 64
    pvar_header_lines: int = 1
    psam_header_lines: int = 1
    delimiter: str = "\t"
    variant_id_field: int = 1
    sample_id_field: int = 0
    export_chunk_size: int = 1024

    def __post_init__(self) -> None:
        if self.packing not in ("byte", "2bit"):
            raise ValueError(f"Unknown packing: {self.packing!r}")
        for name in ("variant_chunk_size", "sample_chunk_size", "export_chunk_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        for name in ("pvar_header_lines", "psam_header_lines"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def genotype_packing(self) -> GenotypePacking:
        from .io.pgen_header import GenotypePacking

        return GenotypePacking(self.packing)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "ReaderSettings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> "ReaderSettings":
        """Load settings from a JSON object stored at ``path``."""
        with open(path, "r", encoding="utf-8") as f:
            values = json.load(f)
        if not isinstance(values, dict):
            raise ValueError(f"Settings file must hold a JSON object: {path}")
        return cls.from_dict(values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
