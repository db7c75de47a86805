"""Pytest fixtures for PGEN Toolkit tests."""

import struct
from pathlib import Path

import numpy as np
import pytest


PGEN_MAGIC = b"\x6c\x1b"


def pack_calls(calls: np.ndarray, packing: str = "byte") -> bytes:
    """Encode a (variants, samples) array of raw codes as PGEN data bytes."""
    flat = np.asarray(calls, dtype=np.uint8).ravel()
    if packing == "byte":
        return flat.tobytes()
    padded = np.zeros(-(-flat.size // 4) * 4, dtype=np.uint8)
    padded[: flat.size] = flat
    quads = padded.reshape(-1, 4)
    packed = quads[:, 0] | quads[:, 1] << 2 | quads[:, 2] << 4 | quads[:, 3] << 6
    return packed.astype(np.uint8).tobytes()


def create_pgen_file(
    file_path: Path,
    calls: np.ndarray,
    packing: str = "byte",
    magic: bytes = PGEN_MAGIC,
    mode: int = 0x10,
) -> None:
    """Helper to create a PGEN file from a (variants, samples) code array."""
    variant_count, sample_count = calls.shape
    with open(file_path, "wb") as f:
        f.write(magic)
        f.write(bytes([mode]))
        f.write(struct.pack("<II", variant_count, sample_count))
        f.write(pack_calls(calls, packing))


def create_pvar_file(file_path: Path, variant_ids: list[str]) -> None:
    lines = ["#CHROM\tID\tPOS\tREF\tALT"]
    for i, variant_id in enumerate(variant_ids):
        lines.append(f"1\t{variant_id}\t{1000 + i}\tA\tG")
    file_path.write_text("\n".join(lines) + "\n")


def create_psam_file(file_path: Path, sample_ids: list[str]) -> None:
    lines = ["#IID\tSEX"]
    for i, sample_id in enumerate(sample_ids):
        lines.append(f"{sample_id}\t{1 + i % 2}")
    file_path.write_text("\n".join(lines) + "\n")


@pytest.fixture
def calls() -> np.ndarray:
    """Raw codes for a 10 variant x 7 sample matrix, all four codes present."""
    rng = np.random.default_rng(42)
    codes = rng.integers(0, 4, size=(10, 7), dtype=np.uint8)
    codes[0, 0] = 3
    return codes


@pytest.fixture
def fileset(tmp_path: Path, calls: np.ndarray) -> Path:
    """Write a byte-packed fileset and return its prefix."""
    prefix = tmp_path / "plink2"
    variant_count, sample_count = calls.shape
    create_pgen_file(prefix.with_suffix(".pgen"), calls)
    create_pvar_file(prefix.with_suffix(".pvar"), [f"rs{i}" for i in range(variant_count)])
    create_psam_file(prefix.with_suffix(".psam"), [f"S{i}" for i in range(sample_count)])
    return prefix


def expected_window(calls: np.ndarray) -> np.ndarray:
    """Decode raw codes the way the reader should, sample-major."""
    values = calls.astype(np.int8)
    values[calls == 3] = -1
    return values.T
