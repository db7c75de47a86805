"""Command-line interface for PGEN Toolkit.

This module provides headless access to the fileset readers.

Usage:
    python -m pgen_toolkit.cli info data/plink2
    python -m pgen_toolkit.cli window data/plink2 --variants 0:32 --samples 0:64
    python -m pgen_toolkit.cli ids data/plink2 samples --start 0 --count 10
    python -m pgen_toolkit.cli validate data/plink2
    python -m pgen_toolkit.cli export data/plink2 genotypes.h5
"""

import argparse
import logging
import sys
from pathlib import Path

from .utils.io import MISSING_GENOTYPE, PgenError, Plink2Dataset, export_genotypes
from .utils.settings import ReaderSettings
from .utils.validator import FilesetValidator


def print_progress(current: int, total: int) -> None:
    """Print progress to stdout.

    Args:
        current: Current progress value.
        total: Total progress value.
    """
    if total > 0:
        percent = int((current / total) * 100)
        bar_len = 40
        filled = int(bar_len * current / total)
        bar = "=" * filled + "-" * (bar_len - filled)
        print(f"\rProgress: [{bar}] {percent}% ({current:,}/{total:,})", end="", flush=True)


def parse_range(text: str) -> tuple[int, int]:
    """Parse ``START:END`` into a half-open range."""
    try:
        start, end = text.split(":", 1)
        return int(start), int(end)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected START:END, got {text!r}") from None


def load_settings(args: argparse.Namespace) -> ReaderSettings:
    settings = ReaderSettings.from_file(args.config) if args.config else ReaderSettings()
    if args.packing:
        settings.packing = args.packing
    return settings


def format_genotype(value: int) -> str:
    return "." if value == MISSING_GENOTYPE else str(value)


def cmd_info(args: argparse.Namespace, settings: ReaderSettings) -> int:
    """Display fileset information.

    Returns:
        Exit code (0 for success).
    """
    with Plink2Dataset.from_prefix(args.prefix, settings=settings) as dataset:
        metadata = dataset.get_metadata()

    print(f"\nFileset: {args.prefix}")
    print("-" * 50)
    for key, value in metadata.items():
        print(f"  {key}: {value}")
    print()
    return 0


def cmd_window(args: argparse.Namespace, settings: ReaderSettings) -> int:
    """Print a genotype window, one row per sample."""
    v0, v1 = args.variants
    s0, s1 = args.samples
    with Plink2Dataset.from_prefix(args.prefix, settings=settings) as dataset:
        window = dataset.read_genotypes(v0, v1, s0, s1)
        variant_ids = dataset.read_variant_ids(v0, v1)
        sample_ids = dataset.read_sample_ids(s0, s1)

    print("\t".join(["sample"] + variant_ids))
    for sample_id, row in zip(sample_ids, window):
        print("\t".join([sample_id] + [format_genotype(int(v)) for v in row]))
    return 0


def cmd_ids(args: argparse.Namespace, settings: ReaderSettings) -> int:
    """Print variant or sample identifiers."""
    with Plink2Dataset.from_prefix(args.prefix, settings=settings) as dataset:
        if args.kind == "variants":
            ids = dataset.read_variant_ids(args.start, args.start + args.count)
        else:
            ids = dataset.read_sample_ids(args.start, args.start + args.count)

    for index, identifier in enumerate(ids, start=args.start):
        print(f"[{index}]: {identifier}")
    return 0


def cmd_validate(args: argparse.Namespace, settings: ReaderSettings) -> int:
    """Validate a fileset and print the report."""
    report = FilesetValidator(settings=settings).validate_prefix(args.prefix)

    for entry in report.entries:
        line = f"  [{entry.severity.upper():7}] {entry.check}: {entry.result}"
        if entry.details:
            line += f" ({entry.details})"
        print(line)
    if report.is_valid:
        print("\nValid")
    else:
        print(f"\nInvalid: {len(report.failures)} failing check(s)")
    return 0 if report.is_valid else 1


def cmd_export(args: argparse.Namespace, settings: ReaderSettings) -> int:
    """Export the genotype matrix to NPY or HDF5."""
    output_path = Path(args.output)
    chunk_size = args.chunk_size or settings.export_chunk_size
    with Plink2Dataset.from_prefix(args.prefix, settings=settings) as dataset:
        print(f"Exporting: {args.prefix} -> {output_path}")
        result = export_genotypes(
            dataset,
            output_path,
            chunk_size=chunk_size,
            progress_callback=print_progress if not args.quiet else None,
        )

    if not args.quiet:
        print()  # Newline after progress bar
    print("\nExport complete!")
    print(f"  Variants exported: {result['variants_exported']:,}")
    print(f"  Shape: {result['shape']}")
    print(f"  Output: {output_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgen-toolkit",
        description="PGEN Toolkit - Command Line Interface",
    )
    parser.add_argument(
        "--packing",
        choices=["byte", "2bit"],
        help="Genotype layout after the header (default: byte)",
    )
    parser.add_argument("--config", help="JSON settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    info_parser = subparsers.add_parser("info", help="Display fileset information")
    info_parser.add_argument("prefix", help="Fileset prefix (path without .pgen/.pvar/.psam)")

    window_parser = subparsers.add_parser("window", help="Print a genotype window")
    window_parser.add_argument("prefix", help="Fileset prefix")
    window_parser.add_argument(
        "--variants", type=parse_range, required=True, help="Variant range START:END"
    )
    window_parser.add_argument(
        "--samples", type=parse_range, required=True, help="Sample range START:END"
    )

    ids_parser = subparsers.add_parser("ids", help="Print variant or sample ids")
    ids_parser.add_argument("prefix", help="Fileset prefix")
    ids_parser.add_argument("kind", choices=["variants", "samples"])
    ids_parser.add_argument(
        "-s", "--start", type=int, default=0, help="Starting index (default: 0)"
    )
    ids_parser.add_argument(
        "-n", "--count", type=int, default=10, help="Number of ids (default: 10)"
    )

    validate_parser = subparsers.add_parser("validate", help="Validate a fileset")
    validate_parser.add_argument("prefix", help="Fileset prefix")

    export_parser = subparsers.add_parser("export", help="Export genotypes to NPY or HDF5")
    export_parser.add_argument("prefix", help="Fileset prefix")
    export_parser.add_argument("output", help="Output file path (.npy, .h5 or .hdf5)")
    export_parser.add_argument(
        "-c", "--chunk-size", type=int, help="Variants per export block"
    )
    export_parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress progress output"
    )
    return parser


COMMANDS = {
    "info": cmd_info,
    "window": cmd_window,
    "ids": cmd_ids,
    "validate": cmd_validate,
    "export": cmd_export,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args)
        return COMMANDS[args.command](args, settings)
    except (PgenError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
