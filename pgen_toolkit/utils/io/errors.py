"""Exception types raised by the PGEN readers.

Every error derives from ``PgenError`` and also from the closest builtin
exception, so callers that already catch ``ValueError``, ``IndexError`` or
``OSError`` keep working.
"""


class PgenError(Exception):
    """Base class for all reader errors."""


class PgenFormatError(PgenError, ValueError):
    """The file does not follow the expected layout (bad magic, truncated header)."""


class MetadataFormatError(PgenFormatError):
    """A .pvar/.psam record is malformed or missing."""


class UnsupportedModeError(PgenError, ValueError):
    """The storage mode byte is not the packed mode this reader decodes."""

    def __init__(self, mode: int) -> None:
        super().__init__(f"Unsupported storage mode: 0x{mode:02x}")
        self.mode = mode


class GenotypeRangeError(PgenError, IndexError):
    """A requested coordinate range falls outside the declared counts."""


class GenotypeIOError(PgenError, OSError):
    """Opening, seeking or reading a file failed."""
