from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    name: str
    compressed_size: int
    compression_method: int    # ZIP method tag as declared by the entry
    supported: bool


class RangeZipError(RuntimeError):
    """Base class for every error raised by rangezip."""
    pass


class InvalidUrlError(RangeZipError):
    """Raised when a URL is malformed or uses an unsupported scheme."""
    pass


class RangeNotSupportedError(RangeZipError):
    """Raised when the server does not honour HTTP byte-range requests."""
    pass


class EntryNotFoundError(RangeZipError):
    """Raised when no archive entry carries the requested name."""
    pass


class UnsupportedCompressionError(RangeZipError):
    """Raised when an entry uses a compression method that cannot be decoded."""

    def __init__(self, method: int, name: str | None = None):
        self.method = method
        self.name = name
        what = f"{name!r} uses" if name else "entry uses"
        super().__init__(f"{what} unsupported compression method {method}")


class FormatError(RangeZipError):
    """Raised when the archive structure or an entry's data cannot be decoded."""
    pass


class TransportError(RangeZipError):
    """Raised when an HTTP request fails or returns an unexpected status."""
    pass


class DataError(RangeZipError):
    """Raised on inconsistent sizes or byte ranges; indicates a broken invariant."""
    pass


class InvalidSeekError(RangeZipError, OSError):
    """Raised when a seek would land on a negative or overflowing position."""
    pass
