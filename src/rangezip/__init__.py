"""rangezip - list and extract single files from remote ZIP archives."""

from .core.model import (                                             # re-export
    ArchiveEntry,
    RangeZipError,
    InvalidUrlError,
    RangeNotSupportedError,
    EntryNotFoundError,
    UnsupportedCompressionError,
    FormatError,
    TransportError,
    DataError,
    InvalidSeekError,
)
from .core.session import ArchiveSession, SUPPORTED_METHODS, open_archive
from .io import RangeStream, open_stream


def list_entries(url: str, must_support_ranges: bool = True, **kwargs) -> list[ArchiveEntry]:
    """List the entries of a remote archive in one call."""
    with open_archive(url, must_support_ranges, **kwargs) as archive:
        return archive.list()


def download(url: str, name: str, must_support_ranges: bool = True, **kwargs) -> bytes:
    """Fetch and decompress a single entry of a remote archive in one call."""
    with open_archive(url, must_support_ranges, **kwargs) as archive:
        return archive.download(name)


__all__ = [
    "open_archive", "list_entries", "download",
    "ArchiveSession", "ArchiveEntry", "RangeStream", "open_stream", "SUPPORTED_METHODS",
    "RangeZipError", "InvalidUrlError", "RangeNotSupportedError", "EntryNotFoundError",
    "UnsupportedCompressionError", "FormatError", "TransportError", "DataError",
    "InvalidSeekError",
]
