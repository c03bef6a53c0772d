"""Remote ZIP archive session: directory listing and single-entry extraction."""

from __future__ import annotations

import io
import logging
import struct
import zipfile
import zlib
from typing import Optional

import pyzstd
import requests

from ..io import open_stream
from ..io.base import DEFAULT_BUFFER_SIZE, DEFAULT_TIMEOUT
from .model import (
    ArchiveEntry,
    DataError,
    EntryNotFoundError,
    FormatError,
    InvalidSeekError,
    RangeZipError,
    TransportError,
    UnsupportedCompressionError,
)

logger = logging.getLogger(__name__)

ZIP_ZSTANDARD = 93
# zipfile decodes zstd itself from Python 3.14 on; older interpreters go through pyzstd.
_NATIVE_ZSTD = hasattr(zipfile, "ZIP_ZSTANDARD")

_LOCAL_HEADER = struct.Struct("<4s22xHH")
_LOCAL_SIGNATURE = b"PK\x03\x04"

SUPPORTED_METHODS = frozenset({
    zipfile.ZIP_STORED,
    zipfile.ZIP_DEFLATED,
    zipfile.ZIP_BZIP2,
    ZIP_ZSTANDARD,
})

# What zipfile and its codecs raise for corrupt or truncated data.
_FORMAT_ERRORS = (zipfile.BadZipFile, EOFError, OSError, ValueError, zlib.error, struct.error)


def is_supported(method: int) -> bool:
    return method in SUPPORTED_METHODS


class ArchiveSession:
    """A remote ZIP archive opened over HTTP range requests.

    Opening fetches only the end-of-central-directory record and the central
    directory. ``download`` then fetches just the bytes of one entry.
    """

    def __init__(
        self,
        url: str,
        must_support_ranges: bool = True,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self._stream = open_stream(
            url, must_support_ranges, buffer_size=buffer_size, timeout=timeout, session=session
        )
        try:
            self._zip = zipfile.ZipFile(self._stream)
        except BaseException as e:
            self._stream.close()
            if isinstance(e, _FORMAT_ERRORS) and not isinstance(e, RangeZipError):
                raise FormatError(f"Cannot read ZIP directory of {url}: {e}") from e
            raise
        self._closed = False
        logger.info("Opened %s (%d bytes, %d entries)", url, self._stream.raw.total_size, len(self))

    # ------------------------------------------------------------------ #
    @property
    def bytes_fetched(self) -> int:
        return self._stream.raw.bytes_fetched

    @property
    def requests_made(self) -> int:
        return self._stream.raw.requests_made

    def __len__(self) -> int:
        return len(self._zip.infolist())

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed archive.")

    def _entry_at(self, index: int) -> ArchiveEntry:
        """Re-read the local header of entry ``index`` and describe it.

        :raises FormatError: if the entry's local header is unreadable.
        """
        info = self._zip.infolist()[index]
        try:
            with self._zip.open(info):
                pass
        except InvalidSeekError as e:
            raise FormatError(f"Entry {index} points outside the archive: {e}") from e
        except RangeZipError:
            raise
        except NotImplementedError:
            # zipfile lacks the codec; the header itself was readable
            pass
        except RuntimeError:
            # password protected
            pass
        except _FORMAT_ERRORS as e:
            raise FormatError(f"Entry {index} ({info.filename!r}) is corrupt: {e}") from e

        return ArchiveEntry(
            name=info.filename,
            compressed_size=info.compress_size,
            compression_method=info.compress_type,
            supported=is_supported(info.compress_type),
        )

    def list(self) -> list[ArchiveEntry]:
        """Return the archive's entries in directory order.

        Entries whose local header cannot be read or fetched are skipped.
        """
        self._check_open()
        entries = []
        for index in range(len(self)):
            try:
                entries.append(self._entry_at(index))
            except (FormatError, TransportError, DataError) as e:
                logger.warning("Skipping entry %d: %s", index, e)
        return entries

    def _find(self, name: str) -> Optional[zipfile.ZipInfo]:
        # First match in archive order; ZipFile.getinfo would return the last duplicate.
        for info in self._zip.infolist():
            if info.filename == name:
                return info
        return None

    def _read_zstd(self, info: zipfile.ZipInfo) -> bytes:
        """Read and decompress a zstd member without zipfile's codec table."""
        if info.flag_bits & 0x1:
            raise FormatError(f"{info.filename!r} is encrypted")
        self._stream.seek(info.header_offset)
        header = self._stream.read(_LOCAL_HEADER.size)
        if len(header) != _LOCAL_HEADER.size:
            raise FormatError(f"Truncated local header for {info.filename!r}")
        signature, name_length, extra_length = _LOCAL_HEADER.unpack(header)
        if signature != _LOCAL_SIGNATURE:
            raise FormatError(f"Bad local header signature for {info.filename!r}")

        self._stream.seek(name_length + extra_length, io.SEEK_CUR)
        compressed = self._stream.read(info.compress_size)
        if len(compressed) != info.compress_size:
            raise FormatError(f"Truncated data for {info.filename!r}")
        try:
            data = pyzstd.decompress(compressed)
        except pyzstd.ZstdError as e:
            raise FormatError(f"Cannot extract {info.filename!r}: {e}") from e

        if len(data) != info.file_size:
            raise FormatError(
                f"{info.filename!r} decompressed to {len(data)} bytes, expected {info.file_size}"
            )
        if zlib.crc32(data) != info.CRC:
            raise FormatError(f"Bad CRC-32 for {info.filename!r}")
        return data

    def download(self, name: str) -> bytes:
        """Fetch and decompress the entry called ``name``.

        :raises EntryNotFoundError: if no entry has that exact name.
        :raises UnsupportedCompressionError: if the entry's method cannot be decoded.
        :raises FormatError: if the entry's data is corrupt.
        """
        self._check_open()
        info = self._find(name)
        if info is None:
            raise EntryNotFoundError(f"{name!r} not found in {self.url}")
        if not is_supported(info.compress_type):
            raise UnsupportedCompressionError(info.compress_type, name)

        if info.compress_type == ZIP_ZSTANDARD and not _NATIVE_ZSTD:
            data = self._read_zstd(info)
        else:
            try:
                with self._zip.open(info) as member:
                    data = member.read()
            except RangeZipError:
                raise
            except NotImplementedError as e:
                raise UnsupportedCompressionError(info.compress_type, name) from e
            except (RuntimeError, *_FORMAT_ERRORS) as e:
                raise FormatError(f"Cannot extract {name!r}: {e}") from e

        logger.debug("Extracted %s: %d compressed -> %d bytes", name, info.compress_size, len(data))
        return data

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._zip.close()
        finally:
            self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} url={self.url!r}>"


def open_archive(url: str, must_support_ranges: bool = True, **kwargs) -> ArchiveSession:
    """Open a remote ZIP archive for listing and extraction."""
    return ArchiveSession(url, must_support_ranges, **kwargs)
