"""Synchronous lazy HTTP stream using requests."""

import io
import logging
from typing import Optional

import requests

from ..core.model import (
    DataError,
    InvalidSeekError,
    InvalidUrlError,
    RangeNotSupportedError,
    TransportError,
)
from ..core.util import url_is_valid
from .base import DEFAULT_TIMEOUT, HEADERS, MAX_POSITION

logger = logging.getLogger(__name__)


def _parse_length(value: Optional[str]) -> Optional[int]:
    """Return a declared Content-Length, or None when absent or unusable."""
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    if length < 0 or length > MAX_POSITION:
        return None
    return length


class RangeStream(io.RawIOBase):
    """Read-only, seekable view of a remote resource.

    Every ``readinto`` call issues exactly one ``Range`` request for the bytes
    under the current position; nothing is cached or prefetched. Wrap it in
    ``io.BufferedReader`` before handing it to a parser that reads small
    fields one at a time.

    Not thread safe: the position and the HTTP session are mutated in place.
    """

    def __init__(
        self,
        url: str,
        require_range_support: bool = True,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        super().__init__()
        self._url = url
        self.timeout = timeout
        self.bytes_fetched = 0
        self.requests_made = 0
        self._position = 0
        self._total_size = 0
        self._external_session = session is not None
        self._session = session or requests.Session()

        try:
            if not url_is_valid(url):
                raise InvalidUrlError(f"Invalid URL: {url!r}")
            self._total_size = self._probe_size()
            if require_range_support:
                self._probe_ranges()
        except BaseException:
            self.close()
            raise

    @property
    def url(self) -> str:
        return self._url

    @property
    def name(self) -> str:
        return self._url

    @property
    def total_size(self) -> int:
        return self._total_size

    # ------------------------------------------------------------------ #
    def _request(
        self, method: str, headers=None, check_status: bool = True, **kwargs
    ) -> requests.Response:
        """Send one request; transport failures and, if checked, error statuses become TransportError."""
        self.requests_made += 1
        try:
            response = self._session.request(
                method,
                self._url,
                headers={**HEADERS, **(headers or {})},
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {self._url} failed: {e}") from e
        if check_status and response.status_code >= 400:
            response.close()
            raise TransportError(f"{method} {self._url} failed with status {response.status_code}")
        return response

    def _probe_size(self) -> int:
        """HEAD the resource and return its declared length."""
        response = self._request("HEAD", allow_redirects=True)
        size = _parse_length(response.headers.get("Content-Length"))
        if size is None:
            raise DataError(
                f"Server reported no usable Content-Length for {self._url} "
                f"(got {response.headers.get('Content-Length')!r})"
            )
        logger.debug("HEAD %s -> %d bytes", self._url, size)
        return size

    def _probe_ranges(self) -> None:
        """Ask for a single byte; anything but a 1-byte 206 means ranges are ignored."""
        with self._request(
            "GET", headers={"Range": "bytes=0-0"}, check_status=False, stream=True
        ) as response:
            if response.status_code != 206:
                raise RangeNotSupportedError(
                    f"Server answered a range probe with status {response.status_code}"
                )
            length = _parse_length(response.headers.get("Content-Length"))
            if length is None:
                length = len(response.content)
            if length != 1:
                raise RangeNotSupportedError(
                    f"Server answered a 1-byte range probe with {length} bytes"
                )
        logger.debug("Range probe for %s succeeded", self._url)

    def _fetch(self, start: int, end: int) -> bytes:
        """GET the inclusive byte interval [start, end]."""
        response = self._request("GET", headers={"Range": f"bytes={start}-{end}"})
        if response.status_code == 200:
            logger.warning(
                "Server ignored Range bytes=%d-%d for %s and sent the full body",
                start, end, self._url,
            )
        elif response.status_code != 206:
            raise TransportError(
                f"Unexpected status {response.status_code} for range {start}-{end}"
            )
        data = response.content
        logger.debug("GET %s bytes=%d-%d -> %d, %d bytes",
                     self._url, start, end, response.status_code, len(data))
        return data

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed stream.")

    # io.RawIOBase
    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._check_open()
        return self._position

    def readinto(self, b) -> int:
        self._check_open()
        view = memoryview(b).cast("B")
        wanted = len(view)
        start = self._position
        if wanted == 0 or start >= self._total_size:
            return 0

        end = start + wanted - 1
        if end > MAX_POSITION:
            raise DataError(f"Read of {wanted} bytes at {start} overflows")
        end = min(end, self._total_size - 1)
        if end < start:
            raise DataError(f"Range end {end} < start {start}")

        data = self._fetch(start, end)
        # Never take more than the interval asked for, so position stays <= total_size
        # even when a server answers with the whole body.
        n = min(len(data), end - start + 1)
        view[:n] = data[:n]
        self.bytes_fetched += len(data)

        new_position = self._position + n
        if new_position > MAX_POSITION:
            raise DataError(f"Advancing {self._position} by {n} overflows")
        self._position = new_position
        return n

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        if whence == io.SEEK_SET:
            base = 0
        elif whence == io.SEEK_CUR:
            base = self._position
        elif whence == io.SEEK_END:
            base = self._total_size
        else:
            raise ValueError(f"Invalid whence ({whence!r})")

        new_position = base + offset
        if new_position < 0 or new_position > MAX_POSITION:
            raise InvalidSeekError(
                f"Invalid seek to a negative or overflowing position "
                f"(base {base}, offset {offset})"
            )
        # Seeking past the end is allowed; reads there return 0 bytes.
        self._position = new_position
        return new_position

    def close(self) -> None:
        if not self.closed and not self._external_session:
            self._session.close()
        super().close()

    def __len__(self) -> int:
        return self._total_size

    def __repr__(self) -> str:
        return f"<{type(self).__name__} url={self._url!r} size={self._total_size!r} pos={self._position}>"


def open_range_stream(url: str, require_range_support: bool = True, **kwargs) -> RangeStream:
    """Create a lazy HTTP range stream."""
    return RangeStream(url, require_range_support, **kwargs)
