"""I/O layer for rangezip - lazy random access to remote bytes."""

import io

# Re-export these for import convenience
from .base import DEFAULT_BUFFER_SIZE, DEFAULT_TIMEOUT
from .http_sync import RangeStream, open_range_stream


def open_stream(url: str, require_range_support: bool = True, *,
                buffer_size: int = DEFAULT_BUFFER_SIZE, **kwargs) -> io.BufferedReader:
    """Open a buffered, seekable stream over a remote resource.

    The buffer absorbs the many small structural reads a ZIP parser makes;
    each refill of the buffer costs one range request.
    """
    raw = open_range_stream(url, require_range_support, **kwargs)
    return io.BufferedReader(raw, buffer_size=buffer_size)
