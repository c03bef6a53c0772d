"""Shared constants for the I/O layer."""

import io


DEFAULT_TIMEOUT = 30.0  # seconds, per request
DEFAULT_BUFFER_SIZE = io.DEFAULT_BUFFER_SIZE
USER_AGENT = "rangezip/0.1"

# Positions and sizes live in the unsigned 64-bit space of the ZIP format.
MAX_POSITION = 2**64 - 1

# requests asks for compressed responses by default; a transparently decoded
# body would no longer match the byte interval that was asked for.
HEADERS = {"Accept-Encoding": "identity", "User-Agent": USER_AGENT}

