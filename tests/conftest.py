"""Shared fixtures: an in-memory HTTP server serving ZIP archives."""

import io
import re
import struct
import warnings
import zipfile
import zlib

import pytest
import pyzstd
import requests
from werkzeug import Request, Response

A_TXT = b"The quick brown fox jumps over the lazy dog.\n" * 20
B_BIN = bytes(range(256)) * 64
C_DATA = b"lzma is not one of the supported codecs\n" * 10

ZIP_ZSTANDARD = 93

_RANGE_RE = re.compile(r"bytes=(\d+)-(\d+)")


def build_zip(members) -> bytes:
    """Build a ZIP in memory from ``(name, data, compress_type)`` triples."""
    buf = io.BytesIO()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)  # duplicate names
        with zipfile.ZipFile(buf, "w") as zf:
            for name, data, method in members:
                zf.writestr(name, data, compress_type=method)
    return buf.getvalue()


def corrupt_local_header(data: bytes, name: str) -> bytes:
    """Overwrite the local-header signature of ``name``; the central directory stays intact."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        offset = zf.getinfo(name).header_offset
    damaged = bytearray(data)
    damaged[offset:offset + 4] = b"XXXX"
    return bytes(damaged)


def build_zstd_zip(members) -> bytes:
    """Build a ZIP whose ``(name, data)`` members are zstd-compressed (method 93).

    zipfile only writes zstd from Python 3.14 on, so each payload is stored
    pre-compressed and the method, CRC and uncompressed size are patched in.
    """
    packed = [(name, pyzstd.compress(data), zipfile.ZIP_STORED) for name, data in members]
    damaged = bytearray(build_zip(packed))
    with zipfile.ZipFile(io.BytesIO(bytes(damaged))) as zf:
        infos = zf.infolist()
        central = zf.start_dir
    for info, (_, data) in zip(infos, members):
        crc, size = zlib.crc32(data), len(data)
        local = info.header_offset
        struct.pack_into("<H", damaged, local + 8, ZIP_ZSTANDARD)
        struct.pack_into("<I", damaged, local + 14, crc)
        struct.pack_into("<I", damaged, local + 22, size)
        struct.pack_into("<H", damaged, central + 10, ZIP_ZSTANDARD)
        struct.pack_into("<I", damaged, central + 16, crc)
        struct.pack_into("<I", damaged, central + 24, size)
        name_length, extra_length, comment_length = struct.unpack_from("<HHH", damaged, central + 28)
        central += 46 + name_length + extra_length + comment_length
    return bytes(damaged)


class RangeHandler:
    """Serve ``data`` at one path, honouring (or ignoring) Range headers."""

    def __init__(self, data: bytes, honor_ranges: bool = True):
        self.data = data
        self.honor_ranges = honor_ranges
        self.fail_with = None        # status to answer every GET with
        self.fail_at = set()         # range starts answered with 503
        self.requests = []           # (method, Range header) in arrival order
        self.url = None

    @property
    def ranged_gets(self):
        return [r for m, r in self.requests if m == "GET" and r != "bytes=0-0"]

    def __call__(self, request: Request) -> Response:
        range_header = request.headers.get("Range")
        self.requests.append((request.method, range_header))

        if request.method == "HEAD":
            # werkzeug drops the body of HEAD responses but keeps Content-Length
            return Response(self.data, status=200, headers={"Accept-Ranges": "bytes"})

        if self.fail_with is not None:
            return Response(b"nope", status=self.fail_with)

        if range_header and self.honor_ranges:
            m = _RANGE_RE.fullmatch(range_header)
            start, end = int(m.group(1)), int(m.group(2))
            if start in self.fail_at:
                return Response(b"unavailable", status=503)
            size = len(self.data)
            if start >= size:
                return Response(status=416, headers={"Content-Range": f"bytes */{size}"})
            end = min(end, size - 1)
            return Response(
                self.data[start:end + 1],
                status=206,
                headers={"Content-Range": f"bytes {start}-{end}/{size}"},
            )

        return Response(self.data, status=200)


@pytest.fixture
def serve(httpserver):
    """Return a callable registering ``data`` on the test server; it yields the handler."""

    def _serve(data: bytes, path: str = "/archive.zip", **kwargs) -> RangeHandler:
        handler = RangeHandler(data, **kwargs)
        httpserver.expect_request(path).respond_with_handler(handler)
        handler.url = httpserver.url_for(path)
        return handler

    return _serve


@pytest.fixture
def sample_zip() -> bytes:
    return build_zip([
        ("a.txt", A_TXT, zipfile.ZIP_STORED),
        ("b.bin", B_BIN, zipfile.ZIP_DEFLATED),
        ("c.7z-method", C_DATA, zipfile.ZIP_LZMA),
    ])


class FakeSession:
    """Stand-in for requests.Session answering every request with one canned response."""

    def __init__(self, status: int = 200, headers=None, content: bytes = b""):
        self.calls = []
        self.closed = False
        self.status = status
        self.headers = headers or {}
        self.content = content

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = requests.Response()
        response.status_code = self.status
        response.headers.update(self.headers)
        response._content = self.content
        response._content_consumed = True
        response.url = url
        return response

    def close(self):
        self.closed = True
