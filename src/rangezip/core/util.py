from __future__ import annotations
import zipfile
from typing import Any, Dict
from urllib.parse import urlparse

from .model import ArchiveEntry

_SCHEMES = ("http", "https")


def url_is_valid(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
        # accessing .port validates it
        parsed.port
    except ValueError:
        return False
    return parsed.scheme.lower() in _SCHEMES and bool(parsed.hostname)


def method_name(method: int) -> str:
    return zipfile.compressor_names.get(method, f"unknown({method})")


def friendly_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    for unit in ("KiB", "MiB", "GiB", "TiB"):
        size /= 1024
        if size < 1024 or unit == "TiB":
            break
    return f"{size:.1f} {unit}"


def entry_asdict(entry: ArchiveEntry) -> Dict[str, Any]:
    """Return a JSON-serialisable dict for an entry."""
    return {
        "name": entry.name,
        "compressed_size": entry.compressed_size,
        "compression_method": entry.compression_method,
        "method_name": method_name(entry.compression_method),
        "supported": entry.supported,
    }
