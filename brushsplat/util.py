"""Small helpers for reading start-up query strings and showing byte counts."""

from __future__ import annotations

import math
from urllib.parse import unquote_to_bytes

__all__ = ["parse_search", "bytes_format"]

_UNIT = 1000
_UNIT_PREFIXES = "KMGTPEZY"


def _decode_component(text: str) -> str:
    """Percent-decode ``text``; text that does not decode to UTF-8 becomes empty."""
    try:
        return unquote_to_bytes(text).decode("utf-8")
    except UnicodeDecodeError:
        return ""


def parse_search(search: str) -> dict[str, str]:
    """Parse a URL query string such as ``?url=...&zen=true`` into a dict.

    Pairs without an ``=`` are ignored; later keys override earlier ones.
    A ``+`` is kept as is rather than read as a space.
    """
    params: dict[str, str] = {}
    for pair in search.lstrip("?").split("&"):
        key, sep, value = pair.partition("=")
        if not sep:
            continue
        params[_decode_component(key)] = _decode_component(value)
    return params


def bytes_format(num_bytes: int) -> str:
    """Format a byte count with decimal (power of 1000) unit prefixes."""
    num_bytes = int(num_bytes)
    if num_bytes < 0:
        raise ValueError("Byte count must not be negative")
    if num_bytes < _UNIT:
        return f"{num_bytes} B"

    size = float(num_bytes)
    exp = int(math.floor(math.log(size) / math.log(_UNIT))) or 1
    if exp > len(_UNIT_PREFIXES):
        raise ValueError(f"Byte count too large to format: {num_bytes}")
    return f"{size / float(_UNIT**exp):.2f} {_UNIT_PREFIXES[exp - 1]}B"