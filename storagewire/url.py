"""Functionality for building URLs."""

from __future__ import annotations

from urllib.parse import quote

from storagewire.constants import API_VERSION_PREFIX, DEFAULT_PROTOCOL


def encode_segment(value: str) -> str:
    """Percent-encode a single path segment, including any ``/``."""
    return quote(value, safe="")


def encode_path(path: str) -> str:
    """Percent-encode an object path one segment at a time.

    The slashes separating segments are kept so the path structure survives.
    """
    return "/".join(encode_segment(part) for part in path.split("/"))


def make_url(
    url_part: str, host: str, protocol: str = DEFAULT_PROTOCOL
) -> str:
    # Emulator hosts may already carry a scheme
    if "://" in host:
        return f"{host.rstrip('/')}{API_VERSION_PREFIX}{url_part}"
    return f"{protocol}://{host}{API_VERSION_PREFIX}{url_part}"


def make_query_string(params: dict[str, str | int] | None) -> str:
    if not params:
        return ""
    parts = []
    for key, value in params.items():
        if value is None:
            continue
        parts.append(
            encode_segment(str(key)) + "=" + encode_segment(str(value))
        )
    if not parts:
        return ""
    return "?" + "&".join(parts)
