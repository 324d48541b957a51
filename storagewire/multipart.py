"""Encoding of ``multipart/related`` upload bodies."""

from __future__ import annotations

import random
import string

from storagewire.constants import METADATA_CONTENT_TYPE
from storagewire.payload import Payload

BOUNDARY_LENGTH = 32
_BOUNDARY_CHARS = string.ascii_letters + string.digits


def generate_boundary() -> str:
    """Get a random alphanumeric boundary for a multipart body."""
    return "".join(
        random.choice(_BOUNDARY_CHARS) for _ in range(BOUNDARY_LENGTH)
    )


def multipart_content_type(boundary: str) -> str:
    return "multipart/related; boundary=" + boundary


def encode_multipart(
    metadata_json: str,
    payload: Payload,
    content_type: str,
    boundary: str,
) -> bytes:
    """Build a two-part body: JSON metadata first, then the raw payload."""
    preamble = (
        f"--{boundary}\r\n"
        f"Content-Type: {METADATA_CONTENT_TYPE}\r\n\r\n"
        f"{metadata_json}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {content_type}\r\n\r\n"
    )
    postamble = f"\r\n--{boundary}--"
    return (
        preamble.encode("utf-8")
        + payload.upload_data()
        + postamble.encode("utf-8")
    )
