"""Conversion between server object resources and local metadata.

The server speaks camelCase JSON resources. Locally, object metadata is a
plain dict keyed by snake_case names. The ``FieldMapping`` table is the one
place that says which server field becomes which local field, how its value
is transformed on the way in, and whether it can be written back.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

from storagewire import errors
from storagewire.constants import DEFAULT_CONTENT_TYPE, DEFAULT_PROTOCOL
from storagewire.location import Location, last_component
from storagewire.payload import Payload
from storagewire.url import (
    encode_segment,
    make_query_string,
    make_url,
)

logger = logging.getLogger(__name__)

CanonicalMetadata = dict[str, Any]


class FieldMapping(BaseModel):
    """How one server field maps onto one local metadata field."""

    model_config = ConfigDict(frozen=True)

    server_name: str
    local_name: str
    writable: bool = False
    transform: Callable[[Any], Any] | None = None


def _transform_path(full_path: Any) -> Any:
    if not isinstance(full_path, str) or len(full_path) < 2:
        return full_path
    return last_component(full_path)


def _transform_size(size: Any) -> int:
    return int(size)


def _transform_tokens(tokens: Any) -> list[str]:
    if not isinstance(tokens, str):
        raise TypeError("Download tokens must be a comma-separated string")
    return [token for token in tokens.split(",") if token]


@lru_cache(maxsize=1)
def get_mappings() -> tuple[FieldMapping, ...]:
    """Get the field mapping table.

    The table is built once and shared; it must never be mutated.
    """
    return (
        FieldMapping(server_name="bucket", local_name="bucket"),
        FieldMapping(server_name="generation", local_name="generation"),
        FieldMapping(
            server_name="metageneration", local_name="metageneration"
        ),
        FieldMapping(
            server_name="name", local_name="full_path", writable=True
        ),
        FieldMapping(
            server_name="name", local_name="name", transform=_transform_path
        ),
        FieldMapping(
            server_name="size", local_name="size", transform=_transform_size
        ),
        FieldMapping(server_name="timeCreated", local_name="time_created"),
        FieldMapping(server_name="updated", local_name="updated"),
        FieldMapping(
            server_name="md5Hash", local_name="md5_hash", writable=True
        ),
        FieldMapping(
            server_name="cacheControl",
            local_name="cache_control",
            writable=True,
        ),
        FieldMapping(
            server_name="contentDisposition",
            local_name="content_disposition",
            writable=True,
        ),
        FieldMapping(
            server_name="contentEncoding",
            local_name="content_encoding",
            writable=True,
        ),
        FieldMapping(
            server_name="contentLanguage",
            local_name="content_language",
            writable=True,
        ),
        FieldMapping(
            server_name="contentType",
            local_name="content_type",
            writable=True,
        ),
        FieldMapping(
            server_name="metadata",
            local_name="custom_metadata",
            writable=True,
        ),
        FieldMapping(
            server_name="downloadTokens",
            local_name="download_tokens",
            transform=_transform_tokens,
        ),
    )


def serialize(
    metadata: CanonicalMetadata, mappings: tuple[FieldMapping, ...]
) -> str:
    """Serialize the writable fields of ``metadata`` into a JSON resource."""
    resource = {}
    for mapping in mappings:
        if mapping.writable and mapping.local_name in metadata:
            resource[mapping.server_name] = metadata[mapping.local_name]
    return json.dumps(resource, separators=(",", ":"))


def from_resource(
    resource: dict[str, Any], mappings: tuple[FieldMapping, ...]
) -> CanonicalMetadata:
    metadata: CanonicalMetadata = {"type": "file"}
    for mapping in mappings:
        if mapping.server_name not in resource:
            continue
        value = resource[mapping.server_name]
        if mapping.transform is not None:
            try:
                value = mapping.transform(value)
            except (TypeError, ValueError) as e:
                raise errors.malformed_response(
                    f"Invalid value for '{mapping.server_name}': {e}"
                ) from e
        metadata[mapping.local_name] = value
    return metadata


def parse_json_object(text: str | bytes) -> dict[str, Any]:
    """Parse a response body that must be a JSON object."""
    try:
        obj = json.loads(text)
    except (TypeError, ValueError) as e:
        raise errors.malformed_response("Body is not valid JSON.") from e
    if not isinstance(obj, dict):
        raise errors.malformed_response("Body is not a JSON object.")
    return obj


def parse(
    text: str | bytes, mappings: tuple[FieldMapping, ...]
) -> CanonicalMetadata:
    """Parse a server JSON resource into local metadata."""
    return from_resource(parse_json_object(text), mappings)


def metadata_for_upload(
    location: Location,
    payload: Payload,
    metadata: CanonicalMetadata | None = None,
) -> CanonicalMetadata:
    """Copy user metadata and fill in what an upload needs."""
    upload_metadata = dict(metadata or {})
    upload_metadata["full_path"] = location.path
    upload_metadata["size"] = payload.size()
    if not upload_metadata.get("content_type"):
        upload_metadata["content_type"] = (
            payload.content_type or DEFAULT_CONTENT_TYPE
        )
    return upload_metadata


def download_url_from_resource(
    metadata: CanonicalMetadata,
    host: str,
    protocol: str = DEFAULT_PROTOCOL,
) -> str | None:
    """Build a download URL from the first download token, if any."""
    tokens = metadata.get("download_tokens")
    if not tokens:
        logger.debug(f"No download tokens for {metadata.get('full_path')}")
        return None
    if "bucket" not in metadata or "full_path" not in metadata:
        raise errors.malformed_response("Resource has no bucket or name.")
    url_part = (
        "/b/"
        + encode_segment(metadata["bucket"])
        + "/o/"
        + encode_segment(metadata["full_path"])
    )
    return make_url(url_part, host, protocol) + make_query_string(
        {"alt": "media", "token": tokens[0]}
    )
