"""Request descriptor builders for single-shot storage operations.

Each builder returns a ``RequestDescriptor`` and does no I/O. The descriptor's
handler turns a successful response into a result; its error handler refines
the transport's default error for known statuses.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from storagewire import errors, metadata
from storagewire.constants import (
    HEADER_CONTENT_TYPE,
    HEADER_RANGE,
    HEADER_UPLOAD_PROTOCOL,
    METADATA_CONTENT_TYPE,
)
from storagewire.location import Location
from storagewire.metadata import CanonicalMetadata, FieldMapping
from storagewire.multipart import (
    encode_multipart,
    generate_boundary,
    multipart_content_type,
)
from storagewire.payload import Payload
from storagewire.requestinfo import (
    RequestDescriptor,
    TransportResponse,
    object_error_handler,
    shared_error_handler,
)
from storagewire.service import StorageService
from storagewire.url import make_url

logger = logging.getLogger(__name__)


class ListResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    prefixes: list[Location] = []
    items: list[Location] = []
    next_page_token: str | None = None


def metadata_handler(mappings: tuple[FieldMapping, ...]):
    def handler(response: TransportResponse, text: str) -> CanonicalMetadata:
        return metadata.parse(text, mappings)

    return handler


def list_handler(location: Location):
    def handler(response: TransportResponse, text: str) -> ListResult:
        obj = metadata.parse_json_object(text)
        prefixes = obj.get("prefixes", [])
        items = obj.get("items", [])
        if not isinstance(prefixes, list) or not isinstance(items, list):
            raise errors.malformed_response(
                "List response prefixes and items must be arrays."
            )
        next_page_token = obj.get("nextPageToken")
        if next_page_token is not None and not isinstance(
            next_page_token, str
        ):
            raise errors.malformed_response("Invalid nextPageToken.")
        result_prefixes = []
        for prefix in prefixes:
            if not isinstance(prefix, str):
                raise errors.malformed_response(f"Invalid prefix {prefix!r}.")
            if prefix.endswith("/"):
                prefix = prefix[:-1]
            result_prefixes.append(
                Location(bucket=location.bucket, path=prefix)
            )
        result_items = []
        for item in items:
            if (
                not isinstance(item, dict)
                or not isinstance(item.get("name"), str)
                or not isinstance(item.get("bucket"), (str, type(None)))
            ):
                raise errors.malformed_response(f"Invalid item {item!r}.")
            result_items.append(
                Location(
                    bucket=item.get("bucket") or location.bucket,
                    path=item["name"],
                )
            )
        return ListResult(
            prefixes=result_prefixes,
            items=result_items,
            next_page_token=next_page_token,
        )

    return handler


def download_url_handler(
    service: StorageService, mappings: tuple[FieldMapping, ...]
):
    def handler(response: TransportResponse, text: str) -> str:
        md = metadata.parse(text, mappings)
        url = metadata.download_url_from_resource(
            md, service.host, service.protocol
        )
        if url is None:
            raise errors.no_download_url()
        return url

    return handler


def get_metadata(
    service: StorageService,
    location: Location,
    mappings: tuple[FieldMapping, ...],
) -> RequestDescriptor:
    return RequestDescriptor(
        url=make_url(
            location.full_server_url(), service.host, service.protocol
        ),
        method="GET",
        handler=metadata_handler(mappings),
        error_handler=object_error_handler(location),
        timeout=service.max_operation_retry_time,
    )


def list_objects(
    service: StorageService,
    location: Location,
    delimiter: str | None = "/",
    page_token: str | None = None,
    max_results: int | None = None,
) -> RequestDescriptor:
    url_params: dict[str, str | int] = {
        "prefix": "" if location.is_root else location.path + "/"
    }
    if delimiter is not None:
        url_params["delimiter"] = delimiter
    if page_token:
        url_params["pageToken"] = page_token
    if max_results:
        url_params["maxResults"] = max_results
    return RequestDescriptor(
        url=make_url(
            location.bucket_only_server_url(), service.host, service.protocol
        ),
        method="GET",
        url_params=url_params,
        handler=list_handler(location),
        error_handler=shared_error_handler(location),
        timeout=service.max_operation_retry_time,
    )


def get_download_url(
    service: StorageService,
    location: Location,
    mappings: tuple[FieldMapping, ...],
) -> RequestDescriptor:
    return RequestDescriptor(
        url=make_url(
            location.full_server_url(), service.host, service.protocol
        ),
        method="GET",
        handler=download_url_handler(service, mappings),
        error_handler=object_error_handler(location),
        timeout=service.max_operation_retry_time,
    )


def get_bytes(
    service: StorageService,
    location: Location,
    max_download_size_bytes: int | None = None,
) -> RequestDescriptor:
    """Build a request for the raw object contents.

    With ``max_download_size_bytes`` only that many leading bytes are
    requested, and a partial-content response counts as success.
    """
    url = (
        make_url(location.full_server_url(), service.host, service.protocol)
        + "?alt=media"
    )
    headers = {}
    success_codes: tuple[int, ...] = (200,)
    if max_download_size_bytes is not None:
        if max_download_size_bytes <= 0:
            raise errors.invalid_argument(
                "max_download_size_bytes must be positive"
            )
        headers[HEADER_RANGE] = f"bytes=0-{max_download_size_bytes}"
        success_codes = (200, 206)

    def handler(response: TransportResponse, data: Any) -> Any:
        return data

    return RequestDescriptor(
        url=url,
        method="GET",
        headers=headers,
        handler=handler,
        error_handler=object_error_handler(location),
        success_codes=success_codes,
        timeout=service.max_operation_retry_time,
        response_type="bytes",
    )


def update_metadata(
    service: StorageService,
    location: Location,
    md: CanonicalMetadata,
    mappings: tuple[FieldMapping, ...],
) -> RequestDescriptor:
    return RequestDescriptor(
        url=make_url(
            location.full_server_url(), service.host, service.protocol
        ),
        method="PATCH",
        headers={HEADER_CONTENT_TYPE: METADATA_CONTENT_TYPE},
        body=metadata.serialize(md, mappings),
        handler=metadata_handler(mappings),
        error_handler=object_error_handler(location),
        timeout=service.max_operation_retry_time,
    )


def delete_object(
    service: StorageService, location: Location
) -> RequestDescriptor:
    def handler(response: TransportResponse, text: Any) -> None:
        return None

    return RequestDescriptor(
        url=make_url(
            location.full_server_url(), service.host, service.protocol
        ),
        method="DELETE",
        handler=handler,
        error_handler=object_error_handler(location),
        success_codes=(200, 204),
        timeout=service.max_operation_retry_time,
    )


def multipart_upload(
    service: StorageService,
    location: Location,
    mappings: tuple[FieldMapping, ...],
    payload: Payload,
    md: CanonicalMetadata | None = None,
) -> RequestDescriptor:
    """Build a single-request upload of metadata and data together."""
    upload_metadata = metadata.metadata_for_upload(location, payload, md)
    boundary = generate_boundary()
    body = encode_multipart(
        metadata.serialize(upload_metadata, mappings),
        payload,
        upload_metadata["content_type"],
        boundary,
    )
    logger.debug(
        f"Built {len(body)} byte multipart body for {location} "
        f"with boundary {boundary}"
    )
    return RequestDescriptor(
        url=make_url(
            location.bucket_only_server_url(), service.host, service.protocol
        ),
        method="POST",
        headers={
            HEADER_UPLOAD_PROTOCOL: "multipart",
            HEADER_CONTENT_TYPE: multipart_content_type(boundary),
        },
        url_params={"name": upload_metadata["full_path"]},
        body=body,
        handler=metadata_handler(mappings),
        error_handler=shared_error_handler(location),
        timeout=service.max_upload_retry_time,
    )
