"""The resumable upload protocol.

A resumable upload is started once, then continued one chunk per request
until the server reports it final. No session state is kept here: each call
takes the previous ``ResumableUploadStatus`` and its handler returns the next
one, so the caller threads the status from request to request.

Calls that continue the same session must be issued one after another since
each depends on the offset returned by the previous one.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from storagewire import errors, metadata
from storagewire.constants import (
    CHUNK_GRANULARITY,
    HEADER_CONTENT_TYPE,
    HEADER_UPLOAD_COMMAND,
    HEADER_UPLOAD_CONTENT_LENGTH,
    HEADER_UPLOAD_CONTENT_TYPE,
    HEADER_UPLOAD_OFFSET,
    HEADER_UPLOAD_PROTOCOL,
    HEADER_UPLOAD_SIZE_RECEIVED,
    HEADER_UPLOAD_STATUS,
    HEADER_UPLOAD_URL,
    METADATA_CONTENT_TYPE,
    RESUMABLE_UPLOAD_CHUNK_SIZE,
)
from storagewire.location import Location
from storagewire.metadata import CanonicalMetadata, FieldMapping
from storagewire.payload import Payload
from storagewire.requestinfo import (
    RequestDescriptor,
    TransportResponse,
    shared_error_handler,
)
from storagewire.service import StorageService
from storagewire.url import make_url

__all__ = [
    "RESUMABLE_UPLOAD_CHUNK_SIZE",
    "ResumableUploadStatus",
    "UploadState",
    "check_chunk_size",
    "continue_resumable_upload",
    "create_resumable_upload",
    "get_resumable_upload_status",
    "next_upload_state",
]

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    NOT_STARTED = "not-started"
    ACTIVE = "active"
    FINAL = "final"


class ResumableUploadStatus(BaseModel):
    """Progress of a resumable upload after one request."""

    model_config = ConfigDict(frozen=True)

    bytes_transferred: int
    total_bytes: int
    finalized: bool = False
    metadata: CanonicalMetadata | None = None

    @model_validator(mode="after")
    def check_progress(self) -> ResumableUploadStatus:
        if not 0 <= self.bytes_transferred <= self.total_bytes:
            raise ValueError(
                f"bytes_transferred ({self.bytes_transferred}) must be "
                f"between 0 and total_bytes ({self.total_bytes})"
            )
        if self.finalized and self.bytes_transferred != self.total_bytes:
            raise ValueError("A finalized upload must have sent every byte")
        if self.metadata is not None and not self.finalized:
            raise ValueError("Only a finalized upload can have metadata")
        return self


def next_upload_state(status: ResumableUploadStatus | None) -> UploadState:
    if status is None:
        return UploadState.NOT_STARTED
    if status.finalized:
        return UploadState.FINAL
    return UploadState.ACTIVE


def check_resume_header(
    response: TransportResponse, allowed: tuple[str, ...] | None = None
) -> str:
    """Read ``X-Goog-Upload-Status`` and check it is an expected value."""
    status = response.get_header(HEADER_UPLOAD_STATUS)
    if status is None:
        raise errors.malformed_response(
            f"Missing {HEADER_UPLOAD_STATUS} header."
        )
    status = status.strip().lower()
    allowed = allowed or ("active",)
    if status not in allowed:
        raise errors.protocol_violation(
            f"{HEADER_UPLOAD_STATUS} was '{status}', "
            f"expected one of {list(allowed)}"
        )
    return status


def create_resumable_upload(
    service: StorageService,
    location: Location,
    mappings: tuple[FieldMapping, ...],
    payload: Payload,
    md: CanonicalMetadata | None = None,
) -> RequestDescriptor:
    """Build the request that starts a resumable upload session.

    The handler returns the session URL to continue the upload at.
    """
    upload_metadata = metadata.metadata_for_upload(location, payload, md)
    headers = {
        HEADER_UPLOAD_PROTOCOL: "resumable",
        HEADER_UPLOAD_COMMAND: "start",
        HEADER_UPLOAD_CONTENT_LENGTH: str(payload.size()),
        HEADER_UPLOAD_CONTENT_TYPE: upload_metadata["content_type"],
        HEADER_CONTENT_TYPE: METADATA_CONTENT_TYPE,
    }

    def handler(response: TransportResponse, text: Any) -> str:
        check_resume_header(response)
        url = response.get_header(HEADER_UPLOAD_URL)
        if not url:
            raise errors.malformed_response(
                f"Missing {HEADER_UPLOAD_URL} header."
            )
        logger.debug(f"Started resumable upload for {location}")
        return url

    return RequestDescriptor(
        url=make_url(
            location.bucket_only_server_url(), service.host, service.protocol
        ),
        method="POST",
        headers=headers,
        url_params={"name": upload_metadata["full_path"]},
        body=metadata.serialize(upload_metadata, mappings),
        handler=handler,
        error_handler=shared_error_handler(location),
        timeout=service.max_upload_retry_time,
    )


def get_resumable_upload_status(
    service: StorageService,
    location: Location,
    url: str,
    payload: Payload,
) -> RequestDescriptor:
    """Build a request asking the server how much of the upload it has."""

    def handler(
        response: TransportResponse, text: Any
    ) -> ResumableUploadStatus:
        status = check_resume_header(response, ("active", "final"))
        size_string = response.get_header(HEADER_UPLOAD_SIZE_RECEIVED)
        try:
            size = int(size_string)
        except (TypeError, ValueError) as e:
            raise errors.malformed_response(
                f"Invalid {HEADER_UPLOAD_SIZE_RECEIVED}: {size_string!r}"
            ) from e
        if not 0 <= size <= payload.size():
            raise errors.server_file_wrong_size()
        finalized = status == "final"
        if finalized and size != payload.size():
            raise errors.server_file_wrong_size()
        return ResumableUploadStatus(
            bytes_transferred=size,
            total_bytes=payload.size(),
            finalized=finalized,
        )

    return RequestDescriptor(
        url=url,
        method="POST",
        headers={HEADER_UPLOAD_COMMAND: "query"},
        handler=handler,
        error_handler=shared_error_handler(location),
        timeout=service.max_upload_retry_time,
    )


def check_chunk_size(chunk_size: int) -> None:
    if chunk_size <= 0 or chunk_size % CHUNK_GRANULARITY != 0:
        raise errors.invalid_argument(
            f"Chunk size must be a positive multiple of {CHUNK_GRANULARITY}"
        )


def upload_command(offset: int, bytes_to_upload: int, total: int) -> str:
    """Choose the ``X-Goog-Upload-Command`` for one continuation request.

    Only an upload that fits in its first chunk is sent and finalized in one
    request. A later chunk that reaches the end is sent with ``upload`` and
    finalized by a separate, empty ``finalize`` request.
    """
    is_final_chunk = offset + bytes_to_upload >= total
    if bytes_to_upload == 0:
        return "finalize"
    if offset == 0 and is_final_chunk:
        return "upload, finalize"
    return "upload"


def continue_resumable_upload(
    location: Location,
    service: StorageService,
    url: str,
    payload: Payload,
    chunk_size: int,
    mappings: tuple[FieldMapping, ...],
    status: ResumableUploadStatus | None = None,
) -> RequestDescriptor:
    """Build the request that sends the next chunk of a resumable upload."""
    check_chunk_size(chunk_size)
    total = payload.size()
    if status is not None:
        if status.finalized:
            raise errors.invalid_argument(
                "Cannot continue an upload that is already finalized"
            )
        if status.total_bytes != total:
            raise errors.server_file_wrong_size()
    offset = status.bytes_transferred if status is not None else 0
    bytes_remaining = total - offset
    bytes_to_upload = min(chunk_size, bytes_remaining)
    command = upload_command(offset, bytes_to_upload, total)
    body = payload.slice(offset, offset + bytes_to_upload)
    if body is None:
        raise errors.cannot_slice_payload()
    logger.debug(
        f"Continuing upload of {location} at offset {offset} with "
        f"{bytes_to_upload} bytes ({command})"
    )

    def handler(
        response: TransportResponse, text: Any
    ) -> ResumableUploadStatus:
        upload_status = check_resume_header(response, ("active", "final"))
        if upload_status == "final":
            return ResumableUploadStatus(
                bytes_transferred=total,
                total_bytes=total,
                finalized=True,
                metadata=metadata.parse(text, mappings),
            )
        return ResumableUploadStatus(
            bytes_transferred=offset + bytes_to_upload,
            total_bytes=total,
        )

    return RequestDescriptor(
        url=url,
        method="POST",
        headers={
            HEADER_UPLOAD_COMMAND: command,
            HEADER_UPLOAD_OFFSET: str(offset),
        },
        body=body.upload_data(),
        handler=handler,
        error_handler=shared_error_handler(location),
        timeout=service.max_upload_retry_time,
    )
