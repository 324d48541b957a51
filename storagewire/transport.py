"""Issuing request descriptors over HTTP with ``requests``."""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests

from storagewire import errors, operations
from storagewire.config import Settings
from storagewire.constants import (
    MULTIPART_UPLOAD_THRESHOLD,
    RESUMABLE_UPLOAD_CHUNK_SIZE,
)
from storagewire.errors import StorageError
from storagewire.location import Location
from storagewire.metadata import CanonicalMetadata, FieldMapping, get_mappings
from storagewire.payload import Payload
from storagewire.requestinfo import RequestDescriptor, TransportResponse
from storagewire.resumable import (
    ResumableUploadStatus,
    check_chunk_size,
    continue_resumable_upload,
    create_resumable_upload,
    get_resumable_upload_status,
)
from storagewire.service import StorageService

logger = logging.getLogger(__name__)


class Transport:
    """Send request descriptors and run their handlers.

    Each call to ``send`` is a single HTTP request; nothing is retried.
    """

    def __init__(
        self,
        token: str | None = None,
        session: requests.Session | None = None,
    ):
        self.token = token
        self.session = session if session is not None else requests.Session()

    @classmethod
    def from_config(cls, settings: Settings) -> Transport:
        return cls(token=settings.token)

    def _headers(self, descriptor: RequestDescriptor) -> dict[str, str]:
        headers = dict(descriptor.headers)
        if self.token:
            headers["Authorization"] = f"Firebase {self.token}"
        return headers

    def _fail(
        self,
        descriptor: RequestDescriptor,
        response: TransportResponse,
        error: StorageError,
    ) -> StorageError:
        if descriptor.error_handler is not None:
            error = descriptor.error_handler(response, error)
        logger.debug(f"{descriptor.method} {descriptor.url} failed: {error}")
        return error

    def send(self, descriptor: RequestDescriptor) -> Any:
        """Issue the request and return what its handler returns.

        Raises ``StorageError`` for failed requests.
        """
        logger.info(f"{descriptor.method} {descriptor.full_url()}")
        body = descriptor.body
        if isinstance(body, str):
            body = body.encode("utf-8")
        try:
            resp = self.session.request(
                descriptor.method,
                descriptor.url,
                params=descriptor.url_params or None,
                data=body,
                headers=self._headers(descriptor),
                timeout=descriptor.timeout,
            )
        except requests.RequestException as e:
            raise self._fail(
                descriptor, TransportResponse(), errors.unknown()
            ) from e
        response = TransportResponse(
            status=resp.status_code, headers=dict(resp.headers)
        )
        logger.debug(f"Response {resp.status_code}: {response.headers}")
        if resp.status_code not in descriptor.success_codes:
            raise self._fail(
                descriptor,
                response,
                errors.unknown(
                    status=resp.status_code, server_response=resp.text
                ),
            )
        if descriptor.response_type == "bytes":
            return descriptor.handler(response, resp.content)
        return descriptor.handler(response, resp.text)


def upload_resumable(
    transport: Transport,
    service: StorageService,
    location: Location,
    payload: Payload,
    md: CanonicalMetadata | None = None,
    chunk_size: int = RESUMABLE_UPLOAD_CHUNK_SIZE,
    mappings: tuple[FieldMapping, ...] | None = None,
    session_url: str | None = None,
    progress: Callable[[ResumableUploadStatus], None] | None = None,
) -> ResumableUploadStatus:
    """Run a resumable upload to completion.

    With ``session_url`` an interrupted upload is resumed from wherever the
    server says it got to.
    """
    check_chunk_size(chunk_size)
    if mappings is None:
        mappings = get_mappings()
    status = None
    if session_url is None:
        session_url = transport.send(
            create_resumable_upload(
                service, location, mappings, payload, md
            )
        )
        logger.info(f"Started resumable upload of {location}")
    else:
        status = transport.send(
            get_resumable_upload_status(
                service, location, session_url, payload
            )
        )
        logger.info(
            f"Resuming upload of {location} at "
            f"{status.bytes_transferred}/{status.total_bytes} bytes"
        )
    while status is None or not status.finalized:
        finalizing = (
            status is not None
            and status.bytes_transferred == status.total_bytes
        )
        status = transport.send(
            continue_resumable_upload(
                location,
                service,
                session_url,
                payload,
                chunk_size,
                mappings,
                status,
            )
        )
        logger.info(
            f"Uploaded {status.bytes_transferred}/{status.total_bytes} "
            f"bytes of {location}"
        )
        if progress is not None:
            progress(status)
        if finalizing and not status.finalized:
            raise errors.protocol_violation(
                "Upload was not final after a finalize request"
            )
    return status


def upload(
    transport: Transport,
    service: StorageService,
    location: Location,
    payload: Payload,
    md: CanonicalMetadata | None = None,
    resumable: bool | None = None,
    chunk_size: int = RESUMABLE_UPLOAD_CHUNK_SIZE,
) -> CanonicalMetadata:
    """Upload a payload and return the new object's metadata.

    Small payloads go in one multipart request unless ``resumable`` says
    otherwise.
    """
    mappings = get_mappings()
    if resumable is None:
        resumable = payload.size() > MULTIPART_UPLOAD_THRESHOLD
    if not resumable:
        return transport.send(
            operations.multipart_upload(
                service, location, mappings, payload, md
            )
        )
    status = upload_resumable(
        transport,
        service,
        location,
        payload,
        md=md,
        chunk_size=chunk_size,
        mappings=mappings,
    )
    return status.metadata


def list_all(
    transport: Transport,
    service: StorageService,
    location: Location,
    max_results: int | None = None,
) -> operations.ListResult:
    """List every prefix and item under a location, following pages."""
    prefixes = []
    items = []
    page_token = None
    while True:
        page = transport.send(
            operations.list_objects(
                service,
                location,
                page_token=page_token,
                max_results=max_results,
            )
        )
        prefixes += page.prefixes
        items += page.items
        page_token = page.next_page_token
        if not page_token:
            break
    return operations.ListResult(prefixes=prefixes, items=items)
