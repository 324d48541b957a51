"""Tests for the ``storagewire.resumable`` module."""

import json

import pytest
from pydantic import ValidationError

from storagewire import metadata
from storagewire.constants import CHUNK_GRANULARITY
from storagewire.errors import StorageError, StorageErrorCode
from storagewire.location import Location
from storagewire.payload import Payload
from storagewire.requestinfo import TransportResponse
from storagewire.resumable import (
    ResumableUploadStatus,
    UploadState,
    check_chunk_size,
    continue_resumable_upload,
    create_resumable_upload,
    get_resumable_upload_status,
    next_upload_state,
    upload_command,
)
from storagewire.url import make_url

HOST = "firebasestorage.googleapis.com"
LOCATION = Location(bucket="b", path="o")
SESSION_URL = "https://some.upload/session/url"
USER_METADATA = {
    "content_type": "application/jason",
    "custom_metadata": {"foo": "bar"},
}
CHUNK = CHUNK_GRANULARITY


def response(status=200, **headers):
    return TransportResponse(status=status, headers=headers)


def active(**headers):
    return response(**{"X-Goog-Upload-Status": "active"}, **headers)


def final(**headers):
    return response(**{"X-Goog-Upload-Status": "final"}, **headers)


def status(sent, total, finalized=False):
    return ResumableUploadStatus(
        bytes_transferred=sent, total_bytes=total, finalized=finalized
    )


def test_create_resumable_upload(service, mappings):
    payload = Payload(b"a")
    descriptor = create_resumable_upload(
        service, LOCATION, mappings, payload, USER_METADATA
    )
    assert descriptor.url == make_url("/b/b/o", HOST)
    assert descriptor.method == "POST"
    assert descriptor.url_params == {"name": "o"}
    assert descriptor.headers == {
        "X-Goog-Upload-Protocol": "resumable",
        "X-Goog-Upload-Command": "start",
        "X-Goog-Upload-Header-Content-Length": "1",
        "X-Goog-Upload-Header-Content-Type": "application/jason",
        "Content-Type": "application/json; charset=utf-8",
    }
    assert json.loads(descriptor.body) == {
        "name": "o",
        "contentType": "application/jason",
        "metadata": {"foo": "bar"},
    }
    url = descriptor.handler(
        active(**{"X-Goog-Upload-URL": SESSION_URL}), ""
    )
    assert url == SESSION_URL


def test_create_resumable_upload_bad_response(service, mappings):
    descriptor = create_resumable_upload(
        service, LOCATION, mappings, Payload(b"a")
    )
    with pytest.raises(StorageError) as e:
        descriptor.handler(active(), "")
    assert e.value.code_equals(StorageErrorCode.MALFORMED_RESPONSE)
    with pytest.raises(StorageError) as e:
        descriptor.handler(response(), "")
    assert e.value.code_equals(StorageErrorCode.MALFORMED_RESPONSE)
    with pytest.raises(StorageError) as e:
        descriptor.handler(
            final(**{"X-Goog-Upload-URL": SESSION_URL}), ""
        )
    assert e.value.code_equals(StorageErrorCode.PROTOCOL_VIOLATION)


def test_get_resumable_upload_status(service):
    payload = Payload(b"a" * 10)
    descriptor = get_resumable_upload_status(
        service, LOCATION, SESSION_URL, payload
    )
    assert descriptor.url == SESSION_URL
    assert descriptor.method == "POST"
    assert descriptor.headers == {"X-Goog-Upload-Command": "query"}
    assert descriptor.body is None
    result = descriptor.handler(
        active(**{"X-Goog-Upload-Size-Received": "4"}), ""
    )
    assert result == status(4, 10)
    result = descriptor.handler(
        final(**{"X-Goog-Upload-Size-Received": "10"}), ""
    )
    assert result == status(10, 10, finalized=True)


@pytest.mark.parametrize(
    "headers, code",
    [
        (
            {"X-Goog-Upload-Status": "active"},
            StorageErrorCode.MALFORMED_RESPONSE,
        ),
        (
            {
                "X-Goog-Upload-Status": "active",
                "X-Goog-Upload-Size-Received": "lots",
            },
            StorageErrorCode.MALFORMED_RESPONSE,
        ),
        (
            {
                "X-Goog-Upload-Status": "active",
                "X-Goog-Upload-Size-Received": "11",
            },
            StorageErrorCode.SERVER_FILE_WRONG_SIZE,
        ),
        (
            {
                "X-Goog-Upload-Status": "final",
                "X-Goog-Upload-Size-Received": "5",
            },
            StorageErrorCode.SERVER_FILE_WRONG_SIZE,
        ),
        (
            {
                "X-Goog-Upload-Status": "cancelled",
                "X-Goog-Upload-Size-Received": "5",
            },
            StorageErrorCode.PROTOCOL_VIOLATION,
        ),
    ],
)
def test_get_resumable_upload_status_bad_response(service, headers, code):
    descriptor = get_resumable_upload_status(
        service, LOCATION, SESSION_URL, Payload(b"a" * 10)
    )
    with pytest.raises(StorageError) as e:
        descriptor.handler(response(**headers), "")
    assert e.value.code_equals(code)


def test_continue_first_and_only_chunk(
    service, mappings, server_resource_string
):
    payload = Payload(b"abc")
    descriptor = continue_resumable_upload(
        LOCATION, service, SESSION_URL, payload, CHUNK, mappings
    )
    assert descriptor.url == SESSION_URL
    assert descriptor.method == "POST"
    assert descriptor.headers == {
        "X-Goog-Upload-Command": "upload, finalize",
        "X-Goog-Upload-Offset": "0",
    }
    assert descriptor.body == b"abc"
    result = descriptor.handler(final(), server_resource_string)
    assert result.finalized
    assert result.bytes_transferred == 3
    assert result.metadata == metadata.parse(
        server_resource_string, mappings
    )


def test_continue_middle_chunk(service, mappings):
    data = bytes(range(256)) * (3 * CHUNK // 256)
    payload = Payload(data)
    descriptor = continue_resumable_upload(
        LOCATION,
        service,
        SESSION_URL,
        payload,
        CHUNK,
        mappings,
        status(CHUNK, len(data)),
    )
    assert descriptor.headers == {
        "X-Goog-Upload-Command": "upload",
        "X-Goog-Upload-Offset": str(CHUNK),
    }
    assert descriptor.body == data[CHUNK : 2 * CHUNK]
    result = descriptor.handler(active(), "")
    assert result == status(2 * CHUNK, len(data))


def test_continue_later_chunk_reaching_the_end(service, mappings):
    payload = Payload(b"a" * (CHUNK + 1))
    descriptor = continue_resumable_upload(
        LOCATION,
        service,
        SESSION_URL,
        payload,
        CHUNK,
        mappings,
        status(CHUNK, CHUNK + 1),
    )
    # The final data chunk is not finalized in the same request
    assert descriptor.headers["X-Goog-Upload-Command"] == "upload"
    assert descriptor.body == b"a"
    result = descriptor.handler(active(), "")
    assert result == status(CHUNK + 1, CHUNK + 1)
    assert next_upload_state(result) == UploadState.ACTIVE


def test_continue_finalize_only(service, mappings, server_resource_string):
    payload = Payload(b"a" * (CHUNK + 1))
    descriptor = continue_resumable_upload(
        LOCATION,
        service,
        SESSION_URL,
        payload,
        CHUNK,
        mappings,
        status(CHUNK + 1, CHUNK + 1),
    )
    assert descriptor.headers == {
        "X-Goog-Upload-Command": "finalize",
        "X-Goog-Upload-Offset": str(CHUNK + 1),
    }
    assert descriptor.body == b""
    result = descriptor.handler(final(), server_resource_string)
    assert result.finalized
    assert next_upload_state(result) == UploadState.FINAL


@pytest.mark.parametrize(
    "size", [1, CHUNK - 1, CHUNK, CHUNK + 1, 3 * CHUNK, 3 * CHUNK + 7]
)
def test_data_bearing_request_count(service, mappings, size):
    payload = Payload(b"x" * size)
    current = None
    data_requests = 0
    finalize_requests = 0
    sent = b""
    while current is None or not current.finalized:
        descriptor = continue_resumable_upload(
            LOCATION, service, SESSION_URL, payload, CHUNK, mappings, current
        )
        command = descriptor.headers["X-Goog-Upload-Command"]
        if command == "finalize":
            finalize_requests += 1
        else:
            data_requests += 1
        sent += descriptor.body
        if "finalize" in command:
            current = descriptor.handler(final(), '{"name": "o"}')
        else:
            current = descriptor.handler(active(), "")
    assert data_requests == -(-size // CHUNK)
    assert finalize_requests == (1 if size > CHUNK else 0)
    assert sent == payload.upload_data()


def test_upload_command():
    assert upload_command(0, 10, 10) == "upload, finalize"
    assert upload_command(0, 5, 10) == "upload"
    assert upload_command(5, 5, 10) == "upload"
    assert upload_command(10, 0, 10) == "finalize"
    assert upload_command(0, 0, 0) == "finalize"


def test_continue_invalid_arguments(service, mappings):
    payload = Payload(b"abc")
    for chunk_size in [0, CHUNK + 1, 1000]:
        with pytest.raises(StorageError) as e:
            continue_resumable_upload(
                LOCATION, service, SESSION_URL, payload, chunk_size, mappings
            )
        assert e.value.code_equals(StorageErrorCode.INVALID_ARGUMENT)
    with pytest.raises(StorageError) as e:
        continue_resumable_upload(
            LOCATION,
            service,
            SESSION_URL,
            payload,
            CHUNK,
            mappings,
            status(3, 3, finalized=True),
        )
    assert e.value.code_equals(StorageErrorCode.INVALID_ARGUMENT)
    with pytest.raises(StorageError) as e:
        continue_resumable_upload(
            LOCATION,
            service,
            SESSION_URL,
            payload,
            CHUNK,
            mappings,
            status(1, 4),
        )
    assert e.value.code_equals(StorageErrorCode.SERVER_FILE_WRONG_SIZE)


def test_continue_protocol_violation(service, mappings):
    descriptor = continue_resumable_upload(
        LOCATION, service, SESSION_URL, Payload(b"abc"), CHUNK, mappings
    )
    with pytest.raises(StorageError) as e:
        descriptor.handler(response(**{"X-Goog-Upload-Status": "gone"}), "")
    assert e.value.code_equals(StorageErrorCode.PROTOCOL_VIOLATION)


def test_status_invariants():
    assert next_upload_state(None) == UploadState.NOT_STARTED
    for kwargs in [
        dict(bytes_transferred=-1, total_bytes=3),
        dict(bytes_transferred=4, total_bytes=3),
        dict(bytes_transferred=2, total_bytes=3, finalized=True),
        dict(bytes_transferred=2, total_bytes=3, metadata={"name": "o"}),
    ]:
        with pytest.raises(ValidationError):
            ResumableUploadStatus(**kwargs)
    done = ResumableUploadStatus(
        bytes_transferred=3,
        total_bytes=3,
        finalized=True,
        metadata={"name": "o"},
    )
    assert done.metadata == {"name": "o"}


def test_check_chunk_size():
    check_chunk_size(CHUNK)
    check_chunk_size(8 * CHUNK)
    for chunk_size in [-CHUNK, 0, 1, CHUNK + 1]:
        with pytest.raises(StorageError) as e:
            check_chunk_size(chunk_size)
        assert e.value.code_equals(StorageErrorCode.INVALID_ARGUMENT)
