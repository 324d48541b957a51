"""Storage errors.

Every failure that comes out of a request handler is a ``StorageError``. The
``code`` says what kind of failure it was, so callers can branch on it
without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class StorageErrorCode(str, Enum):
    UNKNOWN = "unknown"
    OBJECT_NOT_FOUND = "object-not-found"
    QUOTA_EXCEEDED = "quota-exceeded"
    MALFORMED_RESPONSE = "malformed-response"
    PROTOCOL_VIOLATION = "protocol-violation"
    SERVER_FILE_WRONG_SIZE = "server-file-wrong-size"
    CANNOT_SLICE_PAYLOAD = "cannot-slice-payload"
    INVALID_ARGUMENT = "invalid-argument"
    NO_DOWNLOAD_URL = "no-download-url"


def prepend_code(code: StorageErrorCode) -> str:
    return "storagewire/" + code.value


class StorageError(Exception):
    """An error raised while building or interpreting a storage request."""

    def __init__(
        self,
        code: StorageErrorCode,
        message: str,
        status: int | None = None,
        server_response: str | None = None,
    ):
        self.code = code
        self.message = f"{message} ({prepend_code(code)})"
        self.status = status
        self.server_response = server_response
        super().__init__(self.message)

    def code_equals(self, code: StorageErrorCode) -> bool:
        return self.code == code

    def __repr__(self) -> str:
        return (
            f"StorageError(code={self.code.value!r}, "
            f"status={self.status!r})"
        )


def unknown(
    status: int | None = None, server_response: str | None = None
) -> StorageError:
    return StorageError(
        StorageErrorCode.UNKNOWN,
        "An unknown error occurred, please check the error payload for "
        "server response.",
        status=status,
        server_response=server_response,
    )


def object_not_found(path: str) -> StorageError:
    return StorageError(
        StorageErrorCode.OBJECT_NOT_FOUND, f"Object '{path}' does not exist."
    )


def quota_exceeded(bucket: str) -> StorageError:
    return StorageError(
        StorageErrorCode.QUOTA_EXCEEDED,
        f"Quota for bucket '{bucket}' exceeded, please view quota on "
        "the storage console.",
    )


def malformed_response(detail: str | None = None) -> StorageError:
    msg = "Server response could not be interpreted."
    if detail:
        msg += " " + detail
    return StorageError(StorageErrorCode.MALFORMED_RESPONSE, msg)


def protocol_violation(detail: str) -> StorageError:
    return StorageError(
        StorageErrorCode.PROTOCOL_VIOLATION,
        "Server returned an unexpected value: " + detail,
    )


def server_file_wrong_size() -> StorageError:
    return StorageError(
        StorageErrorCode.SERVER_FILE_WRONG_SIZE,
        "Server recorded incorrect upload file size, please retry the "
        "upload.",
    )


def cannot_slice_payload() -> StorageError:
    return StorageError(
        StorageErrorCode.CANNOT_SLICE_PAYLOAD,
        "Cannot slice payload for upload. Please retry the upload.",
    )


def invalid_argument(message: str) -> StorageError:
    return StorageError(StorageErrorCode.INVALID_ARGUMENT, message)


def no_download_url() -> StorageError:
    return StorageError(
        StorageErrorCode.NO_DOWNLOAD_URL,
        "The given file does not have any download URLs.",
    )
