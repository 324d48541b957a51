"""Request descriptors and error translation."""

from __future__ import annotations

from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict

from storagewire import errors
from storagewire.constants import DEFAULT_MAX_OPERATION_RETRY_TIME
from storagewire.errors import StorageError
from storagewire.location import Location
from storagewire.url import make_query_string

Method = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class TransportResponse(BaseModel):
    """What a transport hands back to a request handler.

    ``status`` is ``None`` when the request never got a response.
    """

    model_config = ConfigDict(frozen=True)

    status: int | None = None
    headers: dict[str, str] = {}

    def get_header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None


ResponseHandler = Callable[[TransportResponse, Any], Any]
ErrorHandler = Callable[[TransportResponse, StorageError], StorageError]


class RequestDescriptor(BaseModel):
    """Everything a transport needs to issue one request and interpret it.

    ``handler`` is called with the response and its body for statuses in
    ``success_codes``; ``error_handler`` turns the transport's default error
    into a more specific one otherwise.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    method: Method
    handler: ResponseHandler
    headers: dict[str, str] = {}
    url_params: dict[str, str | int] = {}
    body: bytes | str | None = None
    error_handler: ErrorHandler | None = None
    success_codes: tuple[int, ...] = (200,)
    timeout: float = DEFAULT_MAX_OPERATION_RETRY_TIME
    # Whether the handler wants the response body decoded or as raw bytes
    response_type: Literal["text", "bytes"] = "text"

    def full_url(self) -> str:
        return self.url + make_query_string(self.url_params)


def translate_status(
    status: int | None,
    error: StorageError,
    location: Location,
    object_errors: bool = True,
) -> StorageError:
    """Map an HTTP status onto an error kind.

    Only 404 (when ``object_errors`` is set) and 402 change the kind;
    everything else, including a missing status, returns ``error`` as is.
    """
    if object_errors and status == 404:
        new_error = errors.object_not_found(location.path)
    elif status == 402:
        new_error = errors.quota_exceeded(location.bucket)
    else:
        return error
    new_error.status = status
    new_error.server_response = error.server_response
    return new_error


def shared_error_handler(location: Location) -> ErrorHandler:
    def error_handler(
        response: TransportResponse, error: StorageError
    ) -> StorageError:
        return translate_status(
            response.status, error, location, object_errors=False
        )

    return error_handler


def object_error_handler(location: Location) -> ErrorHandler:
    def error_handler(
        response: TransportResponse, error: StorageError
    ) -> StorageError:
        return translate_status(response.status, error, location)

    return error_handler
