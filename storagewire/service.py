"""The storage service context shared by request builders."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from storagewire import errors
from storagewire.config import Settings
from storagewire.constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_OPERATION_RETRY_TIME,
    DEFAULT_MAX_UPLOAD_RETRY_TIME,
    DEFAULT_PROTOCOL,
)
from storagewire.location import Location


class StorageService(BaseModel):
    """Where requests go and how long the transport may spend on them."""

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    protocol: str = DEFAULT_PROTOCOL
    bucket: str | None = None
    max_operation_retry_time: float = DEFAULT_MAX_OPERATION_RETRY_TIME
    max_upload_retry_time: float = DEFAULT_MAX_UPLOAD_RETRY_TIME

    @classmethod
    def from_config(cls, settings: Settings) -> StorageService:
        return cls(
            host=settings.host,
            protocol=settings.protocol,
            bucket=settings.bucket,
            max_operation_retry_time=settings.max_operation_retry_time,
            max_upload_retry_time=settings.max_upload_retry_time,
        )

    def make_location(self, target: str) -> Location:
        """Resolve a URL, or a path inside the default bucket."""
        if "://" in target:
            return Location.from_url(target, host=self.host)
        if self.bucket is None:
            raise errors.invalid_argument(
                f"No bucket given for '{target}' and no default bucket is "
                "configured"
            )
        return Location(bucket=self.bucket, path=target)
