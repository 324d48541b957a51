"""Object locations and path helpers."""

from __future__ import annotations

import re
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, field_validator

from storagewire import errors
from storagewire.constants import DEFAULT_HOST, GCS_HOST
from storagewire.url import encode_path, encode_segment

_BUCKET_PATTERN = r"([A-Za-z0-9.\-_]+)"


def parent(path: str) -> str | None:
    """Return the parent of a path, or ``None`` for the root."""
    if not path:
        return None
    index = path.rfind("/")
    if index == -1:
        return ""
    return path[:index]


def child(path: str, child_path: str) -> str:
    canonical_child = "/".join(
        part for part in child_path.split("/") if part
    )
    if not path:
        return canonical_child
    return path + "/" + canonical_child


def last_component(path: str) -> str:
    index = path.rfind("/", 0, len(path) - 1)
    if index == -1:
        return path
    return path[index + 1 :]


class Location(BaseModel):
    """A bucket and an object path inside it.

    The root of a bucket has an empty path.
    """

    model_config = ConfigDict(frozen=True)

    bucket: str
    path: str = ""

    @field_validator("path")
    @classmethod
    def strip_leading_slash(cls, v: str) -> str:
        return v.lstrip("/")

    @property
    def is_root(self) -> bool:
        return self.path == ""

    @property
    def name(self) -> str:
        return last_component(self.path)

    def full_server_url(self) -> str:
        return (
            "/b/"
            + encode_segment(self.bucket)
            + "/o/"
            + encode_path(self.path)
        )

    def bucket_only_server_url(self) -> str:
        return "/b/" + encode_segment(self.bucket) + "/o"

    def child(self, child_path: str) -> Location:
        return Location(bucket=self.bucket, path=child(self.path, child_path))

    def parent(self) -> Location | None:
        parent_path = parent(self.path)
        if parent_path is None:
            return None
        return Location(bucket=self.bucket, path=parent_path)

    def __str__(self) -> str:
        return f"gs://{self.bucket}/{self.path}"

    @classmethod
    def from_bucket_spec(cls, bucket_spec: str) -> Location:
        """Create a root location from ``bucket`` or ``gs://bucket``."""
        try:
            location = cls.from_url(bucket_spec)
        except errors.StorageError:
            # Not a URL, so it should be a bare bucket name
            return cls(bucket=bucket_spec, path="")
        if not location.is_root:
            raise errors.invalid_argument(
                f"Invalid bucket spec '{bucket_spec}'; it has a path"
            )
        return location

    @classmethod
    def from_url(cls, url: str, host: str = DEFAULT_HOST) -> Location:
        """Parse a ``gs://``, REST API or Cloud Storage URL."""
        gs_match = re.match(rf"^gs://{_BUCKET_PATTERN}(/(.*))?$", url)
        if gs_match:
            path = gs_match.group(3) or ""
            if path.endswith("/"):
                path = path[:-1]
            return cls(bucket=gs_match.group(1), path=path)
        host_pattern = re.escape(host.split("://")[-1])
        api_match = re.match(
            rf"^https?://{host_pattern}/v[A-Za-z0-9_]+/b/"
            rf"{_BUCKET_PATTERN}/o(/([^?#]*))?",
            url,
            flags=re.IGNORECASE,
        )
        if api_match:
            return cls(
                bucket=api_match.group(1),
                path=unquote(api_match.group(3) or ""),
            )
        gcs_hosts = "|".join(
            re.escape(h) for h in [GCS_HOST, "storage.cloud.google.com"]
        )
        gcs_match = re.match(
            rf"^https?://(?:{gcs_hosts})/{_BUCKET_PATTERN}/([^?#]*)",
            url,
            flags=re.IGNORECASE,
        )
        if gcs_match:
            return cls(
                bucket=gcs_match.group(1), path=unquote(gcs_match.group(2))
            )
        raise errors.invalid_argument(f"Invalid URL '{url}'")
