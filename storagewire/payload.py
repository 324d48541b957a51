"""Upload payloads."""

from __future__ import annotations

import mimetypes


class Payload:
    """An immutable run of bytes to upload.

    ``slice`` returns ``None`` for ranges that cannot be taken, which is
    distinct from a valid zero-length slice at the end of the data.
    """

    def __init__(
        self,
        data: bytes | bytearray | memoryview | str,
        content_type: str | None = None,
    ):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._data = bytes(data)
        self.content_type = content_type

    @classmethod
    def from_file(cls, path: str, content_type: str | None = None) -> Payload:
        if content_type is None:
            content_type, _ = mimetypes.guess_type(path)
        with open(path, "rb") as f:
            return cls(f.read(), content_type=content_type)

    @classmethod
    def concat(cls, *payloads: Payload) -> Payload:
        return cls(b"".join(p.upload_data() for p in payloads))

    def size(self) -> int:
        return len(self._data)

    def slice(self, start: int, end: int) -> Payload | None:
        if start < 0 or start > end or start > self.size():
            return None
        end = min(end, self.size())
        return Payload(self._data[start:end], content_type=self.content_type)

    def upload_data(self) -> bytes:
        return self._data

    def __eq__(self, other) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data)

    def __repr__(self) -> str:
        return (
            f"Payload(size={self.size()}, "
            f"content_type={self.content_type!r})"
        )
