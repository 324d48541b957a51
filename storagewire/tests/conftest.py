"""Shared fixtures."""

import json

import pytest

from storagewire import config
from storagewire.metadata import get_mappings
from storagewire.service import StorageService
from storagewire.transport import Transport

SERVER_RESOURCE = {
    "bucket": "b",
    "generation": "1",
    "metageneration": "2",
    "name": "foo/bar/baz.png",
    "size": "10",
    "timeCreated": "This is a real time",
    "updated": "Also a real time",
    "md5Hash": "deadbeef",
    "cacheControl": "max-age=604800",
    "contentDisposition": "Attachment; filename=baz.png",
    "contentLanguage": "en-US",
    "contentType": "application/jason",
    "downloadTokens": "a,b,c",
    "metadata": {"foo": "bar"},
}


class FakeResponse:
    def __init__(self, status_code=200, headers=None, body=b""):
        self.status_code = status_code
        self.headers = headers or {}
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.content = body

    @property
    def text(self):
        return self.content.decode("utf-8")


class FakeSession:
    """Stands in for ``requests.Session``, replaying canned responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append(dict(method=method, url=url, **kwargs))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's config file, keyring and env."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(
        "STORAGEWIRE_CONFIG_FILE", str(tmp_path / ".storagewire" / "cfg.yaml")
    )
    for key in ["HOST", "PROTOCOL", "BUCKET", "TOKEN", "CHUNK_SIZE"]:
        monkeypatch.delenv("STORAGEWIRE_" + key, raising=False)
    monkeypatch.setattr(config, "KEYRING_SUPPORTED", False)
    return tmp_path


@pytest.fixture
def mappings():
    return get_mappings()


@pytest.fixture
def service():
    return StorageService(bucket="b")


@pytest.fixture
def server_resource_string():
    return json.dumps(SERVER_RESOURCE)


@pytest.fixture
def make_transport():
    """Create a transport whose session replays the given responses."""

    def _make(responses, token=None):
        session = FakeSession(responses)
        return Transport(token=token, session=session), session

    return _make


@pytest.fixture
def fake_response():
    return FakeResponse
