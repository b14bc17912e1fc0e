"""
Tests for the remove.bg HTTP client
"""
import json

import pytest
import requests

from removebg_service.client import (
    API_KEY_HEADER,
    GENERIC_FAILURE_MESSAGE,
    IMAGE_FIELD,
    RemoveBgClient,
)
from removebg_service.errors import TransferError


def make_response(status_code, content=b"", headers=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.headers.update(headers or {})
    return response


class StubSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def make_client(session):
    return RemoveBgClient(api_key="secret", endpoint="https://api.remove.bg/v1.0/removebg", session=session)


class TestRemoveBackground:
    """Outbound request shape and response handling"""

    def test_success_returns_payload(self):
        session = StubSession(make_response(200, b"PNGDATA", {"Content-Type": "image/png"}))
        client = make_client(session)

        assert client.remove_background(b"source", "photo.jpg", "image/jpeg") == b"PNGDATA"

    def test_request_carries_key_and_multipart_field(self):
        session = StubSession(make_response(200, b"PNGDATA"))
        make_client(session).remove_background(b"source", "photo.jpg", "image/jpeg")

        url, kwargs = session.requests[0]
        assert url == "https://api.remove.bg/v1.0/removebg"
        assert kwargs["headers"] == {API_KEY_HEADER: "secret"}
        assert kwargs["files"] == {IMAGE_FIELD: ("photo.jpg", b"source", "image/jpeg")}
        assert kwargs["timeout"] == (5, 30)

    def test_error_body_title_is_surfaced(self):
        body = json.dumps({"errors": [{"title": "Insufficient credits"}, {"title": "Other"}]}).encode()
        session = StubSession(make_response(402, body, {"Content-Type": "application/json"}))

        with pytest.raises(TransferError) as excinfo:
            make_client(session).remove_background(b"source")

        assert excinfo.value.message == "Insufficient credits"
        assert excinfo.value.status_code == 402

    def test_unparseable_error_body_uses_fallback(self):
        session = StubSession(make_response(500, b"<html>oops</html>"))

        with pytest.raises(TransferError) as excinfo:
            make_client(session).remove_background(b"source")

        assert excinfo.value.message == GENERIC_FAILURE_MESSAGE

    @pytest.mark.parametrize("body", [b"", b"{}", b'{"errors": []}', b'{"errors": [{"code": "x"}]}', b"[1]"])
    def test_error_body_without_title_uses_fallback(self, body):
        session = StubSession(make_response(400, body))

        with pytest.raises(TransferError, match=GENERIC_FAILURE_MESSAGE):
            make_client(session).remove_background(b"source")

    def test_network_error_becomes_transfer_error(self):
        session = StubSession(error=requests.ConnectionError("dns failure"))

        with pytest.raises(TransferError) as excinfo:
            make_client(session).remove_background(b"source")

        assert excinfo.value.message == GENERIC_FAILURE_MESSAGE
        assert excinfo.value.status_code is None
        assert len(session.requests) == 1


class TestSharedClient:
    """Lazily built client from settings"""

    def test_singleton_uses_settings(self, monkeypatch):
        from removebg_service import client as client_mod, config

        monkeypatch.setenv("REMOVEBG_API_KEY", "env-key")
        monkeypatch.setattr(client_mod, "_CLIENT", None)
        config.get_settings.cache_clear()
        try:
            first = client_mod.get_removebg_client()
            assert first.api_key == "env-key"
            assert client_mod.get_removebg_client() is first
        finally:
            config.get_settings.cache_clear()
