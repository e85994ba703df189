"""Pytest fixtures for webdav_uploader tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import BASE_URL, PASSWORD, USERNAME, FakeDAVServer

from webdav_uploader import WebDAVUploader

ENV_VARS = ("WEBDAV_URL", "WEBDAV_USERNAME", "WEBDAV_PASSWORD", "WEBDAV_AUTH", "WEBDAV_TIMEOUT")


@pytest.fixture(autouse=True)
def no_netrc(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's own ~/.netrc out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear WEBDAV_* variables, including any a .env file sets during a test."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def dav_server() -> FakeDAVServer:
    """Create an empty WebDAV server whose root collection exists."""
    return FakeDAVServer()


@pytest.fixture
def uploader(dav_server: FakeDAVServer) -> WebDAVUploader:
    """Create an uploader logged in to ``dav_server``."""
    client = WebDAVUploader(BASE_URL, USERNAME, PASSWORD, transport=dav_server.transport)
    dav_server.requests.clear()
    return client


@pytest.fixture
def temp_file(tmp_path: Path) -> Path:
    """Create a small local file to upload."""
    path = tmp_path / "notes.txt"
    path.write_bytes(b"The first line\nThe second line\n")
    return path
