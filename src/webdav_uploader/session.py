"""Authenticated session state shared by the protocol components."""

from __future__ import annotations

import logging

import httpx

from webdav_uploader._internal.transport import DEFAULT_TIMEOUT, DAVTransport
from webdav_uploader.exceptions import SessionError
from webdav_uploader.urls import build_url, normalize_base_url

logger = logging.getLogger(__name__)


class WebDAVSession:
    """Credentials, connection pool and caches for one login.

    The directory cache only ever grows: a directory deleted behind our back
    is not noticed until a write into it fails.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        auth_scheme: str = "basic",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self.username: str | None = username
        self.password: str | None = password
        self.transport: DAVTransport | None = DAVTransport(
            username,
            password,
            auth_scheme=auth_scheme,
            timeout=timeout,
            transport=transport,
        )
        self.existing_directories: set[str] = set()
        self.timestamp: int | None = None

    @property
    def is_open(self) -> bool:
        return self.transport is not None

    def url(self, path: str, is_directory: bool = False) -> str:
        """Absolute URL of ``path`` under this session's base."""
        return build_url(self.base_url, path, is_directory)

    def request(self, method: str, url: str, **kwargs) -> httpx.Response:  # type: ignore[no-untyped-def]
        """Send a request through the session's transport."""
        if self.transport is None:
            raise SessionError("Session is closed. Call login() first.")
        return self.transport.request(method, url, **kwargs)

    def close(self) -> None:
        """Drop the credentials and close the connection pool."""
        if self.transport is not None:
            self.transport.close()
            logger.debug(f"Closed session for {self.username}@{self.base_url}")
        self.transport = None
        self.username = self.password = None
        self.existing_directories.clear()
