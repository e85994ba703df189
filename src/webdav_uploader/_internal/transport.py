"""httpx-backed transport that speaks the WebDAV verbs."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

import httpx

from webdav_uploader.exceptions import TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "webdav-uploader/0.1.0"
DEFAULT_TIMEOUT = 60.0

XML_HEADERS = {
    "Depth": "0",
    "Brief": "t",
    "Content-Type": 'text/xml; charset="utf-8"',
}


def status_line(response: httpx.Response) -> str:
    """Format the status of ``response`` as ``"<code> <reason>"``."""
    return f"{response.status_code} {response.reason_phrase}".rstrip()


class DAVTransport:
    """Authenticated connection pool issuing arbitrary HTTP verbs.

    ``transport`` may be any httpx transport; the tests pass an
    ``httpx.MockTransport`` wired to an in-memory server.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        auth_scheme: str = "basic",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if auth_scheme == "basic":
            auth: httpx.Auth = httpx.BasicAuth(username, password)
        elif auth_scheme == "digest":
            # Digest reuses the last challenge, so streamed PUTs after the
            # login OPTIONS are authorized without being replayed.
            auth = httpx.DigestAuth(username, password)
        else:
            raise ValueError(f"Unsupported auth scheme: {auth_scheme}")
        self._client = httpx.Client(
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        xml: str | None = None,
        content: bytes | Iterable[bytes] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request and read the whole response.

        An ``xml`` body gets the depth-0 property headers; any other request
        is sent as ``application/octet-stream``.

        Raises:
            TransportError: If the request could not be completed
        """
        request_headers: dict[str, str] = {}
        if xml is not None:
            request_headers.update(XML_HEADERS)
            content = xml.encode("utf-8")
        else:
            request_headers["Content-Type"] = "application/octet-stream"
        if headers:
            request_headers.update(headers)

        try:
            response = self._client.request(method, url, content=content, headers=request_headers)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        logger.debug(f"Sent request {method} {url}")
        logger.debug(f"Response: {status_line(response)}")
        for key, value in response.headers.items():
            logger.debug(f"Header: {key} = {value}")
        return response

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._client.close()
