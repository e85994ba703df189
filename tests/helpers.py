"""Shared test helpers for webdav_uploader tests."""

from __future__ import annotations

import base64
import uuid

import httpx

HOST = "https://dav.example.org"
ROOT = "/site/"
BASE_URL = HOST + ROOT
USERNAME = "alice"
PASSWORD = "secret"
SERVER_DATE = "Wed, 16 Oct 2024 12:34:56 GMT"
DEFAULT_ALLOW = "OPTIONS, GET, HEAD, PUT, DELETE, PROPFIND, MKCOL, COPY, MOVE, LOCK, UNLOCK"


def _multistatus(href: str, collection: bool) -> bytes:
    resourcetype = "<D:resourcetype><D:collection/></D:resourcetype>" if collection else (
        "<D:resourcetype/>"
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<D:multistatus xmlns:D="DAV:"><D:response>'
        f"<D:href>{href}</D:href>"
        f"<D:propstat><D:prop>{resourcetype}</D:prop>"
        "<D:status>HTTP/1.1 200 OK</D:status></D:propstat>"
        "</D:response></D:multistatus>"
    ).encode()


def _lockdiscovery(token: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<D:prop xmlns:D="DAV:"><D:lockdiscovery><D:activelock>'
        "<D:locktype><D:write/></D:locktype>"
        "<D:lockscope><D:exclusive/></D:lockscope>"
        "<D:depth>0</D:depth>"
        "<D:timeout>Second-600</D:timeout>"
        f"<D:locktoken><D:href>{token}</D:href></D:locktoken>"
        "</D:activelock></D:lockdiscovery></D:prop>"
    ).encode()


class FakeDAVServer:
    """In-memory WebDAV server with RFC 4918 lock semantics.

    Paths are kept decoded and relative to ``ROOT``, without trailing
    slashes; the root collection is "". Individual requests can be made to
    fail by adding ``(method, path) -> status`` entries to ``failures``.
    """

    def __init__(self, *, root_exists: bool = True, allow: str | None = DEFAULT_ALLOW) -> None:
        self.collections: set[str] = {""} if root_exists else set()
        self.files: dict[str, bytes] = {}
        self.locks: dict[str, str] = {}
        self.allow = allow
        self.date: str | None = SERVER_DATE
        self.failures: dict[tuple[str, str], int] = {}
        self.requests: list[tuple[str, str]] = []
        self.put_sizes: dict[str, int] = {}
        self.lock_bodies: list[bytes] = []
        self.username = USERNAME
        self.password = PASSWORD

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: str) -> list[str]:
        """Paths of every request made with ``method``, in order."""
        return [path for verb, path in self.requests if verb == method]

    def _relative(self, url: httpx.URL) -> str:
        path = url.path
        assert path.startswith(ROOT.rstrip("/")), path
        return path[len(ROOT):].strip("/") if len(path) >= len(ROOT) else ""

    def _parent_exists(self, path: str) -> bool:
        return path.rpartition("/")[0] in self.collections

    def _holds_lock(self, path: str, request: httpx.Request) -> bool:
        token = self.locks.get(path)
        return token is None or f"(<{token}>)" in request.headers.get("If", "")

    def _authorized(self, request: httpx.Request) -> bool:
        expected = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return request.headers.get("Authorization") == f"Basic {expected}"

    def handle(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = self._relative(request.url)
        self.requests.append((method, path))

        if not self._authorized(request):
            return httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="dav"'})
        if (method, path) in self.failures:
            return httpx.Response(self.failures[(method, path)])

        handler = getattr(self, f"_do_{method.lower()}", None)
        if handler is None:
            return httpx.Response(405)
        return handler(path, request)

    def _do_options(self, path: str, request: httpx.Request) -> httpx.Response:
        headers = {"DAV": "1, 2"}
        if self.allow is not None:
            headers["Allow"] = self.allow
        return httpx.Response(200, headers=headers)

    def _do_propfind(self, path: str, request: httpx.Request) -> httpx.Response:
        if path in self.collections:
            return httpx.Response(207, content=_multistatus(request.url.path, True))
        if path in self.files:
            return httpx.Response(207, content=_multistatus(request.url.path, False))
        return httpx.Response(404)

    def _do_mkcol(self, path: str, request: httpx.Request) -> httpx.Response:
        if path in self.collections or path in self.files:
            return httpx.Response(405)
        if not self._parent_exists(path):
            return httpx.Response(409)
        self.collections.add(path)
        return httpx.Response(201)

    def _do_lock(self, path: str, request: httpx.Request) -> httpx.Response:
        self.lock_bodies.append(request.content)
        if not self._parent_exists(path):
            return httpx.Response(409)
        if path in self.locks:
            return httpx.Response(423)
        token = f"opaquelocktoken:{uuid.uuid4()}"
        self.locks[path] = token
        status = 200
        if path not in self.files:
            # Locking an unmapped URL creates an empty resource.
            self.files[path] = b""
            status = 201
        headers = {"Lock-Token": f"<{token}>"}
        if self.date is not None:
            headers["Date"] = self.date
        return httpx.Response(status, headers=headers, content=_lockdiscovery(token))

    def _do_unlock(self, path: str, request: httpx.Request) -> httpx.Response:
        token = request.headers.get("Lock-Token", "").strip("<>")
        if self.locks.get(path) != token:
            return httpx.Response(409)
        del self.locks[path]
        return httpx.Response(204)

    def _do_put(self, path: str, request: httpx.Request) -> httpx.Response:
        if not self._parent_exists(path):
            return httpx.Response(409)
        if not self._holds_lock(path, request):
            return httpx.Response(423)
        existed = path in self.files
        self.files[path] = request.content
        self.put_sizes[path] = len(request.content)
        return httpx.Response(204 if existed else 201)

    def _do_move(self, path: str, request: httpx.Request) -> httpx.Response:
        if path not in self.files:
            return httpx.Response(404)
        if not self._holds_lock(path, request):
            return httpx.Response(423)
        target = self._relative(httpx.URL(request.headers["Destination"]))
        existed = target in self.files
        if existed and request.headers.get("Overwrite", "T") == "F":
            return httpx.Response(412)
        if target in self.locks or not self._parent_exists(target):
            return httpx.Response(409)
        self.files[target] = self.files.pop(path)
        self.locks.pop(path, None)
        return httpx.Response(204 if existed else 201)

    def _do_delete(self, path: str, request: httpx.Request) -> httpx.Response:
        if not self._holds_lock(path, request):
            return httpx.Response(423)
        if path in self.files:
            del self.files[path]
            return httpx.Response(204)
        if path and path in self.collections:
            prefix = path + "/"
            self.collections = {c for c in self.collections if c != path and not c.startswith(prefix)}
            self.files = {f: b for f, b in self.files.items() if not f.startswith(prefix)}
            return httpx.Response(204)
        return httpx.Response(404)

    def _do_get(self, path: str, request: httpx.Request) -> httpx.Response:
        if path in self.files:
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404)
