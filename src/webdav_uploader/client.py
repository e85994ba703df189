"""Main WebDAVUploader class for publishing files to a WebDAV update site."""

from __future__ import annotations

import logging
import threading
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from pathlib import Path
from typing import Any, BinaryIO

import httpx

from webdav_uploader._internal.transport import DEFAULT_TIMEOUT, status_line
from webdav_uploader.config import resolve_credentials
from webdav_uploader.directories import DirectoryManager
from webdav_uploader.exceptions import (
    AuthenticationError,
    DirectoryCreationError,
    InsufficientPermissionsError,
    PublishMoveError,
    RootMissingError,
    SessionError,
    TransferError,
    UnlockError,
    UploaderError,
)
from webdav_uploader.locks import LockManager, if_header, lock_path
from webdav_uploader.models import DirectoryState, UploadResult, UploadTarget
from webdav_uploader.progress import NullProgress, ProgressListener, iter_chunks
from webdav_uploader.session import WebDAVSession
from webdav_uploader.urls import parent_path

logger = logging.getLogger(__name__)


class WebDAVUploader:
    """Client for publishing files to a WebDAV update site.

    Supports both context manager and manual session patterns.

    Example (context manager - recommended):
        with WebDAVUploader("https://sites.example.org/mysite/", "user", "secret") as uploader:
            uploader.upload([UploadTarget("db.xml.gz", Path("db.xml.gz"))], ["db.xml.gz"])

    Example (manual session):
        uploader = WebDAVUploader()
        uploader.login("https://sites.example.org/mysite/", "user", "secret")
        uploader.upload_file("plugins/Foo.jar", "plugins/Foo.jar-20240101000000")
        uploader.logout()
    """

    def __init__(
        self,
        base_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        *,
        auto_login: bool = True,
        auth_scheme: str = "basic",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            base_url: URL of the remote collection to publish into
            username: Account name
            password: Account password
            auto_login: If True and a base URL is provided, login immediately
            auth_scheme: "basic" or "digest"
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport to send requests through
        """
        self._base_url = base_url
        self._username = username
        self._password = password
        self._auth_scheme = auth_scheme
        self._timeout = timeout
        self._transport = transport
        self._session: WebDAVSession | None = None
        self._upload_lock = threading.Lock()

        if auto_login and base_url:
            self.login()

    def __enter__(self) -> WebDAVUploader:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager."""
        self.logout()

    @property
    def is_authenticated(self) -> bool:
        """Check if a verified session is open."""
        return self._session is not None and self._session.is_open

    @property
    def base_url(self) -> str | None:
        return self._session.base_url if self._session else self._base_url

    @property
    def timestamp(self) -> int | None:
        """Server time recorded by the first lock of the last publish."""
        return self._session.timestamp if self._session else None

    def _require_session(self) -> WebDAVSession:
        """Return the open session, or fail if there is none."""
        if self._session is None or not self._session.is_open:
            raise SessionError("Not authenticated. Call login() first.")
        return self._session

    def login(
        self,
        base_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> bool:
        """Open a session and verify that publishing is possible.

        Missing credentials are taken from the URL's userinfo or ``~/.netrc``.

        Args:
            base_url: Collection URL (uses constructor value if not provided)
            username: Account name (uses constructor value if not provided)
            password: Account password (uses constructor value if not provided)

        Returns:
            True once the session is ready

        Raises:
            AuthenticationError: If credentials are missing or rejected
            InsufficientPermissionsError: If the server does not offer LOCK
            RootMissingError: If the collection does not exist yet
        """
        base_url = base_url or self._base_url
        if not base_url:
            raise SessionError("Base URL is required")
        base_url, username, password = resolve_credentials(
            base_url, username or self._username, password or self._password
        )
        if not username or not password:
            raise AuthenticationError("Username and password are required")

        self._base_url = base_url
        self._username = username
        self._password = password

        if self._session is not None:
            self._session.close()
            self._session = None

        session = WebDAVSession(
            base_url,
            username,
            password,
            auth_scheme=self._auth_scheme,
            timeout=self._timeout,
            transport=self._transport,
        )
        try:
            if not self._probe_allowed(session):
                message = f"User {username} lacks upload permissions for {session.base_url}"
                logger.error(message)
                raise InsufficientPermissionsError(message)

            state = DirectoryManager(session).directory_exists("")
            if state is DirectoryState.UNAUTHORIZED:
                raise AuthenticationError(f"Not authorized to access {session.base_url}", 401)
            if state is DirectoryState.ABSENT:
                message = f"{session.base_url} does not exist yet!"
                logger.error(message)
                raise RootMissingError(message)
        except UploaderError:
            session.close()
            raise

        self._session = session
        logger.info(f"Logged in to {session.base_url} as {username}")
        return True

    def logout(self) -> None:
        """Close the session and forget the credentials."""
        if self._session is not None:
            self._session.close()
        self._session = None
        self._username = self._password = None

    close = logout

    def _probe_allowed(self, session: WebDAVSession) -> bool:
        response = session.request("OPTIONS", session.base_url)
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {session.base_url}: {status_line(response)}",
                response.status_code,
            )
        allow = response.headers.get("Allow")
        if allow is None:
            logger.error("Failed to retrieve OPTIONS for WebDAV actions")
            return False
        methods = {method.strip().upper() for method in allow.split(",")}
        if "LOCK" not in methods:
            logger.error(f"LOCK action not allowed; valid actions: {allow}")
            return False
        return True

    def is_allowed(self) -> bool:
        """Check that the server lets this account lock resources.

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        return self._probe_allowed(self._require_session())

    def directory_exists(self, path: str) -> DirectoryState:
        """Probe whether the remote directory ``path`` exists."""
        return DirectoryManager(self._require_session()).directory_exists(path)

    def ensure_directory_exists(self, path: str) -> bool:
        """Create the remote directory ``path`` and its ancestors if needed."""
        return DirectoryManager(self._require_session()).ensure_directory(path)

    def propfind(self, path: str, is_directory: bool = False) -> ET.Element | None:
        """Return every property of ``path`` as an XML element, or None."""
        return DirectoryManager(self._require_session()).propfind(path, is_directory)

    def delete(self, path: str, is_directory: bool = False) -> bool:
        """Delete the remote resource ``path``."""
        session = self._require_session()
        url = session.url(path, is_directory)
        response = session.request("DELETE", url)
        if response.status_code in (200, 204):
            logger.info(f"Deleted {path}")
            return True
        logger.error(f"Could not delete {path}: {status_line(response)}")
        return False

    def upload_file(
        self,
        source: str | Path | BinaryIO,
        remote_path: str,
        *,
        progress: ProgressListener | None = None,
    ) -> UploadResult:
        """Upload a single file without taking any lock."""
        target = UploadTarget(remote_path, Path(source) if isinstance(source, str) else source)
        return self.upload([target], [], progress=progress)

    def upload(
        self,
        targets: Sequence[UploadTarget],
        locks: Sequence[str] = (),
        *,
        progress: ProgressListener | None = None,
    ) -> UploadResult:
        """Publish ``targets``, atomically replacing every locked name.

        Each name in ``locks`` is guarded by a lock on ``name.lock``. The
        matching target is written to that placeholder and moved onto
        ``name`` once every target has been uploaded. Whatever happens, every
        lock that was not consumed by a move is released before returning.

        A name in ``locks`` without a matching target is still moved. Locking
        an unmapped URL creates an empty resource on RFC 4918 servers, so that
        name ends up replaced by an empty file; a warning is logged.

        Args:
            targets: Files to upload, in order
            locks: Remote names to publish atomically
            progress: Optional listener for progress events

        Returns:
            UploadResult describing the publish

        Raises:
            SessionError: If not authenticated
            LockAcquisitionError: If a lock could not be taken
            DirectoryCreationError: If a target directory could not be made
            TransferError: If a file could not be written
            PublishMoveError: If some placeholders could not be moved
            UnlockError: If some locks could not be released
        """
        session = self._require_session()
        listener = progress or NullProgress()
        lock_manager = LockManager(session)

        with self._upload_lock:
            session.timestamp = None
            self._warn_unmatched_locks(targets, locks)
            tokens: dict[str, str] = {}
            unpublished: list[str] = []
            failure: BaseException | None = None
            try:
                for name in locks:
                    path = lock_path(name)
                    self._ensure_parent(session, parent_path(path), path)
                    tokens[path] = lock_manager.lock(path)

                listener.set_title("Uploading")
                bytes_sent = self._transfer_all(session, targets, tokens, listener)
                listener.done()

                listener.add_item("Moving locks")
                for name in locks:
                    source = lock_path(name)
                    if lock_manager.move(source, name, tokens[source], force=True):
                        # A MOVE is a COPY plus a DELETE, so the lock went with it.
                        del tokens[source]
                    else:
                        unpublished.append(name)
                listener.item_done("Moving locks")
            except Exception as e:
                failure = e
                raise
            finally:
                leaked = self._release_locks(lock_manager, tokens)
                if leaked:
                    raise UnlockError(
                        f"Could not unlock {', '.join(leaked)}", leaked
                    ) from failure

        if unpublished:
            raise PublishMoveError(
                f"Could not publish {', '.join(unpublished)}; "
                "the uploads remain under their .lock names",
                unpublished,
            )

        return UploadResult(
            published=list(locks),
            uploaded=[target.remote_path for target in targets],
            bytes_sent=bytes_sent,
            timestamp=session.timestamp,
        )

    def _ensure_parent(self, session: WebDAVSession, parent: str, path: str) -> None:
        if parent and not DirectoryManager(session).ensure_directory(parent):
            raise DirectoryCreationError(f"Could not make subdirectory for {path}", parent)

    def _transfer_all(
        self,
        session: WebDAVSession,
        targets: Sequence[UploadTarget],
        tokens: dict[str, str],
        listener: ProgressListener,
    ) -> int:
        sizes = []
        for target in targets:
            try:
                sizes.append(target.filesize)
            except OSError as e:
                raise TransferError(f"Could not read {target.source}: {e}", target.remote_path) from e
        total = sum(size or 0 for size in sizes)

        count = 0
        for target, size in zip(targets, sizes):
            self._ensure_parent(session, target.parent, target.remote_path)
            count += self._transfer(session, target, size, tokens, listener, count, total)
        return count

    def _transfer(
        self,
        session: WebDAVSession,
        target: UploadTarget,
        size: int | None,
        tokens: dict[str, str],
        listener: ProgressListener,
        completed: int,
        total: int,
    ) -> int:
        """Stream one target to the server, returning the bytes sent."""
        remote = target.remote_path
        if lock_path(remote) in tokens:
            remote = lock_path(remote)
        url = session.url(remote)

        headers: dict[str, str] = {}
        token = tokens.get(remote)
        if token is not None:
            headers["If"] = if_header(url, token)
        if size is not None:
            headers["Content-Length"] = str(size)

        item_total = size or 0
        sent = 0

        def report(count: int) -> None:
            nonlocal sent
            sent = count
            listener.set_item_count(count, item_total)
            listener.set_count(completed + count, total)

        listener.add_item(target.remote_path)
        try:
            with target.open() as stream:
                response = session.request(
                    "PUT", url, content=iter_chunks(stream, report), headers=headers
                )
        except OSError as e:
            logger.error(f"Transfer of {remote} failed: {e}")
            raise TransferError(f"Could not write {remote}: {e}", remote) from e
        listener.item_done(target.remote_path)

        if not response.is_success:
            logger.error(f"Code: {status_line(response)}")
            raise TransferError(f"Could not write {remote}", remote, response.status_code)
        logger.debug(f"Uploaded {sent} bytes to {remote}")
        return sent

    def _release_locks(self, lock_manager: LockManager, tokens: dict[str, str]) -> list[str]:
        """Unlock every remaining entry, returning the paths that stayed locked."""
        leaked = []
        for path, token in list(tokens.items()):
            if lock_manager.unlock(path, token):
                del tokens[path]
            else:
                logger.error(f"Could not unlock {path} with token {token}")
                leaked.append(path)
        return leaked

    @staticmethod
    def _warn_unmatched_locks(targets: Sequence[UploadTarget], locks: Sequence[str]) -> None:
        written = {target.remote_path for target in targets}
        for name in locks:
            if name not in written and lock_path(name) not in written:
                logger.warning(f"No upload for locked {name}; it will be replaced by an empty file")
