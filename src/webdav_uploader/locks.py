"""Exclusive write locks and lock-guarded moves."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from datetime import timezone
from email.utils import parsedate_to_datetime

import httpx

from webdav_uploader._internal.transport import status_line
from webdav_uploader.exceptions import LockAcquisitionError, TransportError, UploaderError
from webdav_uploader.session import WebDAVSession

logger = logging.getLogger(__name__)

DAV_NS = "{DAV:}"
LOCK_TIMEOUT = "Second-600"
LOCK_SUFFIX = ".lock"

TOKEN_XPATH = (
    f"{DAV_NS}lockdiscovery/{DAV_NS}activelock/{DAV_NS}locktoken/{DAV_NS}href"
)


def lock_path(name: str) -> str:
    """Placeholder path that guards ``name`` while it is being published."""
    return name + LOCK_SUFFIX


def parse_server_timestamp(date_header: str | None) -> int | None:
    """Convert an HTTP ``Date`` header into a ``YYYYMMDDhhmmss`` integer (UTC)."""
    if not date_header:
        return None
    try:
        moment = parsedate_to_datetime(date_header)
    except (TypeError, ValueError):
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return int(moment.strftime("%Y%m%d%H%M%S"))


def if_header(url: str, token: str) -> str:
    """Tagged ``If`` precondition proving we hold ``token`` on ``url``."""
    return f"<{url}> (<{token}>)"


class LockManager:
    """Acquires and releases locks on behalf of a session."""

    def __init__(self, session: WebDAVSession) -> None:
        self._session = session

    def _lockinfo(self) -> str:
        return (
            '<?xml version="1.0" encoding="utf-8" ?>'
            "<lockinfo xmlns='DAV:'>"
            "<lockscope><exclusive/></lockscope>"
            "<locktype><write/></locktype>"
            "<owner>"
            f"<href>{self._session.base_url}User:{self._session.username}</href>"
            "</owner>"
            "</lockinfo>"
        )

    def lock(self, path: str) -> str:
        """Take an exclusive write lock on ``path``.

        The first lock of a publish also records the server's clock in
        ``session.timestamp``.

        Returns:
            The lock token

        Raises:
            LockAcquisitionError: If the lock was refused, the response
                carried no token, or the server sent no usable Date
        """
        url = self._session.url(path)
        try:
            response = self._session.request(
                "LOCK", url, xml=self._lockinfo(), headers={"Timeout": LOCK_TIMEOUT}
            )
        except TransportError as e:
            raise LockAcquisitionError(f"Error obtaining lock for {path}: {e}", path) from e

        if response.status_code not in (200, 201):
            message = f"Error obtaining lock for {path}: {status_line(response)}"
            logger.error(message)
            raise LockAcquisitionError(message, path, response.status_code)

        token = self._extract_token(response)
        if token is None:
            logger.error(f"Expected lock for '{path}', got:\n{response.text}")
            raise LockAcquisitionError(
                f"Could not obtain lock for {path}", path, response.status_code
            )
        logger.debug(f"Obtained lock {token} on {path}")

        if self._session.timestamp is None:
            timestamp = parse_server_timestamp(response.headers.get("Date"))
            if timestamp is None:
                self.unlock(path, token)
                raise LockAcquisitionError("Could not obtain date from the server", path)
            self._session.timestamp = timestamp
        return token

    @staticmethod
    def _extract_token(response: httpx.Response) -> str | None:
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError:
            root = None
        if root is not None:
            # The body is either <prop> itself or wraps it.
            prop = root if root.tag == f"{DAV_NS}prop" else root.find(f"{DAV_NS}prop")
            href = prop.find(TOKEN_XPATH) if prop is not None else None
            if href is not None and href.text and href.text.strip():
                return href.text.strip()
        header = response.headers.get("Lock-Token")
        if header:
            return header.strip().strip("<>")
        return None

    def unlock(self, path: str, token: str) -> bool:
        """Release the lock ``token`` on ``path``; never raises."""
        url = self._session.url(path)
        try:
            response = self._session.request("UNLOCK", url, headers={"Lock-Token": f"<{token}>"})
        except UploaderError as e:
            logger.error(f"Error removing lock from {path}: {e}")
            return False
        if response.status_code in (200, 204):
            logger.debug(f"Released lock {token} on {path}")
            return True
        logger.error(f"Error removing lock from {path}: {status_line(response)}")
        return False

    def move(self, source: str, target: str, token: str, force: bool = False) -> bool:
        """Move the locked ``source`` onto ``target``.

        Moving is a copy plus a delete, so the lock on ``source`` is gone
        once this succeeds and ``token`` must not be used again.
        """
        url = self._session.url(source)
        headers = {
            "Destination": self._session.url(target),
            "Overwrite": "T" if force else "F",
            "If": if_header(url, token),
        }
        try:
            response = self._session.request("MOVE", url, headers=headers)
        except UploaderError as e:
            logger.error(f"Error moving {source} to {target}: {e}")
            return False
        if response.status_code in (201, 204):
            logger.info(f"Published {target}")
            return True
        logger.error(f"Error moving {source} to {target}: {status_line(response)}")
        return False
