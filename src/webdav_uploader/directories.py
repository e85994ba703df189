"""Remote collection probing and creation."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from webdav_uploader._internal.transport import status_line
from webdav_uploader.exceptions import TransportError
from webdav_uploader.models import DirectoryState
from webdav_uploader.session import WebDAVSession
from webdav_uploader.urls import parent_path

logger = logging.getLogger(__name__)

DAV_NS = "{DAV:}"

RESOURCETYPE_XML = (
    '<?xml version="1.0" encoding="UTF-8" ?>'
    '<propfind xmlns="DAV:">'
    "<prop>"
    "<resourcetype/>"
    "</prop>"
    "</propfind>"
)

ALLPROP_XML = (
    '<?xml version="1.0" encoding="UTF-8" ?>'
    '<propfind xmlns="DAV:">'
    "<allprop />"
    "</propfind>"
)

COLLECTION_XPATH = (
    f"{DAV_NS}response/{DAV_NS}propstat/{DAV_NS}prop/"
    f"{DAV_NS}resourcetype/{DAV_NS}collection"
)


class DirectoryManager:
    """Checks for and creates collections, memoizing what exists."""

    def __init__(self, session: WebDAVSession) -> None:
        self._session = session

    def directory_exists(self, path: str) -> DirectoryState:
        """Probe ``path`` with a depth-0 PROPFIND.

        Anything other than an authorization failure or a multistatus
        naming a collection counts as absent, so the caller goes on to
        create the directory.
        """
        url = self._session.url(path, is_directory=True)
        try:
            response = self._session.request("PROPFIND", url, xml=RESOURCETYPE_XML)
        except TransportError:
            return DirectoryState.ABSENT

        if response.status_code in (401, 403):
            logger.error(f"Not authorized to inspect {url}: {status_line(response)}")
            return DirectoryState.UNAUTHORIZED
        if response.status_code == 404:
            return DirectoryState.ABSENT
        if not response.is_success:
            logger.error(f"Unexpected PROPFIND response for {url}: {status_line(response)}")
            return DirectoryState.ABSENT

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as e:
            logger.error(f"Could not parse PROPFIND response for {url}: {e}")
            return DirectoryState.ABSENT
        if root.find(COLLECTION_XPATH) is not None:
            return DirectoryState.PRESENT
        return DirectoryState.ABSENT

    def ensure_directory(self, path: str) -> bool:
        """Make sure the collection ``path`` exists, creating ancestors.

        Returns:
            True when the directory exists afterwards
        """
        path = path.strip("/")
        cache = self._session.existing_directories
        if not path or path in cache:
            return True

        state = self.directory_exists(path)
        if state is DirectoryState.PRESENT:
            cache.add(path)
            return True
        if state is DirectoryState.UNAUTHORIZED:
            return False

        parent = parent_path(path)
        if parent and not self.ensure_directory(parent):
            return False

        if self.make_directory(path):
            cache.add(path)
            return True
        return False

    def make_directory(self, path: str) -> bool:
        """Issue MKCOL for ``path``.

        A 405 means the collection already exists, typically because another
        publisher created it between our probe and this request.
        """
        url = self._session.url(path, is_directory=True)
        try:
            response = self._session.request("MKCOL", url)
        except TransportError:
            return False
        if response.status_code == 201:
            logger.info(f"Created directory: {path}")
            return True
        if response.status_code == 405:
            logger.debug(f"Directory {path} already exists")
            return True
        logger.error(f"Could not create directory {path}: {status_line(response)}")
        return False

    def propfind(self, path: str, is_directory: bool = False) -> ET.Element | None:
        """Fetch all properties of ``path``, or None on failure."""
        url = self._session.url(path, is_directory)
        try:
            response = self._session.request("PROPFIND", url, xml=ALLPROP_XML)
        except TransportError:
            return None
        if not response.is_success:
            logger.error(f"PROPFIND {url} failed: {status_line(response)}")
            return None
        try:
            return ET.fromstring(response.content)
        except ET.ParseError as e:
            logger.error(f"Could not parse PROPFIND response for {url}: {e}")
            return None
