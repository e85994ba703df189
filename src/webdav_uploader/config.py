"""
Configuration management for the uploader.
Loads settings from the environment (and a .env file) and resolves credentials.
"""

from __future__ import annotations

import logging
import netrc
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlsplit, urlunsplit

from dotenv import load_dotenv

from webdav_uploader._internal.transport import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

AUTH_SCHEMES = ("basic", "digest")


@dataclass
class UploaderSettings:
    """Connection settings for a WebDAV update site."""

    url: str | None = None
    username: str | None = None
    password: str | None = None
    auth_scheme: str = "basic"
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> UploaderSettings:
        """Read ``WEBDAV_*`` variables, after loading a .env file if present.

        Raises ValueError if WEBDAV_TIMEOUT is not a number.
        """
        load_dotenv(dotenv_path)
        raw_timeout = os.getenv("WEBDAV_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError as e:
            raise ValueError(
                f"Invalid configuration: WEBDAV_TIMEOUT must be a number, got {raw_timeout!r}"
            ) from e
        return cls(
            url=os.getenv("WEBDAV_URL"),
            username=os.getenv("WEBDAV_USERNAME"),
            password=os.getenv("WEBDAV_PASSWORD"),
            auth_scheme=os.getenv("WEBDAV_AUTH", "basic").lower(),
            timeout=timeout,
        )

    def validate(self) -> None:
        """
        Check that the settings are usable.
        Raises ValueError naming every problem found.
        """
        problems = []
        if not self.url:
            problems.append("WEBDAV_URL is not set")
        if self.auth_scheme not in AUTH_SCHEMES:
            problems.append(f"WEBDAV_AUTH must be one of {', '.join(AUTH_SCHEMES)}")
        if self.timeout <= 0:
            problems.append("WEBDAV_TIMEOUT must be positive")
        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")


def split_userinfo(url: str) -> tuple[str, str | None, str | None]:
    """Separate ``user:password@`` from ``url``.

    Returns:
        (url without credentials, username or None, password or None)
    """
    parts = urlsplit(url)
    if parts.username is None:
        return url, None, None
    netloc = parts.hostname or ""
    if parts.port:
        netloc += f":{parts.port}"
    stripped = urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    password = unquote(parts.password) if parts.password is not None else None
    return stripped, unquote(parts.username), password


def netrc_credentials(
    host: str, username: str | None = None, netrc_file: str | Path | None = None
) -> tuple[str, str] | None:
    """Look up ``host`` in the user's .netrc.

    An entry for a different login than ``username`` is ignored.
    """
    try:
        entries = netrc.netrc(str(netrc_file) if netrc_file else None)
    except FileNotFoundError:
        return None
    except (netrc.NetrcParseError, OSError) as e:
        logger.warning(f"Failed to read netrc: {e}")
        return None
    found = entries.authenticators(host)
    if found is None:
        return None
    login, _account, password = found
    if username and login != username:
        return None
    return login, password


def resolve_credentials(
    url: str,
    username: str | None = None,
    password: str | None = None,
    *,
    netrc_file: str | Path | None = None,
) -> tuple[str, str | None, str | None]:
    """Fill in missing credentials from the URL, then from .netrc.

    Returns:
        (url without credentials, username, password)
    """
    url, url_user, url_password = split_userinfo(url)
    username = username or url_user
    password = password or url_password
    if username and password:
        return url, username, password

    host = urlsplit(url).hostname
    if host:
        found = netrc_credentials(host, username, netrc_file)
        if found:
            username, password = found[0], password or found[1]
    return url, username, password
