"""Mapping of logical remote paths onto WebDAV URLs."""

from __future__ import annotations

from urllib.parse import quote


def normalize_base_url(base_url: str) -> str:
    """Return ``base_url`` with exactly one trailing slash."""
    if not base_url:
        raise ValueError("Base URL is required")
    return base_url.rstrip("/") + "/"


def encode_path(path: str) -> str:
    """Percent-encode every segment of ``path``, keeping the separators.

    ``quote`` escapes the slash too when no safe characters are given, so
    ``%2F`` is turned back into ``/`` afterwards. Spaces come out as ``%20``.
    """
    return quote(path, safe="").replace("%2F", "/")


def build_url(base_url: str, path: str, is_directory: bool = False) -> str:
    """Build the absolute URL of ``path`` under ``base_url``.

    Args:
        base_url: Collection root, ending with a slash
        path: Remote path relative to the root, without a leading slash
        is_directory: Append a trailing slash for collections

    Returns:
        The fully encoded URL; the empty path maps to the root itself
    """
    url = base_url + encode_path(path.lstrip("/"))
    if is_directory and not url.endswith("/"):
        url += "/"
    return url


def parent_path(path: str) -> str:
    """Strip the last segment of ``path`` ("" when it is top-level)."""
    return path.rstrip("/").rpartition("/")[0]
