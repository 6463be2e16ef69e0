# GM Data Client
# File: paths.py
# Version: v1

"""Endpoint URL composition under a GM Data root URL.

Composition validates eagerly: a malformed root or path raises
InvalidUrlError here, before any request is built.
"""

from __future__ import annotations

from typing import List
from urllib.parse import quote

import httpx

from .errors import InvalidUrlError

_ALLOWED_SCHEMES = {"http", "https"}
_DOT_SEGMENTS = {".", ".."}


def parse_url(text: str) -> httpx.URL:
    """Parse an absolute http(s) URL or raise InvalidUrlError."""
    try:
        url = httpx.URL(text)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidUrlError(str(text), str(exc)) from exc

    if url.scheme not in _ALLOWED_SCHEMES:
        raise InvalidUrlError(text, f"unsupported scheme '{url.scheme}'")
    if not url.host:
        raise InvalidUrlError(text, "missing host")
    return url


def path_segments(path: str) -> List[str]:
    """Split a logical path into its non-empty '/'-separated segments.

    '.' and '..' segments raise InvalidUrlError, so a composed URL always
    stays under its endpoint.
    """
    segments = [segment for segment in str(path).split("/") if segment]
    for segment in segments:
        if segment in _DOT_SEGMENTS:
            raise InvalidUrlError(str(path), f"dot segment '{segment}' is not allowed in a path")
    return segments


class PathComposer:
    """Builds the fixed GM Data endpoint URLs under one root."""

    def __init__(self, root_url: str) -> None:
        parse_url(root_url)
        self.root_url = root_url.rstrip("/")

    def join(self, *segments: str) -> httpx.URL:
        """Append percent-encoded segments to the root URL."""
        encoded = "/".join(quote(segment, safe="") for segment in segments if segment)
        return parse_url(f"{self.root_url}/{encoded}")

    def self_url(self) -> httpx.URL:
        return self.join("self")

    def config_url(self) -> httpx.URL:
        return self.join("config")

    def props_url(self, path: str) -> httpx.URL:
        return self.join("props", *path_segments(path))

    def list_url(self, path: str) -> httpx.URL:
        return self.join("list", *path_segments(path))

    def write_url(self) -> httpx.URL:
        return self.join("write")
