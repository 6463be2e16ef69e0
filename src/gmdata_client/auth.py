# GM Data Client
# File: auth.py
# Version: v2

"""Security headers for GM Data requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .config import GmDataSettings

USER_DN_HEADER = "USER_DN"


@dataclass
class HeaderSource:
    """Builds the security headers sent with every GM Data request.

    GM Data identifies the caller by the distinguished name in the USER_DN
    header (normally injected by the sidecar in front of the service). Any
    extra headers from settings are appended in order, unchanged.
    """

    settings: GmDataSettings

    def get_headers(self) -> List[Tuple[str, str]]:
        headers: List[Tuple[str, str]] = []
        if self.settings.user_dn:
            headers.append((USER_DN_HEADER, self.settings.user_dn))
        headers.extend(self.settings.extra_headers)
        return headers

    def describe(self) -> dict:
        """Redacted view of which headers are configured (names only)."""
        return {
            "user_dn_configured": bool(self.settings.user_dn),
            "header_names": [name for name, _ in self.get_headers()],
        }
