# GM Data Client
# File: config.py
# Version: v2

"""Configuration loading for the GM Data client."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import List, Optional, Tuple

from .models import Config


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int_env(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an int environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = int(default)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


def _parse_float_env(name: str) -> Optional[float]:
    """Parse an optional positive float; unset, blank or invalid means None."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def parse_header_pairs(raw: str | None) -> List[Tuple[str, str]]:
    """Parse ``"Key: value; Other: value"`` into ordered header pairs.

    Malformed entries (no ':' or an empty key) are skipped.
    """
    if not raw:
        return []

    pairs: List[Tuple[str, str]] = []
    for item in raw.split(";"):
        key, sep, value = item.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        pairs.append((key, value.strip()))
    return pairs


@dataclass
class GmDataSettings:
    """Host-supplied settings for talking to a GM Data instance.

    The namespace fields identify which /self field names the owning user's
    folder. Security headers are passed through to every request untouched.
    """

    root_url: str | None
    namespace_oid: str | None
    namespace_user_field: str | None
    user_dn: str | None = None
    extra_headers: List[Tuple[str, str]] = field(default_factory=list)
    mock_mode: bool = False

    verify_tls: bool = True
    # None leaves timeout policy to the host.
    timeout_seconds: float | None = None
    max_list_items: int = 500

    @classmethod
    def from_env(cls) -> "GmDataSettings":
        """Create settings from environment variables."""
        return cls(
            root_url=os.getenv("GMDATA_ROOT_URL"),
            namespace_oid=os.getenv("GMDATA_NAMESPACE_OID"),
            namespace_user_field=os.getenv("GMDATA_NAMESPACE_USERFIELD"),
            user_dn=os.getenv("GMDATA_USER_DN"),
            extra_headers=parse_header_pairs(os.getenv("GMDATA_EXTRA_HEADERS")),
            mock_mode=_parse_bool_env("GMDATA_MOCK_MODE", default=False),
            verify_tls=_parse_bool_env("GMDATA_VERIFY_TLS", default=True),
            timeout_seconds=_parse_float_env("GMDATA_TIMEOUT_SECONDS"),
            max_list_items=_parse_int_env(
                "GMDATA_MAX_LIST_ITEMS", default=500, min_value=1, max_value=100000
            ),
        )

    def namespace_config(self) -> Config:
        """Return the namespace Config, failing if either field is unset."""
        if not self.namespace_oid or not self.namespace_user_field:
            raise RuntimeError(
                "GMDATA_NAMESPACE_OID and GMDATA_NAMESPACE_USERFIELD must be set "
                "to resolve user folders from configuration."
            )
        return Config(
            namespace_oid=self.namespace_oid,
            namespace_user_field=self.namespace_user_field,
        )
