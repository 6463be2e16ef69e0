# GM Data Client
# File: __init__.py
# Version: v2

"""Top-level package for the GM Data async client."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .client import GmDataClient
from .errors import (
    GmDataDecodeError,
    GmDataError,
    GmDataResponseError,
    GmDataTransportError,
    InvalidUrlError,
    MissingFieldError,
    RecoverableError,
)
from .models import Config, GenericResponse, Metadata, Recovered, Security, SelfResponse

__all__ = [
    "__version__",
    "Config",
    "GenericResponse",
    "GmDataClient",
    "GmDataDecodeError",
    "GmDataError",
    "GmDataResponseError",
    "GmDataTransportError",
    "InvalidUrlError",
    "Metadata",
    "MissingFieldError",
    "RecoverableError",
    "Recovered",
    "Security",
    "SelfResponse",
]


def _resolve_version() -> str:
    """Resolve installed distribution version.

    Falls back to a default when running from a source tree without
    installed package metadata.
    """
    try:
        return version("gmdata-client")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()
