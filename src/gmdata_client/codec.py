# GM Data Client
# File: codec.py
# Version: v1

"""JSON body decoding and encoding shared by the client and the stream parser."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from .errors import GmDataDecodeError
from .models import Decoder, Metadata, X

logger = logging.getLogger(__name__)

_DECODE_FAILURES = (ValueError, TypeError, KeyError, IndexError)


def decode_body(text: str, decoder: Decoder[X]) -> X:
    """Decode a complete response body with an explicit decoder.

    Raises:
        GmDataDecodeError: If the body is not JSON or does not match the
            decoder's shape. No partially-populated value is ever returned.
    """
    try:
        return decoder(json.loads(text))
    except _DECODE_FAILURES as exc:
        logger.warning("Failed to decode GM Data response body: %s", exc)
        raise GmDataDecodeError(text, exc) from exc


def encode_metadata_list(metadata: Iterable[Metadata]) -> str:
    """Serialise metadata as a 2-space indented JSON array without nulls."""
    payload: Any = [item.to_json() for item in metadata]
    return json.dumps(payload, indent=2)
