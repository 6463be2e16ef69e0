# GM Data Client
# File: models.py
# Version: v3

"""Domain models and explicit JSON decoders for the GM Data service.

Every decoder is a plain callable taking an already-parsed JSON value and
returning a typed model. Decoders raise ValueError / TypeError / KeyError on
a shape mismatch; the client turns those into GmDataDecodeError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

from .errors import MissingFieldError

X = TypeVar("X")

Decoder = Callable[[Any], X]


# ---------------------------------------------------------------------------
# Small shape helpers
# ---------------------------------------------------------------------------


def _expect_object(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"expected JSON object for {what}, got {type(value).__name__}")
    return value


def _require_str(obj: Dict[str, Any], key: str) -> str:
    if key not in obj:
        raise KeyError(f"missing required field '{key}'")
    value = obj[key]
    if not isinstance(value, str):
        raise TypeError(f"field '{key}' must be a string, got {type(value).__name__}")
    return value


def _optional(obj: Dict[str, Any], key: str, *types: type) -> Any:
    value = obj.get(key)
    if value is None:
        return None
    # bool is an int subclass; only accept it where explicitly allowed.
    if isinstance(value, bool) and bool not in types:
        raise TypeError(f"field '{key}' has unexpected type bool")
    if not isinstance(value, types):
        names = "/".join(t.__name__ for t in types)
        raise TypeError(f"field '{key}' must be {names}, got {type(value).__name__}")
    return value


def drop_nulls(value: Any) -> Any:
    """Recursively remove keys whose value is None from JSON-like data."""
    if isinstance(value, dict):
        return {k: drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [drop_nulls(v) for v in value]
    return value


def list_of(decoder: Decoder[X]) -> Decoder[List[X]]:
    """Lift an element decoder to a decoder for a JSON array of elements."""

    def _decode(value: Any) -> List[X]:
        if not isinstance(value, list):
            raise TypeError(f"expected JSON array, got {type(value).__name__}")
        return [decoder(item) for item in value]

    return _decode


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    """Namespace settings naming which /self field holds the user folder."""

    namespace_oid: str
    namespace_user_field: str


def decode_config(value: Any) -> Config:
    obj = _expect_object(value, "Config")
    return Config(
        namespace_oid=_require_str(obj, "GMDATA_NAMESPACE_OID"),
        namespace_user_field=_require_str(obj, "GMDATA_NAMESPACE_USERFIELD"),
    )


# ---------------------------------------------------------------------------
# /self
# ---------------------------------------------------------------------------


class SelfResponse:
    """The service's self-description of the calling identity."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Optional[List[str]]]) -> None:
        frozen = {
            k: (tuple(v) if v is not None else None) for k, v in dict(values).items()
        }
        self._values = MappingProxyType(frozen)

    @property
    def values(self) -> Mapping[str, Optional[tuple]]:
        return self._values

    def get_user_field(self, user_field: str) -> str:
        """Return the first value of ``user_field``.

        Raises:
            MissingFieldError: If the field is absent, null or empty.
        """
        entries = self._values.get(user_field)
        if not entries:
            raise MissingFieldError(user_field)
        return entries[0]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelfResponse):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    def __repr__(self) -> str:
        return f"SelfResponse(values={dict(self._values)!r})"


def decode_self_response(value: Any) -> SelfResponse:
    obj = _expect_object(value, "SelfResponse")
    raw_values = _expect_object(obj.get("values"), "SelfResponse.values")

    values: Dict[str, Optional[List[str]]] = {}
    for key, entries in raw_values.items():
        if entries is None:
            values[key] = None
            continue
        if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            raise TypeError(f"values['{key}'] must be null or an array of strings")
        values[key] = list(entries)
    return SelfResponse(values)


# ---------------------------------------------------------------------------
# Security labels
# ---------------------------------------------------------------------------


@dataclass
class Security:
    label: str
    foreground: str
    background: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "foreground": self.foreground,
            "background": self.background,
        }


def decode_security(value: Any) -> Optional[Security]:
    """Decode a structured security label, or None for any other shape.

    The service sometimes sends a free-form mapping of strings in place of a
    label; that is treated as "no label" rather than a decode failure.
    """
    if not isinstance(value, dict):
        return None
    try:
        return Security(
            label=_require_str(value, "label"),
            foreground=_require_str(value, "foreground"),
            background=_require_str(value, "background"),
        )
    except (KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

# Known optional fields and the JSON types they accept.
_METADATA_FIELDS: Dict[str, tuple] = {
    "oid": (str,),
    "action": (str,),
    "isfile": (bool,),
    "mimetype": (str,),
    "size": (int,),
    "tstamp": (str,),
    "objectpolicy": (dict,),
    "originalobjectpolicy": (str,),
    "custom": (dict,),
    "sha256plain": (str,),
    "userpolicy": (dict,),
}


@dataclass
class Metadata:
    """Properties of a file or folder as understood by the data service.

    ``parentoid`` and ``name`` identify the item; everything else is
    service-defined. Unknown keys are kept in ``extra`` so they survive a
    decode/encode cycle.
    """

    parentoid: str
    name: str
    oid: Optional[str] = None
    action: Optional[str] = None
    isfile: Optional[bool] = None
    mimetype: Optional[str] = None
    size: Optional[int] = None
    tstamp: Optional[str] = None
    objectpolicy: Optional[Dict[str, Any]] = None
    originalobjectpolicy: Optional[str] = None
    security: Optional[Security] = None
    custom: Optional[Dict[str, Any]] = None
    sha256plain: Optional[str] = None
    userpolicy: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        """JSON-ready dict with every null-valued field omitted."""
        out: Dict[str, Any] = dict(self.extra)
        out["parentoid"] = self.parentoid
        out["name"] = self.name
        for key in _METADATA_FIELDS:
            out[key] = getattr(self, key)
        out["security"] = self.security.to_json() if self.security else None
        return drop_nulls(out)


def decode_metadata(value: Any) -> Metadata:
    obj = _expect_object(value, "Metadata")
    known = {key: _optional(obj, key, *types) for key, types in _METADATA_FIELDS.items()}
    extra = {
        k: v
        for k, v in obj.items()
        if k not in _METADATA_FIELDS and k not in {"parentoid", "name", "security"}
    }
    return Metadata(
        parentoid=_require_str(obj, "parentoid"),
        name=_require_str(obj, "name"),
        security=decode_security(obj.get("security")),
        extra=extra,
        **known,
    )


decode_metadata_list = list_of(decode_metadata)


# ---------------------------------------------------------------------------
# Raw capture / soft outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenericResponse(Generic[X]):
    """A payload paired with the HTTP status code actually observed."""

    response: X
    status_code: int


@dataclass(frozen=True)
class Recovered(Generic[X]):
    """Outcome of an operation whose failure is recoverable.

    Exactly one of ``value`` / ``error`` is set.
    """

    value: Optional[X] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
