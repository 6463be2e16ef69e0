# GM Data Client
# File: streaming.py
# Version: v2

"""Incremental decoding of a chunked JSON array.

The parser only finds element boundaries: it tracks the enclosing array,
string/escape state and nesting depth, and keeps a partial element across
chunk boundaries. Each closed element is then decoded on its own, so a large
listing is never held in memory as a whole.
"""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Iterator

from .codec import decode_body
from .errors import GmDataDecodeError
from .models import Decoder, X

_WHITESPACE = frozenset(b" \t\r\n")
_OPEN = frozenset(b"{[")
_CLOSE = frozenset(b"}]")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_COMMA = ord(",")
_ARRAY_START = ord("[")
_ARRAY_END = ord("]")

# Parser states
_START = "start"
_FIRST_VALUE = "first_value"
_VALUE = "value"
_ELEMENT = "element"
_AFTER_VALUE = "after_value"
_DONE = "done"


class JsonArrayParser:
    """Push parser that splits a top-level JSON array into element bytes."""

    def __init__(self) -> None:
        self._state = _START
        self._buffer = bytearray()
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._scalar = False
        self._offset = 0

    @property
    def done(self) -> bool:
        return self._state == _DONE

    def feed(self, chunk: bytes) -> Iterator[bytes]:
        """Consume ``chunk`` and yield the raw bytes of each completed element.

        Elements completed before a structural error are yielded before the
        ValueError is raised.
        """
        for byte in chunk:
            self._offset += 1
            if self._state == _ELEMENT:
                if self._consume_element_byte(byte):
                    yield self._take()
                    continue
                if self._state == _ELEMENT:
                    continue
                # A scalar ended on a delimiter; fall through so the
                # delimiter is handled as the byte after the value.
                yield self._take()

            if byte in _WHITESPACE:
                continue

            if self._state == _START:
                if byte != _ARRAY_START:
                    self._fail("expected '[' at start of stream")
                self._state = _FIRST_VALUE
            elif self._state == _FIRST_VALUE:
                if byte == _ARRAY_END:
                    self._state = _DONE
                else:
                    self._begin_element(byte)
            elif self._state == _VALUE:
                if byte == _ARRAY_END:
                    self._fail("trailing ',' before ']'")
                self._begin_element(byte)
            elif self._state == _AFTER_VALUE:
                if byte == _COMMA:
                    self._state = _VALUE
                elif byte == _ARRAY_END:
                    self._state = _DONE
                else:
                    self._fail("expected ',' or ']' between elements")
            else:
                self._fail("unexpected data after end of array")

    def close(self) -> None:
        """Signal end of input; raises ValueError if the array is unfinished."""
        if self._state != _DONE:
            self._fail("stream ended before the JSON array was closed")

    def _begin_element(self, byte: int) -> None:
        if byte in _CLOSE or byte == _COMMA:
            self._fail(f"unexpected '{chr(byte)}' where a value was expected")
        self._state = _ELEMENT
        self._buffer.append(byte)
        self._depth = 1 if byte in _OPEN else 0
        self._in_string = byte == _QUOTE
        self._escape = False
        self._scalar = byte not in _OPEN and byte != _QUOTE

    def _consume_element_byte(self, byte: int) -> bool:
        """Advance element scanning by one byte.

        Returns True when ``byte`` completes the element. For bare scalars
        the delimiter is not part of the element: the state moves to
        _AFTER_VALUE and False is returned so the caller re-handles it.
        """
        if self._in_string:
            self._buffer.append(byte)
            if self._escape:
                self._escape = False
            elif byte == _BACKSLASH:
                self._escape = True
            elif byte == _QUOTE:
                self._in_string = False
                if self._depth == 0:
                    self._state = _AFTER_VALUE
                    return True
            return False

        if self._scalar:
            if byte in _WHITESPACE or byte == _COMMA or byte == _ARRAY_END:
                self._state = _AFTER_VALUE
                return False
            self._buffer.append(byte)
            return False

        self._buffer.append(byte)
        if byte == _QUOTE:
            self._in_string = True
        elif byte in _OPEN:
            self._depth += 1
        elif byte in _CLOSE:
            self._depth -= 1
            if self._depth == 0:
                self._state = _AFTER_VALUE
                return True
        return False

    def _take(self) -> bytes:
        raw = bytes(self._buffer)
        self._buffer.clear()
        return raw

    def _fail(self, reason: str) -> None:
        raise ValueError(f"{reason} (byte {self._offset})")


async def iter_json_array(
    chunks: AsyncIterable[bytes], decoder: Decoder[X]
) -> AsyncIterator[X]:
    """Lazily decode each element of a JSON array arriving as byte chunks.

    Raises:
        GmDataDecodeError: At the first malformed element, after every
            earlier element has been yielded.
    """
    parser = JsonArrayParser()
    async for chunk in chunks:
        elements = parser.feed(chunk)
        while True:
            try:
                raw = next(elements)
            except StopIteration:
                break
            except ValueError as exc:
                raise GmDataDecodeError(_preview(chunk), exc) from exc
            yield decode_body(_text(raw), decoder)

    try:
        parser.close()
    except ValueError as exc:
        raise GmDataDecodeError("<truncated stream>", exc) from exc


def _text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise GmDataDecodeError(repr(raw[:200]), exc) from exc


def _preview(chunk: bytes, limit: int = 200) -> str:
    return chunk[:limit].decode("utf-8", errors="replace")
