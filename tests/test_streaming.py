# GM Data Client
# File: tests/test_streaming.py
# Version: v1

"""Tests for the incremental JSON array parser and async element decoding."""

from __future__ import annotations

import json
from typing import List

import pytest

from gmdata_client.errors import GmDataDecodeError
from gmdata_client.models import decode_metadata
from gmdata_client.streaming import JsonArrayParser, iter_json_array


def _split(data: bytes, size: int) -> List[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


def _parse_all(data: bytes, size: int) -> List[bytes]:
    parser = JsonArrayParser()
    out: List[bytes] = []
    for chunk in _split(data, size):
        out.extend(parser.feed(chunk))
    parser.close()
    return out


async def _achunks(chunks: List[bytes]):
    for chunk in chunks:
        yield chunk


MIXED = b' [ {"a": "x,]}", "b": {"c": [1, 2]}}, [1, 2], "s\\"]", 3, -1.5e3 ,true, null ] \n'


@pytest.mark.parametrize("size", [1, 2, 7, len(MIXED)])
def test_parser_finds_element_boundaries_across_chunks(size: int) -> None:
    elements = _parse_all(MIXED, size)
    assert [json.loads(e) for e in elements] == [
        {"a": "x,]}", "b": {"c": [1, 2]}},
        [1, 2],
        's"]',
        3,
        -1500.0,
        True,
        None,
    ]


def test_parser_empty_array() -> None:
    assert _parse_all(b"[]", 1) == []
    assert _parse_all(b"  [ \n ]  ", 3) == []


def test_parser_keeps_multibyte_characters_split_across_chunks() -> None:
    data = json.dumps([{"name": "café"}], ensure_ascii=False).encode("utf-8")
    elements = _parse_all(data, 1)
    assert json.loads(elements[0].decode("utf-8")) == {"name": "café"}


@pytest.mark.parametrize(
    "data",
    [b'{"a": 1}', b"[1,]", b"[1 2]", b"[1] 2", b"[,1]"],
)
def test_parser_rejects_structural_errors(data: bytes) -> None:
    parser = JsonArrayParser()
    with pytest.raises(ValueError):
        list(parser.feed(data))
        parser.close()


def test_parser_yields_elements_before_structural_error() -> None:
    parser = JsonArrayParser()
    seen: List[bytes] = []
    with pytest.raises(ValueError):
        for element in parser.feed(b"[1, 2 3]"):
            seen.append(element)
    assert seen == [b"1", b"2"]


def test_parser_close_requires_finished_array() -> None:
    parser = JsonArrayParser()
    list(parser.feed(b'[{"a": 1}, {"b"'))
    assert parser.done is False
    with pytest.raises(ValueError):
        parser.close()


def _items(n: int) -> bytes:
    return json.dumps([{"parentoid": "1", "name": f"f{i}"} for i in range(n)]).encode()


@pytest.mark.asyncio
async def test_iter_json_array_yields_all_in_order() -> None:
    out = [m.name async for m in iter_json_array(_achunks(_split(_items(25), 5)), decode_metadata)]
    assert out == [f"f{i}" for i in range(25)]


@pytest.mark.asyncio
async def test_iter_json_array_stops_at_malformed_element() -> None:
    body = (
        b'[{"parentoid": "1", "name": "a"}, {"parentoid": "1", "name": "b"},'
        b' {"parentoid": "1", "name": 3}, {"parentoid": "1", "name": "d"}]'
    )
    seen: List[str] = []
    with pytest.raises(GmDataDecodeError) as excinfo:
        async for item in iter_json_array(_achunks(_split(body, 4)), decode_metadata):
            seen.append(item.name)

    assert seen == ["a", "b"]
    assert '"name": 3' in excinfo.value.body


@pytest.mark.asyncio
async def test_iter_json_array_invalid_json_element() -> None:
    body = b'[{"parentoid": "1", "name": "a"}, {oops}]'
    seen: List[str] = []
    with pytest.raises(GmDataDecodeError):
        async for item in iter_json_array(_achunks([body]), decode_metadata):
            seen.append(item.name)
    assert seen == ["a"]


@pytest.mark.asyncio
async def test_iter_json_array_truncated_stream() -> None:
    body = _items(3)[:-10]
    seen: List[str] = []
    with pytest.raises(GmDataDecodeError):
        async for item in iter_json_array(_achunks(_split(body, 8)), decode_metadata):
            seen.append(item.name)
    assert seen == ["f0", "f1"]
