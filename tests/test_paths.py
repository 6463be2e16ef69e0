# GM Data Client
# File: tests/test_paths.py
# Version: v1

from __future__ import annotations

import pytest

from gmdata_client.errors import InvalidUrlError
from gmdata_client.paths import PathComposer, parse_url, path_segments

ROOT = "https://gmdata.example.com/services/gmdata"


def test_fixed_endpoints() -> None:
    paths = PathComposer(ROOT + "/")
    assert str(paths.self_url()) == f"{ROOT}/self"
    assert str(paths.config_url()) == f"{ROOT}/config"
    assert str(paths.write_url()) == f"{ROOT}/write"


def test_path_endpoints_escape_segments() -> None:
    paths = PathComposer(ROOT)
    assert str(paths.props_url("world/alice@example.com/my file.txt")) == (
        f"{ROOT}/props/world/alice%40example.com/my%20file.txt"
    )
    assert str(paths.list_url("/world//alice/")) == f"{ROOT}/list/world/alice"
    assert str(paths.list_url("a?b#c")) == f"{ROOT}/list/a%3Fb%23c"


def test_path_segments_drop_empty() -> None:
    assert path_segments("//a/b//c/") == ["a", "b", "c"]


@pytest.mark.parametrize("path", ["..", "../write", "a/../../config", ".", "world/./alice"])
def test_dot_segments_are_rejected(path: str) -> None:
    paths = PathComposer(ROOT)
    with pytest.raises(InvalidUrlError) as excinfo:
        paths.props_url(path)
    assert "dot segment" in str(excinfo.value)
    with pytest.raises(InvalidUrlError):
        paths.list_url(path)


def test_dotted_names_are_plain_segments() -> None:
    paths = PathComposer(ROOT)
    assert str(paths.props_url("world/.hidden/a..b")) == f"{ROOT}/props/world/.hidden/a..b"


@pytest.mark.parametrize(
    "bad",
    [
        "not a url",
        "ftp://gmdata.example.com",
        "https://",
        "http://gmdata.example.com:notaport",
    ],
)
def test_invalid_root_fails_immediately(bad: str) -> None:
    with pytest.raises(InvalidUrlError) as excinfo:
        PathComposer(bad)
    assert "is an invalid URL" in str(excinfo.value)


def test_invalid_url_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_url("mailto:alice@example.com")
