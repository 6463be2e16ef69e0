# GM Data Client
# File: tests/test_sanity.py
# Version: v2

"""Basic sanity tests for settings and client construction."""

import pytest

from gmdata_client.auth import HeaderSource
from gmdata_client.client import GmDataClient
from gmdata_client.config import GmDataSettings, parse_header_pairs


def test_settings_from_env_minimal(monkeypatch) -> None:
    for name in ("GMDATA_ROOT_URL", "GMDATA_TIMEOUT_SECONDS", "GMDATA_MAX_LIST_ITEMS"):
        monkeypatch.delenv(name, raising=False)

    settings = GmDataSettings.from_env()
    assert settings.root_url is None
    assert settings.timeout_seconds is None
    assert settings.max_list_items == 500


def test_settings_from_env_full(monkeypatch) -> None:
    monkeypatch.setenv("GMDATA_ROOT_URL", "https://gmdata.example.com/services/gmdata")
    monkeypatch.setenv("GMDATA_NAMESPACE_OID", "1")
    monkeypatch.setenv("GMDATA_NAMESPACE_USERFIELD", "email")
    monkeypatch.setenv("GMDATA_USER_DN", "CN=alice,O=example")
    monkeypatch.setenv("GMDATA_EXTRA_HEADERS", "X-Trace: abc; broken; X-Team: data")
    monkeypatch.setenv("GMDATA_VERIFY_TLS", "no")
    monkeypatch.setenv("GMDATA_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("GMDATA_MAX_LIST_ITEMS", "999999")

    settings = GmDataSettings.from_env()
    assert settings.verify_tls is False
    assert settings.timeout_seconds == 12.5
    assert settings.max_list_items == 100000

    config = settings.namespace_config()
    assert config.namespace_oid == "1"
    assert config.namespace_user_field == "email"

    headers = HeaderSource(settings).get_headers()
    assert headers == [
        ("USER_DN", "CN=alice,O=example"),
        ("X-Trace", "abc"),
        ("X-Team", "data"),
    ]


def test_namespace_config_requires_both_fields() -> None:
    settings = GmDataSettings(root_url=None, namespace_oid="1", namespace_user_field=None)
    with pytest.raises(RuntimeError):
        settings.namespace_config()


def test_parse_header_pairs_empty() -> None:
    assert parse_header_pairs(None) == []
    assert parse_header_pairs("  ") == []


def test_client_from_settings_requires_root_url() -> None:
    settings = GmDataSettings(root_url=None, namespace_oid=None, namespace_user_field=None)
    with pytest.raises(RuntimeError, match="GMDATA_ROOT_URL"):
        GmDataClient.from_settings(settings)


def test_client_from_settings_builds_paths() -> None:
    settings = GmDataSettings(
        root_url="https://gmdata.example.com/services/gmdata/",
        namespace_oid=None,
        namespace_user_field=None,
        user_dn="CN=bob",
    )
    client = GmDataClient.from_settings(settings)
    assert str(client.paths.self_url()) == "https://gmdata.example.com/services/gmdata/self"
