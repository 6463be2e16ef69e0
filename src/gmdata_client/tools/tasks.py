# GM Data Client
# File: tools/tasks.py
# Version: v6
#
# NOTE: This module is the single place where GM Data client operations are
# exposed as MCP tools. The stdio transport simply calls
# `register_tools(server)` to wire these up.

from __future__ import annotations

import json
import time
from contextlib import aclosing
from email.parser import BytesParser
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

import httpx

from ..auth import HeaderSource
from ..client import GmDataClient
from ..config import GmDataSettings
from ..errors import (
    GmDataDecodeError,
    GmDataError,
    GmDataResponseError,
    GmDataTransportError,
    InvalidUrlError,
)
from ..models import Metadata, decode_metadata


# ---------------------------------------------------------------------------
# Internal helpers (errors, caps, mock service)
# ---------------------------------------------------------------------------


def _make_error(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Small, LLM-friendly error shape returned by the tools."""
    err: Dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return err


def _gmdata_error(exc: GmDataError) -> Dict[str, Any]:
    """Map a client failure onto the _make_error shape."""
    if isinstance(exc, GmDataResponseError):
        return _make_error(
            "BACKEND_ERROR", str(exc), {"uri": exc.uri, "status_code": exc.status_code}
        )
    if isinstance(exc, GmDataTransportError):
        return _make_error("TRANSPORT_ERROR", str(exc), {"uri": exc.uri})
    if isinstance(exc, GmDataDecodeError):
        return _make_error("DECODE_ERROR", str(exc))
    if isinstance(exc, InvalidUrlError):
        return _make_error("INVALID_PATH", str(exc), {"reason": exc.reason})
    return _make_error("GMDATA_ERROR", str(exc))


def _failed(exc: GmDataError, **fields: Any) -> Dict[str, Any]:
    return {"ok": False, **fields, "error": _gmdata_error(exc)}


def _cap_int(value: int, cap: int, min_value: int = 1) -> tuple[int, bool]:
    """Clamp an integer to [min_value, cap]. Returns (effective, cap_applied)."""
    try:
        v = int(value)
    except Exception:
        v = min_value

    if v < min_value:
        v = min_value
        return v, True

    if cap > 0 and v > cap:
        return cap, True

    return v, False


MOCK_ROOT_URL = "http://gmdata.mock/services/gmdata"
MOCK_ROOT_OID = "1"


class MockGmDataService:
    """Small in-memory GM Data used when GMDATA_MOCK_MODE is truthy.

    It answers the same HTTP endpoints as the real service through an
    ``httpx.MockTransport``, so the real client code runs end to end without
    a GM Data deployment.
    """

    def __init__(self) -> None:
        self.user_field = "email"
        self.user = "mock.user@example.com"
        self._next_oid = 100
        self._items: Dict[str, Dict[str, Any]] = {}
        # Shared by every mock-mode client; GmDataClient never closes it.
        self.http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handle))
        self._add({"parentoid": MOCK_ROOT_OID, "name": "world", "isfile": False})
        self._add({"parentoid": "100", "name": self.user, "isfile": False})
        self._add(
            {
                "parentoid": "101",
                "name": "notes.txt",
                "isfile": True,
                "mimetype": "text/plain",
                "size": 12,
            }
        )

    def _add(self, item: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(item)
        stored.setdefault("oid", str(self._next_oid))
        stored.setdefault("action", "C")
        stored.setdefault("tstamp", "%x" % (1700000000 + self._next_oid))
        self._next_oid += 1
        self._items[stored["oid"]] = stored
        return stored

    def _resolve(self, path: str) -> Optional[Dict[str, Any]]:
        parent = MOCK_ROOT_OID
        found: Optional[Dict[str, Any]] = None
        for name in [unquote(p) for p in path.split("/") if p]:
            found = next(
                (i for i in self._items.values() if i["parentoid"] == parent and i["name"] == name),
                None,
            )
            if found is None:
                return None
            parent = found["oid"]
        return found

    def _children(self, oid: str) -> List[Dict[str, Any]]:
        return [i for i in self._items.values() if i["parentoid"] == oid]

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = urlparse(str(request.url)).path
        prefix = urlparse(MOCK_ROOT_URL).path
        route = path[len(prefix):] if path.startswith(prefix) else path

        if request.method == "GET" and route == "/self":
            return httpx.Response(200, json={"values": {self.user_field: [self.user]}})
        if request.method == "GET" and route == "/config":
            return httpx.Response(
                200,
                json={
                    "GMDATA_NAMESPACE_OID": MOCK_ROOT_OID,
                    "GMDATA_NAMESPACE_USERFIELD": self.user_field,
                },
            )
        if request.method == "GET" and route.startswith("/props/"):
            item = self._resolve(route[len("/props/"):])
            if item is None:
                return httpx.Response(404, text="no such object")
            return httpx.Response(200, json=item)
        if request.method == "GET" and route.startswith("/list/"):
            item = self._resolve(route[len("/list/"):])
            if item is None:
                return httpx.Response(404, text="no such object")
            return httpx.Response(200, json=self._children(item["oid"]))
        if request.method == "POST" and route == "/write":
            return self._write(request)
        return httpx.Response(404, text=f"unknown route {request.method} {route}")

    def _write(self, request: httpx.Request) -> httpx.Response:
        content_type = request.headers.get("content-type", "")
        message = BytesParser().parsebytes(
            b"Content-Type: " + content_type.encode("latin-1") + b"\r\n\r\n" + request.read()
        )
        meta: Optional[bytes] = None
        for part in message.get_payload() if message.is_multipart() else []:
            if part.get_param("name", header="content-disposition") == "meta":
                meta = part.get_payload(decode=True)
        if meta is None:
            return httpx.Response(400, text="missing multipart field 'meta'")

        try:
            items = json.loads(meta)
        except ValueError:
            return httpx.Response(400, text="field 'meta' is not valid JSON")
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            return httpx.Response(400, text="field 'meta' must be a JSON array of objects")
        return httpx.Response(200, json=[self._add(item) for item in items])


_MOCK_SERVICE: MockGmDataService | None = None


def _get_mock_service() -> MockGmDataService:
    """Lazily create the process-wide mock service so writes persist."""
    global _MOCK_SERVICE
    if _MOCK_SERVICE is None:
        _MOCK_SERVICE = MockGmDataService()
    return _MOCK_SERVICE


def _make_client(settings: Optional[GmDataSettings] = None) -> GmDataClient:
    """Create a GmDataClient from environment variables.

    If GMDATA_MOCK_MODE is truthy, the client talks to the in-process mock
    service instead of a real GM Data deployment.

    Note: Callers should prefer invoking this with *no arguments* to keep
    unit tests monkeypatch-friendly (tests often replace _make_client with
    a no-arg lambda).
    """
    settings = settings or GmDataSettings.from_env()

    if settings.mock_mode:
        return GmDataClient(
            root_url=MOCK_ROOT_URL,
            headers=HeaderSource(settings).get_headers(),
            http_client=_get_mock_service().http_client,
        )

    return GmDataClient.from_settings(settings)


def _metadata_dict(item: Metadata) -> Dict[str, Any]:
    return item.to_json()


# ---------------------------------------------------------------------------
# Core async tasks (library-style)
# ---------------------------------------------------------------------------


async def ping() -> Dict[str, Any]:
    settings = GmDataSettings.from_env()
    return {"ok": bool(settings.root_url) or settings.mock_mode}


async def get_self() -> Dict[str, Any]:
    client = _make_client()
    try:
        self_response = await client.get_self()
    except GmDataError as exc:
        return _failed(exc)
    values = {
        key: list(entries) if entries is not None else None
        for key, entries in self_response.values.items()
    }
    return {"ok": True, "values": values}


async def get_config() -> Dict[str, Any]:
    client = _make_client()
    try:
        config = await client.get_config()
    except GmDataError as exc:
        return _failed(exc)
    return {
        "ok": True,
        "namespace_oid": config.namespace_oid,
        "namespace_user_field": config.namespace_user_field,
    }


async def get_props(path: str) -> Dict[str, Any]:
    client = _make_client()
    try:
        item = await client.get_folder_props(path)
    except GmDataError as exc:
        return _failed(exc, path=path)
    return {"ok": True, "path": path, "metadata": _metadata_dict(item)}


async def get_props_and_status(path: str) -> Dict[str, Any]:
    client = _make_client()
    try:
        result = await client.get_props_and_status(path)
    except GmDataError as exc:
        return _failed(exc, path=path, status_code=None)
    return {
        "path": path,
        "status_code": result.status_code,
        "ok": 200 <= result.status_code < 300,
        "response": result.response,
    }


async def list_files(path: str, limit: int = 100) -> Dict[str, Any]:
    """Stream a folder listing, stopping once ``limit`` items are collected."""
    settings = GmDataSettings.from_env()
    requested_limit = limit
    effective_limit, cap_applied = _cap_int(limit, settings.max_list_items, min_value=1)

    client = _make_client()
    items: List[Dict[str, Any]] = []
    truncated = False
    try:
        async with aclosing(client.stream_file_list(path)) as stream:
            async for item in stream:
                if len(items) >= effective_limit:
                    truncated = True
                    break
                items.append(_metadata_dict(item))
    except GmDataError as exc:
        # Items decoded before the failure are still reported.
        return _failed(exc, path=path, items=items)

    return {
        "ok": True,
        "path": path,
        "items": items,
        "truncated": truncated,
        "meta": {
            "count": len(items),
            "requested_limit": requested_limit,
            "effective_limit": effective_limit,
            "cap_limit": settings.max_list_items,
            "cap_applied": bool(cap_applied),
        },
    }


async def write_folder(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Write metadata items; returns the first item echoed by the service."""
    if not items:
        raise ValueError("write_folder requires at least one metadata item.")

    metadata: List[Metadata] = []
    for index, raw in enumerate(items):
        try:
            metadata.append(decode_metadata(raw))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid metadata item at index {index}: {exc}") from exc

    client = _make_client()
    try:
        written = await client.write_folder(metadata)
    except GmDataError as exc:
        return _failed(exc, submitted=len(metadata))
    return {"ok": True, "written": _metadata_dict(written), "submitted": len(metadata)}


async def get_user_folder() -> Dict[str, Any]:
    """Resolve the user folder, preferring namespace settings over /config."""
    settings = GmDataSettings.from_env()
    client = _make_client()

    if settings.namespace_user_field and settings.namespace_oid:
        config = settings.namespace_config()
        source = "settings"
    else:
        source = "config_endpoint"
        try:
            config = await client.get_config()
        except GmDataError as exc:
            return {
                "ok": False,
                "user_folder": None,
                "user_field": None,
                "error": _gmdata_error(exc),
                "meta": {"config_source": source},
            }

    result = await client.get_user_folder(config)
    return {
        "ok": result.ok,
        "user_folder": result.value,
        "user_field": config.namespace_user_field,
        "error": None if result.ok else _make_error("USER_FOLDER_UNRESOLVED", str(result.error)),
        "meta": {"config_source": source},
    }


async def diagnostics() -> Dict[str, Any]:
    started = time.time()
    settings = GmDataSettings.from_env()

    checks: List[Dict[str, Any]] = []
    overall_ok = True

    # Client init
    t0 = time.time()
    try:
        client = _make_client()
        checks.append(
            {"name": "client_init", "ok": True, "error": None, "elapsed_ms": int((time.time() - t0) * 1000)}
        )
    except Exception as exc:
        checks.append(
            {
                "name": "client_init",
                "ok": False,
                "error": _make_error("CONFIG_ERROR", str(exc)),
                "elapsed_ms": int((time.time() - t0) * 1000),
            }
        )
        return {
            "ok": False,
            "mock_mode": settings.mock_mode,
            "checks": checks,
            "meta": {"elapsed_ms": int((time.time() - started) * 1000)},
        }

    for name, call in (("self", client.get_self), ("config", client.get_config)):
        t0 = time.time()
        try:
            await call()
            checks.append(
                {"name": name, "ok": True, "error": None, "elapsed_ms": int((time.time() - t0) * 1000)}
            )
        except Exception as exc:
            overall_ok = False
            checks.append(
                {
                    "name": name,
                    "ok": False,
                    "error": _make_error("BACKEND_ERROR", str(exc)),
                    "elapsed_ms": int((time.time() - t0) * 1000),
                }
            )

    return {
        "ok": overall_ok,
        "mock_mode": settings.mock_mode,
        "checks": checks,
        "meta": {
            "elapsed_ms": int((time.time() - started) * 1000),
            "root_url_configured": bool(settings.root_url),
            "headers": HeaderSource(settings).describe(),
        },
    }


# ---------------------------------------------------------------------------
# MCP tool registration
# ---------------------------------------------------------------------------


def register_tools(server: Any) -> None:
    """Register MCP tools on an MCP Server-like instance."""
    if server is None or not hasattr(server, "tool"):
        raise ValueError(
            "register_tools(server) expects an MCP Server-like object that exposes a .tool() decorator."
        )

    @server.tool(name="gmdata_ping", description="Basic configuration check for the GM Data client.")
    async def mcp_ping() -> Dict[str, Any]:
        return await ping()

    @server.tool(name="gmdata_get_self", description="Return the GM Data /self description of the caller.")
    async def mcp_get_self() -> Dict[str, Any]:
        return await get_self()

    @server.tool(name="gmdata_get_config", description="Return the GM Data namespace configuration.")
    async def mcp_get_config() -> Dict[str, Any]:
        return await get_config()

    @server.tool(name="gmdata_get_props", description="Get metadata for a file or folder path.")
    async def mcp_get_props(path: str) -> Dict[str, Any]:
        return await get_props(path=path)

    @server.tool(
        name="gmdata_get_props_and_status",
        description="Get the raw /props response and HTTP status for a path without failing on errors.",
    )
    async def mcp_get_props_and_status(path: str) -> Dict[str, Any]:
        return await get_props_and_status(path=path)

    @server.tool(name="gmdata_list_files", description="Stream the items in a GM Data folder (capped).")
    async def mcp_list_files(path: str, limit: int = 100) -> Dict[str, Any]:
        return await list_files(path=path, limit=limit)

    @server.tool(
        name="gmdata_write_folder",
        description="Write metadata records to GM Data and return the first processed item.",
    )
    async def mcp_write_folder(items: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await write_folder(items=items)

    @server.tool(name="gmdata_get_user_folder", description="Resolve the caller's user folder from /self.")
    async def mcp_get_user_folder() -> Dict[str, Any]:
        return await get_user_folder()

    @server.tool(name="gmdata_diagnostics", description="Run health checks against the GM Data service.")
    async def mcp_diagnostics() -> Dict[str, Any]:
        return await diagnostics()
