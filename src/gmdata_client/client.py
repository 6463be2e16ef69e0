# GM Data Client
# File: client.py
# Version: v4

"""Async client for the GM Data REST API.

Implements:

- get_self() / get_config() for service self-description and namespace config
- get_props() / get_folder_props() / get_props_and_status() for /props
- get_file_list() / stream_file_list() for /list
- write_folder() for multipart metadata writes to /write
- get_user_folder() to resolve the caller's user folder from /self

Every request goes through one dispatcher that checks the status class before
the body is decoded; every non-2xx response is turned into a
GmDataResponseError carrying the URI, status code and raw body.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import httpx

from .auth import HeaderSource
from .codec import decode_body, encode_metadata_list
from .config import GmDataSettings
from .errors import (
    GmDataDecodeError,
    GmDataError,
    GmDataResponseError,
    GmDataTransportError,
    RecoverableError,
)
from .models import (
    Config,
    Decoder,
    GenericResponse,
    Metadata,
    Recovered,
    SelfResponse,
    X,
    decode_config,
    decode_metadata,
    decode_metadata_list,
    decode_self_response,
)
from .paths import PathComposer
from .streaming import iter_json_array

logger = logging.getLogger(__name__)

HeaderInput = Union[Mapping[str, str], Sequence[Tuple[str, str]]]
ResponseHandler = Callable[[httpx.Response, httpx.Request], Awaitable[Any]]

SELF_ENDPOINT_CONTEXT = "There was an error hitting the /self endpoint of GM Data"


# ---------------------------------------------------------------------------
# Response handling
# ---------------------------------------------------------------------------


async def response_error(
    response: httpx.Response, request: httpx.Request
) -> GmDataResponseError:
    """Build the unified error for a non-2xx response, reading the body in full."""
    await response.aread()
    error = GmDataResponseError(str(request.url), response.status_code, response.text)
    logger.warning(
        "GM Data %s %s returned HTTP %s", request.method, request.url, response.status_code
    )
    return error


def expect_json(decoder: Decoder[X]) -> ResponseHandler:
    """Handler that decodes a 2xx body with ``decoder`` and raises otherwise."""

    async def handle(response: httpx.Response, request: httpx.Request) -> X:
        if not response.is_success:
            raise await response_error(response, request)
        return decode_body(response.text, decoder)

    return handle


async def capture_raw(
    response: httpx.Response, request: httpx.Request
) -> GenericResponse[str]:
    """Handler returning the literal body and status; never raises on status."""
    if response.is_success:
        return GenericResponse(response.text, response.status_code)
    return GenericResponse(
        f"There was an error response from {request.url}: {response.text}",
        response.status_code,
    )


async def recover(awaitable: Awaitable[X], context: str) -> Recovered[X]:
    """Await ``awaitable`` and turn any GmDataError into a Recovered error."""
    try:
        return Recovered(value=await awaitable)
    except GmDataError as exc:
        logger.warning("%s: %s", context, exc)
        return Recovered(error=RecoverableError(context, exc))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


@dataclass
class GmDataClient:
    """Wrapper around the GM Data /self, /config, /props, /list and /write APIs.

    ``headers`` are merged verbatim into every request. When ``http_client``
    is given it is used as-is and never closed here; otherwise a short-lived
    ``httpx.AsyncClient`` is opened per call.
    """

    root_url: str
    headers: HeaderInput = field(default_factory=list)
    http_client: Optional[httpx.AsyncClient] = None
    verify_tls: bool = True
    timeout_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        self.paths = PathComposer(self.root_url)
        self._headers = httpx.Headers(self.headers)

    @classmethod
    def from_settings(
        cls,
        settings: GmDataSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "GmDataClient":
        if not settings.root_url:
            raise RuntimeError(
                "GMDATA_ROOT_URL is not set. "
                "Please configure it before creating a GM Data client."
            )
        return cls(
            root_url=settings.root_url,
            headers=HeaderSource(settings).get_headers(),
            http_client=http_client,
            verify_tls=settings.verify_tls,
            timeout_seconds=settings.timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
            return

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, verify=self.verify_tls
        ) as http_client:
            yield http_client

    async def _dispatch(
        self,
        method: str,
        url: httpx.URL,
        handler: ResponseHandler,
        **request_kwargs: Any,
    ) -> Any:
        async with self._http() as http_client:
            request = http_client.build_request(
                method, url, headers=self._headers, **request_kwargs
            )
            logger.debug("GM Data %s %s", method, url)
            try:
                response = await http_client.send(request)
            except httpx.RequestError as exc:
                raise GmDataTransportError(str(url), str(exc)) from exc
            return await handler(response, request)

    async def _stream(self, url: httpx.URL, decoder: Decoder[X]) -> AsyncIterator[X]:
        async with self._http() as http_client:
            request = http_client.build_request("GET", url, headers=self._headers)
            logger.debug("GM Data GET %s (streaming)", url)
            try:
                response = await http_client.send(request, stream=True)
            except httpx.RequestError as exc:
                raise GmDataTransportError(str(url), str(exc)) from exc

            try:
                if not response.is_success:
                    raise await response_error(response, request)
                async for item in iter_json_array(response.aiter_bytes(), decoder):
                    yield item
            except httpx.RequestError as exc:
                raise GmDataTransportError(str(url), str(exc)) from exc
            finally:
                await response.aclose()

    async def _get(self, url: httpx.URL, decoder: Decoder[X]) -> X:
        return await self._dispatch("GET", url, expect_json(decoder))

    # ------------------------------------------------------------------
    # Self-description and configuration
    # ------------------------------------------------------------------

    async def get_self(self) -> SelfResponse:
        return await self._get(self.paths.self_url(), decode_self_response)

    async def get_config(self) -> Config:
        return await self._get(self.paths.config_url(), decode_config)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    async def get_props(self, path: str, decoder: Decoder[X] = decode_metadata) -> X:
        """GET /props/{path} decoded with ``decoder`` (Metadata by default)."""
        return await self._get(self.paths.props_url(path), decoder)

    async def get_folder_props(self, path: str) -> Metadata:
        return await self.get_props(path, decode_metadata)

    async def get_props_and_status(self, path: str) -> GenericResponse[str]:
        """GET /props/{path} returning the raw body and status code.

        Non-2xx responses are returned, not raised, with a message naming the
        requested URI in place of the body.
        """
        return await self._dispatch("GET", self.paths.props_url(path), capture_raw)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def get_file_list(self, path: str) -> List[Metadata]:
        return await self._get(self.paths.list_url(path), decode_metadata_list)

    def stream_file_list(self, path: str) -> AsyncIterator[Metadata]:
        """Stream GET /list/{path} one Metadata item at a time.

        The URL is composed immediately, so an invalid path raises here
        rather than on first iteration. Closing the iterator early closes
        the underlying response.
        """
        return self._stream(self.paths.list_url(path), decode_metadata)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_folder(self, metadata: Sequence[Metadata]) -> Metadata:
        """POST metadata to /write as multipart field ``meta``.

        The service echoes the processed items with the subject item first;
        only that first item is returned.
        """
        body = encode_metadata_list(metadata)
        written: List[Metadata] = await self._dispatch(
            "POST",
            self.paths.write_url(),
            expect_json(decode_metadata_list),
            files={"meta": (None, body.encode("utf-8"))},
        )
        if not written:
            raise GmDataDecodeError("[]", "expected at least one item in the /write response")
        return written[0]

    # ------------------------------------------------------------------
    # User folder
    # ------------------------------------------------------------------

    async def get_user_folder(self, config: Config) -> Recovered[str]:
        """Resolve the caller's user folder name from /self.

        Never raises a GmDataError: a failed /self call or a missing field
        comes back as ``Recovered(error=...)``.
        """

        async def _resolve() -> str:
            self_response = await self.get_self()
            return self_response.get_user_field(config.namespace_user_field)

        return await recover(_resolve(), SELF_ENDPOINT_CONTEXT)
