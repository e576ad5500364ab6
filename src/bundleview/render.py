"""Request and response types exchanged with the server-side renderer.

The renderer never sees aiohttp objects: :func:`build_request` turns the
incoming request into a :class:`RenderRequest` and :func:`write_response`
copies a :class:`RenderResponse` back onto the connection.
"""

from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from aiohttp import web
from aiohttp.http_exceptions import BadHttpMessage
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from bundleview.core.exchange import Exchange

DEFAULT_BODY_SIZE_LIMIT = 512 * 1024

_READ_CHUNK_SIZE = 64 * 1024


class RequestBuildError(Exception):
    """The incoming request could not be turned into a RenderRequest."""

    def __init__(self, status: int = 400, reason: str = "Invalid request body") -> None:
        super().__init__(reason)
        self.status = status
        self.reason = reason


class ClientAddressError(RuntimeError):
    """The transport did not expose a peer address."""


@dataclass(frozen=True)
class RenderRequest:
    """Request handed to the renderer."""

    method: str
    url: URL
    headers: CIMultiDictProxy[str]
    body: bytes = b""


@dataclass
class RenderResponse:
    """Response produced by the renderer.

    ``body`` is either the complete payload or an async iterable of chunks.
    """

    status: int = 200
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: bytes | AsyncIterable[bytes] = b""


class RenderServer(Protocol):
    """Anything able to render a response for a request."""

    async def respond(
        self,
        request: RenderRequest,
        *,
        get_client_address: Callable[[], str],
    ) -> RenderResponse: ...


async def build_request(
    origin: str,
    exchange: Exchange,
    *,
    body_size_limit: int | None = DEFAULT_BODY_SIZE_LIMIT,
) -> RenderRequest:
    """Build a RenderRequest from the incoming request.

    Args:
        origin: Scheme and host, e.g. ``http://localhost:4173``
        exchange: Incoming request; its current url supplies path and query
        body_size_limit: Maximum body size in bytes, None for no limit

    Returns:
        RenderRequest carrying method, headers, body and absolute URL

    Raises:
        RequestBuildError: If the body is malformed or too large
    """
    target = exchange.url if exchange.url.startswith("/") else f"/{exchange.url}"
    try:
        url = URL(f"{origin}{target}", encoded=True)
    except ValueError as e:
        raise RequestBuildError(400, f"Invalid request URL: {e}") from e

    request = exchange.request
    body = b""
    if request.method not in ("GET", "HEAD"):
        body = await _read_body(request, body_size_limit)

    return RenderRequest(
        method=request.method,
        url=url,
        headers=request.headers,
        body=body,
    )


async def _read_body(request: web.Request, limit: int | None) -> bytes:
    header = request.headers.get("Content-Length")
    if header is not None:
        if not (header.isascii() and header.isdigit()):
            raise RequestBuildError(400, "Invalid Content-Length header")
        length = int(header)
        if limit is not None and length > limit:
            raise RequestBuildError(
                413,
                f"Content-length of {length} exceeds limit of {limit} bytes.",
            )

    chunks: list[bytes] = []
    size = 0
    try:
        while chunk := await request.content.read(_READ_CHUNK_SIZE):
            size += len(chunk)
            if limit is not None and size > limit:
                raise RequestBuildError(
                    413,
                    f"request body size exceeded BODY_SIZE_LIMIT of {limit}",
                )
            chunks.append(chunk)
    except BadHttpMessage as e:
        raise RequestBuildError(e.code, e.message or "Invalid request body") from e

    return b"".join(chunks)


async def write_response(
    request: web.Request,
    rendered: RenderResponse,
) -> web.StreamResponse:
    """Copy a RenderResponse onto the connection.

    Every header is forwarded, repeated ones (e.g. ``Set-Cookie``) included.
    An async generator body is closed on every exit, so a client disconnect
    stops the renderer's stream.

    Args:
        request: Incoming aiohttp request
        rendered: Response returned by the renderer

    Returns:
        The prepared and completed aiohttp response
    """
    response = web.StreamResponse(status=rendered.status)
    for name, value in rendered.headers.items():
        response.headers.add(name, value)

    body = rendered.body
    if isinstance(body, bytes):
        if "Content-Length" not in response.headers:
            response.content_length = len(body)
        await response.prepare(request)
        if body and request.method != "HEAD":
            await response.write(body)
        await response.write_eof()
        return response

    await response.prepare(request)
    try:
        # A HEAD response has no body; the stream is only closed
        if request.method != "HEAD":
            async for chunk in body:
                await response.write(chunk)
    finally:
        aclose = getattr(body, "aclose", None)
        if aclose is not None:
            await aclose()

    await response.write_eof()
    return response
