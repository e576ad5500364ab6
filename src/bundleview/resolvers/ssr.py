"""Server-side rendering fallback.

Terminal resolver of the chain: it answers every request that reaches it.
"""

import logging

from aiohttp import web

from bundleview.core.exchange import Exchange, Resolver
from bundleview.render import (
    DEFAULT_BODY_SIZE_LIMIT,
    ClientAddressError,
    RenderServer,
    RequestBuildError,
    build_request,
    write_response,
)

logger = logging.getLogger(__name__)


def ssr(
    server: RenderServer,
    protocol: str,
    *,
    body_size_limit: int | None = DEFAULT_BODY_SIZE_LIMIT,
) -> Resolver:
    """Render requests with ``server``.

    Args:
        server: Renderer loaded from the build output
        protocol: Scheme used to build the request URL (``http`` or ``https``)
        body_size_limit: Maximum accepted request body in bytes

    Returns:
        Resolver that never calls through
    """

    async def ssr_resolver(exchange: Exchange) -> web.StreamResponse:
        request = exchange.request
        host = request.headers.get("Host") or request.host

        try:
            render_request = await build_request(
                f"{protocol}://{host}",
                exchange,
                body_size_limit=body_size_limit,
            )
        except RequestBuildError as e:
            logger.warning(f"Rejected {exchange.method} {exchange.url}: {e.status} {e.reason}")
            return web.Response(status=e.status or 400, text=e.reason or "Invalid request body")

        def get_client_address() -> str:
            remote = request.remote
            if remote:
                return remote
            raise ClientAddressError("Could not determine clientAddress")

        rendered = await server.respond(
            render_request,
            get_client_address=get_client_address,
        )
        return await write_response(request, rendered)

    return ssr_resolver
