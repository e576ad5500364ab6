"""The preview resolver chain.

Order matters: built and prerendered artifacts get first refusal, so the
renderer only runs for routes nothing on disk answers.
"""

import logging
from collections.abc import Sequence

from aiohttp import web
from aiohttp.typedefs import Handler

from bundleview.config import BuildConfig, PathsConfig
from bundleview.core.exchange import Exchange, Resolver
from bundleview.core.scope import scoped
from bundleview.render import DEFAULT_BODY_SIZE_LIMIT, RenderServer
from bundleview.resolvers.pages import prerendered_pages
from bundleview.resolvers.ssr import ssr
from bundleview.resolvers.static import CachePolicy, static_resolver

logger = logging.getLogger(__name__)

# Mount point of the client build when assets are served from another origin
EXTERNAL_ASSETS_PATH = "/_bundleview_assets"


def assets_scope(paths: PathsConfig) -> str:
    return EXTERNAL_ASSETS_PATH if paths.assets else paths.base


def build_chain(
    build: BuildConfig,
    paths: PathsConfig,
    *,
    server: RenderServer,
    etag: str,
    protocol: str = "http",
    body_size_limit: int | None = DEFAULT_BODY_SIZE_LIMIT,
) -> list[Resolver]:
    """Compose the resolvers in serving order.

    Args:
        build: Build output layout
        paths: Base and assets paths
        server: Renderer for the SSR fallback
        etag: Process ETag for prerendered pages
        protocol: Scheme used for rendered request URLs
        body_size_limit: Maximum request body handed to the renderer

    Returns:
        Client assets, prerendered dependencies, prerendered pages, SSR
    """
    base = paths.base
    return [
        scoped(
            assets_scope(paths),
            static_resolver(build.client_dir, CachePolicy.IMMUTABLE, app_dir=build.app_dir),
        ),
        scoped(
            base,
            static_resolver(build.dependencies_dir, CachePolicy.MUTABLE, app_dir=build.app_dir),
        ),
        scoped(base, prerendered_pages(build.pages_dir, etag)),
        scoped(base, ssr(server, protocol, body_size_limit=body_size_limit)),
    ]


async def dispatch(chain: Sequence[Resolver], exchange: Exchange) -> web.StreamResponse | None:
    """Try each resolver in order and return the first response.

    Returns:
        The response, or None if every resolver called through
    """
    for resolver in chain:
        response = await resolver(exchange)
        if response is not None:
            name = getattr(resolver, "__qualname__", type(resolver).__name__)
            logger.debug(f"{exchange!r} answered by {name}")
            return response
    return None


def preview_middleware(chain: Sequence[Resolver]):
    """Wrap the chain as an aiohttp middleware.

    Requests no resolver answers continue to the application's own router,
    which owns the final 404.
    """

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        response = await dispatch(chain, Exchange(request))
        if response is not None:
            return response
        return await handler(request)

    return middleware
