"""aiohttp server for bundleview.

Application factory wiring the preview chain onto an aiohttp application.
"""

import logging

from aiohttp import web

from bundleview.app_keys import config_key, etag_key, render_server_key
from bundleview.chain import assets_scope, build_chain, preview_middleware
from bundleview.config import Config
from bundleview.loader import ServerOptions, load_server, static_reader
from bundleview.render import RenderServer
from bundleview.resolvers.pages import generate_etag

logger = logging.getLogger(__name__)


def create_app(config: Config, *, server: RenderServer | None = None) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        server: Renderer to use instead of the one in the build output

    Returns:
        Configured aiohttp application

    Raises:
        FileNotFoundError: If the build output lacks the renderer or manifest
        TypeError: If the render entry point is unusable
        ValueError: If the route manifest is not a JSON object
    """
    if server is None:
        options = ServerOptions(
            base=config.paths.base,
            assets=assets_scope(config.paths),
            protocol=config.server.protocol,
            read=static_reader(config.build.static_dir),
        )
        server = load_server(config.build.out_dir, options, entry=config.render.entry)

    etag = generate_etag()
    chain = build_chain(
        config.build,
        config.paths,
        server=server,
        etag=etag,
        protocol=config.server.protocol,
        body_size_limit=config.render.body_size_limit,
    )

    app = web.Application(middlewares=[preview_middleware(chain)])
    app[config_key] = config
    app[etag_key] = etag
    app[render_server_key] = server
    app.on_startup.append(_log_layout)

    return app


async def _log_layout(app: web.Application) -> None:
    """Log what the preview serves on application startup."""
    config = app[config_key]
    logger.info(f"Client assets: {config.build.client_dir} at {assets_scope(config.paths) or '/'}")
    logger.info(f"Prerendered pages: {config.build.pages_dir} at {config.paths.base or '/'}")
    logger.info(f"Page ETag: {app[etag_key]}")
    logger.info(f"Renderer: {type(app[render_server_key]).__name__}")


def run_server(config: Config) -> None:
    """Run the server.

    Args:
        config: Application configuration
    """
    app = create_app(config)
    web.run_app(app, host=config.server.host, port=config.server.port)
