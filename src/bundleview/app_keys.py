"""Application keys for type-safe app configuration access."""

from aiohttp import web

from bundleview.config import Config
from bundleview.render import RenderServer

config_key = web.AppKey("config", Config)
etag_key = web.AppKey("etag", str)
render_server_key = web.AppKey("render_server", RenderServer)
