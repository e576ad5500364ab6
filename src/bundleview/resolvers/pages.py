"""Prerendered page resolver.

Plain static serving can't be used for pages because the trailing slash
decides between ``<route>.html`` and ``<route>/index.html``.

Every page served by one process shares a single ETag generated at
startup. Prerendered output only changes with a rebuild, and a rebuild is
always followed by a restart.
"""

import asyncio
import logging
import os
import re
import time
from pathlib import Path

from aiohttp import web

from bundleview.core.exchange import Exchange, Resolver

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Last segment has no extension, optionally followed by a trailing slash
_PAGE_PATH_RE = re.compile(r"/[^./]+/?$")


def generate_etag() -> str:
    """Create the process-wide validator for prerendered pages."""
    return f'"{int(time.time() * 1000)}"'


def strip_weak(value: str) -> str:
    # Weak and strong validators compare equal here
    if value.startswith('W/"'):
        return value[2:]
    return value


def is_page_path(pathname: str) -> bool:
    """Return True if ``pathname`` looks like a page rather than an asset."""
    return pathname == "/" or _PAGE_PATH_RE.search(pathname) is not None


def page_file(root: Path, pathname: str) -> Path | None:
    """Map a page pathname to its prerendered HTML file.

    ``/about/`` maps to ``about/index.html`` and ``/about`` to
    ``about.html``.

    Args:
        root: Prerendered pages directory
        pathname: Page-like request path

    Returns:
        Candidate file path (not checked for existence), or None if the
        path would leave ``root``
    """
    if "\x00" in pathname:
        return None

    suffix = "index.html" if pathname.endswith("/") else ".html"
    candidate = Path(f"{root}{pathname}{suffix}")
    if not candidate.resolve().is_relative_to(root.resolve()):
        return None
    return candidate


def prerendered_pages(root: Path, etag: str) -> Resolver:
    """Serve prerendered pages from ``root`` with conditional GET support.

    Args:
        root: Prerendered pages directory
        etag: Process ETag attached to every page

    Returns:
        Resolver answering 304 for a matching ``If-None-Match``, 200 with the
        page for an existing prerendered file, and calling through otherwise
    """

    async def pages_resolver(exchange: Exchange) -> web.StreamResponse | None:
        if_none_match = exchange.headers.get("If-None-Match")
        if if_none_match is not None and strip_weak(if_none_match) == etag:
            return web.Response(status=304)

        pathname = exchange.pathname
        if not is_page_path(pathname):
            return None

        loop = asyncio.get_running_loop()
        file_path = await loop.run_in_executor(None, _existing_page, root, pathname)
        if file_path is None:
            return None

        logger.debug(f"Serving prerendered page {file_path} for {pathname}")
        return await _stream_page(exchange.request, file_path, etag)

    pages_resolver.__qualname__ = f"prerendered_pages({str(root)!r})"
    return pages_resolver


def _existing_page(root: Path, pathname: str) -> Path | None:
    file_path = page_file(root, pathname)
    if file_path is None or not file_path.is_file():
        return None
    return file_path


async def _stream_page(
    request: web.Request,
    file_path: Path,
    etag: str,
) -> web.StreamResponse:
    """Stream an HTML file to the client.

    The file handle is closed on every exit, including a client disconnect
    cancelling the handler mid-stream.
    """
    loop = asyncio.get_running_loop()
    f = await loop.run_in_executor(None, file_path.open, "rb")
    with f:
        size = (await loop.run_in_executor(None, os.fstat, f.fileno())).st_size
        response = web.StreamResponse(
            status=200,
            headers={"Content-Type": "text/html", "ETag": etag},
        )
        response.content_length = size
        await response.prepare(request)

        if request.method != "HEAD":
            while chunk := await loop.run_in_executor(None, f.read, CHUNK_SIZE):
                await response.write(chunk)

    await response.write_eof()
    return response
