"""Static file resolvers for the build output.

File transfer itself (range requests, pre-compressed siblings, ETag and
Last-Modified validation) is delegated to ``aiohttp.web.FileResponse``.
This module decides which file a request maps to and which cache headers
go with it.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from aiohttp import web
from multidict import CIMultiDict

from bundleview.core.exchange import Exchange, Resolver

logger = logging.getLogger(__name__)

IMMUTABLE_CACHE_CONTROL = "public,max-age=31536000,immutable"

# Called with the response headers and the request pathname before a file is sent
HeadersHook = Callable[[CIMultiDict[str], str], None]


class CachePolicy(Enum):
    """Caching behaviour attached to a static resolver."""

    IMMUTABLE = "immutable"
    MUTABLE = "mutable"
    NONE = "none"


@dataclass(frozen=True)
class StaticOptions:
    """Options for :func:`serve_static`.

    Attributes:
        max_age: Adds ``cache-control: public,max-age=N`` when set
        set_headers: Per-file hook that may add or replace response headers
    """

    max_age: int | None = None
    set_headers: HeadersHook | None = None


def serve_static(directory: Path, options: StaticOptions | None = None) -> Resolver:
    """Serve files under ``directory``.

    A request maps to the exact file, then ``<path>.html``, then
    ``<path>/index.html``. Dotfiles (other than ``.well-known``) and paths
    escaping the directory are treated as missing. Missing files and
    methods other than GET and HEAD call through.

    Args:
        directory: Directory to serve
        options: Cache and header options

    Returns:
        Resolver serving the directory
    """
    root = directory.resolve()
    opts = options or StaticOptions()

    async def static_resolver(exchange: Exchange) -> web.StreamResponse | None:
        if exchange.method not in ("GET", "HEAD"):
            return None

        pathname = exchange.pathname
        loop = asyncio.get_running_loop()
        file_path = await loop.run_in_executor(None, find_file, root, pathname)
        if file_path is None:
            return None

        headers: CIMultiDict[str] = CIMultiDict()
        if opts.max_age is not None:
            headers["Cache-Control"] = f"public,max-age={opts.max_age}"
        if opts.set_headers is not None:
            opts.set_headers(headers, pathname)

        logger.debug(f"Serving {file_path} for {pathname}")
        return web.FileResponse(file_path, headers=headers)

    static_resolver.__qualname__ = f"serve_static({str(directory)!r})"
    return static_resolver


def find_file(root: Path, pathname: str) -> Path | None:
    """Map a request pathname to a regular file under ``root``.

    Args:
        root: Resolved directory being served
        pathname: Decoded request path starting with ``/``

    Returns:
        Path to the file, or None if nothing servable matches
    """
    relative = pathname.lstrip("/")
    if "\x00" in relative or _is_hidden(relative):
        return None

    if relative == "" or pathname.endswith("/"):
        candidates = [root / relative / "index.html"]
    else:
        candidates = [
            root / relative,
            root / f"{relative}.html",
            root / relative / "index.html",
        ]

    for candidate in candidates:
        resolved = candidate.resolve()
        if not resolved.is_relative_to(root):
            return None
        if resolved.is_file():
            return resolved
    return None


def _is_hidden(relative: str) -> bool:
    return any(
        segment.startswith(".") and segment != ".well-known"
        for segment in relative.split("/")
    )


def immutable(directory: Path, app_dir: str) -> Resolver:
    """Serve built client assets.

    Only files under ``/<app_dir>/immutable`` carry content hashes in their
    names, so only those are marked cacheable for a year. Other files in the
    directory (e.g. ``version.json``) keep the file server defaults.

    Args:
        directory: Client build directory (assumed to exist)
        app_dir: Build-tool asset sub-directory name, e.g. ``_app``

    Returns:
        Resolver serving the client build
    """
    prefix = f"/{app_dir}/immutable"

    def set_headers(headers: CIMultiDict[str], pathname: str) -> None:
        if pathname.startswith(prefix):
            headers["Cache-Control"] = IMMUTABLE_CACHE_CONTROL

    return serve_static(directory, StaticOptions(set_headers=set_headers))


def mutable(directory: Path) -> Resolver:
    """Serve prerendered dependencies, always revalidated.

    The existence check happens once, here: when the directory is missing
    the returned resolver calls through without touching the filesystem.

    Args:
        directory: Prerendered dependencies directory

    Returns:
        Resolver serving the directory with ``max-age=0``
    """
    if not directory.exists():
        logger.info(f"No prerendered dependencies at {directory}")
        return pass_through

    return serve_static(directory, StaticOptions(max_age=0))


async def pass_through(exchange: Exchange) -> web.StreamResponse | None:
    return None


def static_resolver(directory: Path, policy: CachePolicy, *, app_dir: str) -> Resolver:
    """Build the static resolver for a cache policy.

    Args:
        directory: Directory to serve
        policy: Cache policy of the resolver
        app_dir: Build-tool asset sub-directory name (used by IMMUTABLE)

    Returns:
        Resolver for the policy; NONE yields a pass-through resolver
    """
    match policy:
        case CachePolicy.IMMUTABLE:
            return immutable(directory, app_dir)
        case CachePolicy.MUTABLE:
            return mutable(directory)
        case CachePolicy.NONE:
            return pass_through
