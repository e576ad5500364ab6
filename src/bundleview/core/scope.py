"""Mounting resolvers under a path prefix."""

from collections.abc import Iterator
from contextlib import contextmanager

from aiohttp import web

from bundleview.core.exchange import Exchange, Resolver


@contextmanager
def mounted(exchange: Exchange, scope: str) -> Iterator[Exchange]:
    """Strip ``scope`` from the exchange url for the duration of the block.

    The original url is put back on every exit, including exceptions and
    cancellation.
    """
    original = exchange.url
    exchange.url = original[len(scope) :]
    try:
        yield exchange
    finally:
        exchange.url = original


def scoped(scope: str, resolver: Resolver) -> Resolver:
    """Mount ``resolver`` under ``scope``.

    Requests whose url does not start with ``scope`` call straight through.
    Matching requests reach ``resolver`` with the prefix removed, and the
    next resolver in the chain always sees the unscoped url again.

    Args:
        scope: Path prefix such as ``/app``; empty means mounted at root
        resolver: Resolver to mount

    Returns:
        The mounted resolver (``resolver`` itself for an empty scope)
    """
    if scope == "":
        return resolver

    async def scoped_resolver(exchange: Exchange) -> web.StreamResponse | None:
        if not exchange.url.startswith(scope):
            return None

        with mounted(exchange, scope):
            return await resolver(exchange)

    scoped_resolver.__qualname__ = f"scoped({scope!r}, {_name(resolver)})"
    return scoped_resolver


def _name(resolver: Resolver) -> str:
    return getattr(resolver, "__qualname__", type(resolver).__name__)
