"""Per-request state shared by the resolver chain.

An Exchange wraps the aiohttp request together with a mutable url that
scope wrappers rewrite while a nested resolver runs.
"""

from collections.abc import Awaitable, Callable

from aiohttp import web
from multidict import CIMultiDictProxy
from yarl import URL

_DUMMY_ORIGIN = URL("http://dummy")


class Exchange:
    """A request travelling through the resolver chain.

    ``url`` starts out as the raw request target (path and query, still
    percent-encoded) and is the only field resolvers may rewrite.
    """

    __slots__ = ("request", "url")

    def __init__(self, request: web.Request) -> None:
        self.request = request
        self.url: str = request.raw_path

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def headers(self) -> CIMultiDictProxy[str]:
        return self.request.headers

    @property
    def pathname(self) -> str:
        """Decoded path of the current url, always starting with ``/``.

        The url is resolved against a dummy origin, so a url emptied by
        scope stripping maps to ``/`` and dot segments are removed.
        """
        return _DUMMY_ORIGIN.join(URL(self.url, encoded=True)).path or "/"

    def __repr__(self) -> str:
        return f"<Exchange {self.method} {self.url!r}>"


# A resolver either answers the request, returns None to call through to the
# next resolver, or raises.
Resolver = Callable[[Exchange], Awaitable[web.StreamResponse | None]]
