"""Shared test fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
from bundleview.config import BuildConfig, Config, PathsConfig, RenderConfig, ServerConfig
from bundleview.render import RenderRequest, RenderResponse
from multidict import CIMultiDict


class FakeRenderServer:
    """Render server recording every request it receives."""

    def __init__(self, response: RenderResponse | None = None) -> None:
        self.calls: list[RenderRequest] = []
        self.client_addresses: list[str] = []
        self.response = response or RenderResponse(
            status=200,
            headers=CIMultiDict({"Content-Type": "text/plain"}),
            body=b"rendered",
        )

    async def respond(
        self,
        request: RenderRequest,
        *,
        get_client_address: Callable[[], str],
    ) -> RenderResponse:
        self.calls.append(request)
        self.client_addresses.append(get_client_address())
        return self.response


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    """Create a build output directory with client assets and prerendered files.

    Layout::

        output/client/_app/immutable/entry.abc123.js
        output/client/_app/version.json
        output/client/favicon.png
        output/prerendered/dependencies/feed.xml
        output/prerendered/pages/index.html
        output/prerendered/pages/about/index.html
        output/prerendered/pages/blog.html
    """
    out = tmp_path / ".bundle"
    output = out / "output"

    immutable_dir = output / "client" / "_app" / "immutable"
    immutable_dir.mkdir(parents=True)
    (immutable_dir / "entry.abc123.js").write_text("console.log('entry');")
    (output / "client" / "_app" / "version.json").write_text('{"version": "1"}')
    (output / "client" / "favicon.png").write_bytes(b"\x89PNG")

    dependencies = output / "prerendered" / "dependencies"
    dependencies.mkdir(parents=True)
    (dependencies / "feed.xml").write_text("<rss></rss>")

    pages = output / "prerendered" / "pages"
    (pages / "about").mkdir(parents=True)
    (pages / "index.html").write_text("<h1>Home</h1>")
    (pages / "about" / "index.html").write_text("<h1>About</h1>")
    (pages / "blog.html").write_text("<h1>Blog</h1>")

    return out


@pytest.fixture
def test_config(tmp_path: Path, out_dir: Path) -> Config:
    """Create a test configuration pointing at the fixture build output."""
    static_dir = tmp_path / "static"
    static_dir.mkdir(exist_ok=True)

    return Config(
        server=ServerConfig(),
        build=BuildConfig(out_dir=out_dir, static_dir=static_dir),
        paths=PathsConfig(),
        render=RenderConfig(),
    )


@pytest.fixture
def render_server() -> FakeRenderServer:
    return FakeRenderServer()
