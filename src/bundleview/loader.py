"""Startup loading of the renderer from the build output.

Build output layout::

    <out_dir>/output/
    ├── client/                      # built client assets
    ├── prerendered/
    │   ├── dependencies/            # prerendered non-page files
    │   └── pages/                   # prerendered HTML pages
    └── server/
        ├── index.py                 # render entry point, defines ``Server``
        └── manifest.json            # route manifest

``Server`` is called once as ``Server(manifest, options)`` and must return
an object implementing :class:`bundleview.render.RenderServer`.
"""

import importlib
import importlib.util
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bundleview.render import RenderServer

logger = logging.getLogger(__name__)

ENTRY_ATTRIBUTE = "Server"


@dataclass(frozen=True)
class ServerOptions:
    """Options handed to the render entry point.

    Attributes:
        base: Base path the app is mounted under
        assets: Path or URL the client assets are served from
        protocol: Scheme of incoming requests
        read: Returns the bytes of a file in the static files directory
        prerendering: Always False when previewing
    """

    base: str
    assets: str
    protocol: str
    read: Callable[[str], bytes]
    prerendering: bool = False


def server_dir(out_dir: Path) -> Path:
    return out_dir / "output" / "server"


def load_manifest(out_dir: Path) -> dict[str, Any]:
    """Load the route manifest written by the build.

    Args:
        out_dir: Build output directory

    Returns:
        Parsed manifest

    Raises:
        FileNotFoundError: If the manifest is missing
        ValueError: If the manifest is not a JSON object
    """
    manifest_path = server_dir(out_dir) / "manifest.json"
    if not manifest_path.is_file():
        msg = f"Route manifest not found: {manifest_path}. Run the build first."
        raise FileNotFoundError(msg)

    data = json.loads(manifest_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Route manifest must be a JSON object: {manifest_path}")
    return data


def resolve_entry(import_string: str) -> Callable[..., RenderServer]:
    """Resolve a ``"module:attribute"`` string to a render server factory.

    When the attribute is omitted it defaults to ``Server``.

    Raises:
        ModuleNotFoundError: If the module cannot be imported
        AttributeError: If the attribute does not exist
        TypeError: If the attribute is not callable
    """
    module_path, _, attr_name = import_string.partition(":")
    module = importlib.import_module(module_path)
    factory = getattr(module, attr_name or ENTRY_ATTRIBUTE)
    if not callable(factory):
        msg = f"{import_string!r} resolved to {type(factory).__name__}, not a callable"
        raise TypeError(msg)
    return factory


def _load_entry_file(entry_path: Path) -> Callable[..., RenderServer]:
    if not entry_path.is_file():
        msg = f"Render entry point not found: {entry_path}. Run the build first."
        raise FileNotFoundError(msg)

    spec = importlib.util.spec_from_file_location("bundleview_render_entry", entry_path)
    if spec is None or spec.loader is None:
        raise TypeError(f"Cannot load render entry point: {entry_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    factory = getattr(module, ENTRY_ATTRIBUTE, None)
    if not callable(factory):
        msg = f"Render entry point {entry_path} does not define a callable {ENTRY_ATTRIBUTE!r}"
        raise TypeError(msg)
    return factory


def load_server(
    out_dir: Path,
    options: ServerOptions,
    *,
    entry: str | None = None,
) -> RenderServer:
    """Instantiate the renderer from the build output.

    Args:
        out_dir: Build output directory
        options: Options passed to the entry point
        entry: Optional ``"module:attribute"`` overriding ``output/server/index.py``

    Returns:
        Render server ready to answer requests

    Raises:
        FileNotFoundError: If the entry point or manifest is missing
        TypeError: If the entry point does not provide a usable factory
        ValueError: If the manifest is not a JSON object
        ImportError: If a configured entry module cannot be imported
    """
    manifest = load_manifest(out_dir)

    if entry is not None:
        factory = resolve_entry(entry)
        logger.info(f"Loading renderer from {entry}")
    else:
        entry_path = server_dir(out_dir) / "index.py"
        factory = _load_entry_file(entry_path)
        logger.info(f"Loading renderer from {entry_path}")

    server = factory(manifest, options)
    if not callable(getattr(server, "respond", None)):
        raise TypeError(f"{type(server).__name__} does not implement respond()")
    return server


def static_reader(static_dir: Path) -> Callable[[str], bytes]:
    """Return a reader for files in the static files directory."""

    def read(file: str) -> bytes:
        return (static_dir / file).read_bytes()

    return read
