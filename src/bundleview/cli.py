"""CLI interface for bundleview.

Command-line tool for previewing a built web application.
"""

import logging
import sys
from pathlib import Path

import click

from bundleview.chain import assets_scope
from bundleview.config import Config
from bundleview.loader import server_dir


@click.group()
def cli() -> None:
    """bundleview - Preview a built web application locally."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None) -> Config:
    try:
        return Config.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover bundleview.toml)",
)
@click.option(
    "--out-dir",
    "-o",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Build output directory (overrides config)",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--base",
    default=None,
    help='Base path the app is served under, e.g. "/app" (overrides config)',
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging (show which resolver answered each request)",
)
def preview(
    config_path: Path | None,
    out_dir: Path | None,
    host: str | None,
    port: int | None,
    base: str | None,
    verbose: bool,
) -> None:
    """Serve the build output."""
    from bundleview.server import run_server

    _configure_logging(verbose)
    config = _load_config(config_path)
    try:
        config = config.with_overrides(host=host, port=port, out_dir=out_dir, base=base)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Starting preview on {config.server.host}:{config.server.port}")
    click.echo(f"Build output: {config.build.out_dir}")
    click.echo(f"Base path: {config.paths.base or '/'}")
    click.echo(f"Assets path: {assets_scope(config.paths) or '/'}")

    try:
        run_server(config)
    except (FileNotFoundError, ImportError, AttributeError, TypeError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover bundleview.toml)",
)
def check(config_path: Path | None) -> None:
    """Check that the build output can be previewed."""
    config = _load_config(config_path)
    build = config.build

    required = {
        "Client assets": build.client_dir,
        "Render entry point": server_dir(build.out_dir) / "index.py",
        "Route manifest": server_dir(build.out_dir) / "manifest.json",
    }
    if config.render.entry is not None:
        del required["Render entry point"]
        click.echo(f"Render entry point: {config.render.entry}")

    optional = {
        "Prerendered dependencies": build.dependencies_dir,
        "Prerendered pages": build.pages_dir,
    }

    missing = False
    for label, path in required.items():
        if path.exists():
            click.echo(f"{label}: {path}")
        else:
            click.echo(click.style(f"{label}: missing ({path})", fg="red"), err=True)
            missing = True

    for label, path in optional.items():
        if path.exists():
            click.echo(f"{label}: {path}")
        else:
            click.echo(click.style(f"{label}: none", fg="yellow"))

    if missing:
        click.echo(
            click.style("\nBuild output incomplete. Run the build first.", fg="red"),
            err=True,
        )
        sys.exit(1)

    click.echo(click.style("\nBuild output ready for preview.", fg="green"))


if __name__ == "__main__":
    cli()
