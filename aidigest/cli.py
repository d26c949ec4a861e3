"""Command-line interface for AI Discovery Digest."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from aidigest import __version__
from aidigest.config import AppConfig, load_config, write_default_config
from aidigest.errors import ConfigError, NewsletterError

# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------

@click.group()
@click.option(
    "-c", "--config",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: ~/.aidigest/config.toml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="aidigest")
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool):
    """AI Discovery Digest: trending AI newsletter generation and delivery."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


def _load(ctx: click.Context) -> AppConfig:
    cfg = load_config(ctx.obj.get("config_path"))
    try:
        cfg.require_api_key()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    return cfg


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@main.command()
@click.option("--send", is_flag=True, help="Deliver the newsletter after generating it")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the newsletter HTML to this file instead of stdout",
)
@click.pass_context
def run(ctx: click.Context, send: bool, output: Path | None):
    """Generate the newsletter once, optionally sending it."""
    cfg = _load(ctx)
    from aidigest.pipeline import build_pipeline

    pipeline = build_pipeline(cfg)

    async def _run():
        content = await pipeline.run()
        result = await pipeline.deliver(content) if send else None
        return content, result

    try:
        content, result = asyncio.run(_run())
    except NewsletterError as exc:
        raise click.ClickException(str(exc)) from exc

    if output:
        output.write_text(content, encoding="utf-8")
        click.echo(f"Newsletter written to {output}")
    elif not send:
        click.echo(content)

    if result is not None:
        click.echo(f"Sent on attempt {result.attempt}")
        click.echo(json.dumps(result.to_dict(), indent=2))


@main.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", type=int, default=None, help="Port (default from config or $PORT)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None):
    """Start the HTTP server exposing GET /send-newsletter."""
    cfg = _load(ctx)
    from aidigest.server import create_app

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    host = host or cfg.server.host
    port = port or cfg.server.port
    app = create_app(cfg)
    click.echo(f"Serving on http://{host}:{port}")
    try:
        app.run(host=host, port=port, use_reloader=False)
    except OSError as exc:
        raise click.ClickException(f"Failed to start server on port {port}: {exc}") from exc


@main.command()
@click.pass_context
def init(ctx: click.Context):
    """Create a default config file."""
    config_path = ctx.obj.get("config_path")
    path = write_default_config(config_path)
    click.echo(f"Config file: {path}")


if __name__ == "__main__":
    main()
