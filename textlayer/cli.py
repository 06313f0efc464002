"""CLI commands for textlayer."""

import asyncio
import logging
from pathlib import Path

import click

LOG_LEVELS = click.Choice(["debug", "info", "warning", "error"])


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(package_name="textlayer")
def cli():
    """textlayer - image text-layer service."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option("--log-level", default="info", type=LOG_LEVELS, help="Logging level")
def serve(host, port, reload, workers, log_level):
    """Run the textlayer server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    _configure_logging(log_level)

    config = Config()
    config.application_path = "textlayer.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from textlayer.asgi import app

    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(
            hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait)
        )
    finally:
        loop.close()


@cli.command()
@click.option(
    "--manifest",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Font manifest CSS (defaults to fonts.manifest_path)",
)
@click.option(
    "--fonts-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for downloaded fonts (defaults to fonts.fonts_dir)",
)
@click.option("--log-level", default="warning", type=LOG_LEVELS, help="Logging level")
def fonts(manifest, fonts_dir, log_level):
    """Download and register the fonts of the manifest once."""
    from textlayer.config import get_settings
    from textlayer.lib.fonts import FontRegistry, VariantStatus, provision_configured_fonts

    _configure_logging(log_level)

    config = get_settings().fonts
    updates = {}
    if manifest is not None:
        updates["manifest_path"] = str(manifest)
    if fonts_dir is not None:
        updates["fonts_dir"] = str(fonts_dir)
    if updates:
        config = config.model_copy(update=updates)

    if not Path(config.manifest_path).is_file():
        raise click.ClickException(f"Font manifest not found: {config.manifest_path}")

    registry = FontRegistry()
    report = asyncio.run(provision_configured_fonts(config, registry))

    for outcome in report.outcomes:
        line = f"{outcome.family_name} [{outcome.variant_index}] {outcome.status.value}"
        if outcome.status is VariantStatus.FAILED:
            click.secho(f"{line}: {outcome.error}", fg="red")
        else:
            click.echo(line)
    for family in report.failed_families:
        click.secho(f"{family}: failed", fg="red")

    click.echo(
        f"{len(registry.families())} families, {len(registry)} variants registered "
        f"({report.downloaded} downloaded, {report.cached} cached, {report.failed} failed)"
    )


@cli.command()
@click.option(
    "--namespace",
    default=None,
    help="Only sweep objects under this prefix (defaults to storage.base_segment)",
)
@click.option(
    "--category",
    default=None,
    help="Asset category to sweep (defaults to storage.sweep_category)",
)
@click.option("--log-level", default="warning", type=LOG_LEVELS, help="Logging level")
def sweep(namespace, category, log_level):
    """Delete expired assets from remote storage once."""
    from textlayer.config import get_settings
    from textlayer.lib.storage import ExpirationSweeper, open_remote_backend
    from textlayer.lib.storage.manager import is_available

    _configure_logging(log_level)

    storage = get_settings().storage
    backend = open_remote_backend(storage.remote)
    if not is_available(backend):
        raise click.ClickException(f"Remote storage not initialized: {backend.reason}")

    sweeper = ExpirationSweeper(
        backend,
        namespace=storage.base_segment if namespace is None else namespace,
        category=category or storage.sweep_category,
    )

    async def _run():
        try:
            return await sweeper.sweep()
        finally:
            await backend.close()

    report = asyncio.run(_run())
    if report.error:
        raise click.ClickException(f"Sweep failed: {report.error}")

    for name in report.deleted:
        click.echo(f"deleted {name}")
    for outcome in report.outcomes:
        if outcome.error:
            click.secho(f"failed {outcome.name}: {outcome.error}", fg="red")
    click.echo(
        f"{len(report.outcomes)} checked, {len(report.deleted)} deleted, "
        f"{len(report.failed)} failed"
    )


if __name__ == "__main__":
    cli()
