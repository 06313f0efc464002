"""ASGI application factory for textlayer.

``create_app`` builds the Litestar app and wires the font registry, the
storage backends and the background tasks onto ``app.state``.
``create_asgi_app`` wraps it with the local storage file server; the module
level ``app`` is what hypercorn serves.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from datetime import timedelta
from pathlib import Path

from litestar import Litestar
from litestar.types import ASGIApp

from textlayer.config import Settings, get_settings
from textlayer.controllers.api import ApiController
from textlayer.lib import observability
from textlayer.lib.exceptions import EXCEPTION_HANDLERS
from textlayer.lib.fonts import FontRegistry, provision_configured_fonts
from textlayer.lib.imaging import ImageProcessor
from textlayer.lib.storage import (
    ExpirationSweeper,
    LocalStorageBackend,
    RemoteStorageBackend,
    StorageOrchestrator,
    open_remote_backend,
)
from textlayer.lib.storage.manager import is_available
from textlayer.lib.tasks import PeriodicTask, run_startup_task
from textlayer.middleware.storage import StorageFilesMiddleware

logger = logging.getLogger(__name__)


def load_processor(spec: str, registry: FontRegistry) -> ImageProcessor:
    """Import and construct the image processor named by a module:ClassName spec.

    Raises:
        ValueError: If spec doesn't contain exactly one colon
        ImportError: If the module cannot be imported
        AttributeError: If the class doesn't exist in the module
    """
    parts = spec.split(":")
    if len(parts) != 2:
        raise ValueError(
            f"Invalid processor spec '{spec}': must be in format 'module:ClassName'"
        )
    module_path, class_name = parts
    module = importlib.import_module(module_path)
    processor_cls = getattr(module, class_name)
    return processor_cls(fonts=registry)


def create_app(
    settings: Settings | None = None,
    remote: RemoteStorageBackend | None = None,
) -> Litestar:
    """Create and configure the Litestar application.

    ``remote`` overrides the backend built from ``settings.storage.remote``.
    """
    settings = settings or get_settings()

    observability.configure(settings)
    observability.instrument_httpx()

    storage_config = settings.storage
    registry = FontRegistry()
    local = LocalStorageBackend(Path(storage_config.local_path))
    if remote is None:
        remote = open_remote_backend(storage_config.remote)
    orchestrator = StorageOrchestrator(
        local=local,
        remote=remote,
        retention=timedelta(days=storage_config.retention_days),
    )
    processor = load_processor(settings.processor, registry)
    sweeper = ExpirationSweeper(
        remote,
        namespace=storage_config.base_segment,
        category=storage_config.sweep_category,
    )

    async def on_startup(app: Litestar) -> None:
        """Create storage directories and start font provisioning and the sweeper."""
        await asyncio.to_thread(local.base_path.mkdir, parents=True, exist_ok=True)

        if settings.fonts.enabled:
            app.state.font_task = asyncio.create_task(
                run_startup_task(
                    "fonts",
                    provision_configured_fonts(settings.fonts, registry),
                    timeout=settings.fonts.startup_timeout,
                )
            )

        if is_available(remote):
            app.state.sweep_task.start()
        else:
            logger.warning("Remote storage unavailable, expiration sweeps disabled")

    async def on_shutdown(app: Litestar) -> None:
        """Stop background tasks and close the remote backend."""
        await app.state.sweep_task.stop()

        font_task = app.state.get("font_task")
        if font_task is not None and not font_task.done():
            font_task.cancel()
            try:
                await font_task
            except asyncio.CancelledError:
                pass

        await remote.close()

    app = Litestar(
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        route_handlers=[ApiController],
        exception_handlers=EXCEPTION_HANDLERS,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.font_registry = registry
    app.state.orchestrator = orchestrator
    app.state.processor = processor
    app.state.sweeper = sweeper
    app.state.sweep_task = PeriodicTask(
        "storage-sweep",
        sweeper.sweep,
        interval=storage_config.sweep_interval,
        run_immediately=True,
    )
    return app


def create_asgi_app(settings: Settings | None = None) -> ASGIApp:
    """Create the app wrapped with local storage file serving."""
    settings = settings or get_settings()
    app = create_app(settings)
    return StorageFilesMiddleware(
        observability.instrument_app(app),
        local_path=settings.storage.local_path,
    )


app = create_asgi_app()
