"""Optional Pydantic Logfire integration.

Font provisioning, image operations and expiration sweeps open spans through
this module; the ASGI app and the shared httpx client are instrumented when
it is active. Records from the stdlib ``textlayer`` logger hierarchy are
forwarded to logfire as well. Every function is a no-op unless
``logfire.enabled`` is set and the ``logfire`` package is installed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from textlayer.config import LogfireConfig, Settings

_logfire = None
_configured = False
_log_handler: logging.Handler | None = None

LOGGER_NAME = "textlayer"


def is_available() -> bool:
    return _logfire is not None and _configured


def _configure_kwargs(config: LogfireConfig, lf) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "service_name": config.service_name,
        "send_to_logfire": "if-token-present",
    }
    if config.environment:
        kwargs["environment"] = config.environment
    if config.sample_rate != 1.0:
        kwargs["trace_sample_rate"] = config.sample_rate
    kwargs["console"] = lf.ConsoleOptions() if config.console else False
    return kwargs


def configure(settings: Settings) -> None:
    """Set up logfire from ``settings.logfire`` and bridge stdlib logging.

    Safe to call more than once; only the first successful call configures.
    """
    global _logfire, _configured, _log_handler

    if _configured or not settings.logfire.enabled:
        return

    try:
        import logfire as lf
    except ImportError:
        logging.getLogger(__name__).warning(
            "logfire.enabled is set but logfire is not installed; "
            "install textlayer[logfire] to export traces"
        )
        return

    lf.configure(**_configure_kwargs(settings.logfire, lf))
    _log_handler = lf.LogfireLoggingHandler()
    logging.getLogger(LOGGER_NAME).addHandler(_log_handler)
    _logfire = lf
    _configured = True


def instrument_app(app):
    """Return *app* wrapped in logfire's ASGI middleware when active."""
    if not is_available():
        return app
    return _logfire.instrument_asgi(app)


def instrument_httpx() -> None:
    """Trace outgoing font and manifest downloads."""
    if is_available():
        _logfire.instrument_httpx()


@contextmanager
def span(name: str, **attrs: Any):
    """Open a logfire span named *name*; yields None when inactive."""
    if not is_available():
        yield None
        return
    with _logfire.span(name, **attrs) as s:
        yield s


def exception(msg: str, **kwargs: Any) -> bool:
    """Report the active exception to logfire.

    Returns False when logfire is inactive so callers can fall back to the
    stdlib logger.
    """
    if not is_available():
        return False
    _logfire.exception(msg, **kwargs)
    return True
