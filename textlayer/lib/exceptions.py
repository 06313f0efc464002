"""Error types and Litestar exception handlers."""

from __future__ import annotations

import logging
from typing import Any

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from textlayer.lib import observability

logger = logging.getLogger(__name__)


class TextlayerError(Exception):
    """Base exception for all textlayer errors."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any | None = None):
        super().__init__(message)
        self.details = details


class FontFetchError(TextlayerError):
    """A font manifest or font variant could not be fetched."""


class StorageError(TextlayerError):
    """Base class for storage write/read failures."""


class LocalStorageError(StorageError):
    """Writing to the local filesystem failed."""


class RemoteStorageError(StorageError):
    """A remote backend operation failed."""


class RemoteStorageUnavailableError(RemoteStorageError):
    """The remote backend could not be initialized."""


class NoStorageBackendError(TextlayerError):
    """Neither local nor remote storage is selected for a write."""

    status_code = HTTP_400_BAD_REQUEST


class AssetNotFoundError(TextlayerError):
    """A referenced input asset does not exist in any backend."""

    status_code = HTTP_404_NOT_FOUND


class ImageProcessingError(TextlayerError):
    """The image processor rejected its input."""

    status_code = HTTP_422_UNPROCESSABLE_ENTITY


def _error_response(status_code: int, message: str) -> Response:
    return Response(
        content={"success": False, "error": message},
        status_code=status_code,
        media_type="application/json",
    )


def textlayer_exception_handler(request: Request, exc: TextlayerError) -> Response:
    """Turn domain errors into structured JSON failures."""
    if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(exc.status_code, str(exc))


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render HTTP exceptions as JSON."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(exc.status_code, detail)


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Log unexpected exceptions and return a generic 500."""
    if not observability.exception(
        "Unhandled exception on {method} {path}",
        method=request.method,
        path=request.url.path,
    ):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return _error_response(HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


EXCEPTION_HANDLERS: dict[type[Exception], Any] = {
    TextlayerError: textlayer_exception_handler,
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}
