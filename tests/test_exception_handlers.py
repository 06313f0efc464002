"""Tests for exception handlers and the observability facade."""

import json
from unittest.mock import MagicMock, patch

import pytest
from litestar.exceptions import NotFoundException

from textlayer.lib import observability
from textlayer.lib.exceptions import (
    AssetNotFoundError,
    ImageProcessingError,
    LocalStorageError,
    NoStorageBackendError,
    http_exception_handler,
    internal_server_error_handler,
    textlayer_exception_handler,
)


@pytest.fixture
def fake_request():
    """Create a minimal mock request for the error handler."""
    request = MagicMock()
    request.method = "POST"
    request.url.path = "/api/preview-image"
    return request


def _body(response):
    return response.content


class TestObservabilityException:
    def test_returns_true_when_available(self):
        with patch.object(observability, "_logfire", MagicMock()) as mock_lf, \
             patch.object(observability, "_configured", True):
            assert observability.exception("test error") is True
            mock_lf.exception.assert_called_once_with("test error")

    def test_returns_false_when_unavailable(self):
        with patch.object(observability, "_logfire", None), \
             patch.object(observability, "_configured", False):
            assert observability.exception("test error") is False

    def test_span_is_a_no_op_when_unavailable(self):
        with patch.object(observability, "_logfire", None):
            with observability.span("fonts.provision", families=2) as s:
                assert s is None


class TestTextlayerExceptionHandler:
    @pytest.mark.parametrize(
        "exc, status",
        [
            (NoStorageBackendError("no backend"), 400),
            (AssetNotFoundError("gone"), 404),
            (ImageProcessingError("bad image"), 422),
            (LocalStorageError("disk full"), 500),
        ],
    )
    def test_status_codes(self, fake_request, exc, status):
        response = textlayer_exception_handler(fake_request, exc)
        assert response.status_code == status
        assert _body(response) == {"success": False, "error": str(exc)}

    def test_server_errors_are_logged(self, fake_request):
        with patch("textlayer.lib.exceptions.logger") as mock_logger:
            textlayer_exception_handler(fake_request, LocalStorageError("disk full"))
            textlayer_exception_handler(fake_request, AssetNotFoundError("gone"))

        mock_logger.error.assert_called_once()


class TestHttpExceptionHandler:
    def test_renders_json(self, fake_request):
        response = http_exception_handler(fake_request, NotFoundException(detail="nope"))
        assert response.status_code == 404
        assert _body(response) == {"success": False, "error": "nope"}


class TestInternalServerErrorHandler:
    def test_calls_observability_when_available(self, fake_request):
        with patch.object(observability, "exception", return_value=True) as mock_exc:
            response = internal_server_error_handler(fake_request, RuntimeError("boom"))

        mock_exc.assert_called_once_with(
            "Unhandled exception on {method} {path}",
            method="POST",
            path="/api/preview-image",
        )
        assert response.status_code == 500

    def test_falls_back_to_stdlib_when_unavailable(self, fake_request):
        with patch.object(observability, "exception", return_value=False), \
             patch("textlayer.lib.exceptions.logger") as mock_logger:
            internal_server_error_handler(fake_request, RuntimeError("boom"))

        mock_logger.exception.assert_called_once_with(
            "Unhandled exception on %s %s", "POST", "/api/preview-image",
        )

    def test_does_not_leak_details(self, fake_request):
        with patch.object(observability, "exception", return_value=True):
            response = internal_server_error_handler(fake_request, RuntimeError("secret"))
        assert "secret" not in json.dumps(_body(response))
