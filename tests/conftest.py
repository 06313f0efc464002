"""Shared pytest fixtures."""

import io

import httpx
import pytest
import yaml
from PIL import Image

from textlayer.config import FontsConfig, LogfireConfig, Settings, StorageConfig
from textlayer.lib.fonts import FontRegistry
from textlayer.lib.storage import InMemoryRemoteBackend


@pytest.fixture
def temp_app_yaml(tmp_path):
    """Create a temporary app.yaml file for testing."""
    config_path = tmp_path / "app.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def make_png():
    """Factory for PNG bytes: a solid background with an optional centred square."""
    def _make(size=(64, 64), background=(255, 255, 255), square=None):
        img = Image.new("RGB", size, background)
        if square is not None:
            w, h = size
            box = (w // 4, h // 4, 3 * w // 4, 3 * h // 4)
            img.paste(square, box)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
    return _make


@pytest.fixture
def make_settings(tmp_path):
    """Factory for Settings pointing storage and fonts at tmp_path."""
    def _make(**storage_overrides):
        storage = StorageConfig(local_path=str(tmp_path / "uploads"), **storage_overrides)
        return Settings(
            fonts=FontsConfig(
                enabled=False,
                manifest_path=str(tmp_path / "fonts.css"),
                fonts_dir=str(tmp_path / "fonts"),
            ),
            storage=storage,
            logfire=LogfireConfig(enabled=False),
        )
    return _make


@pytest.fixture
def memory_remote():
    return InMemoryRemoteBackend(name="remote")


@pytest.fixture
def font_registry():
    return FontRegistry()


@pytest.fixture
def mock_http():
    """Factory for an httpx.AsyncClient served by a dict of url -> response.

    Values are bytes/str bodies, an int status code, or an exception instance
    to raise. Every requested URL is appended to ``client.requested``.
    """
    def _make(routes: dict):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            value = routes.get(url, 404)
            if isinstance(value, Exception):
                raise value
            if isinstance(value, int):
                return httpx.Response(value)
            return httpx.Response(200, content=value)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested
        return client
    return _make
