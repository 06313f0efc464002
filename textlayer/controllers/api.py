"""JSON API for background removal, text layers and previews."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated

from litestar import Controller, Request, get, post
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.params import Body
from litestar.response import File, Response
from litestar.status_codes import HTTP_200_OK, HTTP_500_INTERNAL_SERVER_ERROR
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from textlayer.controllers.helpers import (
    get_orchestrator,
    get_processor,
    get_settings_from,
    load_asset,
    primary_reference,
    route_for,
    storage_headers,
)
from textlayer.lib import observability
from textlayer.lib.exceptions import ImageProcessingError
from textlayer.lib.imaging import TextParams, detect_image_content_type
from textlayer.lib.storage.base import AssetCategory, StoredAsset
from textlayer.lib.storage.manager import is_available
from textlayer.lib.storage.orchestrator import build_asset_name

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


# --- Request models ---


class _ApiModel(BaseModel):
    # Accept both snake_case and camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddTextRequest(_ApiModel):
    image_path: str = Field(min_length=1)
    text_params: TextParams = Field(default_factory=TextParams)
    username: str | None = None


class PreviewRequest(_ApiModel):
    original_image_path: str = Field(min_length=1)
    removed_bg_image_path: str = Field(min_length=1)
    text_params: TextParams = Field(default_factory=TextParams)
    username: str | None = None


@dataclass
class RemoveBackgroundForm:
    image: UploadFile
    username: str | None = None


def _json(content: dict, status_code: int = HTTP_200_OK) -> Response:
    return Response(content=content, status_code=status_code, media_type="application/json")


class ApiController(Controller):
    path = "/api"

    @get("/health")
    async def health(self) -> Response:
        return _json({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})

    @get("/storage-status")
    async def storage_status(self, request: Request) -> Response:
        """List what the remote store currently holds."""
        remote = get_orchestrator(request).remote
        if not is_available(remote):
            return _json(
                {
                    "success": False,
                    "initialized": False,
                    "error": f"Remote storage not initialized: {remote.reason}",
                },
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            )

        try:
            entries = await remote.list()
        except Exception as exc:
            logger.error("Error listing remote storage: %s", exc, exc_info=True)
            return _json(
                {"success": False, "initialized": True, "error": str(exc)},
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return _json(
            {
                "success": True,
                "initialized": True,
                "backend": remote.name,
                "file_count": len(entries),
                "files": [{"name": e.name, "metadata": e.metadata} for e in entries],
            }
        )

    @get("/debug")
    async def debug_info(self, request: Request) -> Response:
        settings = get_settings_from(request)
        remote = get_orchestrator(request).remote
        registry = request.app.state.font_registry
        return _json(
            {
                "debug": settings.debug,
                "public_url": settings.public_url,
                "storage": {
                    "local_enabled": settings.storage.local_enabled,
                    "remote_enabled": settings.storage.remote_enabled,
                    "local_path": settings.storage.local_path,
                    "remote_backend": settings.storage.remote.backend,
                    "remote_name": settings.storage.remote.name,
                    "remote_initialized": is_available(remote),
                    "retention_days": settings.storage.retention_days,
                },
                "fonts": {
                    "families": registry.families(),
                    "variants": len(registry),
                },
            }
        )

    @post("/remove-background", status_code=HTTP_200_OK)
    async def remove_background(
        self,
        request: Request,
        data: Annotated[RemoveBackgroundForm, Body(media_type=RequestEncodingType.MULTI_PART)],
        storage: str | None = None,
        username: str | None = None,
    ) -> Response:
        """Store the upload and its cut-out as a pair."""
        route = route_for(request, storage, data.username or username)

        content = await data.image.read()
        content_type = detect_image_content_type(content) if content else None
        if content_type is None:
            raise ImageProcessingError("Upload is not a supported image")

        processor = get_processor(request)
        with observability.span("image.remove_background", size=len(content)):
            removed = await asyncio.to_thread(processor.remove_background, content)

        original, removed_bg = await get_orchestrator(request).store_many(
            [
                StoredAsset(
                    logical_name=build_asset_name(
                        AssetCategory.ORIGINAL, _EXTENSIONS[content_type]
                    ),
                    data=content,
                    category=AssetCategory.ORIGINAL,
                    content_type=content_type,
                ),
                StoredAsset(
                    logical_name=build_asset_name(AssetCategory.BG_REMOVED),
                    data=removed,
                    category=AssetCategory.BG_REMOVED,
                ),
            ],
            route,
        )

        return _json(
            {
                "success": True,
                "original_image_path": primary_reference(original),
                "removed_bg_image_path": primary_reference(removed_bg),
                "original_image": original.to_dict(),
                "removed_bg_image": removed_bg.to_dict(),
            }
        )

    @post("/add-text", status_code=HTTP_200_OK)
    async def add_text(
        self,
        request: Request,
        data: AddTextRequest,
        storage: str | None = None,
        username: str | None = None,
    ) -> Response:
        route = route_for(request, storage, data.username or username)
        source = await load_asset(request, data.image_path)

        processor = get_processor(request)
        with observability.span("image.add_text", font=data.text_params.font_family):
            rendered = await asyncio.to_thread(processor.add_text, source, data.text_params)

        result = await get_orchestrator(request).store(
            StoredAsset(
                logical_name=build_asset_name(AssetCategory.TEXT_ADDED),
                data=rendered,
                category=AssetCategory.TEXT_ADDED,
            ),
            route,
        )
        return _json(
            {
                "success": True,
                "image_path": primary_reference(result),
                "image": result.to_dict(),
            }
        )

    @post("/preview-image", status_code=HTTP_200_OK)
    async def preview_image(
        self,
        request: Request,
        data: PreviewRequest,
        storage: str | None = None,
        username: str | None = None,
    ) -> Response:
        """Render a preview and return the image itself.

        Where the preview was stored is reported in ``X-`` headers. A failed
        remote upload is signalled with ``X-Image-URL: NOT SET`` and an
        ``X-Error`` header rather than an error status.
        """
        route = route_for(request, storage, data.username or username)
        original = await load_asset(request, data.original_image_path)
        removed_bg = await load_asset(request, data.removed_bg_image_path)

        processor = get_processor(request)
        with observability.span("image.preview", font=data.text_params.font_family):
            rendered = await asyncio.to_thread(
                processor.preview, original, removed_bg, data.text_params
            )

        result = await get_orchestrator(request).store(
            StoredAsset(
                logical_name=build_asset_name(AssetCategory.PREVIEW),
                data=rendered,
                category=AssetCategory.PREVIEW,
            ),
            route,
        )

        headers = storage_headers(result, get_settings_from(request).storage.retention_days)
        if result.stored_locally:
            return File(
                path=result.local_path,
                filename=result.logical_name,
                media_type="image/png",
                content_disposition_type="inline",
                headers=headers,
            )
        return Response(content=rendered, media_type="image/png", headers=headers)
