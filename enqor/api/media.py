"""
Media API routes for Enqor Media.

This module provides:
- Format catalog listing
- Default format detection for a platform
- Resize endpoint returning the transformed bytes
- Resize-and-persist endpoint storing the output in object storage
"""

import time

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from ..adapters.storage_s3 import StorageError, build_object_key, s3_storage
from ..core.config import settings
from ..core.logging import get_logger
from ..media import (
    DecodeError,
    EncodeError,
    MediaTransformError,
    RenderContextUnavailable,
    SourceMedia,
    TransformResult,
    UnknownFormatError,
    UnsupportedMediaError,
    detect_media_type,
    human_file_size,
    label_for,
    list_formats,
    media_resizer,
)

router = APIRouter(prefix="/media", tags=["Media"])
logger = get_logger("api.media")


class FormatInfo(BaseModel):
    """Catalog entry schema."""

    id: str = Field(description="Format identifier")
    label: str = Field(description="Human-readable label")
    width: int = Field(description="Target width in pixels")
    height: int = Field(description="Target height in pixels")
    aspect_ratio: str = Field(description="Aspect ratio label, e.g. 16:9")
    max_bytes: int | None = Field(default=None, description="Maximum output size in bytes")
    max_size: str | None = Field(default=None, description="Maximum output size, human readable")


class DetectResponse(BaseModel):
    """Format detection response schema."""

    platform: str = Field(description="Platform name as given")
    aspect_ratio: float | None = Field(default=None, description="Source width/height ratio")
    format_id: str = Field(description="Suggested format identifier")
    label: str = Field(description="Suggested format label")


class PersistResponse(BaseModel):
    """Resize-and-persist response schema."""

    url: str = Field(description="Public URL of the stored output")
    object_key: str = Field(description="Object key inside the media bucket")
    format_id: str = Field(description="Format the output was resized to")
    media_kind: str = Field(description="image or video")
    width: int = Field(description="Output width in pixels")
    height: int = Field(description="Output height in pixels")
    size: int = Field(description="Output size in bytes")
    original_size: int = Field(description="Uploaded size in bytes")
    saved_bytes: int = Field(description="Bytes saved by the transform")
    reduction_percent: float = Field(description="Size reduction in percent")
    size_label: str = Field(description="Output size, human readable")
    within_limit: bool = Field(description="Whether the output meets the size ceiling")


def _error(status_code: int, error: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "message": message})


def _map_transform_error(exc: Exception) -> HTTPException:
    """Translate engine failures into HTTP errors."""
    if isinstance(exc, UnknownFormatError):
        return _error(status.HTTP_404_NOT_FOUND, "unknown_format", str(exc))
    if isinstance(exc, UnsupportedMediaError):
        return _error(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "unsupported_media", str(exc))
    if isinstance(exc, DecodeError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "decode_failed", str(exc))
    if isinstance(exc, (RenderContextUnavailable, EncodeError)):
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "transform_failed", str(exc))
    if isinstance(exc, ValueError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_request", str(exc))
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "transform_failed", str(exc))


async def _read_upload(file: UploadFile) -> SourceMedia:
    data = await file.read()
    max_bytes = settings.media.max_upload_size_mb * 1024 * 1024
    if len(data) > max_bytes:
        raise _error(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            "file_too_large",
            f"Upload is {human_file_size(len(data))}, limit is {human_file_size(max_bytes)}",
        )
    if not data:
        raise _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "empty_file", "Uploaded file is empty")
    return SourceMedia(data=data, content_type=file.content_type, filename=file.filename)


async def _transform(
    source: SourceMedia,
    format_id: str | None,
    platform: str | None,
    quality: float | None,
    crop_anchor: str,
) -> TransformResult:
    try:
        if not format_id:
            width, height = await media_resizer.probe_dimensions(source)
            format_id = detect_media_type(platform, width / height).value
            logger.info("Format detected from upload", platform=platform, width=width,
                        height=height, format_id=format_id)

        return await media_resizer.resize(source, format_id, quality, crop_anchor)
    except (MediaTransformError, ValueError) as e:
        logger.warning(
            "Media transform failed",
            filename=source.filename,
            content_type=source.content_type,
            format_id=format_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise _map_transform_error(e) from e


@router.get("/formats", response_model=list[FormatInfo])
async def get_formats():
    """List the output formats in catalog order."""
    return [
        FormatInfo(
            id=spec.id.value,
            label=spec.label,
            width=spec.target_width,
            height=spec.target_height,
            aspect_ratio=spec.aspect_ratio_label,
            max_bytes=spec.max_bytes,
            max_size=human_file_size(spec.max_bytes) if spec.max_bytes else None,
        )
        for spec in list_formats()
    ]


@router.get("/detect", response_model=DetectResponse)
async def detect_format(
    platform: str = Query(default="", description="Platform name, e.g. instagram"),
    aspect_ratio: float | None = Query(default=None, gt=0, description="Source width/height ratio"),
):
    """Suggest a default format for a platform and source aspect ratio."""
    format_id = detect_media_type(platform, aspect_ratio)
    return DetectResponse(
        platform=platform,
        aspect_ratio=aspect_ratio,
        format_id=format_id.value,
        label=label_for(format_id),
    )


@router.post("/resize")
async def resize_upload(
    file: UploadFile = File(...),
    format_id: str | None = Form(default=None),
    platform: str | None = Form(default=None),
    quality: float | None = Form(default=None),
    crop_anchor: str = Form(default="center"),
):
    """
    Resize an uploaded image to a catalog format.

    Videos are passed through unchanged. When no format is given, one is
    picked from the platform and the upload's aspect ratio.
    """
    source = await _read_upload(file)
    result = await _transform(source, format_id, platform, quality, crop_anchor)

    headers = {
        "Content-Disposition": f'attachment; filename="{result.download_name()}"',
        "X-Media-Format": result.format_id.value,
        "X-Media-Kind": result.media_kind,
        "X-Media-Width": str(result.width),
        "X-Media-Height": str(result.height),
        "X-Media-Size": str(result.size),
        "X-Media-Original-Size": str(result.original_size),
        "X-Media-Within-Limit": "true" if result.within_limit else "false",
    }

    return Response(
        content=result.data,
        media_type=result.mime_type,
        headers=headers,
        background=BackgroundTask(result.release),
    )


@router.post("/resize/persist", response_model=PersistResponse)
async def resize_and_persist(
    file: UploadFile = File(...),
    owner: str = Form(...),
    format_id: str | None = Form(default=None),
    platform: str | None = Form(default=None),
    quality: float | None = Form(default=None),
    crop_anchor: str = Form(default="center"),
):
    """Resize an upload and store the output in object storage."""
    source = await _read_upload(file)
    result = await _transform(source, format_id, platform, quality, crop_anchor)

    with result:
        object_key = build_object_key(owner, result.extension, int(time.time() * 1000))
        try:
            url = await s3_storage.put_bytes(object_key, result.data, result.mime_type)
        except StorageError as e:
            logger.error("Failed to persist resized media", object_key=object_key, error=str(e))
            raise _error(status.HTTP_502_BAD_GATEWAY, "storage_failed", str(e)) from e

        return PersistResponse(
            url=url,
            object_key=object_key,
            format_id=result.format_id.value,
            media_kind=result.media_kind,
            width=result.width,
            height=result.height,
            size=result.size,
            original_size=result.original_size,
            saved_bytes=result.saved_bytes,
            reduction_percent=result.reduction_percent,
            size_label=human_file_size(result.size),
            within_limit=result.within_limit,
        )
