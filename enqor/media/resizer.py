"""
Media resizer for Enqor Media.

Entry points of the media transform engine:
- resize_image: crop to the format's aspect ratio, scale to its exact
  dimensions and encode within a bounded size budget
- resize_video: pass the original video through, rendering one preview
  thumbnail at the format's size
- resize: dispatch on the source's MIME kind

Each call is independent. The engine keeps no state between calls and the
returned handle belongs to the caller, who must release it.
"""

import asyncio
import base64
import mimetypes
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from ..core.config import MediaConfig, settings
from ..core.logging import get_logger
from ..observability.metrics import metrics
from .cropper import CropAnchor, CropRect, decode_image, render_cropped
from .encoder import EncodeResult, SizeConstrainedEncoder, choose_initial_quality
from .errors import MediaTransformError, UnsupportedMediaError
from .formats import FormatSpec, MediaFormat, get_format_spec
from .video import VideoProbe

logger = get_logger("media.resizer")

IMAGE = "image"
VIDEO = "video"

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}

# Declared types that say nothing about the content
GENERIC_MIME_TYPES = frozenset({"application/octet-stream", "binary/octet-stream"})


@dataclass
class SourceMedia:
    """Uploaded media handed to the engine for one call."""

    data: bytes
    content_type: str | None = None
    filename: str | None = None
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "SourceMedia":
        path = Path(path)
        return cls(data=path.read_bytes(), content_type=content_type, filename=path.name)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str | None:
        declared = None
        if self.content_type and "/" in self.content_type:
            declared = self.content_type.split(";", 1)[0].strip().lower()
            if declared not in GENERIC_MIME_TYPES:
                return declared
        if self.filename:
            guessed, _ = mimetypes.guess_type(self.filename)
            if guessed:
                return guessed
        return declared

    @property
    def kind(self) -> str | None:
        """``"image"``, ``"video"`` or None."""
        mime_type = self.mime_type or ""
        if mime_type.startswith("image/"):
            return IMAGE
        if mime_type.startswith("video/"):
            return VIDEO
        return None

    @property
    def extension(self) -> str:
        if self.filename and Path(self.filename).suffix:
            return Path(self.filename).suffix.lower()
        return mimetypes.guess_extension(self.mime_type or "") or ""

    @property
    def aspect_ratio(self) -> float | None:
        if self.width and self.height:
            return self.width / self.height
        return None


class MediaHandle:
    """
    Caller-owned address of transform output.

    Inline handles are data URIs and need no cleanup. File-backed handles
    own a temporary file that ``release()`` deletes; use the handle as a
    context manager to release it on every exit path.
    """

    def __init__(self, url: str, path: str | None = None):
        self.url = url
        self.path = path
        self._released = False

    @classmethod
    def inline(cls, data: bytes, mime_type: str) -> "MediaHandle":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(f"data:{mime_type};base64,{encoded}")

    @classmethod
    def to_file(cls, data: bytes, suffix: str = "", directory: str | None = None) -> "MediaHandle":
        fd, path = tempfile.mkstemp(prefix="enqor-", suffix=suffix, dir=directory)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        return cls(Path(path).as_uri(), path)

    @property
    def is_inline(self) -> bool:
        return self.path is None

    @property
    def released(self) -> bool:
        return self._released

    def release(self):
        """Free the backing file. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        if self.path and os.path.exists(self.path):
            os.unlink(self.path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


@dataclass
class TransformResult:
    """Output of one transform call."""

    data: bytes
    handle: MediaHandle
    width: int
    height: int
    size: int
    original_size: int
    mime_type: str
    format_id: MediaFormat
    media_kind: str
    passes: int = 0
    within_limit: bool = True
    crop: CropRect | None = None
    thumbnail: bytes | None = None

    @property
    def url(self) -> str:
        return self.handle.url

    @property
    def saved_bytes(self) -> int:
        return self.original_size - self.size

    @property
    def reduction_percent(self) -> float:
        if self.original_size == 0:
            return 0.0
        return round((1 - self.size / self.original_size) * 100, 1)

    @property
    def extension(self) -> str:
        if self.handle.path:
            return Path(self.handle.path).suffix
        return MIME_EXTENSIONS.get(self.mime_type, ".jpg")

    def download_name(self, timestamp_ms: int | None = None) -> str:
        """File name offered for download, e.g. ``resized-instagram-post-1700000000000.jpg``."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"resized-{self.format_id.value}-{timestamp_ms}{self.extension}"

    def release(self):
        self.handle.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class MediaResizer:
    """Media transform engine."""

    def __init__(self, config: MediaConfig | None = None, video_probe: VideoProbe | None = None):
        self.config = config or settings.media
        self.encoder = SizeConstrainedEncoder(self.config)
        self.video_probe = video_probe or VideoProbe(self.config)

    def _transform_image(
        self,
        data: bytes,
        spec: FormatSpec,
        quality: float,
        crop_anchor: CropAnchor,
    ) -> tuple[EncodeResult, CropRect, MediaHandle]:
        image = decode_image(data)
        surface, crop = render_cropped(image, spec, crop_anchor)
        encoded = self.encoder.encode(surface, spec, quality)

        if encoded.inline:
            handle = MediaHandle.inline(encoded.data, encoded.mime_type)
        else:
            handle = MediaHandle.to_file(
                encoded.data,
                MIME_EXTENSIONS.get(encoded.mime_type, ""),
                self.config.handle_dir,
            )
        return encoded, crop, handle

    async def resize_image(
        self,
        source: SourceMedia,
        format_id: MediaFormat | str,
        quality: float | None = None,
        crop_anchor: CropAnchor | str = CropAnchor.CENTER,
    ) -> TransformResult:
        """
        Resize an image to a catalog format.

        Args:
            source: Source media
            format_id: Target format identifier
            quality: First-pass quality in (0, 1]; chosen from the source size when omitted
            crop_anchor: Part of the source to keep when aspect ratios differ

        Returns:
            TransformResult with exactly the format's dimensions

        Raises:
            UnknownFormatError, DecodeError, RenderContextUnavailable, EncodeError
        """
        start_time = time.time()
        spec = get_format_spec(format_id)
        crop_anchor = CropAnchor(crop_anchor)
        initial_quality = choose_initial_quality(source.size, quality, self.config)

        try:
            loop = asyncio.get_running_loop()
            encoded, crop, handle = await loop.run_in_executor(
                None, self._transform_image, source.data, spec, initial_quality, crop_anchor
            )
        except MediaTransformError as e:
            metrics.track_media_failed(IMAGE, spec.id.value, type(e).__name__)
            raise

        duration = time.time() - start_time
        metrics.track_media_transform(IMAGE, spec.id.value, duration, encoded.size, encoded.passes)

        logger.info(
            "Image resized",
            format_id=spec.id.value,
            output_size=spec.size,
            original_bytes=source.size,
            encoded_bytes=encoded.size,
            quality=encoded.quality,
            passes=encoded.passes,
            inline=encoded.inline,
            processing_time=round(duration, 3),
        )

        return TransformResult(
            data=encoded.data,
            handle=handle,
            width=spec.target_width,
            height=spec.target_height,
            size=encoded.size,
            original_size=source.size,
            mime_type=encoded.mime_type,
            format_id=spec.id,
            media_kind=IMAGE,
            passes=encoded.passes,
            within_limit=encoded.within_limit,
            crop=crop,
        )

    async def resize_video(self, source: SourceMedia, format_id: MediaFormat | str) -> TransformResult:
        """
        Pass a video through unchanged, rendering a preview thumbnail.

        The result carries the original bytes and native dimensions; only
        ``thumbnail`` has the format's size.

        Raises:
            UnknownFormatError, DecodeError (unreadable video or failed seek),
            RenderContextUnavailable
        """
        start_time = time.time()
        spec = get_format_spec(format_id)
        suffix = source.extension or ".mp4"

        fd, video_path = tempfile.mkstemp(prefix="enqor-src-", suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(source.data)

            info = await self.video_probe.probe(video_path)
            thumbnail = await self.video_probe.thumbnail(video_path, info, spec)
        except MediaTransformError as e:
            metrics.track_media_failed(VIDEO, spec.id.value, type(e).__name__)
            raise
        finally:
            if os.path.exists(video_path):
                os.unlink(video_path)

        handle = MediaHandle.to_file(source.data, suffix, self.config.handle_dir)

        duration = time.time() - start_time
        metrics.track_media_transform(VIDEO, spec.id.value, duration, source.size)

        logger.info(
            "Video passed through",
            format_id=spec.id.value,
            native_size=(info.width, info.height),
            duration=info.duration,
            thumbnail_bytes=len(thumbnail),
            processing_time=round(duration, 3),
        )

        return TransformResult(
            data=source.data,
            handle=handle,
            width=info.width,
            height=info.height,
            size=source.size,
            original_size=source.size,
            mime_type=source.mime_type or "video/mp4",
            format_id=spec.id,
            media_kind=VIDEO,
            thumbnail=thumbnail,
        )

    async def resize(
        self,
        source: SourceMedia,
        format_id: MediaFormat | str,
        quality: float | None = None,
        crop_anchor: CropAnchor | str = CropAnchor.CENTER,
    ) -> TransformResult:
        """Route to resize_image or resize_video by the source's MIME kind."""
        if source.kind == IMAGE:
            return await self.resize_image(source, format_id, quality, crop_anchor)
        if source.kind == VIDEO:
            return await self.resize_video(source, format_id)
        raise UnsupportedMediaError(f"Unsupported file type: {source.mime_type or 'unknown'}")

    async def probe_dimensions(self, source: SourceMedia) -> tuple[int, int]:
        """Natural (width, height) of an image or video source."""
        if source.kind == IMAGE:
            loop = asyncio.get_running_loop()
            image = await loop.run_in_executor(None, decode_image, source.data)
            return image.size

        if source.kind == VIDEO:
            fd, video_path = tempfile.mkstemp(prefix="enqor-src-", suffix=source.extension or ".mp4")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(source.data)
                info = await self.video_probe.probe(video_path)
            finally:
                if os.path.exists(video_path):
                    os.unlink(video_path)
            return info.width, info.height

        raise UnsupportedMediaError(f"Unsupported file type: {source.mime_type or 'unknown'}")


# Global instance
media_resizer = MediaResizer()


# Convenience functions
async def resize_image(
    source: SourceMedia,
    format_id: MediaFormat | str,
    quality: float | None = None,
    crop_anchor: CropAnchor | str = CropAnchor.CENTER,
) -> TransformResult:
    """Resize an image to a catalog format."""
    return await media_resizer.resize_image(source, format_id, quality, crop_anchor)


async def resize_video(source: SourceMedia, format_id: MediaFormat | str) -> TransformResult:
    """Pass a video through with a preview thumbnail."""
    return await media_resizer.resize_video(source, format_id)


async def resize_media(
    source: SourceMedia,
    format_id: MediaFormat | str,
    quality: float | None = None,
    crop_anchor: CropAnchor | str = CropAnchor.CENTER,
) -> TransformResult:
    """Resize an image or pass a video through, by MIME kind."""
    return await media_resizer.resize(source, format_id, quality, crop_anchor)
