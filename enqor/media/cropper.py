"""
Geometric cropper for Enqor Media.

Computes the source sub-rectangle that matches a target aspect ratio for a
given crop anchor, and renders it into a raster of the exact target size.
Rendering goes through RasterSurface, a thin drawing surface over Pillow.
"""

import io
from dataclasses import dataclass
from enum import Enum

from PIL import Image, ImageOps, UnidentifiedImageError

from ..core.logging import get_logger
from .errors import DecodeError, EncodeError, RenderContextUnavailable
from .formats import FormatSpec

logger = get_logger("media.cropper")

BLACK = (0, 0, 0)
RESAMPLE = Image.Resampling.LANCZOS

ENCODER_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


class CropAnchor(str, Enum):
    """Part of the source kept when its aspect ratio differs from the target."""

    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class CropRect:
    """Source sampling rectangle, in (possibly fractional) source pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def box(self) -> tuple[float, float, float, float]:
        """(left, top, right, bottom) box as Pillow expects it."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def compute_crop_rect(
    source_size: tuple[int, int],
    target_size: tuple[int, int],
    anchor: CropAnchor | str = CropAnchor.CENTER,
) -> CropRect:
    """
    Compute the source rectangle to sample for the target geometry.

    A source wider than the target keeps its full height and is narrowed
    horizontally (left/right/center apply; top and bottom fall back to
    center). Otherwise the full width is kept and the height is narrowed
    (top/bottom/center apply; left and right fall back to center).

    Args:
        source_size: Source (width, height) in pixels
        target_size: Target (width, height) in pixels
        anchor: Crop anchor

    Returns:
        CropRect lying entirely inside the source bounds
    """
    source_width, source_height = source_size
    target_width, target_height = target_size
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_width}x{source_height}")
    if target_width <= 0 or target_height <= 0:
        raise ValueError(f"Target dimensions must be positive, got {target_width}x{target_height}")

    anchor = CropAnchor(anchor)
    target_aspect = target_width / target_height
    source_aspect = source_width / source_height

    x = 0.0
    y = 0.0
    width = float(source_width)
    height = float(source_height)

    if source_aspect > target_aspect:
        width = source_height * target_aspect
        if anchor == CropAnchor.LEFT:
            x = 0.0
        elif anchor == CropAnchor.RIGHT:
            x = source_width - width
        else:
            x = (source_width - width) / 2
    else:
        height = source_width / target_aspect
        if anchor == CropAnchor.TOP:
            y = 0.0
        elif anchor == CropAnchor.BOTTOM:
            y = source_height - height
        else:
            y = (source_height - height) / 2

    return CropRect(x=x, y=y, width=width, height=height)


def quality_to_level(quality: float) -> int:
    """Map a 0..1 quality to the encoder's 1..100 scale."""
    return max(1, min(100, int(round(quality * 100))))


class RasterSurface:
    """Drawing surface backed by a Pillow RGB image."""

    def __init__(self, image: Image.Image):
        self.image = image

    @classmethod
    def allocate(cls, width: int, height: int, background: tuple[int, int, int] = BLACK) -> "RasterSurface":
        """Allocate an opaque surface of the given size."""
        try:
            image = Image.new("RGB", (width, height), background)
        except (ValueError, MemoryError) as e:
            raise RenderContextUnavailable(f"Could not allocate {width}x{height} surface: {e}") from e
        return cls(image)

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def fill_rect(self, box: tuple[int, int, int, int], color: tuple[int, int, int] = BLACK):
        """Fill (left, top, right, bottom) with a solid color."""
        self.image.paste(color, box)

    def draw_scaled(
        self,
        source: Image.Image,
        source_rect: CropRect,
        dest_box: tuple[int, int, int, int] | None = None,
    ):
        """Scale the source rectangle into dest_box (the whole surface by default)."""
        left, top, right, bottom = dest_box or (0, 0, *self.size)
        source_width, source_height = source.size
        x0, y0, x1, y1 = source_rect.box
        # Float rounding can push an edge a hair outside the source
        box = (max(0.0, x0), max(0.0, y0), min(float(source_width), x1), min(float(source_height), y1))

        patch = source.resize((right - left, bottom - top), resample=RESAMPLE, box=box)

        if patch.mode == "RGBA":
            # Transparent pixels keep whatever is already on the surface
            self.image.paste(patch.convert("RGB"), (left, top), mask=patch.getchannel("A"))
        else:
            self.image.paste(patch.convert("RGB"), (left, top))

    def encode(self, image_format: str = "JPEG", quality: float = 0.92) -> bytes:
        """Encode the surface; raises EncodeError when no bytes come out."""
        buffer = io.BytesIO()
        save_kwargs = {"quality": quality_to_level(quality)}
        if image_format == "JPEG":
            save_kwargs["optimize"] = True

        try:
            self.image.save(buffer, format=image_format, **save_kwargs)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(f"Failed to encode {image_format}: {e}") from e

        data = buffer.getvalue()
        if not data:
            raise EncodeError(f"Encoder produced no {image_format} output")
        return data


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into an upright RGB or RGBA image.

    EXIF orientation is applied so natural dimensions match what a viewer
    displays.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to load image: {e}") from e

    has_alpha = image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)
    image = image.convert("RGBA" if has_alpha else "RGB")

    width, height = image.size
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has degenerate dimensions {width}x{height}")
    return image


def render_cropped(
    image: Image.Image,
    spec: FormatSpec,
    anchor: CropAnchor | str = CropAnchor.CENTER,
) -> tuple[RasterSurface, CropRect]:
    """Crop the image for the format and draw it onto a black target-size surface."""
    crop = compute_crop_rect(image.size, spec.size, anchor)

    surface = RasterSurface.allocate(spec.target_width, spec.target_height)
    surface.fill_rect((0, 0, spec.target_width, spec.target_height), BLACK)
    surface.draw_scaled(image, crop)

    logger.debug(
        "Rendered crop",
        format_id=spec.id.value,
        source_size=image.size,
        crop_box=crop.box,
        anchor=CropAnchor(anchor).value,
    )
    return surface, crop
