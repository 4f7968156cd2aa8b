"""
Size-constrained encoder for Enqor Media.

Encodes a rendered surface and, when the output is over the size ceiling,
re-encodes exactly once at a fixed low quality. At most two encode passes
run per call, so the output is only a best effort against the format's
maximum size.
"""

from dataclasses import dataclass

from ..core.config import MediaConfig, settings
from ..core.logging import get_logger
from .cropper import ENCODER_MIME_TYPES, RasterSurface
from .formats import FormatSpec

logger = get_logger("media.encoder")

MAX_ENCODE_PASSES = 2


@dataclass
class EncodeResult:
    """Bytes produced by the encoder plus how they were obtained."""

    data: bytes
    mime_type: str
    quality: float
    passes: int
    ceiling_bytes: int
    inline: bool

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def within_limit(self) -> bool:
        return self.size <= self.ceiling_bytes


def choose_initial_quality(
    source_size: int,
    quality: float | None = None,
    config: MediaConfig | None = None,
) -> float:
    """Caller quality if given, else a lower default for large sources."""
    config = config or settings.media
    if quality is not None:
        if not 0 < quality <= 1:
            raise ValueError(f"Quality must be in the range (0, 1], got {quality}")
        return quality
    if source_size > config.large_source_threshold_bytes:
        return config.large_source_quality
    return config.default_quality


class SizeConstrainedEncoder:
    """Bounded two-pass encoder."""

    def __init__(self, config: MediaConfig | None = None):
        self.config = config or settings.media

    def ceiling_for(self, spec: FormatSpec) -> int:
        """Size above which the second pass runs."""
        ceiling = self.config.hard_ceiling_bytes
        if self.config.enforce_format_max_bytes and spec.max_bytes is not None:
            ceiling = min(ceiling, spec.max_bytes)
        return ceiling

    def encode(self, surface: RasterSurface, spec: FormatSpec, quality: float) -> EncodeResult:
        """
        Encode the surface for the given format.

        Args:
            surface: Rendered raster of the format's target size
            spec: Target format (its max_bytes tightens the ceiling)
            quality: Quality of the first pass, in (0, 1]

        Returns:
            EncodeResult with the bytes of the last pass
        """
        image_format = self.config.output_format
        mime_type = ENCODER_MIME_TYPES[image_format]
        ceiling = self.ceiling_for(spec)

        data = surface.encode(image_format, quality)
        passes = 1
        logger.debug("Encode pass", format_id=spec.id.value, quality=quality, size=len(data), passes=passes)

        if len(data) > ceiling:
            first_size = len(data)
            quality = self.config.fallback_quality
            data = surface.encode(image_format, quality)
            passes += 1
            logger.info(
                "Output over size ceiling, re-encoded",
                format_id=spec.id.value,
                ceiling=ceiling,
                was=first_size,
                now=len(data),
                quality=quality,
            )

        # Recompressed output is always file-backed
        inline = passes == 1 and len(data) < self.config.inline_url_threshold_bytes

        return EncodeResult(
            data=data,
            mime_type=mime_type,
            quality=quality,
            passes=passes,
            ceiling_bytes=ceiling,
            inline=inline,
        )
