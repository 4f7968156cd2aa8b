"""
Format catalog for Enqor Media.

Static registry of the platform output formats the resizer produces:
target raster dimensions, display aspect-ratio label and the maximum
encoded size the platform accepts.
"""

import math
from dataclasses import dataclass
from enum import Enum

from .errors import UnknownFormatError

MIB = 1024 * 1024

SIZE_UNITS = ("Bytes", "KB", "MB", "GB")

# Allowed drift between a spec's pixel ratio and its rounded display label ("1.91:1")
RATIO_LABEL_TOLERANCE = 0.01


class MediaFormat(str, Enum):
    """Named output formats."""

    INSTAGRAM_POST = "instagram-post"
    INSTAGRAM_STORY = "instagram-story"
    INSTAGRAM_REEL = "instagram-reel"
    TWITTER_POST = "twitter-post"
    FACEBOOK_POST = "facebook-post"
    LINKEDIN_POST = "linkedin-post"
    TIKTOK_VIDEO = "tiktok-video"


def parse_ratio_label(label: str) -> float:
    """Parse a display ratio such as ``"9:16"`` or ``"1.91:1"`` into width/height."""
    left, sep, right = label.partition(":")
    if not sep:
        raise ValueError(f"Aspect ratio label must look like 'W:H', got {label!r}")
    width, height = float(left), float(right)
    if width <= 0 or height <= 0:
        raise ValueError(f"Aspect ratio label must be positive, got {label!r}")
    return width / height


@dataclass(frozen=True)
class FormatSpec:
    """Target geometry and size limit of one output format."""

    id: MediaFormat
    name: str
    target_width: int
    target_height: int
    aspect_ratio_label: str
    max_bytes: int | None = None

    def __post_init__(self):
        if self.target_width <= 0 or self.target_height <= 0:
            raise ValueError(f"{self.id.value}: target dimensions must be positive")
        if self.max_bytes is not None and self.max_bytes <= 0:
            raise ValueError(f"{self.id.value}: max_bytes must be positive when set")

        expected = parse_ratio_label(self.aspect_ratio_label)
        if abs(self.aspect_ratio - expected) / expected > RATIO_LABEL_TOLERANCE:
            raise ValueError(
                f"{self.id.value}: {self.target_width}x{self.target_height} does not match "
                f"aspect ratio label {self.aspect_ratio_label}"
            )

    @property
    def aspect_ratio(self) -> float:
        return self.target_width / self.target_height

    @property
    def size(self) -> tuple[int, int]:
        return (self.target_width, self.target_height)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.aspect_ratio_label})"


def _build_catalog(*specs: FormatSpec) -> dict[MediaFormat, FormatSpec]:
    catalog = {spec.id: spec for spec in specs}
    missing = set(MediaFormat) - set(catalog)
    if missing:
        raise ValueError(f"Format catalog is missing: {sorted(m.value for m in missing)}")
    return catalog


MEDIA_SPECS: dict[MediaFormat, FormatSpec] = _build_catalog(
    FormatSpec(MediaFormat.INSTAGRAM_POST, "Instagram Post", 1080, 1080, "1:1", 8 * MIB),
    FormatSpec(MediaFormat.INSTAGRAM_STORY, "Instagram Story", 1080, 1920, "9:16", 8 * MIB),
    FormatSpec(MediaFormat.INSTAGRAM_REEL, "Instagram Reel", 1080, 1920, "9:16", 100 * MIB),
    FormatSpec(MediaFormat.TWITTER_POST, "Twitter Post", 1200, 675, "16:9", 5 * MIB),
    FormatSpec(MediaFormat.FACEBOOK_POST, "Facebook Post", 1200, 630, "1.91:1", 10 * MIB),
    FormatSpec(MediaFormat.LINKEDIN_POST, "LinkedIn Post", 1200, 627, "1.91:1", 5 * MIB),
    FormatSpec(MediaFormat.TIKTOK_VIDEO, "TikTok Video", 1080, 1920, "9:16", 287 * MIB),
)


def get_format_spec(format_id: MediaFormat | str) -> FormatSpec:
    """Resolve a format identifier to its spec.

    Raises:
        UnknownFormatError: if the identifier is not in the catalog.
    """
    try:
        return MEDIA_SPECS[MediaFormat(format_id)]
    except ValueError:
        raise UnknownFormatError(format_id) from None


def list_formats() -> list[FormatSpec]:
    """All formats in catalog order."""
    return list(MEDIA_SPECS.values())


def label_for(format_id: MediaFormat | str) -> str:
    """Display label, e.g. ``"Instagram Story (9:16)"``."""
    return get_format_spec(format_id).label


def _format_number(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def human_file_size(num_bytes: float) -> str:
    """Format a byte count with binary units, rounded to two decimals.

    >>> human_file_size(1536)
    '1.5 KB'
    """
    if num_bytes == 0:
        return "0 Bytes"
    if num_bytes < 0:
        return "-" + human_file_size(-num_bytes)

    index = 0
    while index < len(SIZE_UNITS) - 1 and num_bytes >= 1024 ** (index + 1):
        index += 1

    # Round half up, two decimals
    value = math.floor(num_bytes / 1024 ** index * 100 + 0.5) / 100
    return f"{_format_number(value)} {SIZE_UNITS[index]}"
