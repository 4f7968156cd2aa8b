"""Default output format for a platform and source aspect ratio."""

from .formats import MediaFormat

PLATFORM_DEFAULTS = {
    "instagram": MediaFormat.INSTAGRAM_POST,
    "twitter": MediaFormat.TWITTER_POST,
    "facebook": MediaFormat.FACEBOOK_POST,
    "linkedin": MediaFormat.LINKEDIN_POST,
}

WIDE_FORMATS = {
    "twitter": MediaFormat.TWITTER_POST,
    "facebook": MediaFormat.FACEBOOK_POST,
    "linkedin": MediaFormat.LINKEDIN_POST,
}

VERTICAL_RANGE = (0.5, 0.6)
SQUARE_RANGE = (0.9, 1.1)
WIDE_RANGE = (1.5, 2.0)


def _within(value: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low <= value <= high


def detect_media_type(platform: str | None, aspect_ratio: float | None = None) -> MediaFormat:
    """
    Pick a default format for a platform, optionally refined by the source
    width/height ratio. Never fails: anything unmatched is an Instagram post.
    """
    platform = (platform or "").strip().lower()

    if not aspect_ratio:
        return PLATFORM_DEFAULTS.get(platform, MediaFormat.INSTAGRAM_POST)

    if _within(aspect_ratio, VERTICAL_RANGE):
        if platform == "instagram":
            return MediaFormat.INSTAGRAM_STORY
        if platform == "tiktok":
            return MediaFormat.TIKTOK_VIDEO
        return MediaFormat.INSTAGRAM_REEL

    if _within(aspect_ratio, SQUARE_RANGE):
        return MediaFormat.INSTAGRAM_POST

    if _within(aspect_ratio, WIDE_RANGE) and platform in WIDE_FORMATS:
        return WIDE_FORMATS[platform]

    return MediaFormat.INSTAGRAM_POST
