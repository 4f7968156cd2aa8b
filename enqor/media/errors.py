"""
Error taxonomy for the media transform engine.

Every error is terminal for the call that raised it; the engine never
returns a partial result.
"""


class MediaTransformError(Exception):
    """Base exception for media transform operations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class DecodeError(MediaTransformError):
    """Source bytes are not a decodable image or video."""

    pass


class RenderContextUnavailable(MediaTransformError):
    """A drawing surface could not be allocated."""

    pass


class EncodeError(MediaTransformError):
    """The compression step produced no output."""

    pass


class UnsupportedMediaError(MediaTransformError):
    """Source is neither an image nor a video."""

    pass


class UnknownFormatError(MediaTransformError, KeyError):
    """Format identifier is not in the catalog."""

    def __init__(self, format_id):
        super().__init__(f"Unknown media format: {format_id!r}")
        self.format_id = format_id
