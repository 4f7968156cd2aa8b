"""
Media transform engine for Enqor Media.

This module resizes uploaded media for social platforms:
- Format catalog: named platform formats, labels and file-size formatting
- Geometric cropper: anchored aspect-ratio crop rendered at exact dimensions
- Size-constrained encoder: bounded two-pass compression
- Format detector: default format from platform and aspect ratio
- MediaResizer: image resize and video passthrough entry points
"""

from .cropper import (
    CropAnchor,
    CropRect,
    RasterSurface,
    compute_crop_rect,
    decode_image,
    render_cropped,
)

from .detector import detect_media_type

from .encoder import (
    EncodeResult,
    SizeConstrainedEncoder,
    choose_initial_quality,
)

from .errors import (
    DecodeError,
    EncodeError,
    MediaTransformError,
    RenderContextUnavailable,
    UnknownFormatError,
    UnsupportedMediaError,
)

from .formats import (
    MEDIA_SPECS,
    FormatSpec,
    MediaFormat,
    get_format_spec,
    human_file_size,
    label_for,
    list_formats,
)

from .resizer import (
    MediaHandle,
    MediaResizer,
    SourceMedia,
    TransformResult,
    media_resizer,
    resize_image,
    resize_media,
    resize_video,
)

from .video import VideoInfo, VideoProbe


__all__ = [
    # Format catalog
    "MEDIA_SPECS",
    "FormatSpec",
    "MediaFormat",
    "get_format_spec",
    "human_file_size",
    "label_for",
    "list_formats",
    # Cropper
    "CropAnchor",
    "CropRect",
    "RasterSurface",
    "compute_crop_rect",
    "decode_image",
    "render_cropped",
    # Encoder
    "EncodeResult",
    "SizeConstrainedEncoder",
    "choose_initial_quality",
    # Detector
    "detect_media_type",
    # Resizer
    "MediaHandle",
    "MediaResizer",
    "SourceMedia",
    "TransformResult",
    "media_resizer",
    "resize_image",
    "resize_media",
    "resize_video",
    # Video
    "VideoInfo",
    "VideoProbe",
    # Errors
    "DecodeError",
    "EncodeError",
    "MediaTransformError",
    "RenderContextUnavailable",
    "UnknownFormatError",
    "UnsupportedMediaError",
]
