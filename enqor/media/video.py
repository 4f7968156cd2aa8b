"""
Video probing and thumbnail extraction for Enqor Media.

Videos are not transcoded. ffprobe reads the native dimensions and ffmpeg
grabs a single still frame, which is drawn into a canvas of the target size
and used only as a preview.
"""

import asyncio
import json
from dataclasses import dataclass

from PIL import Image

from ..core.config import MediaConfig, settings
from ..core.logging import get_logger
from .cropper import CropRect, RasterSurface, decode_image
from .errors import DecodeError, RenderContextUnavailable
from .formats import FormatSpec

logger = get_logger("media.video")


@dataclass
class VideoInfo:
    """Native properties of a video stream."""

    width: int
    height: int
    duration: float
    codec: str

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


class VideoProbe:
    """ffprobe/ffmpeg subprocess wrapper."""

    def __init__(self, config: MediaConfig | None = None):
        self.config = config or settings.media

    async def _run(self, command: list[str]) -> tuple[int, bytes, bytes]:
        """Run a command, returning (returncode, stdout, stderr)."""
        logger.debug("Executing command", command=" ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise RenderContextUnavailable(f"{command[0]} is not available: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.config.probe_timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise DecodeError(f"{command[0]} timed out after {self.config.probe_timeout}s")

        return process.returncode, stdout, stderr

    async def probe(self, video_path: str) -> VideoInfo:
        """Read dimensions and duration of the first video stream."""
        command = [
            self.config.ffprobe_binary,
            "-v", "quiet",
            "-print_format", "json",
            "-show_streams",
            "-show_format",
            video_path,
        ]
        returncode, stdout, stderr = await self._run(command)
        if returncode != 0:
            raise DecodeError(f"Failed to load video: {stderr.decode('utf-8', errors='replace').strip()}")

        try:
            data = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Failed to load video: unreadable probe output ({e})") from e

        for stream in data.get("streams", []):
            if stream.get("codec_type") != "video":
                continue
            width = int(stream.get("width") or 0)
            height = int(stream.get("height") or 0)
            if width <= 0 or height <= 0:
                break
            duration = stream.get("duration") or data.get("format", {}).get("duration") or 0
            return VideoInfo(
                width=width,
                height=height,
                duration=float(duration),
                codec=stream.get("codec_name", ""),
            )

        raise DecodeError("Failed to load video: no video stream found")

    async def extract_frame(self, video_path: str, position: float) -> Image.Image:
        """Decode the frame at ``position`` seconds."""
        command = [
            self.config.ffmpeg_binary,
            "-v", "error",
            "-ss", f"{position:.3f}",
            "-i", video_path,
            "-frames:v", "1",
            "-f", "image2pipe",
            "-vcodec", "png",
            "pipe:1",
        ]
        returncode, stdout, stderr = await self._run(command)
        if returncode != 0 or not stdout:
            detail = stderr.decode("utf-8", errors="replace").strip() or "no frame decoded"
            raise DecodeError(f"Failed to seek video to {position:.3f}s: {detail}")

        return decode_image(stdout)

    def seek_position(self, info: VideoInfo) -> float:
        """Configured thumbnail position; clips not longer than it use their midpoint."""
        position = self.config.video_thumbnail_position
        if 0 < info.duration <= position:
            position = info.duration / 2
        return max(0.0, position)

    async def thumbnail(self, video_path: str, info: VideoInfo, spec: FormatSpec) -> bytes:
        """
        Render a preview frame stretched onto a target-size canvas.

        The frame keeps the video's native geometry; it is scaled to the
        canvas without cropping.
        """
        frame = await self.extract_frame(video_path, self.seek_position(info))

        surface = RasterSurface.allocate(spec.target_width, spec.target_height)
        surface.draw_scaled(frame, CropRect(0, 0, frame.width, frame.height))
        return surface.encode("JPEG", self.config.video_thumbnail_quality)
