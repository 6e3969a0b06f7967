"""
Still-to-video synthesis.

A single still is looped for a fixed duration and encoded as H.264/MP4. The
frame is held static; no pan or zoom is applied.
"""
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from app.core.config import settings
from app.core.exceptions import SynthesisFailed
from app.models.media import SourceImage, VideoSynthesisParameters
from app.utils.capabilities import LazyCapability

logger = logging.getLogger(__name__)

DURATION_SECONDS = 12
FRAME_RATE = 30
MAX_DIMENSION = 1080
PIXEL_FORMAT = "yuv420p"
CODEC = "libx264"

OUTPUT_NAME = "output.mp4"
DOWNLOAD_NAME = "ugc-video.mp4"

_INPUT_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class Encoder(Protocol):
    def encode(self, inputs: Mapping[str, bytes], args: Sequence[str], output_name: str) -> bytes:
        ...


def _floor_even(value: int) -> int:
    return max(2, value - value % 2)


def plan_synthesis(still: SourceImage) -> VideoSynthesisParameters:
    """
    Derive encode dimensions for a still.

    The long edge is capped at MAX_DIMENSION and never enlarged; aspect ratio
    is kept and both sides are floored to even numbers for 4:2:0 chroma.
    """
    if still.width <= 0 or still.height <= 0:
        raise SynthesisFailed(f"Still has no usable dimensions: {still.width}x{still.height}")

    factor = min(1.0, MAX_DIMENSION / still.long_edge)
    width = int(still.width * factor + 0.5)
    height = int(still.height * factor + 0.5)
    return VideoSynthesisParameters(
        output_width=_floor_even(min(width, MAX_DIMENSION)),
        output_height=_floor_even(min(height, MAX_DIMENSION)),
        duration_seconds=DURATION_SECONDS,
        frame_rate=FRAME_RATE,
        max_dimension=MAX_DIMENSION,
        pixel_format=PIXEL_FORMAT,
        codec=CODEC,
    )


def build_encoder_args(
    params: VideoSynthesisParameters,
    input_name: str,
    output_name: str = OUTPUT_NAME,
) -> list[str]:
    """Command-style argument list: loop one input, scale, fix format and rate."""
    scale_filter = (
        f"scale={params.output_width}:{params.output_height}:flags=lanczos,"
        f"format={params.pixel_format}"
    )
    return [
        "-loop", "1",
        "-t", str(params.duration_seconds),
        "-i", input_name,
        "-vf", scale_filter,
        "-r", str(params.frame_rate),
        "-pix_fmt", params.pixel_format,
        "-c:v", params.codec,
        "-movflags", "+faststart",
        output_name,
    ]


class FFmpegEncoder:
    """
    Encoder that runs the ffmpeg binary inside a throwaway directory.

    Inputs are written under their given names, so argument lists refer to
    them by bare file name.
    """

    def __init__(self, binary: str = "ffmpeg", timeout: int = 120) -> None:
        resolved = shutil.which(binary)
        if resolved is None:
            raise SynthesisFailed(f"ffmpeg binary not found: {binary}")
        self._binary = resolved
        self._timeout = timeout

    def encode(self, inputs: Mapping[str, bytes], args: Sequence[str], output_name: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="ugc-video-") as workdir:
            root = Path(workdir)
            for name, data in inputs.items():
                if Path(name).name != name:
                    raise SynthesisFailed(f"Input name must be a bare file name: {name}")
                (root / name).write_bytes(data)

            cmd = [self._binary, "-y", "-hide_banner", "-loglevel", "error", *args]
            logger.info(f"[FFmpegEncoder] Running: {' '.join(cmd)}")
            try:
                subprocess.run(
                    cmd,
                    cwd=root,
                    capture_output=True,
                    timeout=self._timeout,
                    check=True,
                )
            except subprocess.CalledProcessError as e:
                stderr = e.stderr.decode("utf-8", errors="ignore") if e.stderr else ""
                raise SynthesisFailed(f"ffmpeg exited with {e.returncode}: {stderr.strip()}") from e
            except subprocess.TimeoutExpired as e:
                raise SynthesisFailed(f"ffmpeg timed out after {self._timeout}s") from e
            except OSError as e:
                raise SynthesisFailed(f"ffmpeg could not be started: {e}") from e

            output_path = root / output_name
            if not output_path.is_file():
                raise SynthesisFailed(f"ffmpeg produced no {output_name}")
            return output_path.read_bytes()


def build_default_encoder() -> Encoder:
    return FFmpegEncoder(binary=settings.FFMPEG_BINARY, timeout=settings.FFMPEG_TIMEOUT)


encoder_handle: LazyCapability[Encoder] = LazyCapability("encoder", build_default_encoder)


def synthesize(still: SourceImage, params: VideoSynthesisParameters, encoder: Encoder) -> bytes:
    """
    Encode the looped still in a single attempt.

    Returns complete container bytes or raises; partial output is never
    returned.

    Raises:
        SynthesisFailed: If the encoder errors or returns nothing
    """
    input_name = f"input.{_INPUT_EXTENSIONS.get(still.mime_type, 'png')}"
    args = build_encoder_args(params, input_name)

    try:
        video_bytes = encoder.encode({input_name: still.data}, args, OUTPUT_NAME)
    except SynthesisFailed:
        raise
    except Exception as e:
        raise SynthesisFailed(f"Encoding failed: {e}") from e

    if not video_bytes:
        raise SynthesisFailed("Encoder returned an empty file")

    logger.info(
        f"[synthesize] {params.output_width}x{params.output_height} "
        f"{params.duration_seconds}s@{params.frame_rate}fps, {len(video_bytes)} bytes"
    )
    return video_bytes
