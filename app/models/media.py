"""
Immutable media records passed between the enhancement, detection and
video synthesis stages.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SourceImage:
    """
    Decoded upload metadata.

    Attributes:
        data: Raw bytes exactly as uploaded
        mime_type: Declared MIME type of the upload
        width: Pixel width read from the image header
        height: Pixel height read from the image header
    """
    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def long_edge(self) -> int:
        return max(self.width, self.height)


@dataclass(frozen=True, slots=True)
class EnhancementParameters:
    """
    Deterministic parameters for one enhancement request.

    Only target_width, target_height and scale depend on the input; the
    filter constants are the same for every request.
    """
    target_width: int
    target_height: int
    scale: int
    denoise_size: int = 3
    brightness: float = 1.05
    saturation: float = 1.03
    contrast_slope: float = 1.02
    contrast_intercept: float = -2.0
    resample: str = "lanczos"
    output_format: str = "PNG"
    compress_level: int = 9


@dataclass(frozen=True, slots=True)
class Detection:
    """One labelled, scored region; bbox is (x, y, width, height) in pixels."""
    class_name: str
    score: float
    bbox: tuple[float, float, float, float]


@dataclass(frozen=True, slots=True)
class VideoSynthesisParameters:
    """Encoding parameters for a looped still-image video."""
    output_width: int
    output_height: int
    duration_seconds: int = 12
    frame_rate: int = 30
    max_dimension: int = 1080
    pixel_format: str = "yuv420p"
    codec: str = "libx264"
    media_type: str = "video/mp4"

    @property
    def frame_count(self) -> int:
        return self.duration_seconds * self.frame_rate
