"""
Enhancement service layer: scale resolution, parameter policy and the
single-attempt transform.
"""
import logging
import math
import re
from typing import Any

from app.core.config import settings
from app.core.exceptions import UnreadableImage
from app.models.media import EnhancementParameters
from app.utils.image_workflow import apply_enhancement, read_source_image

logger = logging.getLogger(__name__)

MIN_SCALE = 1
MAX_SCALE = 4

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int_prefix(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def resolve_scale(requested: Any = None, default: int | None = None) -> int:
    """
    Resolve a user-supplied scale factor into the range [1, 4].

    Missing or non-numeric input falls back to the default (2). Numeric input
    is read by its leading integer ("3.7" -> 3) and clamped without error.
    """
    if default is None:
        default = settings.DEFAULT_SCALE
    parsed = _parse_int_prefix(requested)
    value = default if parsed is None else parsed
    return max(MIN_SCALE, min(MAX_SCALE, value))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_parameters(width: int, height: int, requested_scale: Any = None) -> EnhancementParameters:
    """
    Compute target dimensions for an enhancement request.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        requested_scale: Raw scale value from the request (string, number or None)

    Returns:
        EnhancementParameters with each target dimension at least 1 pixel

    Raises:
        UnreadableImage: If either dimension is unknown or not positive
    """
    if not width or not height or width <= 0 or height <= 0:
        raise UnreadableImage(f"Invalid source dimensions: {width}x{height}")

    scale = resolve_scale(requested_scale)
    return EnhancementParameters(
        target_width=max(1, _round_half_up(width * scale)),
        target_height=max(1, _round_half_up(height * scale)),
        scale=scale,
    )


def enhance(source_bytes: bytes, parameters: EnhancementParameters) -> bytes:
    """Apply the enhancement pipeline once; no retries."""
    return apply_enhancement(source_bytes, parameters)


def enhance_upload(file_content: bytes, mime_type: str, requested_scale: Any = None) -> bytes:
    """
    Read metadata, compute parameters and run the transform for one upload.

    Raises:
        InvalidInput: If the decoded format is not supported
        UnreadableImage: If the dimensions cannot be read
        TransformFailed: If the raster pipeline fails
    """
    source = read_source_image(file_content, mime_type)
    parameters = compute_parameters(source.width, source.height, requested_scale)
    logger.info(
        f"[enhance_upload] {source.width}x{source.height} -> "
        f"{parameters.target_width}x{parameters.target_height} (x{parameters.scale})"
    )
    return enhance(source.data, parameters)
