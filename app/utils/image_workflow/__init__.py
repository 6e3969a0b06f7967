import io
import logging

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from app.core.config import settings
from app.core.exceptions import TransformFailed, UnreadableImage
from app.models.media import EnhancementParameters, SourceImage

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"JPEG", "PNG", "WEBP"}


def read_source_image(file_content: bytes, mime_type: str) -> SourceImage:
    """
    Read dimensions from the image header without decoding pixel data.

    Args:
        file_content: Raw image bytes
        mime_type: Declared MIME type of the upload

    Returns:
        SourceImage with width and height filled in

    Raises:
        UnreadableImage: If the header cannot be parsed or a dimension is zero
        TransformFailed: If the decoded format is not JPEG, PNG or WebP, or the
            image is too large to be decoded safely
    """
    if not file_content:
        raise UnreadableImage("Image payload is empty")

    try:
        with Image.open(io.BytesIO(file_content)) as img:
            image_format = (img.format or "").upper()
            width, height = img.size
    except Image.DecompressionBombError as e:
        raise TransformFailed(f"Image exceeds decode pixel limit: {e}") from e
    except (OSError, ValueError, EOFError) as e:
        raise UnreadableImage(f"Cannot read image metadata: {e}") from e

    if image_format not in SUPPORTED_FORMATS:
        raise TransformFailed(
            f"Unsupported image format: {image_format or 'unknown'}. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_FORMATS))}"
        )

    if width <= 0 or height <= 0:
        raise UnreadableImage(f"Image has no usable dimensions: {width}x{height}")

    logger.debug(f"[read_source_image] {image_format} {width}x{height}, {len(file_content)} bytes")
    return SourceImage(data=file_content, mime_type=mime_type, width=width, height=height)


def load_rgb_image(file_content: bytes) -> Image.Image:
    """Decode bytes into a fully loaded RGB image (used for inference)."""
    with Image.open(io.BytesIO(file_content)) as raw:
        raw.load()
        return raw.convert("RGB")


def _normalize_mode(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA", "L"):
        return img.copy()
    if img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        return img.convert("RGBA")
    return img.convert("RGB")


def _contrast_lut(slope: float, intercept: float) -> list[int]:
    return [max(0, min(255, round(value * slope + intercept))) for value in range(256)]


def apply_enhancement(file_content: bytes, parameters: EnhancementParameters) -> bytes:
    """
    Run the fixed enhancement pipeline and return PNG bytes.

    Stages run in this order, each on the previous stage's output:
    median denoise, brightness then saturation, linear contrast,
    Lanczos "contain" resize (enlargement allowed), PNG encode.
    Alpha is split off before the colour stages and resized with the image.

    Raises:
        TransformFailed: If decoding, allocating or encoding fails
    """
    target = (parameters.target_width, parameters.target_height)
    if target[0] * target[1] > settings.MAX_OUTPUT_PIXELS:
        raise TransformFailed(
            f"Target {target[0]}x{target[1]} exceeds MAX_OUTPUT_PIXELS={settings.MAX_OUTPUT_PIXELS}"
        )

    try:
        with Image.open(io.BytesIO(file_content)) as raw:
            raw.load()
            img = _normalize_mode(raw)

        alpha = None
        if img.mode == "RGBA":
            alpha = img.getchannel("A")
            img = img.convert("RGB")

        img = img.filter(ImageFilter.MedianFilter(size=parameters.denoise_size))
        img = ImageEnhance.Brightness(img).enhance(parameters.brightness)
        img = ImageEnhance.Color(img).enhance(parameters.saturation)

        lut = _contrast_lut(parameters.contrast_slope, parameters.contrast_intercept)
        img = img.point(lut * len(img.getbands()))

        if alpha is not None:
            img.putalpha(alpha)

        img = ImageOps.contain(img, target, method=Image.Resampling[parameters.resample.upper()])

        output = io.BytesIO()
        img.save(
            output,
            format=parameters.output_format,
            optimize=True,
            compress_level=parameters.compress_level,
        )
    except (OSError, ValueError, EOFError, MemoryError, Image.DecompressionBombError) as e:
        raise TransformFailed(f"Raster pipeline failed: {e}") from e

    encoded = output.getvalue()
    if not encoded:
        raise TransformFailed("Encoder produced no output")

    logger.info(f"[apply_enhancement] {img.size[0]}x{img.size[1]} PNG, {len(encoded)} bytes")
    return encoded
