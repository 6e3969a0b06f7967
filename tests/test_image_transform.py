import io

import pytest
from PIL import Image

from app.core.config import settings
from app.core.exceptions import TransformFailed, UnreadableImage
from app.services.enhancement import compute_parameters, enhance_upload
from app.utils.image_workflow import _contrast_lut, apply_enhancement, read_source_image


def _open(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def test_enhance_upload_returns_scaled_png(png_bytes) -> None:
    result = _open(enhance_upload(png_bytes, "image/png", "2"))

    assert result.format == "PNG"
    assert result.size == (60, 80)


def test_enhance_upload_defaults_to_double_scale(png_bytes) -> None:
    assert _open(enhance_upload(png_bytes, "image/png", None)).size == (60, 80)


def test_enhance_upload_clamps_scale(png_bytes) -> None:
    assert _open(enhance_upload(png_bytes, "image/png", "99")).size == (120, 160)
    assert _open(enhance_upload(png_bytes, "image/png", "0")).size == (30, 40)


@pytest.mark.parametrize("fmt, mime_type", [("JPEG", "image/jpeg"), ("WEBP", "image/webp")])
def test_enhance_upload_accepts_other_formats(make_image, fmt, mime_type) -> None:
    data = make_image(size=(20, 10), fmt=fmt)

    result = _open(enhance_upload(data, mime_type, "3"))

    assert result.format == "PNG"
    assert result.size == (60, 30)


def test_enhancement_lifts_mid_grey(make_image) -> None:
    data = make_image(size=(8, 8), color=(128, 128, 128))
    params = compute_parameters(8, 8, 1)

    pixel = _open(apply_enhancement(data, params)).getpixel((4, 4))

    assert all(130 <= channel <= 138 for channel in pixel)


def test_enhancement_keeps_alpha_channel(make_image) -> None:
    data = make_image(size=(10, 10), color=(10, 200, 30, 128), mode="RGBA")
    params = compute_parameters(10, 10, 2)

    result = _open(apply_enhancement(data, params))

    assert result.mode == "RGBA"
    assert result.size == (20, 20)
    low, high = result.getchannel("A").getextrema()
    assert 127 <= low <= high <= 129


def test_contrast_lut_clamps_to_channel_range() -> None:
    lut = _contrast_lut(1.02, -2)

    assert len(lut) == 256
    assert lut[0] == 0
    assert lut[1] == 0
    assert lut[100] == 100
    assert lut[255] == 255


def test_apply_enhancement_rejects_corrupt_bytes() -> None:
    params = compute_parameters(10, 10, 2)

    with pytest.raises(TransformFailed):
        apply_enhancement(b"definitely not an image", params)


def test_apply_enhancement_rejects_oversized_target(png_bytes, monkeypatch) -> None:
    monkeypatch.setattr(settings, "MAX_OUTPUT_PIXELS", 100)
    params = compute_parameters(30, 40, 2)

    with pytest.raises(TransformFailed):
        apply_enhancement(png_bytes, params)


@pytest.mark.parametrize("payload", [b"", b"garbage"])
def test_read_source_image_unreadable(payload) -> None:
    with pytest.raises(UnreadableImage):
        read_source_image(payload, "image/png")


def test_read_source_image_rejects_unsupported_format(make_image) -> None:
    gif = make_image(size=(5, 5), fmt="GIF", mode="P", color=1)

    with pytest.raises(TransformFailed):
        read_source_image(gif, "image/png")


def test_read_source_image_reports_dimensions(png_bytes) -> None:
    source = read_source_image(png_bytes, "image/png")

    assert (source.width, source.height) == (30, 40)
    assert source.mime_type == "image/png"
    assert source.data == png_bytes
