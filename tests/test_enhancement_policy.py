import dataclasses

import pytest

from app.core.exceptions import UnreadableImage
from app.services.enhancement import compute_parameters, resolve_scale


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2", 2),
        ("99", 4),
        ("0", 1),
        (None, 2),
        ("abc", 2),
        ("", 2),
        ("-5", 1),
        ("3.7", 3),
        (" 4 ", 4),
        ("4px", 4),
        (3, 3),
        (2.9, 2),
        (float("nan"), 2),
        (True, 2),
        (b"3", 3),
    ],
)
def test_resolve_scale(raw, expected) -> None:
    assert resolve_scale(raw) == expected


def test_resolve_scale_stays_in_range() -> None:
    for value in range(-20, 40):
        assert resolve_scale(str(value)) in {1, 2, 3, 4}
        assert resolve_scale(value) in {1, 2, 3, 4}


def test_compute_parameters_scales_dimensions() -> None:
    params = compute_parameters(300, 400, "2")

    assert (params.target_width, params.target_height) == (600, 800)
    assert params.scale == 2


def test_compute_parameters_clamps_scale_silently() -> None:
    params = compute_parameters(10, 25, "99")

    assert params.scale == 4
    assert (params.target_width, params.target_height) == (40, 100)


def test_compute_parameters_defaults_to_double() -> None:
    params = compute_parameters(1, 1, None)

    assert (params.target_width, params.target_height) == (2, 2)


def test_compute_parameters_fixed_filter_constants() -> None:
    params = compute_parameters(300, 400, 1)

    assert params.denoise_size == 3
    assert params.brightness == 1.05
    assert params.saturation == 1.03
    assert params.contrast_slope == 1.02
    assert params.contrast_intercept == -2
    assert params.resample == "lanczos"
    assert params.output_format == "PNG"
    assert params.compress_level == 9


@pytest.mark.parametrize("width, height", [(0, 400), (300, 0), (0, 0), (None, 10), (-3, 10)])
def test_compute_parameters_rejects_unreadable_dimensions(width, height) -> None:
    with pytest.raises(UnreadableImage):
        compute_parameters(width, height, "2")


def test_parameters_are_immutable() -> None:
    params = compute_parameters(300, 400, "2")

    with pytest.raises(dataclasses.FrozenInstanceError):
        params.target_width = 1
