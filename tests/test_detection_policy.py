import pytest
from PIL import Image

from app.core.exceptions import InferenceFailed
from app.services.detection import (
    DETECTION_ALLOW_LIST,
    detect_in_bytes,
    filter_and_rank,
    run_detection,
    summarize_detections,
)

from fakes import FakeDetector, detection


def test_allow_list_is_exact() -> None:
    assert DETECTION_ALLOW_LIST == {
        "person", "handbag", "backpack", "umbrella", "tie", "suitcase",
        "shoe", "cell phone", "bottle", "sports ball", "book", "skateboard",
    }


def test_filter_excludes_classes_outside_allow_list() -> None:
    assert filter_and_rank([detection("car", 0.9)]) == []


def test_filter_is_case_sensitive() -> None:
    assert filter_and_rank([detection("Handbag", 0.9), detection("cell  phone", 0.8)]) == []


def test_rank_orders_by_score_descending() -> None:
    ranked = filter_and_rank([detection("shoe", 0.4), detection("bottle", 0.8)])

    assert [d.class_name for d in ranked] == ["bottle", "shoe"]


def test_rank_is_stable_for_equal_scores() -> None:
    raw = [
        detection("tie", 0.5),
        detection("book", 0.7),
        detection("umbrella", 0.5),
        detection("person", 0.5),
    ]

    ranked = filter_and_rank(raw)

    assert [d.class_name for d in ranked] == ["book", "tie", "umbrella", "person"]


def test_filter_and_rank_is_idempotent() -> None:
    raw = [
        detection("car", 0.99),
        detection("handbag", 0.3),
        detection("person", 0.95),
        detection("dog", 0.5),
        detection("backpack", 0.3),
    ]

    once = filter_and_rank(raw)

    assert filter_and_rank(once) == once


def test_filter_and_rank_leaves_input_untouched() -> None:
    raw = [detection("shoe", 0.1), detection("car", 0.9), detection("person", 0.7)]
    snapshot = list(raw)

    result = filter_and_rank(raw)

    assert raw == snapshot
    assert result is not raw


def test_filter_and_rank_empty_input() -> None:
    assert filter_and_rank([]) == []
    assert filter_and_rank(iter(())) == []


def test_summary_formats_top_entries() -> None:
    ranked = [detection("handbag", 0.874), detection("person", 0.641)]

    assert summarize_detections(ranked) == "handbag (87%), person (64%)"


def test_summary_limits_entries_and_handles_empty() -> None:
    ranked = [detection("person", 0.9 - i * 0.1) for i in range(8)]

    assert summarize_detections(ranked).count("person") == 6
    assert summarize_detections([]) == "—"


def test_run_detection_filters_raw_output() -> None:
    detector = FakeDetector([detection("car", 0.9), detection("tie", 0.6), detection("person", 0.8)])

    ranked = run_detection(detector, Image.new("RGB", (4, 4)))

    assert [d.class_name for d in ranked] == ["person", "tie"]


def test_run_detection_wraps_detector_errors() -> None:
    detector = FakeDetector(error=RuntimeError("CUDA out of memory"))

    with pytest.raises(InferenceFailed):
        run_detection(detector, Image.new("RGB", (4, 4)))


def test_detect_in_bytes_decodes_image(png_bytes) -> None:
    detector = FakeDetector([detection("handbag", 0.7)])

    ranked = detect_in_bytes(detector, png_bytes)

    assert detector.seen_sizes == [(30, 40)]
    assert ranked[0].class_name == "handbag"


def test_detect_in_bytes_rejects_corrupt_image() -> None:
    with pytest.raises(InferenceFailed):
        detect_in_bytes(FakeDetector(), b"not an image")
