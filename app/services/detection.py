"""
Object detection: the allow-list filter/rank policy and the inference
capability it sits behind.
"""
import logging
from typing import Iterable, Protocol

from PIL import Image

from app.core.config import settings
from app.core.exceptions import InferenceFailed
from app.models.media import Detection
from app.utils.capabilities import LazyCapability
from app.utils.image_workflow import load_rgb_image

logger = logging.getLogger(__name__)

# Labels from the model vocabulary that matter for fashion/UGC shots.
# Matched exactly and case-sensitively.
DETECTION_ALLOW_LIST = frozenset({
    "person",
    "handbag",
    "backpack",
    "umbrella",
    "tie",
    "suitcase",
    "shoe",
    "cell phone",
    "bottle",
    "sports ball",
    "book",
    "skateboard",
})

SUMMARY_LIMIT = 6
EMPTY_SUMMARY = "—"


class Detector(Protocol):
    def detect(self, image: Image.Image) -> list[Detection]:
        ...


def filter_and_rank(raw_detections: Iterable[Detection]) -> list[Detection]:
    """
    Keep allow-listed detections and order them by score, highest first.

    The sort is stable, so equal scores keep their original order. The input
    is not modified and a new list is always returned.
    """
    kept = [d for d in raw_detections if d.class_name in DETECTION_ALLOW_LIST]
    return sorted(kept, key=lambda d: d.score, reverse=True)


def summarize_detections(detections: list[Detection], limit: int = SUMMARY_LIMIT) -> str:
    """Render the top detections as 'label (NN%)' joined by commas."""
    if not detections:
        return EMPTY_SUMMARY
    return ", ".join(
        f"{d.class_name} ({int(d.score * 100 + 0.5)}%)" for d in detections[:limit]
    )


class YoloDetector:
    """Detector backed by an ultralytics YOLO model trained on COCO labels."""

    def __init__(self, model_path: str, min_score: float, max_results: int) -> None:
        try:
            from ultralytics import YOLO
        except ImportError as e:
            raise InferenceFailed("ultralytics is not installed") from e

        try:
            self._model = YOLO(model_path)
        except Exception as e:
            raise InferenceFailed(f"Could not load detection model {model_path}: {e}") from e
        self._min_score = min_score
        self._max_results = max_results

    def detect(self, image: Image.Image) -> list[Detection]:
        results = self._model(
            image,
            conf=self._min_score,
            max_det=self._max_results,
            verbose=False,
        )
        detections: list[Detection] = []
        for result in results:
            if result.boxes is None:
                continue
            for box in result.boxes:
                x1, y1, x2, y2 = (float(v) for v in box.xyxy[0].tolist())
                detections.append(
                    Detection(
                        class_name=result.names[int(box.cls[0])],
                        score=float(box.conf[0]),
                        bbox=(x1, y1, x2 - x1, y2 - y1),
                    )
                )
        return detections


def build_default_detector() -> Detector:
    return YoloDetector(
        model_path=settings.DETECTION_MODEL,
        min_score=settings.DETECTION_MIN_SCORE,
        max_results=settings.DETECTION_MAX_RESULTS,
    )


detector_handle: LazyCapability[Detector] = LazyCapability("detector", build_default_detector)


def run_detection(detector: Detector, image: Image.Image) -> list[Detection]:
    """
    Run inference once and apply the filter/rank policy.

    Raises:
        InferenceFailed: If the detector raises
    """
    try:
        raw = detector.detect(image)
    except InferenceFailed:
        raise
    except Exception as e:
        raise InferenceFailed(f"Detection failed: {e}") from e

    ranked = filter_and_rank(raw)
    logger.info(f"[run_detection] {len(raw)} raw detections, {len(ranked)} kept")
    return ranked


def detect_in_bytes(detector: Detector, file_content: bytes) -> list[Detection]:
    """Decode an encoded image and detect objects in it."""
    try:
        image = load_rgb_image(file_content)
    except (OSError, ValueError, EOFError, Image.DecompressionBombError) as e:
        raise InferenceFailed(f"Cannot decode image for detection: {e}") from e
    return run_detection(detector, image)
