import base64
import logging

from app.core.exceptions import StudioError, SynthesisFailed
from app.jobs.celery_worker import celery_app
from app.services import video_synthesis
from app.utils.image_workflow import read_source_image

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="synthesize_video_task", max_retries=0)
def synthesize_video_task(self, image_b64: str, mime_type: str) -> dict:
    """
    Synthesize a looped still video in a background worker.

    Args:
        image_b64: Base64-encoded still image
        mime_type: MIME type of the still

    Returns:
        Dict with base64 video bytes and the encode parameters

    Raises:
        SynthesisFailed: On any failure; the task is never retried
    """
    logger.info(f"[synthesize_video_task] Started: {self.request.id}")
    try:
        still = read_source_image(base64.b64decode(image_b64), mime_type)
        params = video_synthesis.plan_synthesis(still)
        video_bytes = video_synthesis.synthesize(still, params, video_synthesis.encoder_handle.get())
    except SynthesisFailed:
        logger.exception("[synthesize_video_task] Synthesis failed")
        raise
    except StudioError as e:
        logger.exception("[synthesize_video_task] Still could not be prepared")
        raise SynthesisFailed(str(e)) from e

    logger.info(f"[synthesize_video_task] Completed: {len(video_bytes)} bytes")
    return {
        "success": True,
        "video_b64": base64.b64encode(video_bytes).decode("ascii"),
        "media_type": params.media_type,
        "width": params.output_width,
        "height": params.output_height,
        "duration_seconds": params.duration_seconds,
        "frame_rate": params.frame_rate,
    }
