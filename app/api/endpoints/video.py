"""
Still-to-video API endpoint; encoding runs as a Celery task.
"""
import asyncio
import base64
import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import InvalidInput
from app.jobs.tasks import synthesize_video_task
from app.schemas.studio import ErrorResponseSchema
from app.services.uploads import read_image_upload
from app.services.video_synthesis import DOWNLOAD_NAME
from app.utils.image_workflow import read_source_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.API_V1_STR, tags=["Video"])


@router.post(
    "/video",
    response_class=Response,
    responses={
        200: {"content": {"video/mp4": {}}, "description": "12 s, 30 fps H.264 video"},
        400: {"model": ErrorResponseSchema},
        500: {"model": ErrorResponseSchema},
    },
    summary="Synthesize UGC Video",
    description="Loop a still image into a short vertical H.264/MP4 video",
)
async def synthesize_video(request: Request) -> Response:
    try:
        upload = await read_image_upload(request)
        still = read_source_image(upload.data, upload.mime_type)

        task = synthesize_video_task.apply_async(
            args=[base64.b64encode(still.data).decode("ascii"), still.mime_type],
            countdown=0,
        )
        logger.info(f"[synthesize_video] Submitted task {task.id}")
        result = await asyncio.to_thread(task.get, timeout=settings.VIDEO_TASK_TIMEOUT)
    except InvalidInput as e:
        logger.warning(f"[synthesize_video] Validation error: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception:
        logger.exception("[synthesize_video] Video synthesis failed")
        return JSONResponse(status_code=500, content={"error": "Video synthesis failed"})

    if not result or not result.get("success"):
        logger.error(f"[synthesize_video] Task returned no video: {result}")
        return JSONResponse(status_code=500, content={"error": "Video synthesis failed"})

    return Response(
        content=base64.b64decode(result["video_b64"]),
        media_type=result["media_type"],
        headers={
            "Cache-Control": "no-store",
            "Content-Disposition": f'attachment; filename="{DOWNLOAD_NAME}"',
        },
    )
