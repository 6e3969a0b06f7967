import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import InvalidInput
from app.schemas.studio import DetectionResponseSchema, DetectionSchema, ErrorResponseSchema
from app.services.detection import Detector, detect_in_bytes, detector_handle, summarize_detections
from app.services.uploads import read_image_upload
from app.utils.capabilities import LazyCapability

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.API_V1_STR, tags=["Detection"])


def get_detector_handle() -> LazyCapability[Detector]:
    return detector_handle


@router.post(
    "/detect",
    response_model=DetectionResponseSchema,
    responses={400: {"model": ErrorResponseSchema}, 500: {"model": ErrorResponseSchema}},
    summary="Detect Clothing And Accessories",
    description="Detect allow-listed objects in an image, ranked by confidence",
)
async def detect_objects(
    request: Request,
    handle: LazyCapability[Detector] = Depends(get_detector_handle),
):
    try:
        upload = await read_image_upload(request)
        detector = await asyncio.to_thread(handle.get)
        detections = await asyncio.to_thread(detect_in_bytes, detector, upload.data)
    except InvalidInput as e:
        logger.warning(f"[detect_objects] Validation error: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception:
        logger.exception("[detect_objects] Detection failed")
        return JSONResponse(status_code=500, content={"error": "Detection failed"})

    return DetectionResponseSchema(
        detections=[DetectionSchema.from_detection(d) for d in detections],
        summary=summarize_detections(detections),
    )
