import asyncio
import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import InvalidInput
from app.schemas.studio import ErrorResponseSchema
from app.services.enhancement import enhance_upload
from app.services.uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.API_V1_STR, tags=["Enhancement"])


@router.post(
    "/enhance",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "Enhanced PNG"},
        400: {"model": ErrorResponseSchema},
        500: {"model": ErrorResponseSchema},
    },
    summary="Enhance Image",
    description="Denoise, colour-correct and upscale an image (multipart fields: image, scale)",
)
async def enhance_image(request: Request) -> Response:
    """
    Enhance an uploaded image and return it as PNG.

    Form fields:
        image: JPEG, PNG or WebP file (required)
        scale: Integer upscale factor, clamped to 1-4 (optional, default "2")

    Returns:
        PNG bytes with Cache-Control: no-store
    """
    try:
        upload = await read_image_upload(request)
        logger.info(f"[enhance_image] Received {upload.filename}: {len(upload.data)} bytes, {upload.mime_type}")

        png_bytes = await asyncio.to_thread(
            enhance_upload,
            upload.data,
            upload.mime_type,
            upload.text_field("scale"),
        )
    except InvalidInput as e:
        logger.warning(f"[enhance_image] Validation error: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception:
        logger.exception("[enhance_image] Processing failed")
        return JSONResponse(status_code=500, content={"error": "Processing failed"})

    return Response(
        content=png_bytes,
        media_type="image/png",
        headers={"Cache-Control": "no-store"},
    )
