from fastapi import APIRouter

from app.api.endpoints.detection import router as detection
from app.api.endpoints.enhance import router as enhance
from app.api.endpoints.video import router as video

api_router = APIRouter()

api_router.include_router(enhance)
api_router.include_router(detection)
api_router.include_router(video)
