import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.routing import APIRoute

from app.api import api_router
from app.core.config import settings
from app.schemas.studio import HealthResponseSchema
from app.services.detection import detector_handle
from app.services.video_synthesis import encoder_handle

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    """
    Custom function to generate unique operation IDs for OpenAPI schema.
    This creates cleaner method names for generated client code.
    """
    if route.tags:
        # Use first tag + operation name for better organization
        return f"{route.tags[0]}_{route.name}"
    return route.name


def custom_openapi():
    """
    Custom OpenAPI schema generator with server metadata.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["servers"] = [
        {
            "url": f"{settings.SERVER_HOST}:{settings.SERVER_PORT}",
            "description": "Development server",
        },
    ]

    app.openapi_schema = openapi_schema
    return openapi_schema


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Photo enhancement, clothing/accessory detection and UGC video synthesis",
    license_info={
        "name": "MIT",
    },
    # Custom operation ID generation for better client code
    generate_unique_id_function=custom_generate_unique_id,
)
app.openapi = custom_openapi


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"[REQUEST] {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(
        f"[RESPONSE] {request.method} {request.url.path} -> "
        f"{response.status_code} {response.headers.get('content-type', 'unknown')}"
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS] or ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)
app.include_router(api_router)


@app.get("/")
def root():
    return {"message": "Welcome to UGCStudio API"}


@app.get("/health", response_model=HealthResponseSchema)
def health() -> HealthResponseSchema:
    """
    Report which lazily loaded capabilities are already initialized.
    """
    return HealthResponseSchema(
        detector_loaded=detector_handle.loaded,
        encoder_loaded=encoder_handle.loaded,
    )
