from typing import Annotated

from pydantic import (
    AnyUrl,
    BeforeValidator,
    computed_field,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # API Configuration
    API_V1_STR: str = "/api/v1"

    # Server Configuration
    SERVER_NAME: str = "UGCStudio"
    SERVER_HOST: str = "http://localhost"
    SERVER_PORT: int = 8081
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str,
        BeforeValidator(lambda x: x.split(",") if isinstance(x, str) else x),
    ] = []

    # Project Configuration
    PROJECT_NAME: str = "UGCStudio"

    # Redis Configuration (Celery broker/backend)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Celery Configuration
    CELERY_TASK_ALWAYS_EAGER: bool = False
    VIDEO_TASK_TIMEOUT: int = 180

    # Upload Configuration
    MAX_FILE_SIZE_MB: int = 20
    ALLOWED_MIME_TYPES: str = "image/jpeg,image/png,image/webp"

    # Enhancement Configuration
    DEFAULT_SCALE: int = 2
    MAX_OUTPUT_PIXELS: int = 100_000_000

    # Detection Configuration
    DETECTION_MODEL: str = "yolov8n.pt"
    DETECTION_MIN_SCORE: float = 0.5
    DETECTION_MAX_RESULTS: int = 20

    # Video Encoding Configuration
    FFMPEG_BINARY: str = "ffmpeg"
    FFMPEG_TIMEOUT: int = 120

    # Client Configuration
    ENHANCE_ENDPOINT_URL: str = "http://localhost:8081/api/v1/enhance"
    CLIENT_REQUEST_TIMEOUT: int = 60

    @computed_field  # type: ignore[prop-decorator]
    @property
    def CELERY_BROKER_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def CELERY_RESULT_BACKEND(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def allowed_mime_types(self) -> frozenset[str]:
        return frozenset(
            mime.strip() for mime in self.ALLOWED_MIME_TYPES.split(",") if mime.strip()
        )

    @property
    def max_file_size_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024


settings = Settings()
