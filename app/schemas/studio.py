"""
Request/response schemas for the studio API.
"""
from pydantic import BaseModel, ConfigDict, Field

from app.models.media import Detection


class ErrorResponseSchema(BaseModel):
    """Schema for error bodies returned by every endpoint."""
    error: str = Field(..., description="Short, user-facing error message")


class DetectionSchema(BaseModel):
    """Schema for a single ranked detection."""
    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(..., alias="class", description="Model label, e.g. 'handbag'")
    score: float = Field(..., ge=0.0, le=1.0, description="Confidence in [0, 1]")
    bbox: tuple[float, float, float, float] = Field(..., description="(x, y, width, height) in pixels")

    @classmethod
    def from_detection(cls, detection: Detection) -> "DetectionSchema":
        return cls(class_name=detection.class_name, score=detection.score, bbox=detection.bbox)


class DetectionResponseSchema(BaseModel):
    """Schema for the detection response."""
    detections: list[DetectionSchema] = Field(default_factory=list)
    summary: str = Field(..., description="Top detections rendered as 'label (NN%)'")

    class Config:
        json_schema_extra = {
            "example": {
                "detections": [
                    {"class": "handbag", "score": 0.87, "bbox": [120.0, 340.5, 80.0, 96.0]},
                    {"class": "person", "score": 0.64, "bbox": [40.0, 12.0, 300.0, 780.0]},
                ],
                "summary": "handbag (87%), person (64%)",
            }
        }


class HealthResponseSchema(BaseModel):
    """Schema for the health check."""
    status: str = "ok"
    detector_loaded: bool
    encoder_loaded: bool
