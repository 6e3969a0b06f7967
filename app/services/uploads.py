"""
Multipart upload validation shared by the studio endpoints.
"""
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from starlette.datastructures import FormData, UploadFile

from app.core.config import settings
from app.core.exceptions import InvalidInput

NO_IMAGE = "No image"
UNSUPPORTED_TYPE = "Unsupported image type"
TOO_LARGE = "Image too large"


@dataclass(frozen=True)
class ImageUpload:
    data: bytes
    mime_type: str
    filename: str | None
    form: FormData

    def text_field(self, name: str) -> str | None:
        value: Any = self.form.get(name)
        return value if isinstance(value, str) else None


def normalize_mime_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def check_mime_type(mime_type: str | None) -> str:
    """Return the normalized MIME type or raise InvalidInput if it is not allowed."""
    normalized = normalize_mime_type(mime_type)
    if normalized not in settings.allowed_mime_types:
        raise InvalidInput(UNSUPPORTED_TYPE)
    return normalized


async def read_image_upload(request: Request, field: str = "image") -> ImageUpload:
    """
    Read and validate the image file field of a multipart request.

    Raises:
        InvalidInput: If the field is missing, is not a file, has a MIME type
            outside the allow-list, or exceeds MAX_FILE_SIZE_MB
    """
    try:
        form = await request.form()
    except Exception as e:
        raise InvalidInput(NO_IMAGE) from e

    upload = form.get(field)
    if not isinstance(upload, UploadFile):
        raise InvalidInput(NO_IMAGE)

    mime_type = check_mime_type(upload.content_type)

    data = await upload.read(settings.max_file_size_bytes + 1)
    if len(data) > settings.max_file_size_bytes:
        raise InvalidInput(TOO_LARGE)

    return ImageUpload(data=data, mime_type=mime_type, filename=upload.filename, form=form)
