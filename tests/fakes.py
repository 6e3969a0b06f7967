import asyncio

from app.models.media import Detection


class FakeDetector:
    def __init__(self, detections=None, error: Exception | None = None) -> None:
        self.detections = list(detections or [])
        self.error = error
        self.seen_sizes: list[tuple[int, int]] = []

    def detect(self, image):
        self.seen_sizes.append(image.size)
        if self.error is not None:
            raise self.error
        return list(self.detections)


class FakeEncoder:
    def __init__(self, payload: bytes = b"fake-mp4", error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[tuple[dict, list, str]] = []

    def encode(self, inputs, args, output_name):
        self.calls.append((dict(inputs), list(args), output_name))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeEnhancer:
    def __init__(
        self,
        payload: bytes = b"enhanced",
        gate: asyncio.Event | None = None,
        error: Exception | None = None,
    ) -> None:
        self.payload = payload
        self.gate = gate
        self.error = error
        self.calls: list[tuple[str, str | None, int]] = []

    async def enhance(self, data, mime_type, filename, scale):
        self.calls.append((mime_type, filename, scale))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.payload


def detection(class_name: str, score: float) -> Detection:
    return Detection(class_name=class_name, score=score, bbox=(1.0, 2.0, 3.0, 4.0))
