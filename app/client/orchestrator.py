"""
Client-side orchestration of the select -> enhance -> detect -> video flow.

A StudioSession owns the selected source image and every artifact derived
from it. Each new selection bumps a generation counter; in-flight actions
compare the generation they started with before applying their result, so a
slow enhancement can never land on a newer source.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Protocol

import aiohttp

from app.client.transient import TransientRef, TransientStore
from app.core.config import settings
from app.core.exceptions import ActionInProgress, InvalidInput, TransformFailed
from app.models.media import Detection, VideoSynthesisParameters
from app.services.detection import (
    Detector,
    build_default_detector,
    detect_in_bytes,
    summarize_detections,
)
from app.services.enhancement import resolve_scale
from app.services.uploads import normalize_mime_type
from app.services.video_synthesis import (
    DOWNLOAD_NAME as VIDEO_DOWNLOAD_NAME,
    Encoder,
    build_default_encoder,
    plan_synthesis,
    synthesize,
)
from app.utils.capabilities import LazyCapability
from app.utils.image_workflow import read_source_image

logger = logging.getLogger(__name__)

ENHANCED_DOWNLOAD_NAME = "image-optimisee.png"

UNSUPPORTED_FORMAT_NOTICE = "Unsupported format. Use JPG, PNG or WEBP."
FAILURE_NOTICES = {
    "enhance": "Enhancement failed.",
    "detect": "Detection failed.",
    "synthesize": "Video generation failed.",
}


class SessionState(str, Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    ENHANCING = "enhancing"
    ENHANCED = "enhanced"
    ENHANCEMENT_FAILED = "enhancement_failed"
    DETECTING = "detecting"
    DETECTED = "detected"
    DETECTION_FAILED = "detection_failed"
    SYNTHESIZING = "synthesizing"
    VIDEO_READY = "video_ready"
    SYNTHESIS_FAILED = "synthesis_failed"


class Enhancer(Protocol):
    async def enhance(self, data: bytes, mime_type: str, filename: str | None, scale: int) -> bytes:
        ...


class HttpEnhancer:
    """Posts the image to the enhancement endpoint as multipart form data."""

    def __init__(self, url: str | None = None, timeout: int | None = None) -> None:
        self.url = url or settings.ENHANCE_ENDPOINT_URL
        self.timeout = timeout or settings.CLIENT_REQUEST_TIMEOUT

    async def enhance(self, data: bytes, mime_type: str, filename: str | None, scale: int) -> bytes:
        form = aiohttp.FormData()
        form.add_field("image", data, filename=filename or "upload", content_type=mime_type)
        form.add_field("scale", str(scale))

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    data=form,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        body = await resp.text()
                        raise TransformFailed(f"Enhance endpoint returned HTTP {resp.status}: {body[:200]}")
                    return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransformFailed(f"Enhance request failed: {e}") from e


@dataclass(frozen=True)
class SelectedFile:
    data: bytes
    mime_type: str
    filename: str | None


class StudioSession:
    """
    State holder for one user's editing session.

    Actions are exclusive with themselves (a second call while one is running
    raises ActionInProgress) but enhance, detect and synthesize_video may
    overlap each other; state reports the latest running action while any is
    in flight. Failures leave earlier artifacts untouched and set a
    short user-facing notice; full detail goes to the log.
    """

    def __init__(
        self,
        enhancer: Enhancer | None = None,
        detector: LazyCapability[Detector] | None = None,
        encoder: LazyCapability[Encoder] | None = None,
        store: TransientStore | None = None,
    ) -> None:
        self._enhancer = enhancer or HttpEnhancer()
        self._detector = detector or LazyCapability("detector", build_default_detector)
        self._encoder = encoder or LazyCapability("encoder", build_default_encoder)
        self.store = store or TransientStore()

        self.generation = 0
        self._settled = SessionState.IDLE
        self.scale = resolve_scale(None)
        self.notice: str | None = None

        self.source: SelectedFile | None = None
        self.preview_ref: TransientRef | None = None
        self.enhanced_ref: TransientRef | None = None
        self.video_ref: TransientRef | None = None
        self.video_parameters: VideoSynthesisParameters | None = None
        self.detections: list[Detection] = []

        self._in_flight: dict[str, SessionState] = {}

    async def __aenter__(self) -> StudioSession:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    # -- selection ---------------------------------------------------------

    def select_file(self, data: bytes, mime_type: str, filename: str | None = None) -> TransientRef:
        """
        Replace the current source image.

        Raises:
            InvalidInput: If the MIME type is outside the allow-list; the
                current selection is kept in that case
        """
        mime_type = normalize_mime_type(mime_type)
        if mime_type not in settings.allowed_mime_types:
            raise InvalidInput(UNSUPPORTED_FORMAT_NOTICE)
        if not data:
            raise InvalidInput("No image")

        self.generation += 1
        self._release_artifacts()

        self.source = SelectedFile(data=data, mime_type=mime_type, filename=filename)
        self.preview_ref = self.store.create(data, mime_type, filename)
        self._settled = SessionState.FILE_SELECTED
        logger.info(f"[select_file] Generation {self.generation}: {filename} ({len(data)} bytes)")
        return self.preview_ref

    def set_scale(self, scale: Any) -> int:
        self.scale = resolve_scale(scale)
        return self.scale

    # -- actions -----------------------------------------------------------

    async def enhance(self) -> TransientRef | None:
        """Enhance the current source; returns the new reference or None."""
        source = self.source
        if source is None:
            return None

        with self._exclusive("enhance", SessionState.ENHANCING):
            generation = self.generation
            try:
                png_bytes = await self._enhancer.enhance(
                    source.data, source.mime_type, source.filename, self.scale
                )
                if not png_bytes:
                    raise TransformFailed("Enhancer returned no data")
            except Exception:
                if self._is_stale(generation, "enhance"):
                    return None
                logger.exception("[enhance] Enhancement failed")
                self._fail("enhance", SessionState.ENHANCEMENT_FAILED)
                return None

            if self._is_stale(generation, "enhance"):
                return None

            self._release("enhanced_ref")
            self.enhanced_ref = self.store.create(png_bytes, "image/png", ENHANCED_DOWNLOAD_NAME)
            self._settled = SessionState.ENHANCED
            self.notice = None
            return self.enhanced_ref

    async def detect(self) -> list[Detection] | None:
        """Detect objects on the enhanced image, or the preview if none."""
        still = self._current_still()
        if still is None:
            return None

        with self._exclusive("detect", SessionState.DETECTING):
            generation = self.generation
            try:
                detector = await asyncio.to_thread(self._detector.get)
                detections = await asyncio.to_thread(detect_in_bytes, detector, still[0])
            except Exception:
                if self._is_stale(generation, "detect"):
                    return None
                logger.exception("[detect] Detection failed")
                self._fail("detect", SessionState.DETECTION_FAILED)
                return None

            if self._is_stale(generation, "detect"):
                return None

            self.detections = detections
            self._settled = SessionState.DETECTED
            self.notice = None
            return list(detections)

    async def synthesize_video(self) -> TransientRef | None:
        """Build the looped video from the enhanced image, or the preview if none."""
        still = self._current_still()
        if still is None:
            return None

        with self._exclusive("synthesize", SessionState.SYNTHESIZING):
            generation = self.generation
            try:
                encoder = await asyncio.to_thread(self._encoder.get)
                source = read_source_image(*still)
                params = plan_synthesis(source)
                video_bytes = await asyncio.to_thread(synthesize, source, params, encoder)
            except Exception:
                if self._is_stale(generation, "synthesize"):
                    return None
                logger.exception("[synthesize_video] Video synthesis failed")
                self._fail("synthesize", SessionState.SYNTHESIS_FAILED)
                return None

            if self._is_stale(generation, "synthesize"):
                return None

            self._release("video_ref")
            self.video_ref = self.store.create(video_bytes, params.media_type, VIDEO_DOWNLOAD_NAME)
            self.video_parameters = params
            self._settled = SessionState.VIDEO_READY
            self.notice = None
            return self.video_ref

    # -- presentation ------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """
        Busy state of the most recently started running action, otherwise the
        last settled transition (selection, success or failure).
        """
        if self._in_flight:
            return next(reversed(self._in_flight.values()))
        return self._settled

    def is_busy(self, action: str) -> bool:
        return action in self._in_flight

    @property
    def detection_summary(self) -> str:
        return summarize_detections(self.detections)

    def download_enhanced(self) -> tuple[str, bytes] | None:
        if self.enhanced_ref is None:
            return None
        return ENHANCED_DOWNLOAD_NAME, self.store.read(self.enhanced_ref)

    def download_video(self) -> tuple[str, bytes] | None:
        if self.video_ref is None:
            return None
        return VIDEO_DOWNLOAD_NAME, self.store.read(self.video_ref)

    def close(self) -> None:
        """Tear the session down and release every transient reference."""
        self.generation += 1
        self._release_artifacts()
        self.source = None
        self._settled = SessionState.IDLE

    # -- internals ---------------------------------------------------------

    @contextmanager
    def _exclusive(self, action: str, busy_state: SessionState) -> Iterator[None]:
        if action in self._in_flight:
            raise ActionInProgress(f"{action} is already running")
        self._in_flight[action] = busy_state
        try:
            yield
        finally:
            self._in_flight.pop(action, None)

    def _is_stale(self, generation: int, action: str) -> bool:
        if generation != self.generation:
            logger.info(
                f"[{action}] Discarding result from generation {generation} "
                f"(current {self.generation})"
            )
            return True
        return False

    def _fail(self, action: str, state: SessionState) -> None:
        self._settled = state
        self.notice = FAILURE_NOTICES[action]

    def _current_still(self) -> tuple[bytes, str] | None:
        if self.enhanced_ref is not None:
            return self.store.read(self.enhanced_ref), self.enhanced_ref.media_type
        if self.source is not None:
            return self.source.data, self.source.mime_type
        return None

    def _release(self, attr: str) -> None:
        ref = getattr(self, attr)
        if ref is not None:
            self.store.release(ref)
            setattr(self, attr, None)

    def _release_artifacts(self) -> None:
        for attr in ("preview_ref", "enhanced_ref", "video_ref"):
            self._release(attr)
        self.video_parameters = None
        self.detections = []
        self.notice = None
