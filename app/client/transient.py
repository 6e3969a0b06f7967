import logging
import uuid
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransientRef:
    """Handle to an in-memory artifact, the counterpart of a browser object URL."""
    ref_id: str
    media_type: str
    filename: str | None = None


class TransientStore:
    """
    Registry of transient artifacts owned by one client session.

    Every created reference stays live until released; releasing twice is
    reported and ignored, reading a released reference raises LookupError.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self.created_count = 0
        self.released_count = 0

    @property
    def live_count(self) -> int:
        return len(self._blobs)

    def is_live(self, ref: TransientRef) -> bool:
        return ref.ref_id in self._blobs

    def create(self, data: bytes, media_type: str, filename: str | None = None) -> TransientRef:
        ref = TransientRef(ref_id=f"blob:{uuid.uuid4()}", media_type=media_type, filename=filename)
        self._blobs[ref.ref_id] = data
        self.created_count += 1
        return ref

    def read(self, ref: TransientRef) -> bytes:
        try:
            return self._blobs[ref.ref_id]
        except KeyError:
            raise LookupError(f"Transient reference already released: {ref.ref_id}") from None

    def release(self, ref: TransientRef) -> bool:
        if self._blobs.pop(ref.ref_id, None) is None:
            logger.warning(f"[TransientStore] Double release ignored: {ref.ref_id}")
            return False
        self.released_count += 1
        return True
