import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyCapability(Generic[T]):
    """
    Handle to an expensive engine (model, encoder) built on first use.

    Initialization happens at most once, even when get() races on worker
    threads; a failed factory call is not cached, so the next request tries
    again.
    """

    def __init__(self, name: str, factory: Callable[[], T]) -> None:
        self.name = name
        self._factory = factory
        self._instance: T | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._instance is not None

    def get(self) -> T:
        if self._instance is not None:
            return self._instance
        with self._lock:
            if self._instance is None:
                logger.info(f"[LazyCapability] Initializing {self.name}")
                self._instance = self._factory()
        return self._instance
