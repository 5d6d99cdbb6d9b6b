"""Clipboard change detection.

The host platforms offer no portable change notification, so the clipboard is
sampled on a fixed interval and compared against the last observed text and
image. Text and image are tracked independently; a text change wins over an
image change seen in the same tick.
"""

import logging
from typing import Callable, Optional

from cliprecall.clipboard.base import ClipboardBackend, RawClipboardRead
from cliprecall.models.snapshot import ContentSnapshot, SnapshotKind
from cliprecall.services.classifier import classify, contains_files
from cliprecall.services.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


def images_equal(first: Optional[bytes], second: Optional[bytes]) -> bool:
    if not first and not second:
        return True
    if not first or not second:
        return False
    return first == second


class ClipboardService:
    """Poller that emits a snapshot whenever genuinely new content appears."""

    def __init__(
        self,
        backend: ClipboardBackend,
        scheduler: Scheduler,
        on_capture: Optional[Callable[[ContentSnapshot], None]] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.backend = backend
        self.scheduler = scheduler
        self.poll_interval = poll_interval
        self._on_capture = on_capture or self._default_handler
        self._timer: Optional[TimerHandle] = None
        self._is_running = False
        self._last_text = ""
        self._last_image: Optional[bytes] = None
        self._last_contained_files = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    # ---------------------------------------------------------------------
    # Lifecycle management
    # ---------------------------------------------------------------------
    def start(self) -> None:
        if self._is_running:
            logger.debug("ClipboardService already running")
            return

        self._prime()
        self._is_running = True
        logger.info("Clipboard monitoring started (interval=%ss)", self.poll_interval)
        self._schedule()

    def stop(self) -> None:
        if not self._is_running:
            return

        self._is_running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.info("Clipboard monitoring stopped")

    def _prime(self) -> None:
        # Content already on the clipboard at startup is not a new copy.
        try:
            self._last_text = self.backend.read_text()
            self._last_image = self.backend.read_image()
        except Exception as e:
            logger.warning("Could not read initial clipboard state: %s", e)

    def _schedule(self) -> None:
        self._timer = self.scheduler.call_later(self.poll_interval, self._run_tick)

    def _run_tick(self) -> None:
        if not self._is_running:
            return
        try:
            self.tick()
        except Exception:
            logger.exception("Unexpected error while polling the clipboard")
        finally:
            if self._is_running:
                self._schedule()

    # ---------------------------------------------------------------------
    # Change detection
    # ---------------------------------------------------------------------
    def tick(self) -> Optional[ContentSnapshot]:
        """Sample the clipboard once; return the emitted snapshot, if any."""
        try:
            formats = self.backend.available_formats()
            text = self.backend.read_text()
        except Exception as e:
            logger.debug("Clipboard read failed: %s", e)
            return None

        if contains_files(formats, text):
            if not self._last_contained_files:
                logger.info("Ignoring clipboard content: contains files/folders")
                self._last_contained_files = True
            return None
        self._last_contained_files = False

        if text and text != self._last_text:
            self._last_text = text
            return self._emit(RawClipboardRead(text=text, formats=frozenset(formats)))

        try:
            image = self.backend.read_image()
        except Exception as e:
            logger.debug("Clipboard image read failed: %s", e)
            return None

        if image and not images_equal(image, self._last_image):
            self._last_image = image
            return self._emit(RawClipboardRead(image=image, formats=frozenset(formats)))

        return None

    def acknowledge(self, snapshot: ContentSnapshot) -> None:
        """Mark content written by the engine itself as already observed."""
        if snapshot.kind is SnapshotKind.IMAGE:
            try:
                self._last_image = self.backend.read_image()
            except Exception as e:
                logger.debug("Could not re-read written image: %s", e)
        else:
            self._last_text = snapshot.payload  # type: ignore[assignment]

    def _emit(self, raw: RawClipboardRead) -> Optional[ContentSnapshot]:
        result = classify(raw)
        if not isinstance(result, ContentSnapshot):
            logger.debug("Clipboard content rejected: %s", result.reason)
            return None

        logger.info("Clipboard copied: %s", result.kind.value)
        try:
            self._on_capture(result)
        except Exception:
            logger.exception("Error while calling on_capture")
        return result

    @staticmethod
    def _default_handler(snapshot: ContentSnapshot) -> None:
        logger.info(
            "Clipboard captured @ %s | type=%s | preview=%r",
            snapshot.created_at.isoformat(),
            snapshot.kind.value,
            snapshot.preview[:60],
        )

    # ---------------------------------------------------------------------
    # Context manager helpers
    # ---------------------------------------------------------------------
    def __enter__(self) -> "ClipboardService":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
