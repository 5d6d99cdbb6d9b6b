"""Presentation sessions and selection write-back.

At most one surface is alive at a time. A session moves
IDLE -> INITIALIZING -> ACTIVE -> IDLE; triggers arriving outside IDLE are
dropped. Focus loss right after activation is ignored, and a later focus loss
is confirmed after a short re-check before the session is torn down.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from cliprecall.clipboard.base import ClipboardBackend
from cliprecall.database.preferences import (
    HISTORY_LIMIT,
    NOTIFICATIONS_ENABLED,
    SHOW_STARTUP_MESSAGE,
    WINDOW_FOLLOWS_CURSOR,
    PreferenceStore,
)
from cliprecall.exceptions import (
    ClipboardWriteFailure,
    HotkeyRegistrationFailure,
    PersistenceFailure,
    SurfaceCreationFailure,
)
from cliprecall.models.geometry import PlacementRequest, Size
from cliprecall.models.snapshot import ContentSnapshot, SnapshotKind
from cliprecall.services.history_service import DEFAULT_CAPACITY, HistoryStore
from cliprecall.services.hotkey_service import default_shortcut
from cliprecall.services.placement import surface_rect
from cliprecall.services.scheduler import Scheduler, TimerHandle
from cliprecall.services.surface import PresentationSurface, SurfaceFactory
from cliprecall.utils.images import decode_image
from cliprecall.utils.screen import ScreenProvider

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from cliprecall.services.clipboard_service import ClipboardService
    from cliprecall.services.hotkey_service import HotkeyService

logger = logging.getLogger(__name__)

SURFACE_SIZE = Size(400, 500)
READY_FALLBACK = 0.1
FOCUS_GRACE = 0.5
BLUR_RECHECK = 0.2
CLOSE_AFTER_SELECT = 2.8


class SessionState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"


class SessionController:

    def __init__(
        self,
        store: HistoryStore,
        backend: ClipboardBackend,
        scheduler: Scheduler,
        preferences: PreferenceStore,
        surface_factory: SurfaceFactory,
        screen: ScreenProvider,
        detector: Optional["ClipboardService"] = None,
        hotkeys: Optional["HotkeyService"] = None,
        surface_size: Size = SURFACE_SIZE,
    ) -> None:
        self.store = store
        self.backend = backend
        self.scheduler = scheduler
        self.preferences = preferences
        self.surface_factory = surface_factory
        self.screen = screen
        self.detector = detector
        self.hotkeys = hotkeys
        self.surface_size = surface_size

        self._state = SessionState.IDLE
        self._surface: Optional[PresentationSurface] = None
        self._activated_at: Optional[float] = None
        self._timers: Set[TimerHandle] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def surface(self) -> Optional[PresentationSurface]:
        return self._surface

    # ---------------------------------------------------------------------
    # History
    # ---------------------------------------------------------------------
    def on_capture(self, snapshot: ContentSnapshot) -> None:
        self.store.append(snapshot)
        self._publish_history()

    def get_history(self) -> List[Dict[str, Any]]:
        return self.store.records()

    def clear_history(self) -> bool:
        self.store.clear()
        self._publish_history()
        logger.info("Clipboard history cleared")
        return True

    def update_history_limit(self, limit: int) -> bool:
        self.store.set_capacity(limit)
        self._set_pref(HISTORY_LIMIT, limit)
        self._publish_history()
        logger.info("History limit updated to %d", limit)
        return True

    def history_limit(self) -> int:
        return self.store.capacity

    def _publish_history(self) -> None:
        if self._surface is None or self._state is not SessionState.ACTIVE:
            return
        try:
            self._surface.render(self.store.records())
        except Exception:
            logger.exception("Failed to send history to the surface")

    # ---------------------------------------------------------------------
    # Session lifecycle
    # ---------------------------------------------------------------------
    def open(self, force_top_right: bool = False) -> bool:
        if self._state is not SessionState.IDLE:
            logger.info("Session already %s, ignoring open request", self._state.value)
            return False

        self._state = SessionState.INITIALIZING
        self._teardown_surface()

        try:
            rect = surface_rect(self._placement_request(force_top_right))
            surface = self.surface_factory(rect, self)
        except Exception as e:
            failure = e if isinstance(e, SurfaceCreationFailure) else SurfaceCreationFailure(
                "could not create history surface", e)
            logger.error("Error showing clipboard window: %s", failure)
            self._reset()
            return False

        self._surface = surface
        self._later(READY_FALLBACK, self._ready_fallback, surface)
        logger.debug("Session initializing at (%d, %d)", rect.x, rect.y)
        return True

    def surface_ready(self, surface: Optional[PresentationSurface] = None) -> None:
        if surface is not None and surface is not self._surface:
            return
        self._activate()

    def _ready_fallback(self, surface: PresentationSurface) -> None:
        if surface is self._surface and self._state is SessionState.INITIALIZING:
            logger.info("Ready signal missed, showing surface anyway")
            self._activate()

    def _activate(self) -> None:
        if self._state is not SessionState.INITIALIZING or self._surface is None:
            return

        self._state = SessionState.ACTIVE
        self._activated_at = self.scheduler.now()
        try:
            self._surface.show()
            self._surface.render(self.store.records())
        except Exception as e:
            logger.error("Error showing clipboard window: %s",
                         SurfaceCreationFailure("surface failed to show", e))
            self.close()

    def focus_lost(self, surface: Optional[PresentationSurface] = None) -> None:
        if self._state is not SessionState.ACTIVE or self._surface is None:
            return
        if surface is not None and surface is not self._surface:
            return

        if self._activated_at is not None and self.scheduler.now() - self._activated_at < FOCUS_GRACE:
            logger.debug("Ignoring blur event - window just created")
            return

        self._later(BLUR_RECHECK, self._confirm_focus_lost, self._surface)

    def _confirm_focus_lost(self, surface: PresentationSurface) -> None:
        if surface is not self._surface:
            return
        try:
            focused = surface.has_focus()
        except Exception:
            focused = False
        if focused:
            logger.debug("Window still focused, keeping alive")
            return
        logger.info("Window lost focus, closing")
        self.close()

    def close(self, surface: Optional[PresentationSurface] = None) -> None:
        if surface is not None and surface is not self._surface:
            return
        self._reset()

    def _close_if_current(self, surface: PresentationSurface) -> None:
        if surface is self._surface:
            self.close()

    def _reset(self) -> None:
        self._teardown_surface()
        self._state = SessionState.IDLE
        self._activated_at = None

    def _teardown_surface(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

        surface, self._surface = self._surface, None
        if surface is not None:
            try:
                surface.destroy()
            except Exception:
                logger.exception("Error destroying history surface")

    def _later(self, delay: float, callback, *args) -> None:
        handle: Optional[TimerHandle] = None

        def fire() -> None:
            self._timers.discard(handle)
            callback(*args)

        handle = self.scheduler.call_later(delay, fire)
        self._timers.add(handle)

    def _placement_request(self, force_top_right: bool) -> PlacementRequest:
        fixed = force_top_right or not self.window_follows_cursor()
        cursor = None
        if not fixed:
            try:
                cursor = self.screen.cursor_position()
            except Exception as e:
                logger.info("Failed to get cursor position, using fallback: %s", e)
        return PlacementRequest(
            reference=cursor,
            size=self.surface_size,
            displays=tuple(self.screen.displays()),
            fixed_corner=fixed,
        )

    # ---------------------------------------------------------------------
    # Selection
    # ---------------------------------------------------------------------
    def select_item(self, snapshot_id: str) -> bool:
        snapshot = self.store.touch(snapshot_id)
        if snapshot is None:
            logger.warning("Selected item %s is not in the history", snapshot_id)
            return False

        try:
            self._write(snapshot)
        except ClipboardWriteFailure as e:
            logger.error("Error setting clipboard: %s", e)
            what = "image" if snapshot.kind is SnapshotKind.IMAGE else "text"
            self._notify("Error", f"Failed to copy {what} to clipboard", "error")
        else:
            if self.detector is not None:
                self.detector.acknowledge(snapshot)
            if self.notifications_enabled():
                self._notify(*self._success_message(snapshot), "success")
            logger.info("Item set to clipboard and ready for pasting")

        self._publish_history()
        if self._surface is not None:
            self._later(CLOSE_AFTER_SELECT, self._close_if_current, self._surface)
        return True

    def _write(self, snapshot: ContentSnapshot) -> None:
        try:
            if snapshot.kind is SnapshotKind.IMAGE:
                # Validate before touching the clipboard; an empty image must not be written.
                decode_image(snapshot.image_bytes)  # type: ignore[arg-type]
                self.backend.write_image(snapshot.image_bytes)  # type: ignore[arg-type]
            else:
                self.backend.write_text(snapshot.text)  # type: ignore[arg-type]
        except ClipboardWriteFailure:
            raise
        except Exception as e:
            raise ClipboardWriteFailure("clipboard write failed", e) from e

    @staticmethod
    def _success_message(snapshot: ContentSnapshot):
        if snapshot.kind is SnapshotKind.IMAGE:
            return "Image Copied", "Image is ready to paste"
        text = snapshot.payload
        preview = text[:50] + "..." if len(text) > 50 else text
        title = "Rich Text Copied" if snapshot.kind is SnapshotKind.RICH_TEXT else "Text Copied"
        return title, f'"{preview}" is ready to paste'

    def _notify(self, title: str, message: str, kind: str) -> None:
        if self._surface is None:
            return
        try:
            self._surface.notify(title, message, kind)
        except Exception:
            logger.exception("Failed to send notification to the surface")

    # ---------------------------------------------------------------------
    # Settings
    # ---------------------------------------------------------------------
    def _pref(self, key: str, default: Any) -> Any:
        try:
            return self.preferences.get(key, default)
        except PersistenceFailure as e:
            logger.error("Could not read %s: %s", key, e)
            return default

    def _set_pref(self, key: str, value: Any) -> bool:
        try:
            self.preferences.set(key, value)
        except PersistenceFailure as e:
            logger.error("Could not save %s: %s", key, e)
            return False
        return True

    def notifications_enabled(self) -> bool:
        return bool(self._pref(NOTIFICATIONS_ENABLED, True))

    def set_notifications_enabled(self, enabled: bool) -> bool:
        return self._set_pref(NOTIFICATIONS_ENABLED, bool(enabled))

    def window_follows_cursor(self) -> bool:
        return bool(self._pref(WINDOW_FOLLOWS_CURSOR, True))

    def set_window_follows_cursor(self, enabled: bool) -> bool:
        return self._set_pref(WINDOW_FOLLOWS_CURSOR, bool(enabled))

    def show_startup_message(self) -> bool:
        return bool(self._pref(SHOW_STARTUP_MESSAGE, True))

    def set_show_startup_message(self, enabled: bool) -> bool:
        return self._set_pref(SHOW_STARTUP_MESSAGE, bool(enabled))

    def keyboard_shortcut(self) -> Optional[str]:
        return self.hotkeys.shortcut if self.hotkeys is not None else None

    def set_keyboard_shortcut(self, shortcut: str) -> bool:
        if self.hotkeys is None:
            return False
        self.hotkeys.change_shortcut(shortcut)
        return True

    def settings(self) -> Dict[str, Any]:
        return {
            "historyLimit": self.history_limit(),
            "notificationsEnabled": self.notifications_enabled(),
            "windowFollowsCursor": self.window_follows_cursor(),
            "showStartupMessage": self.show_startup_message(),
            "keyboardShortcut": self.keyboard_shortcut(),
        }

    def reset(self) -> None:
        """Forget every preference and the whole history."""
        self.close()
        self.store.set_capacity(DEFAULT_CAPACITY)
        self.store.clear()
        if self.hotkeys is not None and self.hotkeys.shortcut != default_shortcut():
            try:
                self.hotkeys.change_shortcut(default_shortcut())
            except HotkeyRegistrationFailure as e:
                logger.error("Could not restore the default shortcut: %s", e)
        try:
            self.preferences.clear()
        except PersistenceFailure as e:
            logger.error("Error resetting app data: %s", e)
        logger.info("All app data cleared")
