"""Global shortcut that opens the history surface."""

import logging
import platform
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from cliprecall.exceptions import HotkeyRegistrationFailure
from cliprecall.services.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

TRIGGER_DEBOUNCE = 0.3
RETRY_DELAY = 1.0
LIVENESS_INTERVAL = 10.0


def default_shortcut() -> str:
    if platform.system() == "Darwin":
        return "Option+Command+V"
    return "Ctrl+Alt+V"


class HotkeyRegistrar(ABC):
    """Platform hotkey registration. Callbacks may fire on any thread."""

    @abstractmethod
    def register(self, shortcut: str, callback: Callable[[], None]) -> bool:
        pass

    @abstractmethod
    def unregister(self, shortcut: str) -> None:
        pass

    @abstractmethod
    def is_registered(self, shortcut: str) -> bool:
        pass


_KEY_NAMES = {
    "option": "alt",
    "alt": "alt",
    "control": "ctrl",
    "ctrl": "ctrl",
    "shift": "shift",
    "super": "windows",
    "meta": "windows",
}


def to_keyboard_hotkey(shortcut: str, system: Optional[str] = None) -> str:
    """Translate an accelerator like ``Option+Command+V`` into keyboard's syntax."""
    system = system or platform.system()
    keys = []
    for part in shortcut.split("+"):
        name = part.strip().lower()
        if not name:
            raise ValueError(f"malformed shortcut {shortcut!r}")
        if name in ("command", "cmd"):
            name = "command" if system == "Darwin" else "windows"
        elif name in ("commandorcontrol", "cmdorctrl"):
            name = "command" if system == "Darwin" else "ctrl"
        else:
            name = _KEY_NAMES.get(name, name)
        keys.append(name)
    return "+".join(keys)


class KeyboardRegistrar(HotkeyRegistrar):
    """Registrar on top of the ``keyboard`` package's global hooks."""

    def __init__(self) -> None:
        self._handles: Dict[str, Any] = {}

    def register(self, shortcut: str, callback: Callable[[], None]) -> bool:
        import keyboard

        self.unregister(shortcut)
        try:
            self._handles[shortcut] = keyboard.add_hotkey(to_keyboard_hotkey(shortcut), callback)
        except Exception as e:
            logger.error("keyboard could not hook %s: %s", shortcut, e)
            return False
        return True

    def unregister(self, shortcut: str) -> None:
        import keyboard

        handle = self._handles.pop(shortcut, None)
        if handle is None:
            return
        try:
            keyboard.remove_hotkey(handle)
        except (KeyError, ValueError):
            pass

    def is_registered(self, shortcut: str) -> bool:
        return shortcut in self._handles


class HotkeyService:
    """Keeps the shortcut registered and turns presses into loop callbacks."""

    def __init__(
        self,
        registrar: HotkeyRegistrar,
        scheduler: Scheduler,
        on_trigger: Callable[[], Any],
        shortcut: Optional[str] = None,
        on_shortcut_changed: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.registrar = registrar
        self.scheduler = scheduler
        self.on_trigger = on_trigger
        self.shortcut = shortcut or default_shortcut()
        self.on_shortcut_changed = on_shortcut_changed
        self._last_trigger: Optional[float] = None
        self._retry_timer: Optional[TimerHandle] = None
        self._liveness_timer: Optional[TimerHandle] = None
        self._running = False

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.register()
        self._liveness_timer = self.scheduler.call_later(LIVENESS_INTERVAL, self._check_liveness)

    def stop(self) -> None:
        self._running = False
        for timer in (self._retry_timer, self._liveness_timer):
            if timer is not None:
                timer.cancel()
        self._retry_timer = self._liveness_timer = None
        self.registrar.unregister(self.shortcut)

    def register(self, retry: bool = True) -> bool:
        if self.registrar.register(self.shortcut, self._on_hotkey):
            logger.info("Global shortcut %s registered successfully", self.shortcut)
            return True

        logger.error("Failed to register global shortcut %s", self.shortcut)
        if retry and self._retry_timer is None:
            self._retry_timer = self.scheduler.call_later(RETRY_DELAY, self._retry)
        return False

    def _retry(self) -> None:
        self._retry_timer = None
        if not self._running:
            return
        logger.info("Retrying global shortcut registration...")
        if not self.register(retry=False):
            logger.error("%s", HotkeyRegistrationFailure(
                f"{self.shortcut} unavailable; waiting for the next liveness check"))

    def _check_liveness(self) -> None:
        if not self._running:
            return
        try:
            if not self.registrar.is_registered(self.shortcut):
                logger.warning("Global shortcut lost, attempting to re-register...")
                self.register(retry=False)
        except Exception:
            logger.exception("Hotkey liveness check failed")
        finally:
            if self._running:
                self._liveness_timer = self.scheduler.call_later(LIVENESS_INTERVAL, self._check_liveness)

    def _on_hotkey(self) -> None:
        # Called on the hook thread; everything else happens on the loop.
        self.scheduler.call_soon_threadsafe(self.handle_trigger)

    def handle_trigger(self) -> bool:
        now = self.scheduler.now()
        if self._last_trigger is not None and now - self._last_trigger < TRIGGER_DEBOUNCE:
            logger.debug("Shortcut triggered too quickly, ignoring...")
            return False
        self._last_trigger = now

        try:
            self.on_trigger()
        except Exception:
            logger.exception("Error handling global shortcut")
        return True

    def change_shortcut(self, shortcut: str) -> None:
        """Switch to ``shortcut``; on failure the previous one is restored and
        ``HotkeyRegistrationFailure`` is raised."""
        try:
            to_keyboard_hotkey(shortcut)
        except ValueError as e:
            raise HotkeyRegistrationFailure(str(e), e) from e

        old = self.shortcut
        self.registrar.unregister(old)
        if self.registrar.register(shortcut, self._on_hotkey):
            self.shortcut = shortcut
            logger.info("Successfully registered new shortcut: %s", shortcut)
            if self.on_shortcut_changed is not None:
                self.on_shortcut_changed(shortcut)
            return

        self.registrar.register(old, self._on_hotkey)
        raise HotkeyRegistrationFailure(f"Failed to register new shortcut {shortcut}")
