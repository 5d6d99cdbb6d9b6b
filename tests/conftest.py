import copy
import heapq
import io
import itertools
from typing import Any, Callable, Dict, List, Optional, Set

import pytest
from PIL import Image

from cliprecall.clipboard.base import ClipboardBackend
from cliprecall.database.preferences import PreferenceStore
from cliprecall.exceptions import ClipboardWriteFailure, PersistenceFailure
from cliprecall.models.geometry import Display, Point, Rect
from cliprecall.services.history_service import HistoryStore
from cliprecall.services.hotkey_service import HotkeyRegistrar
from cliprecall.services.scheduler import Scheduler, TimerHandle
from cliprecall.services.session_service import SessionController
from cliprecall.services.surface import PresentationSurface
from cliprecall.utils.screen import StaticScreen


class FakeTimer(TimerHandle):

    def __init__(self, when: float) -> None:
        self.when = when
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler(Scheduler):
    """Manual clock; callbacks fire only inside ``advance``."""

    def __init__(self) -> None:
        self.time = 0.0
        self._queue: List[Any] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self.time

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        timer = FakeTimer(self.time + delay)
        heapq.heappush(self._queue, (timer.when, next(self._counter), timer, callback, args))
        return timer

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        self.call_later(0, callback, *args)

    def advance(self, seconds: float) -> None:
        target = self.time + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, timer, callback, args = heapq.heappop(self._queue)
            self.time = max(self.time, when)
            if not timer.cancelled:
                callback(*args)
        self.time = target

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class FakeClipboard(ClipboardBackend):

    def __init__(self, text: str = "", image: Optional[bytes] = None, formats=()) -> None:
        self.text = text
        self.image = image
        self.formats: Set[str] = set(formats)
        self.fail_reads = False
        self.fail_writes = False
        self.writes: List[Any] = []
        self.image_reads = 0

    def copy_text(self, text: str, formats=("text/plain",)) -> None:
        self.text, self.image, self.formats = text, None, set(formats)

    def copy_image(self, image: bytes, formats=("image/png",)) -> None:
        self.text, self.image, self.formats = "", image, set(formats)

    def read_text(self) -> str:
        if self.fail_reads:
            raise OSError("clipboard busy")
        return self.text

    def read_image(self) -> Optional[bytes]:
        if self.fail_reads:
            raise OSError("clipboard busy")
        self.image_reads += 1
        return self.image

    def available_formats(self) -> Set[str]:
        if self.fail_reads:
            raise OSError("clipboard busy")
        return set(self.formats)

    def write_text(self, text: str) -> None:
        if self.fail_writes:
            raise ClipboardWriteFailure("write refused")
        self.writes.append(("text", text))
        self.copy_text(text)

    def write_image(self, png: bytes) -> None:
        if self.fail_writes:
            raise ClipboardWriteFailure("write refused")
        self.writes.append(("image", png))
        self.copy_image(png)


class MemoryPreferenceStore(PreferenceStore):

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(data or {})
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self.data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise PersistenceFailure(f"could not write {key!r}")
        self.writes += 1
        self.data[key] = copy.deepcopy(value)

    def has(self, key: str) -> bool:
        return key in self.data

    def clear(self) -> None:
        if self.fail_writes:
            raise PersistenceFailure("could not clear")
        self.data.clear()


class FakeRegistrar(HotkeyRegistrar):

    def __init__(self) -> None:
        self.callbacks: Dict[str, Callable[[], None]] = {}
        self.refuse: Set[str] = set()
        self.attempts: List[str] = []

    def register(self, shortcut: str, callback: Callable[[], None]) -> bool:
        self.attempts.append(shortcut)
        if shortcut in self.refuse:
            return False
        self.callbacks[shortcut] = callback
        return True

    def unregister(self, shortcut: str) -> None:
        self.callbacks.pop(shortcut, None)

    def is_registered(self, shortcut: str) -> bool:
        return shortcut in self.callbacks

    def press(self, shortcut: str) -> None:
        self.callbacks[shortcut]()


class FakeSurface(PresentationSurface):

    def __init__(self, rect: Rect, controller: SessionController) -> None:
        self.rect = rect
        self.controller = controller
        self.shown = False
        self.focused = True
        self.destroyed = False
        self.renders: List[List[Dict[str, Any]]] = []
        self.notifications: List[tuple] = []

    def show(self) -> None:
        self.shown = True

    def render(self, history: List[Dict[str, Any]]) -> None:
        self.renders.append(history)

    def notify(self, title: str, message: str, kind: str) -> None:
        self.notifications.append((title, message, kind))

    def has_focus(self) -> bool:
        return self.focused

    def destroy(self) -> None:
        self.destroyed = True


def make_png(color=(255, 0, 0), size=(4, 4), fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def preferences():
    return MemoryPreferenceStore()


@pytest.fixture
def store(preferences):
    return HistoryStore(preferences)


@pytest.fixture
def png():
    return make_png()


@pytest.fixture
def screen():
    return StaticScreen([Display.simple(1920, 1080)], cursor=Point(800, 700))


@pytest.fixture
def surfaces():
    return []


@pytest.fixture
def surface_factory(surfaces):
    def create(rect, controller):
        surface = FakeSurface(rect, controller)
        surfaces.append(surface)
        return surface
    return create


@pytest.fixture
def controller(store, clipboard, scheduler, preferences, surface_factory, screen):
    return SessionController(
        store=store,
        backend=clipboard,
        scheduler=scheduler,
        preferences=preferences,
        surface_factory=surface_factory,
        screen=screen,
    )
