import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from cliprecall.models.geometry import Display, Point

logger = logging.getLogger(__name__)

FALLBACK_SIZE = (1920, 1080)


class ScreenProvider(ABC):

    @abstractmethod
    def displays(self) -> Sequence[Display]:
        pass

    @abstractmethod
    def cursor_position(self) -> Optional[Point]:
        pass


class StaticScreen(ScreenProvider):
    """Fixed display geometry with no cursor tracking."""

    def __init__(self, displays: Sequence[Display], cursor: Optional[Point] = None) -> None:
        self._displays: Tuple[Display, ...] = tuple(displays)
        self.cursor = cursor

    def displays(self) -> Sequence[Display]:
        return self._displays

    def cursor_position(self) -> Optional[Point]:
        return self.cursor


class TkScreen(ScreenProvider):
    """Primary display size and pointer position as reported by Tk."""

    def _query(self):
        import tkinter as tk

        root = tk.Tk()
        try:
            root.withdraw()
            width, height = root.winfo_screenwidth(), root.winfo_screenheight()
            pointer = root.winfo_pointerxy()
        finally:
            root.destroy()
        return width, height, pointer

    def displays(self) -> Sequence[Display]:
        try:
            width, height, _ = self._query()
        except Exception as e:
            logger.warning("Screen size unavailable, assuming %dx%d: %s", *FALLBACK_SIZE, e)
            width, height = FALLBACK_SIZE
        return (Display.simple(width, height),)

    def cursor_position(self) -> Optional[Point]:
        try:
            _, _, (x, y) = self._query()
        except Exception as e:
            logger.info("Failed to get cursor position, using fallback: %s", e)
            return None
        # Tk reports (-1, -1) when the pointer is on another screen.
        if x < 0 or y < 0:
            return None
        return Point(x, y)
