import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List

from cliprecall.models.geometry import Rect

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from cliprecall.services.session_service import SessionController

logger = logging.getLogger(__name__)


class PresentationSurface(ABC):
    """The window (or remote UI) that shows the history during a session.

    The surface reports back through the controller it was created with:
    ``surface_ready``, ``focus_lost`` and ``select_item``.
    """

    @abstractmethod
    def show(self) -> None:
        pass

    @abstractmethod
    def render(self, history: List[Dict[str, Any]]) -> None:
        """history-updated"""

    @abstractmethod
    def notify(self, title: str, message: str, kind: str) -> None:
        """show-notification"""

    @abstractmethod
    def has_focus(self) -> bool:
        pass

    @abstractmethod
    def destroy(self) -> None:
        pass


SurfaceFactory = Callable[[Rect, "SessionController"], PresentationSurface]


class LoggingSurface(PresentationSurface):
    """Headless surface: everything it would display goes to the log."""

    def __init__(self, rect: Rect, controller: "SessionController") -> None:
        self.rect = rect
        self.controller = controller
        self.visible = False

    def show(self) -> None:
        self.visible = True
        logger.info("History surface shown at (%d, %d)", self.rect.x, self.rect.y)

    def render(self, history: List[Dict[str, Any]]) -> None:
        for index, record in enumerate(history[:10]):
            logger.info("  [%d] %s: %s", index, record.get("kind"), record.get("preview"))

    def notify(self, title: str, message: str, kind: str) -> None:
        log = logger.error if kind == "error" else logger.info
        log("%s: %s", title, message)

    def has_focus(self) -> bool:
        return self.visible

    def destroy(self) -> None:
        self.visible = False
