import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Deque, Dict, List

from cliprecall.models.geometry import Rect
from cliprecall.services.surface import PresentationSurface, SurfaceFactory

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from cliprecall.services.session_service import SessionController

logger = logging.getLogger(__name__)

MAX_EVENTS = 200


class EventFeed:
    """Numbered events for UIs that poll ``GET /events``.

    Sequence numbers keep growing across sessions; only the newest
    ``MAX_EVENTS`` are retained.
    """

    def __init__(self, maxlen: int = MAX_EVENTS) -> None:
        self._events: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._seq = 0

    @property
    def last_seq(self) -> int:
        return self._seq

    def publish(self, event_type: str, payload: Any = None) -> int:
        self._seq += 1
        self._events.append({"seq": self._seq, "type": event_type, "payload": payload})
        return self._seq

    def since(self, after: int = 0) -> List[Dict[str, Any]]:
        return [event for event in self._events if event["seq"] > after]


class BridgeSurface(PresentationSurface):
    """A surface whose UI lives on the other side of the HTTP bridge."""

    def __init__(self, rect: Rect, controller: "SessionController", feed: EventFeed) -> None:
        self.rect = rect
        self.controller = controller
        self.feed = feed
        self.focused = False
        self.destroyed = False

    def show(self) -> None:
        self.focused = True
        self.feed.publish("show", {
            "x": self.rect.x,
            "y": self.rect.y,
            "width": self.rect.width,
            "height": self.rect.height,
        })

    def render(self, history: List[Dict[str, Any]]) -> None:
        self.feed.publish("history-updated", history)

    def notify(self, title: str, message: str, kind: str) -> None:
        self.feed.publish("show-notification", {"title": title, "message": message, "type": kind})

    def has_focus(self) -> bool:
        return self.focused and not self.destroyed

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        self.focused = False
        self.feed.publish("close")
        logger.debug("Bridge surface closed")


def bridge_surface_factory(feed: EventFeed) -> SurfaceFactory:
    def create(rect: Rect, controller: "SessionController") -> BridgeSurface:
        return BridgeSurface(rect, controller, feed)

    return create
