"""Where to put the history surface.

``place`` is a pure function of its request: no display or cursor queries
happen here, so it can be called from anywhere.
"""

import logging
import math
from numbers import Real
from typing import Any, Optional, Sequence

from cliprecall.models.geometry import Display, PlacementRequest, Point, Rect

logger = logging.getLogger(__name__)

CORNER_MARGIN = 20
CURSOR_OFFSET = 10


def primary_display(displays: Sequence[Display]) -> Display:
    if not displays:
        raise ValueError("placement needs at least one display")
    for display in displays:
        if display.primary:
            return display
    return displays[0]


def display_for_point(displays: Sequence[Display], point: Point) -> Display:
    """Display containing ``point``, or the nearest one."""
    if not displays:
        raise ValueError("placement needs at least one display")
    for display in displays:
        if display.bounds.contains(point):
            return display
    return min(displays, key=lambda d: d.bounds.distance_to(point))


def coerce_point(reference: Any) -> Optional[Point]:
    """Accept a Point, an (x, y) pair or an {"x", "y"} mapping; None if malformed."""
    if reference is None:
        return None
    if isinstance(reference, Point):
        x, y = reference.x, reference.y
    elif isinstance(reference, dict):
        x, y = reference.get("x"), reference.get("y")
    elif isinstance(reference, (tuple, list)) and len(reference) == 2:
        x, y = reference
    else:
        return None

    for value in (x, y):
        if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
            return None
    return Point(x, y)


def _clamp(value: float, low: int, high: int) -> int:
    # When the surface is larger than the area, pin it to the top/left edge.
    return int(max(low, min(value, high)))


def place(request: PlacementRequest) -> Point:
    width, height = request.size.width, request.size.height
    cursor = coerce_point(request.reference)

    if request.fixed_corner or cursor is None:
        area = primary_display(request.displays).work_area
        if request.fixed_corner:
            x = area.right - width - CORNER_MARGIN
            y = area.y + CORNER_MARGIN
        else:
            logger.debug("Invalid cursor position %r, centering", request.reference)
            x = area.x + (area.width - width) // 2
            y = area.y + (area.height - height) // 2
    else:
        display = display_for_point(request.displays, cursor)
        bounds = display.bounds

        x = cursor.x + CURSOR_OFFSET
        y = cursor.y - height

        if x + width > bounds.right:
            x = cursor.x - width - CURSOR_OFFSET
        if y < bounds.y:
            y = cursor.y + CURSOR_OFFSET
        area = display.work_area

    return Point(
        _clamp(x, area.x, area.right - width),
        _clamp(y, area.y, area.bottom - height),
    )


def surface_rect(request: PlacementRequest) -> Rect:
    origin = place(request)
    return Rect(int(origin.x), int(origin.y), request.size.width, request.size.height)
