from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, point: Point) -> bool:
        return self.x <= point.x < self.right and self.y <= point.y < self.bottom

    def distance_to(self, point: Point) -> float:
        dx = max(self.x - point.x, 0, point.x - self.right)
        dy = max(self.y - point.y, 0, point.y - self.bottom)
        return (dx * dx + dy * dy) ** 0.5

    def encloses(self, other: "Rect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


@dataclass(frozen=True)
class Display:
    """A monitor: full bounds plus the work area left after system chrome."""
    bounds: Rect
    work_area: Rect
    primary: bool = False

    @classmethod
    def simple(cls, width: int, height: int, x: int = 0, y: int = 0, primary: bool = True) -> "Display":
        rect = Rect(x, y, width, height)
        return cls(bounds=rect, work_area=rect, primary=primary)


@dataclass(frozen=True)
class PlacementRequest:
    # ``reference`` may arrive from platform code in any shape; place() validates it.
    reference: Optional[Any]
    size: Size
    displays: Tuple[Display, ...] = field(default_factory=tuple)
    fixed_corner: bool = False
