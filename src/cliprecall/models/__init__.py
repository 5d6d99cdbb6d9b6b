from .geometry import Display, PlacementRequest, Point, Rect, Size
from .snapshot import ContentSnapshot, Rejection, SnapshotKind

__all__ = [
    "ContentSnapshot",
    "Display",
    "PlacementRequest",
    "Point",
    "Rect",
    "Rejection",
    "Size",
    "SnapshotKind",
]
