from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class SnapshotKind(str, Enum):
    TEXT = "text"
    RICH_TEXT = "richtext"
    IMAGE = "image"
    REJECTED = "rejected"

    @property
    def is_text(self) -> bool:
        return self in (SnapshotKind.TEXT, SnapshotKind.RICH_TEXT)


@dataclass(frozen=True)
class ContentSnapshot:
    """Immutable, classified unit of clipboard content.

    ``payload`` is the text for text kinds and PNG bytes for images. ``id`` is
    empty until the history store assigns one on insertion.
    """
    kind: SnapshotKind
    payload: Union[str, bytes]
    preview: str
    created_at: datetime = field(default_factory=datetime.now)
    preview_image: Optional[str] = None
    id: str = ""

    def __post_init__(self) -> None:
        if self.kind is SnapshotKind.REJECTED:
            raise ValueError("rejected content is a Rejection, not a snapshot")
        if not self.payload:
            raise ValueError(f"{self.kind.value} snapshot requires a payload")
        if self.kind.is_text and not isinstance(self.payload, str):
            raise TypeError("text snapshots carry a str payload")
        if self.kind is SnapshotKind.IMAGE and not isinstance(self.payload, bytes):
            raise TypeError("image snapshots carry a bytes payload")

    @property
    def text(self) -> Optional[str]:
        return self.payload if self.kind.is_text else None  # type: ignore[return-value]

    @property
    def image_bytes(self) -> Optional[bytes]:
        return self.payload if self.kind is SnapshotKind.IMAGE else None  # type: ignore[return-value]

    def same_content(self, other: "ContentSnapshot") -> bool:
        """Duplicate rule: same kind and identical text or image bytes."""
        return self.kind is other.kind and self.payload == other.payload

    def with_id(self, snapshot_id: str) -> "ContentSnapshot":
        return replace(self, id=snapshot_id)


@dataclass(frozen=True)
class Rejection:
    """Classifier outcome for content that must never enter the history."""
    reason: str

    kind = SnapshotKind.REJECTED
