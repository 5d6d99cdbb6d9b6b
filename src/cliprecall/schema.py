from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from cliprecall.models.snapshot import ContentSnapshot, SnapshotKind
from cliprecall.utils.images import DATA_URL_PREFIX, from_data_url, to_data_url
from cliprecall.utils.text import IMAGE_PREVIEW, create_preview

# 9999-12-31T23:59:59.999Z
MAX_TIMESTAMP = 253402300799999


class SnapshotRecord(BaseModel):
    """Persisted and wire form of a history entry."""
    id: str = Field(min_length=1)
    kind: SnapshotKind
    text: Optional[str] = None
    previewImage: Optional[str] = None
    preview: str = ""
    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP)  # epoch milliseconds

    @model_validator(mode="after")
    def _check_payload(self) -> "SnapshotRecord":
        if self.kind is SnapshotKind.REJECTED:
            raise ValueError("rejected content is never stored")
        if self.kind.is_text and not self.text:
            raise ValueError(f"{self.kind.value} record requires text")
        if self.kind is SnapshotKind.IMAGE and not (self.previewImage or "").startswith(DATA_URL_PREFIX):
            raise ValueError("image record requires a PNG previewImage")
        return self

    @classmethod
    def from_snapshot(cls, snapshot: ContentSnapshot) -> "SnapshotRecord":
        preview_image = None
        if snapshot.kind is SnapshotKind.IMAGE:
            preview_image = snapshot.preview_image or to_data_url(snapshot.image_bytes)  # type: ignore[arg-type]
        return cls(
            id=snapshot.id,
            kind=snapshot.kind,
            text=snapshot.text,
            previewImage=preview_image,
            preview=snapshot.preview,
            timestamp=int(snapshot.created_at.timestamp() * 1000),
        )

    def to_snapshot(self) -> ContentSnapshot:
        created_at = datetime.fromtimestamp(self.timestamp / 1000)
        if self.kind is SnapshotKind.IMAGE:
            return ContentSnapshot(
                kind=self.kind,
                payload=from_data_url(self.previewImage),  # type: ignore[arg-type]
                preview=self.preview or IMAGE_PREVIEW,
                preview_image=self.previewImage,
                created_at=created_at,
                id=self.id,
            )
        return ContentSnapshot(
            kind=self.kind,
            payload=self.text,  # type: ignore[arg-type]
            preview=self.preview or create_preview(self.text or ""),
            created_at=created_at,
            id=self.id,
        )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class HistoryLimitUpdate(BaseModel):
    limit: int = Field(ge=1, le=10000)


class SettingsUpdate(BaseModel):
    notificationsEnabled: Optional[bool] = None
    windowFollowsCursor: Optional[bool] = None
    showStartupMessage: Optional[bool] = None
    keyboardShortcut: Optional[str] = Field(default=None, min_length=1)


class OpenRequest(BaseModel):
    forceTopRight: bool = False
