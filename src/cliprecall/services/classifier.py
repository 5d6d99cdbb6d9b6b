"""Turns raw clipboard reads into typed snapshots.

Copying a selection in Finder or Explorer floods the clipboard with paths and
file-list formats; those reads are rejected so they never reach the history.
"""

import logging
import re
from datetime import datetime
from typing import Iterable, Optional, Union

from cliprecall.clipboard.base import RawClipboardRead
from cliprecall.models.snapshot import ContentSnapshot, Rejection, SnapshotKind
from cliprecall.utils.images import to_data_url, to_png
from cliprecall.utils.text import IMAGE_PREVIEW, create_preview

logger = logging.getLogger(__name__)

FILE_FORMAT_MARKERS = (
    "text/uri-list",
    "application/x-moz-file",
    "files",
    "nsfilenamespboardtype",
    "public.file-url",
    "corepasteboardflavortype 0x6675726c",
    "dyn.ah62d4rv4gu8yc6durvwwa3xmrvw1gkdusm1044pxqyuha2pxsvw0e55bsmwca7d3sbwu",
    "x-special/gnome-copied-files",
    "cf_hdrop",
    "filename",
)

FILE_PATH_PATTERNS = (
    re.compile(r"^/[^/\n]+.*\.\w+$", re.MULTILINE),
    re.compile(r"^[A-Z]:\\.*\.\w+$", re.MULTILINE),
    re.compile(r"^file:///", re.MULTILINE),
)

RICH_TEXT_PATTERNS = (
    re.compile(r"<[^>]+>"),
    re.compile(r"&[a-zA-Z]+;"),
    re.compile(r"\{\\rtf1"),
    re.compile(r"\{\\colortbl"),
)

Classification = Union[ContentSnapshot, Rejection]


def has_file_format(formats: Iterable[str]) -> bool:
    for fmt in formats:
        lowered = fmt.lower()
        if any(marker in lowered for marker in FILE_FORMAT_MARKERS):
            return True
    return False


def looks_like_file_path(text: Optional[str]) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in FILE_PATH_PATTERNS)


def contains_files(formats: Iterable[str], text: Optional[str]) -> bool:
    return has_file_format(formats) or looks_like_file_path(text)


def is_rich_text(text: str) -> bool:
    return any(pattern.search(text) for pattern in RICH_TEXT_PATTERNS)


def classify(raw: RawClipboardRead, now: Optional[datetime] = None) -> Classification:
    created_at = now or datetime.now()

    if has_file_format(raw.formats):
        return Rejection("clipboard holds files or folders")
    if looks_like_file_path(raw.text):
        return Rejection("text looks like a file path")

    if raw.text:
        kind = SnapshotKind.RICH_TEXT if is_rich_text(raw.text) else SnapshotKind.TEXT
        return ContentSnapshot(
            kind=kind,
            payload=raw.text,
            preview=create_preview(raw.text),
            created_at=created_at,
        )

    if raw.image:
        try:
            png = to_png(raw.image)
        except OSError as e:
            logger.warning("Ignoring undecodable clipboard image: %s", e)
            return Rejection("image could not be encoded")
        return ContentSnapshot(
            kind=SnapshotKind.IMAGE,
            payload=png,
            preview=IMAGE_PREVIEW,
            preview_image=to_data_url(png),
            created_at=created_at,
        )

    return Rejection("clipboard is empty")
