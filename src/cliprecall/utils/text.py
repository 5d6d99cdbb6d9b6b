import re

PREVIEW_LIMIT = 100
PREVIEW_CUT = 97
IMAGE_PREVIEW = "Image"

_WHITESPACE = re.compile(r"\s+")


def create_preview(text: str) -> str:
    """Single-line summary: whitespace collapsed, at most 100 characters."""
    cleaned = _WHITESPACE.sub(" ", text).strip()
    if len(cleaned) > PREVIEW_LIMIT:
        return cleaned[:PREVIEW_CUT] + "..."
    return cleaned
