import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Set

import win32clipboard as wc
import win32con
from PIL import Image, ImageGrab

from cliprecall.clipboard.base import ClipboardBackend
from cliprecall.exceptions import ClipboardReadFailure, ClipboardWriteFailure
from cliprecall.utils.images import decode_image, image_to_png, to_dib

logger = logging.getLogger(__name__)

_STANDARD_FORMATS = {
    win32con.CF_TEXT: "CF_TEXT",
    win32con.CF_BITMAP: "CF_BITMAP",
    win32con.CF_DIB: "CF_DIB",
    win32con.CF_UNICODETEXT: "CF_UNICODETEXT",
    win32con.CF_HDROP: "CF_HDROP",
}


class WindowsClipboard(ClipboardBackend):

    @contextmanager
    def _opened(self) -> Iterator[bool]:
        opened = False
        for _ in range(3):
            try:
                wc.OpenClipboard()
                opened = True
                break
            except Exception:
                time.sleep(0.05)
        try:
            yield opened
        finally:
            if opened:
                try:
                    wc.CloseClipboard()
                except Exception:
                    pass

    def available_formats(self) -> Set[str]:
        formats: Set[str] = set()
        with self._opened() as opened:
            if not opened:
                raise ClipboardReadFailure("clipboard is locked by another process")
            fmt = wc.EnumClipboardFormats(0)
            while fmt:
                name = _STANDARD_FORMATS.get(fmt)
                if name is None:
                    try:
                        name = wc.GetClipboardFormatName(fmt)
                    except Exception:
                        name = str(fmt)
                formats.add(name)
                fmt = wc.EnumClipboardFormats(fmt)
        return formats

    def read_text(self) -> str:
        with self._opened() as opened:
            if not opened:
                raise ClipboardReadFailure("clipboard is locked by another process")
            if not wc.IsClipboardFormatAvailable(wc.CF_UNICODETEXT):
                return ""
            try:
                text = wc.GetClipboardData(wc.CF_UNICODETEXT)
            except Exception:
                return ""
        return text or ""

    def read_image(self) -> Optional[bytes]:
        try:
            clipboard_data = ImageGrab.grabclipboard()
        except Exception:
            return None

        # A list means file paths, which are never images for our purposes.
        if isinstance(clipboard_data, Image.Image):
            return image_to_png(clipboard_data)
        return None

    def write_text(self, text: str) -> None:
        with self._opened() as opened:
            if not opened:
                raise ClipboardWriteFailure("clipboard is locked by another process")
            try:
                wc.EmptyClipboard()
                wc.SetClipboardData(wc.CF_UNICODETEXT, text)
            except Exception as e:
                raise ClipboardWriteFailure("SetClipboardData failed", e) from e

    def write_image(self, png: bytes) -> None:
        dib_data = to_dib(decode_image(png))
        with self._opened() as opened:
            if not opened:
                raise ClipboardWriteFailure("clipboard is locked by another process")
            try:
                wc.EmptyClipboard()
                wc.SetClipboardData(win32con.CF_DIB, dib_data)
            except Exception as e:
                raise ClipboardWriteFailure("SetClipboardData failed", e) from e
