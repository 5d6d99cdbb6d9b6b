import logging
from typing import Optional, Set

from AppKit import NSPasteboard, NSPasteboardTypePNG, NSPasteboardTypeString, NSPasteboardTypeTIFF
from Foundation import NSData

from cliprecall.clipboard.base import ClipboardBackend
from cliprecall.exceptions import ClipboardWriteFailure
from cliprecall.utils.images import to_png

logger = logging.getLogger(__name__)


class MacOSClipboard(ClipboardBackend):

    def _pasteboard(self):
        return NSPasteboard.generalPasteboard()

    def available_formats(self) -> Set[str]:
        types = self._pasteboard().types() or []
        return {str(t) for t in types}

    def read_text(self) -> str:
        text = self._pasteboard().stringForType_(NSPasteboardTypeString)
        return str(text) if text else ""

    def read_image(self) -> Optional[bytes]:
        pasteboard = self._pasteboard()
        types = pasteboard.types() or []

        for pb_type in (NSPasteboardTypePNG, NSPasteboardTypeTIFF):
            if pb_type not in types:
                continue
            data = pasteboard.dataForType_(pb_type)
            if not data:
                continue
            try:
                return to_png(bytes(data))
            except OSError:
                logger.debug("Could not decode pasteboard type %s", pb_type)
        return None

    def write_text(self, text: str) -> None:
        pasteboard = self._pasteboard()
        pasteboard.clearContents()
        if not pasteboard.setString_forType_(text, NSPasteboardTypeString):
            raise ClipboardWriteFailure("NSPasteboard rejected the text")

    def write_image(self, png: bytes) -> None:
        pasteboard = self._pasteboard()
        pasteboard.clearContents()
        ns_data = NSData.dataWithBytes_length_(png, len(png))
        if not pasteboard.setData_forType_(ns_data, NSPasteboardTypePNG):
            raise ClipboardWriteFailure("NSPasteboard rejected the image")
