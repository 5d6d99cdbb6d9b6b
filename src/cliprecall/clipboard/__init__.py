from cliprecall.clipboard.base import ClipboardBackend, RawClipboardRead
from cliprecall.clipboard.factory import get_clipboard_backend, get_clipboard_class

__all__ = [
    'ClipboardBackend',
    'RawClipboardRead',
    'get_clipboard_backend',
    'get_clipboard_class',
]
