"""Service layer for ClipRecall."""

from .clipboard_service import ClipboardService
from .history_service import HistoryStore
from .hotkey_service import HotkeyService
from .session_service import SessionController, SessionState

__all__ = ["ClipboardService", "HistoryStore", "HotkeyService", "SessionController", "SessionState"]
