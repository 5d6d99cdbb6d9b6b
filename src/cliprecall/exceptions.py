"""Exceptions raised at the engine's I/O boundaries."""

from typing import Optional


class ClipRecallError(Exception):
    """Base exception for all ClipRecall errors."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error

    def __str__(self):
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (Caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base_msg


class PersistenceFailure(ClipRecallError):
    """Reading or writing the preference store failed."""
    pass


class ClipboardReadFailure(ClipRecallError):
    """The platform clipboard could not be read."""
    pass


class ClipboardWriteFailure(ClipRecallError):
    """A snapshot could not be written back onto the clipboard."""
    pass


class HotkeyRegistrationFailure(ClipRecallError):
    """The global shortcut could not be registered."""
    pass


class SurfaceCreationFailure(ClipRecallError):
    """The presentation surface could not be created."""
    pass
