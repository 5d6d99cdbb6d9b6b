from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Set


@dataclass(frozen=True)
class RawClipboardRead:
    """Unclassified view of the clipboard at one instant."""
    text: str = ""
    image: Optional[bytes] = None
    formats: FrozenSet[str] = field(default_factory=frozenset)


class ClipboardBackend(ABC):
    """Platform clipboard primitives.

    Reads never raise for "nothing there": empty text is ``""`` and a missing
    image is ``None``. A clipboard that cannot be reached raises
    ``ClipboardReadFailure``; writes raise ``ClipboardWriteFailure``.
    """

    @abstractmethod
    def read_text(self) -> str:
        pass

    @abstractmethod
    def read_image(self) -> Optional[bytes]:
        pass

    @abstractmethod
    def available_formats(self) -> Set[str]:
        pass

    @abstractmethod
    def write_text(self, text: str) -> None:
        pass

    @abstractmethod
    def write_image(self, png: bytes) -> None:
        pass
