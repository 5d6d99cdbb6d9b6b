import logging
import os
import shutil
import subprocess
from typing import List, Optional, Set

from cliprecall.clipboard.base import ClipboardBackend
from cliprecall.exceptions import ClipboardWriteFailure
from cliprecall.utils.images import to_png

logger = logging.getLogger(__name__)


class LinuxClipboard(ClipboardBackend):
    """Clipboard access through wl-clipboard on Wayland, xclip on X11."""

    _IMAGE_TARGETS = (
        "image/png",
        "image/bmp",
        "image/x-ms-bmp",
        "image/jpeg",
        "image/jpg",
        "image/webp",
        "image/tiff",
    )

    def __init__(self, timeout: float = 1.5) -> None:
        self.timeout = timeout

    def _use_wayland(self) -> bool:
        return bool(os.environ.get("WAYLAND_DISPLAY")) and shutil.which("wl-paste") is not None

    def _list_command(self) -> Optional[List[str]]:
        if self._use_wayland():
            return ["wl-paste", "--list-types"]
        if shutil.which("xclip"):
            return ["xclip", "-selection", "clipboard", "-t", "TARGETS", "-o"]
        return None

    def _read_command(self, target: Optional[str] = None) -> Optional[List[str]]:
        if self._use_wayland():
            command = ["wl-paste"]
            if target:
                command.extend(["--type", target])
            if target is None or target.startswith("text/"):
                command.append("--no-newline")
            return command
        if shutil.which("xclip"):
            command = ["xclip", "-selection", "clipboard"]
            if target:
                command.extend(["-t", target])
            command.append("-o")
            return command
        return None

    def _write_command(self, target: Optional[str] = None) -> Optional[List[str]]:
        if shutil.which("wl-copy") and os.environ.get("WAYLAND_DISPLAY"):
            command = ["wl-copy"]
            if target:
                command.extend(["--type", target])
            return command
        if shutil.which("xclip"):
            command = ["xclip", "-selection", "clipboard"]
            if target:
                command.extend(["-t", target])
            return command
        return None

    def available_formats(self) -> Set[str]:
        command = self._list_command()
        if command is None:
            return set()
        return set(self._parse_type_list(self._run_command(command)))

    def read_text(self) -> str:
        command = self._read_command()
        if command is None:
            return ""
        data = self._run_command(command)
        if not data:
            return ""
        return data.decode("utf-8", errors="ignore")

    def read_image(self) -> Optional[bytes]:
        formats = {f.lower() for f in self.available_formats()}
        for target in self._IMAGE_TARGETS:
            if target not in formats:
                continue
            command = self._read_command(target)
            data = self._run_command(command) if command else None
            if not data:
                continue
            try:
                return to_png(data)
            except OSError:
                logger.debug("Could not decode clipboard target %s", target)
        return None

    def write_text(self, text: str) -> None:
        self._write(self._write_command(), text.encode("utf-8"))

    def write_image(self, png: bytes) -> None:
        self._write(self._write_command("image/png"), png)

    def _write(self, command: Optional[List[str]], data: bytes) -> None:
        if command is None:
            raise ClipboardWriteFailure("neither wl-copy nor xclip is available")
        try:
            subprocess.run(command, input=data, check=True, timeout=2.0)
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            raise ClipboardWriteFailure(f"{command[0]} failed", e) from e

    def _parse_type_list(self, data: Optional[bytes]) -> List[str]:
        if not data:
            return []
        text = data.decode("utf-8", errors="ignore")
        return [line.strip() for line in text.splitlines() if line.strip()]

    def _run_command(self, command: List[str]) -> Optional[bytes]:
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=self.timeout,
            )
            return result.stdout
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None
