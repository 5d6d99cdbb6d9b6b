"""Single-threaded timer scheduling.

Every engine callback (poll ticks, hotkey presses, surface events, grace-window
re-checks) runs on one event loop, so engine state is never touched from two
places at once. Code on other threads hands work over with
``call_soon_threadsafe``.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable


class TimerHandle(ABC):

    @abstractmethod
    def cancel(self) -> None:
        pass


class Scheduler(ABC):

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        pass

    @abstractmethod
    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        pass


class _AsyncioHandle(TimerHandle):

    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioScheduler(Scheduler):

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return _AsyncioHandle(self.loop.call_later(delay, callback, *args))

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        self.loop.call_soon_threadsafe(callback, *args)
