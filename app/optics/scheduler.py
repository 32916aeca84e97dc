from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional


logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.025


class RedrawScheduler:
    """Single-slot delayed call.

    Each `schedule()` cancels the pending call (if any) and arms a new one, so
    a burst of requests fires `callback` once, `delay` seconds after the last
    request.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        delay: float = DEFAULT_DELAY,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self._callback = callback
        self._delay = delay
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("superseded pending redraw")
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
