"""
Rotation

The RotationController owns the sequence of resolved image handles and the index of the one that
is currently displayed. It has two states:

- idle: no timer running. This is the state whenever the sequence holds fewer than two images.
- rotating: a single asyncio task advances the index every 'delay' seconds.

The timer task only lives while the controller is rotating. Every exit path (a new sequence,
stop(), close() or leaving an 'async with' block) cancels it and waits for it to finish before
anything else happens, so there is never more than one timer per controller.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Optional

from unsplash_background.image_handler import ImageHandle

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 5.0

IDLE = "idle"
ROTATING = "rotating"


class RotationController:
    """
    Rotate through a sequence of image handles, showing each for 'delay' seconds. on_change is
    called with the handle on display (or None) whenever it changes.
    """

    def __init__(
        self,
        delay: float = DEFAULT_DELAY_SECONDS,
        on_change: Optional[Callable[[Optional[ImageHandle]], None]] = None,
    ) -> None:
        if delay <= 0:
            raise ValueError(f"delay must be positive, got {delay}")

        self.delay = delay
        self.on_change = on_change
        self._sequence: list[ImageHandle] = []
        self._index = 0
        self._task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "RotationController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def sequence(self) -> tuple[ImageHandle, ...]:
        return tuple(self._sequence)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[ImageHandle]:
        """The handle on display, or None when there is nothing to show."""
        if not self._sequence:
            return None
        return self._sequence[self._index]

    @property
    def state(self) -> str:
        return ROTATING if self._task is not None else IDLE

    async def replace(self, handles: Iterable[ImageHandle]) -> None:
        """
        Install a new sequence. The running timer is stopped first, handles that are not part of
        the new sequence are revoked, the index goes back to 0 and a timer is started again only
        if there are at least two images to rotate through.
        """
        handles = list(handles)
        await self.stop()

        keep = {id(handle) for handle in handles}
        for handle in self._sequence:
            if id(handle) not in keep:
                handle.revoke()

        self._sequence = handles
        self._index = 0
        self._notify()

        if len(self._sequence) >= 2:
            self._task = asyncio.create_task(self._loop())
            logger.debug(
                "rotating %d images every %ss", len(self._sequence), self.delay
            )

    def advance(self) -> None:
        """Move to the next image, wrapping around at the end of the sequence."""
        if not self._sequence:
            return
        self._index = (self._index + 1) % len(self._sequence)
        self._notify()

    async def stop(self) -> None:
        """Cancel the timer, if any. Safe to call when already idle."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        """Stop rotating and revoke every handle. The controller ends up idle and empty."""
        await self.stop()
        for handle in self._sequence:
            handle.revoke()
        self._sequence = []
        self._index = 0

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.delay)
            self.advance()

    def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(self.current)
        except Exception:
            logger.exception("on_change callback failed")
