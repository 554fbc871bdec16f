"""
UnsplashBackground

A thin presentation shell around the fetcher and the rotation controller. Mounting runs one fetch
pass for the query and hands the resulting handles to a RotationController; unmounting tears the
controller down, which stops the timer and revokes every handle.

The shell itself only merges styles: whatever style the caller supplies passes through untouched,
except that 'backgroundImage' is always set from the image on display when there is one.
"""

import logging
from typing import Any, Optional

from unsplash_background.config import UnsplashConfig
from unsplash_background.config import config
from unsplash_background.fetcher import fetch_images
from unsplash_background.image_handler import ImageHandle
from unsplash_background.query import Query
from unsplash_background.rotation import RotationController

logger = logging.getLogger(__name__)

CLASS_NAME = "rp-unsplash-background"


def background_style(
    handle: Optional[ImageHandle], style: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """Merge the caller's style under the computed background image."""
    merged = dict(style or {})
    if handle is not None:
        merged["backgroundImage"] = f"url({handle.url})"
    return merged


class UnsplashBackground:
    """
    Background image for a query, rotating every 'delay' milliseconds when more than one image
    was resolved.

        async with UnsplashBackground(KeywordsQuery("mountains"), delay=10000) as background:
            print(background.style)
    """

    class_name = CLASS_NAME

    def __init__(
        self,
        query: Query,
        delay: Optional[int] = None,
        style: Optional[dict[str, Any]] = None,
        children: Any = None,
        settings: Optional[UnsplashConfig] = None,
        on_change=None,
    ) -> None:
        self.query = query
        self.settings = settings or config
        self.delay = delay if delay is not None else self.settings.DEFAULT_DELAY_MS
        self.caller_style = dict(style or {})
        self.children = children
        self.controller = RotationController(
            delay=self.delay / 1000, on_change=on_change
        )
        self.mounted = False
        # bumped by every unmount; a fetch pass only installs its result if it is unchanged
        self._generation = 0

    async def __aenter__(self) -> "UnsplashBackground":
        await self.mount()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.unmount()

    async def mount(self) -> None:
        """
        Fetch images for the query once and start rotating them. If the background is unmounted
        while the fetch is in flight, the images it resolved are revoked instead of installed.
        """
        if self.mounted:
            return
        self.mounted = True
        generation = self._generation

        try:
            handles = await fetch_images(self.query, self.settings)
        except BaseException:
            if generation == self._generation:
                self.mounted = False
            raise

        if generation != self._generation:
            logger.debug("discarding %d image(s) fetched after unmount", len(handles))
            for handle in handles:
                handle.revoke()
            return

        if not handles:
            logger.warning("no images resolved for %s query", self.query.kind)

        await self.controller.replace(handles)

    async def unmount(self) -> None:
        self._generation += 1
        await self.controller.close()
        self.mounted = False

    @property
    def image(self) -> Optional[ImageHandle]:
        return self.controller.current

    @property
    def style(self) -> dict[str, Any]:
        return background_style(self.image, self.caller_style)

    def render(self) -> dict[str, Any]:
        return {
            "className": self.class_name,
            "style": self.style,
            "children": self.children,
        }
