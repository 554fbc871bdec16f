"""
Fetcher

Resolve a query into image handles. This is where the network I/O implied by the URL builder
actually happens.

- unauthorized queries make a single request to Unsplash Source, follow the redirect and wrap the
  image that comes back in one handle.
- authorized queries either fetch an explicit list of photo ids, or search the /photos/random
  endpoint and then fetch every photo the search returned, one request per photo id.

Per-photo requests are scattered with asyncio.gather and joined before returning, so the result
order is always the order of the ids (or of the search results), never completion order. The
blocking requests calls run in worker threads via asyncio.to_thread; everything that touches the
results runs on the event loop.

Nothing in here raises to the caller. Failures are logged and the fetch pass simply resolves
fewer handles: one failed photo does not cancel its siblings.
"""

import asyncio
import logging

from unsplash_background import image_handler
from unsplash_background.config import UnsplashConfig
from unsplash_background.config import config
from unsplash_background.image_handler import ImageHandle
from unsplash_background.image_handler import MalformedResponseError
from unsplash_background.image_handler import UnsplashBackgroundError
from unsplash_background.query import AuthorizedQuery
from unsplash_background.query import Query
from unsplash_background.query import UnauthorizedQuery
from unsplash_background.unsplash_handler import build_authorized_query_url
from unsplash_background.unsplash_handler import build_photo_url
from unsplash_background.unsplash_handler import build_unauthorized_query_url

logger = logging.getLogger(__name__)

# tried in order after the configured size when a photo record lacks it
FALLBACK_SIZES = ("regular", "full", "raw")


def redact(error, access_key: str) -> str:
    """Error messages may contain request urls; keep the access key out of the logs."""

    return str(error).replace(access_key, "***")


def photo_ids_from_records(records) -> list[str]:
    """
    Extract photo ids from a /photos/random response. With a count the API answers with a list of
    photo records, without one it answers with a single record; both are accepted.
    """

    if isinstance(records, dict):
        records = [records]

    if not isinstance(records, list):
        raise MalformedResponseError(
            f"expected a list of photo records, got {type(records).__name__}."
        )

    ids = []
    for position, record in enumerate(records):
        photo_id = record.get("id") if isinstance(record, dict) else None
        if not isinstance(photo_id, str) or not photo_id:
            raise MalformedResponseError(f"photo record {position} has no 'id'.")
        ids.append(photo_id)

    return ids


def image_url_from_record(record, size: str) -> str:
    """Pick the image url of the requested size out of a single photo record."""

    urls = record.get("urls") if isinstance(record, dict) else None
    if not isinstance(urls, dict):
        raise MalformedResponseError("photo record has no 'urls'.")

    for key in (size, *FALLBACK_SIZES):
        if urls.get(key):
            return urls[key]

    raise MalformedResponseError(f"photo record has no '{size}' image url.")


async def fetch_photo(
    photo_id: str, access_key: str, settings: UnsplashConfig = None
) -> ImageHandle:
    """
    Fetch a single photo by id through the API. The photo endpoint normally answers with the photo
    record as JSON, in which case the image url of the configured size is downloaded next; an
    image body is used as is.
    """

    settings = settings or config
    url = build_photo_url(photo_id, access_key, base_url=settings.API_URL)

    response = await asyncio.to_thread(
        image_handler.get, url, settings.REQUEST_TIMEOUT
    )

    if not image_handler.is_json(response):
        return image_handler.save_image(response, settings.MEDIA_DIR)

    record = image_handler.read_json(response)
    image_url = image_url_from_record(record, settings.IMAGE_SIZE)
    logger.debug("photo %s resolved to %s", photo_id, image_url)

    return await asyncio.to_thread(
        image_handler.download_image,
        image_url,
        settings.MEDIA_DIR,
        settings.REQUEST_TIMEOUT,
    )


async def fetch_photos(
    photo_ids: list[str], access_key: str, settings: UnsplashConfig = None
) -> list[ImageHandle]:
    """
    Fetch every photo id concurrently and return the handles in the order of photo_ids. Ids that
    fail are logged and left out; the rest are still returned.
    """

    results = await asyncio.gather(
        *(fetch_photo(photo_id, access_key, settings) for photo_id in photo_ids),
        return_exceptions=True,
    )

    handles = []
    for photo_id, result in zip(photo_ids, results):
        if isinstance(result, ImageHandle):
            handles.append(result)
        elif isinstance(result, Exception):
            logger.warning(
                "could not fetch photo %s: %s", photo_id, redact(result, access_key)
            )
        else:
            raise result

    return handles


async def fetch_unauthorized(
    query: UnauthorizedQuery, settings: UnsplashConfig = None
) -> list[ImageHandle]:
    """
    Fetch an image from Unsplash Source. Returns a list holding exactly one handle, or an empty list
    when the request fails.
    """

    settings = settings or config
    url = build_unauthorized_query_url(query, base_url=settings.SOURCE_URL)
    logger.info("fetching %s", url)

    try:
        handle = await asyncio.to_thread(
            image_handler.download_image,
            url,
            settings.MEDIA_DIR,
            settings.REQUEST_TIMEOUT,
        )
    except UnsplashBackgroundError as error:
        logger.error("could not fetch image from %s: %s", url, error)
        return []

    return [handle]


async def fetch_authorized(
    query: AuthorizedQuery, settings: UnsplashConfig = None
) -> list[ImageHandle]:
    """
    Fetch images from the Unsplash API. Explicit photo ids are fetched directly; otherwise the
    /photos/random endpoint is searched and each photo in the response is fetched by id.
    """

    settings = settings or config

    photo_ids = query.photo_id_list
    if photo_ids:
        return await fetch_photos(photo_ids, query.access_key, settings)

    url = build_authorized_query_url(query, base_url=settings.API_URL)

    try:
        records = await asyncio.to_thread(
            image_handler.request_json, url, settings.REQUEST_TIMEOUT
        )
        photo_ids = photo_ids_from_records(records)
    except UnsplashBackgroundError as error:
        logger.error("photo search failed: %s", redact(error, query.access_key))
        return []

    logger.info("search returned %d photo(s)", len(photo_ids))
    return await fetch_photos(photo_ids, query.access_key, settings)


async def fetch_images(
    query: Query, settings: UnsplashConfig = None
) -> list[ImageHandle]:
    """
    Resolve any query into a list of image handles. Never raises for a failed fetch: the worst case
    is an empty list.
    """

    try:
        if query.authorized:
            return await fetch_authorized(query, settings)
        else:
            return await fetch_unauthorized(query, settings)

    except Exception:
        logger.exception("unexpected error while fetching images for %s", query.kind)
        return []
