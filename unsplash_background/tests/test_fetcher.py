"""
Tests for fetcher.py

Network calls are mocked by patching requests.get as seen from the image handler (see
test_image_handler.py for the pattern). Because the fetcher runs those calls in worker threads,
the patched get is routed by url with a small helper instead of a single return_value.

Coroutine tests are run by pytest-asyncio.
"""

import asyncio
import json
import logging
import time
import unittest.mock

import pytest

from unsplash_background import fetcher
from unsplash_background.query import AuthorizedQuery
from unsplash_background.query import KeywordsQuery
from unsplash_background.query import PhotoIdQuery

# following entities are tested in this module:
from unsplash_background.fetcher import fetch_authorized
from unsplash_background.fetcher import fetch_images
from unsplash_background.fetcher import fetch_photos
from unsplash_background.fetcher import fetch_unauthorized
from unsplash_background.fetcher import image_url_from_record
from unsplash_background.fetcher import photo_ids_from_records
from unsplash_background.image_handler import MalformedResponseError

API = "https://api.unsplash.com"
IMAGES = "https://images.unsplash.com"


@pytest.fixture
def routes(make_response, jpeg_bytes):
    """
    Return a factory building a fake requests.get that answers by url. Photo endpoints answer with a
    photo record pointing at images.unsplash.com, which answers with the jpeg payload. Extra routes
    override or add to these; a route value of an int is answered with that status code. Latency
    maps a photo id to the seconds each of its requests takes.
    """

    def inner(extra: dict = None, latency: dict = None):

        extra = extra or {}
        latency = latency or {}

        def fake_get(url, timeout=None):

            # latency is keyed by the last path segment, i.e. the photo id
            time.sleep(latency.get(url.split("?")[0].rsplit("/", 1)[-1], 0))

            if url in extra:
                answer = extra[url]
                if isinstance(answer, int):
                    return make_response(b"", url=url, status_code=answer)
                return make_response(
                    json.dumps(answer).encode(), url=url, content_type="application/json"
                )

            if url.startswith(f"{API}/photos/"):
                photo_id = url.removeprefix(f"{API}/photos/").split("?")[0]
                record = {"id": photo_id, "urls": {"regular": f"{IMAGES}/{photo_id}"}}
                return make_response(
                    json.dumps(record).encode(), url=url, content_type="application/json"
                )

            return make_response(jpeg_bytes, url=url)

        return fake_get

    return inner


def photo_url(photo_id: str) -> str:
    return f"{API}/photos/{photo_id}?client_id=KEY"


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_unauthorized_photo_id(mock_get, settings, routes):
    """A photo id query makes exactly one call to the Source service and resolves one handle."""

    mock_get.side_effect = routes()

    handles = await fetch_unauthorized(PhotoIdQuery("abc123"), settings)

    mock_get.assert_called_once_with(
        "https://source.unsplash.com/abc123", timeout=settings.REQUEST_TIMEOUT
    )
    assert len(handles) == 1
    assert handles[0].path.exists()
    assert handles[0].path.parent == settings.MEDIA_DIR


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_unauthorized_failure_is_logged(mock_get, settings, routes, caplog):

    mock_get.side_effect = routes({"https://source.unsplash.com/random": 500})

    with caplog.at_level(logging.ERROR, logger="unsplash_background"):
        handles = await fetch_unauthorized(KeywordsQuery(), settings)

    assert handles == []
    assert "could not fetch image" in caplog.text


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_authorized_photo_ids(mock_get, settings, routes):
    """Explicit photo ids are fetched directly: photo record first, then the image it links to."""

    mock_get.side_effect = routes()

    handles = await fetch_authorized(
        AuthorizedQuery(access_key="KEY", photo_ids=["a", "b"]), settings
    )

    assert [handle.source_url for handle in handles] == [f"{IMAGES}/a", f"{IMAGES}/b"]
    called = {call.args[0] for call in mock_get.call_args_list}
    assert called == {photo_url("a"), photo_url("b"), f"{IMAGES}/a", f"{IMAGES}/b"}


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_authorized_photo_endpoint_serving_image(
    mock_get, settings, make_response, jpeg_bytes
):
    """When the photo endpoint answers with an image body, that body is used directly."""

    mock_get.side_effect = lambda url, timeout=None: make_response(jpeg_bytes, url=url)

    handles = await fetch_authorized(AuthorizedQuery(access_key="KEY", photo_ids="a"), settings)

    assert [handle.source_url for handle in handles] == [photo_url("a")]
    mock_get.assert_called_once()


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_photos_preserves_order_with_staggered_latency(
    mock_get, settings, routes
):
    """c answers fastest and a slowest, the result is still a, b, c."""

    mock_get.side_effect = routes(latency={"a": 0.15, "b": 0.08, "c": 0.01})

    start = time.monotonic()
    handles = await fetch_photos(["a", "b", "c"], "KEY", settings)
    elapsed = time.monotonic() - start

    assert [handle.source_url for handle in handles] == [
        f"{IMAGES}/a",
        f"{IMAGES}/b",
        f"{IMAGES}/c",
    ]
    # scattered, not one after the other: a and b each hit two urls, serial would be ~0.48s
    assert elapsed < 0.45


@pytest.mark.asyncio
async def test_fetch_photos_order_is_input_order_not_completion_order(make_handle):
    completed = []
    latency = {"a": 0.05, "b": 0.03, "c": 0.0}

    async def fake_fetch_photo(photo_id, access_key, settings=None):
        await asyncio.sleep(latency[photo_id])
        completed.append(photo_id)
        return make_handle(photo_id)

    with unittest.mock.patch.object(fetcher, "fetch_photo", fake_fetch_photo):
        handles = await fetch_photos(["a", "b", "c"], "KEY")

    assert completed == ["c", "b", "a"]
    assert [handle.path.stem for handle in handles] == ["a", "b", "c"]


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_photos_partial_failure(mock_get, settings, routes, caplog):
    """A failing photo is dropped without aborting its siblings."""

    mock_get.side_effect = routes({photo_url("b"): 404})

    with caplog.at_level(logging.WARNING, logger="unsplash_background"):
        handles = await fetch_photos(["a", "b", "c"], "KEY", settings)

    assert [handle.source_url for handle in handles] == [f"{IMAGES}/a", f"{IMAGES}/c"]
    assert "could not fetch photo b" in caplog.text
    assert "KEY" not in caplog.text


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_authorized_search(mock_get, settings, routes):
    """The search response order decides the result order."""

    search_url = f"{API}/photos/random?query=nature&count=3&client_id=KEY"
    mock_get.side_effect = routes(
        {search_url: [{"id": "z"}, {"id": "m"}, {"id": "a"}]},
        latency={"z": 0.05},
    )

    handles = await fetch_authorized(
        AuthorizedQuery(access_key="KEY", topics="nature", count=3), settings
    )

    assert [handle.source_url for handle in handles] == [
        f"{IMAGES}/z",
        f"{IMAGES}/m",
        f"{IMAGES}/a",
    ]
    assert mock_get.call_args_list[0].args[0] == search_url


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_authorized_search_single_record(mock_get, settings, routes):

    search_url = f"{API}/photos/random?count=1&client_id=KEY"
    mock_get.side_effect = routes({search_url: {"id": "solo"}})

    handles = await fetch_authorized(AuthorizedQuery(access_key="KEY"), settings)

    assert [handle.source_url for handle in handles] == [f"{IMAGES}/solo"]


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_authorized_search_malformed(mock_get, settings, routes, caplog):

    search_url = f"{API}/photos/random?count=1&client_id=KEY"
    mock_get.side_effect = routes({search_url: [{"slug": "no-id"}]})

    with caplog.at_level(logging.ERROR, logger="unsplash_background"):
        handles = await fetch_authorized(AuthorizedQuery(access_key="KEY"), settings)

    assert handles == []
    assert "photo search failed" in caplog.text


@pytest.mark.asyncio
@unittest.mock.patch("unsplash_background.image_handler.requests.get", autospec=True)
async def test_fetch_authorized_search_network_failure(mock_get, settings, routes, caplog):

    search_url = f"{API}/photos/random?count=1&client_id=KEY"
    mock_get.side_effect = routes({search_url: 401})

    with caplog.at_level(logging.ERROR, logger="unsplash_background"):
        handles = await fetch_authorized(AuthorizedQuery(access_key="KEY"), settings)

    assert handles == []
    assert "KEY" not in caplog.text


@pytest.mark.asyncio
async def test_fetch_images_dispatches_on_authorization():
    authorized = AuthorizedQuery(access_key="KEY")
    unauthorized = KeywordsQuery()

    with unittest.mock.patch.object(
        fetcher, "fetch_authorized", unittest.mock.AsyncMock(return_value=["auth"])
    ) as mock_authorized, unittest.mock.patch.object(
        fetcher, "fetch_unauthorized", unittest.mock.AsyncMock(return_value=["source"])
    ) as mock_unauthorized:

        assert await fetch_images(authorized) == ["auth"]
        assert await fetch_images(unauthorized) == ["source"]

    mock_authorized.assert_awaited_once_with(authorized, None)
    mock_unauthorized.assert_awaited_once_with(unauthorized, None)


@pytest.mark.asyncio
async def test_fetch_images_never_raises(caplog):

    with unittest.mock.patch.object(
        fetcher, "fetch_unauthorized", unittest.mock.AsyncMock(side_effect=RuntimeError("boom"))
    ):
        with caplog.at_level(logging.ERROR, logger="unsplash_background"):
            assert await fetch_images(KeywordsQuery()) == []

    assert "boom" in caplog.text


@pytest.mark.parametrize(
    "records,expected",
    [
        ([{"id": "a"}, {"id": "b"}], ["a", "b"]),
        ({"id": "a"}, ["a"]),
        ([], []),
    ],
)
def test_photo_ids_from_records(records, expected):
    assert photo_ids_from_records(records) == expected


@pytest.mark.parametrize("records", ["nope", None, [{"id": ""}], [{"id": 3}], ["a"]])
def test_photo_ids_from_records_malformed(records):
    with pytest.raises(MalformedResponseError):
        photo_ids_from_records(records)


def test_image_url_from_record_falls_back():
    record = {"urls": {"full": "https://images.unsplash.com/full"}}

    assert image_url_from_record(record, "small") == "https://images.unsplash.com/full"


def test_image_url_from_record_malformed():
    with pytest.raises(MalformedResponseError):
        image_url_from_record({"id": "a"}, "regular")
