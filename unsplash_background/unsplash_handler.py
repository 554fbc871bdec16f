"""
Unsplash URL Builder

This module turns queries into well-formed GET request URLs. It does no I/O: the fetcher module
passes the URLs built here to the image handler, which handles all of the request and image
validation and keeps this file limited to constructing URLs.

Two services are targeted:

- Unsplash Source (source.unsplash.com), the public unauthenticated service. It supports only GET
  requests on a limited number of path-style endpoints and, when an endpoint is hit, redirects the
  client to an image resource. Keywords are not key value pairs but a bare comma separated list
  appended as the query string, so that part is built by hand.
- The Unsplash API (api.unsplash.com), which requires an application access key passed as the
  'client_id' parameter. See https://unsplash.com/documentation#get-a-random-photo
"""

import re
from functools import wraps
from urllib.parse import quote_plus
from urllib.parse import urlencode

from unsplash_background.config import config
from unsplash_background.query import AuthorizedQuery
from unsplash_background.query import UnauthorizedQuery
from unsplash_background.query import as_list


def base_url(setting: str):
    """
    Use this decorator to inject the base url into each builder function. The default is read from
    the named UnsplashConfig setting at call time, so should the url change it can be done in one
    place. Callers may still pass base_url explicitly.
    """

    def wrapper(func):
        @wraps(func)
        def inner(*args, base_url: str = None, **kwargs):
            if base_url is None:
                base_url = getattr(config, setting)
            return func(*args, base_url=base_url.removesuffix("/"), **kwargs)

        return inner

    return wrapper


def keyword_segment(keywords: str = None) -> str:
    """
    Format keywords for the Unsplash Source query string. Blank keywords yield an empty string.
    All whitespace is stripped, including between keywords ("nature, water" -> "?nature,water").
    Nothing else is escaped: the Source service accepts a loose keyword grammar.
    """

    if keywords is None or not keywords.strip():
        return ""

    return "?" + re.sub(r"\s", "", keywords)


def make_unsplash_url(path_components: list[str]) -> str:
    return "/".join(component for component in path_components if component)


@base_url("SOURCE_URL")
def build_unauthorized_query_url(query: UnauthorizedQuery, *args, **kwargs) -> str:
    """
    Build the Unsplash Source url for an unauthorized query, e.g.

        PhotoIdQuery("abc")                  -> https://source.unsplash.com/abc
        CollectionIdQuery("123", "water")    -> https://source.unsplash.com/collection/123/?water
        UsernameQuery("timmy")               -> https://source.unsplash.com/user/timmy
        TopicIdQuery("nature") or KeywordsQuery()  -> https://source.unsplash.com/random
    """

    base_url: str = kwargs.get("base_url")

    if query.authorized:
        raise TypeError("authorized queries are built with build_authorized_query_url")

    keywords = None

    if query.kind == "photo_id":
        path = [query.photo_id]
    elif query.kind == "collection_id":
        path = ["collection", query.collection_id]
        keywords = query.keywords
    elif query.kind == "username":
        path = ["user", query.username]
        keywords = query.keywords
    else:
        # the Source service has no topic endpoint, topics fall back to a random photo
        path = ["random"]
        keywords = query.keywords

    return make_unsplash_url([base_url, *path, keyword_segment(keywords)])


def authorized_params(query: AuthorizedQuery) -> list[tuple[str, str]]:
    """
    Ordered query parameters for the /photos/random endpoint. Absent values are left out entirely
    and 'client_id' always comes last. Collections take precedence over topics: only one of
    'collections' and 'query' is ever sent.
    """

    params = []

    collections = as_list(query.collection_ids)
    topics = as_list(query.topics)

    if collections:
        params.append(("collections", ",".join(collections)))
    elif topics:
        params.append(("query", ",".join(topics)))

    if query.username:
        params.append(("username", query.username))

    if query.orientation:
        params.append(("orientation", query.orientation))

    if query.content_filter:
        params.append(("content_filter", query.content_filter))

    params.append(("count", str(query.count if query.count is not None else 1)))
    params.append(("client_id", query.access_key))

    return params


@base_url("API_URL")
def build_authorized_query_url(query: AuthorizedQuery, *args, **kwargs) -> str:
    """
    Build the Unsplash API search url for an authorized query, e.g.

        https://api.unsplash.com/photos/random?collections=1,2&count=3&client_id=KEY
    """

    base_url: str = kwargs.get("base_url")

    if not query.authorized:
        raise TypeError("unauthorized queries are built with build_unauthorized_query_url")

    return f"{base_url}/photos/random?{urlencode(authorized_params(query), safe=',')}"


@base_url("API_URL")
def build_photo_url(photo_id: str, access_key: str, *args, **kwargs) -> str:
    """Build the Unsplash API url for a single photo, e.g. https://api.unsplash.com/photos/abc?client_id=KEY"""

    base_url: str = kwargs.get("base_url")

    return f"{base_url}/photos/{quote_plus(photo_id)}?{urlencode([('client_id', access_key)])}"
