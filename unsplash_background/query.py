"""
Unsplash Queries

This module defines the queries that can be made for a background image. A query is a
closed set of frozen dataclasses, each carrying a 'kind' discriminant so that callers
can branch on query.kind (or query.authorized) instead of probing which attributes happen
to be set.

There are two families of query:

- unauthorized queries go to the Unsplash Source service, which redirects straight to an
  image and requires no API key. Exactly one of photo id, collection id, topic id or
  username may be given, and all but the photo id query accept optional keywords.
- the authorized query goes to the Unsplash API proper and always carries an access key.
  The presence of the access key is the only thing that separates the two families.
"""

from dataclasses import dataclass
from typing import Optional, Union
from collections.abc import Sequence


ORIENTATIONS = ("landscape", "portrait", "squarish")
CONTENT_FILTERS = ("low", "high")
MAX_COUNT = 30  # Unsplash API limit for /photos/random


class QueryError(ValueError):
    """Raised when a query is constructed with invalid or conflicting values."""

    pass


@dataclass(frozen=True)
class PhotoIdQuery:
    """Get a specific photo by its ID."""

    photo_id: str
    kind = "photo_id"
    authorized = False


@dataclass(frozen=True)
class CollectionIdQuery:
    """Random photo from a public collection, optionally filtered by comma separated keywords."""

    collection_id: str
    keywords: Optional[str] = None
    kind = "collection_id"
    authorized = False


@dataclass(frozen=True)
class TopicIdQuery:
    """Random photo from a public topic, optionally filtered by comma separated keywords."""

    topic_id: str
    keywords: Optional[str] = None
    kind = "topic_id"
    authorized = False


@dataclass(frozen=True)
class UsernameQuery:
    """Random photo from a single user, optionally filtered by comma separated keywords."""

    username: str
    keywords: Optional[str] = None
    kind = "username"
    authorized = False


@dataclass(frozen=True)
class KeywordsQuery:
    """Random photo, optionally filtered by comma separated keywords."""

    keywords: Optional[str] = None
    kind = "keywords"
    authorized = False


@dataclass(frozen=True)
class AuthorizedQuery:
    """
    Query against the Unsplash API using an application's access key.

    photo_ids, collection_ids and topics accept either a single string or a sequence of strings.
    When photo_ids is given the remaining filters are ignored and each photo is fetched directly.
    See https://unsplash.com/documentation#get-a-random-photo for the meaning of each filter.
    """

    access_key: str
    photo_ids: Union[str, Sequence[str], None] = None
    collection_ids: Union[str, Sequence[str], None] = None
    topics: Union[str, Sequence[str], None] = None
    username: Optional[str] = None
    orientation: Optional[str] = None
    content_filter: Optional[str] = None
    count: Optional[int] = None
    kind = "authorized"
    authorized = True

    def __post_init__(self):

        if not self.access_key or not self.access_key.strip():
            raise QueryError("an authorized query requires a non-empty access key.")

        if self.orientation is not None and self.orientation not in ORIENTATIONS:
            raise QueryError(
                f"invalid orientation '{self.orientation}', expected one of {', '.join(ORIENTATIONS)}."
            )

        if self.content_filter is not None and self.content_filter not in CONTENT_FILTERS:
            raise QueryError(
                f"invalid content filter '{self.content_filter}', expected one of {', '.join(CONTENT_FILTERS)}."
            )

        if self.count is not None and not 1 <= self.count <= MAX_COUNT:
            raise QueryError(f"count must be between 1 and {MAX_COUNT}, got {self.count}.")

        # normalize sequences to tuples so the query stays hashable and immutable
        for name in ("photo_ids", "collection_ids", "topics"):
            value = getattr(self, name)
            if value is None or isinstance(value, str):
                continue

            try:
                value = tuple(value)
            except TypeError:
                raise QueryError(f"{name} must be a string or a sequence of strings.")

            if not all(isinstance(item, str) for item in value):
                raise QueryError(f"{name} must only contain strings, got {value!r}.")

            object.__setattr__(self, name, value)

    @property
    def photo_id_list(self) -> list[str]:
        """Explicit photo ids as a list, empty when none were requested."""

        return as_list(self.photo_ids)


UnauthorizedQuery = Union[
    PhotoIdQuery, CollectionIdQuery, TopicIdQuery, UsernameQuery, KeywordsQuery
]
Query = Union[UnauthorizedQuery, AuthorizedQuery]


def as_list(value: Union[str, Sequence[str], None]) -> list[str]:
    """Normalize a str-or-sequence query field to a list of non-blank strings."""

    if value is None:
        return []

    if isinstance(value, str):
        value = [value]

    return [item for item in value if item and item.strip()]


def query_from_options(
    access_key: str = None,
    photo_id: str = None,
    collection_id: str = None,
    topic_id: str = None,
    username: str = None,
    keywords: str = None,
    **authorized_options,
) -> Query:
    """
    Build the right query variant from a loose set of options, such as command line flags.

    An access key selects the authorized family and every other option is passed through to
    AuthorizedQuery. Without an access key at most one of photo_id, collection_id, topic_id
    and username may be given.
    """

    if access_key:
        if keywords:
            raise QueryError(
                "keywords are only supported without an access key, use topics instead."
            )
        if photo_id and "photo_ids" not in authorized_options:
            authorized_options["photo_ids"] = photo_id
        if collection_id and "collection_ids" not in authorized_options:
            authorized_options["collection_ids"] = collection_id
        if topic_id and "topics" not in authorized_options:
            authorized_options["topics"] = topic_id

        return AuthorizedQuery(
            access_key=access_key, username=username, **authorized_options
        )

    # options that only make sense with an access key
    unexpected = [key for key, value in authorized_options.items() if value]
    if unexpected:
        raise QueryError(
            f"option(s) {', '.join(sorted(unexpected))} require an access key."
        )

    given = [
        name
        for name, value in (
            ("photo_id", photo_id),
            ("collection_id", collection_id),
            ("topic_id", topic_id),
            ("username", username),
        )
        if value
    ]
    if len(given) > 1:
        raise QueryError(f"only one of {', '.join(given)} may be given at a time.")

    if photo_id:
        return PhotoIdQuery(photo_id=photo_id)
    if collection_id:
        return CollectionIdQuery(collection_id=collection_id, keywords=keywords)
    if topic_id:
        return TopicIdQuery(topic_id=topic_id, keywords=keywords)
    if username:
        return UsernameQuery(username=username, keywords=keywords)

    return KeywordsQuery(keywords=keywords)
