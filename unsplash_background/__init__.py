"""
unsplash_background - rotating background images from Unsplash

Resolve a query (photo id, collection, topic, username or keywords, with or without an API access
key) into image handles and rotate through them on an interval.
"""

from unsplash_background.background import UnsplashBackground
from unsplash_background.background import background_style
from unsplash_background.fetcher import fetch_authorized
from unsplash_background.fetcher import fetch_images
from unsplash_background.fetcher import fetch_unauthorized
from unsplash_background.image_handler import ImageHandle
from unsplash_background.query import AuthorizedQuery
from unsplash_background.query import CollectionIdQuery
from unsplash_background.query import KeywordsQuery
from unsplash_background.query import PhotoIdQuery
from unsplash_background.query import TopicIdQuery
from unsplash_background.query import UsernameQuery
from unsplash_background.query import query_from_options
from unsplash_background.rotation import RotationController
from unsplash_background.unsplash_handler import build_authorized_query_url
from unsplash_background.unsplash_handler import build_unauthorized_query_url
