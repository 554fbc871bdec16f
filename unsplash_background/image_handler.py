"""
Image Handler

Utilities for downloading images and wrapping them as displayable image handles.

Downloading images: supports only plain GET requests for resources specified by URL, with any
authentication already baked into the URL by the URL builder. Searching for images on a service
and deciding which URLs to request is the job of the fetcher module.

Image handles: each successfully downloaded payload is written to a file in the configured media
directory and wrapped in an ImageHandle. The handle's url is a file:// URI that a presentation
layer can use as a background image. Handles must be revoked once nothing displays them anymore,
which deletes the file.
"""

import io
import uuid
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError
import requests


class UnsplashBackgroundError(Exception):
    """Base class for errors raised while resolving background images."""

    pass


class ImageDownloadError(UnsplashBackgroundError):
    """
    Raised when an image download is unsuccessful: the request was rejected, timed out or
    the server answered with a non-success status code.
    """

    pass


class InvalidImageError(UnsplashBackgroundError):
    """
    Raised when a downloaded payload is not an image. Wrapper around the PIL
    UnidentifiedImageError for better identification of errors during debugging
    and custom error messaging.
    """

    pass


class MalformedResponseError(UnsplashBackgroundError):
    """
    Raised when the Unsplash API answers with something other than the JSON we expect,
    e.g. invalid JSON or photo records without an 'id'.
    """

    pass


@dataclass(eq=False)
class ImageHandle:
    """
    Opaque, revocable reference to a fetched image. Compared by identity: two handles for the
    same photo are still two separate resources that are revoked separately.
    """

    source_url: str
    path: Path
    format: str
    _revoked: bool = field(default=False, init=False, repr=False)

    @property
    def url(self) -> str:
        """Displayable reference to the image, suitable for a css url() value."""

        return self.path.resolve().as_uri()

    @property
    def revoked(self) -> bool:
        return self._revoked

    def revoke(self) -> None:
        """Release the local file behind this handle. Safe to call more than once."""

        if self._revoked:
            return

        self.path.unlink(missing_ok=True)
        self._revoked = True


def validate_image(content: bytes) -> str:
    """
    Determine whether content is a valid image and return its format (e.g. 'JPEG').
    The PIL open method reads the content header to determine file type but doesn't
    actually decode the pixel data, so it is cheap enough to use as a validation method.
    """

    try:
        with Image.open(io.BytesIO(content)) as image:

            return image.format

    except UnidentifiedImageError:
        raise InvalidImageError("content does not appear to be an image.")


def get(url: str, timeout: float = None) -> requests.Response:
    """
    GET url and return the response, raising ImageDownloadError instead of a requests exception.

    The get method from Requests automatically follows redirects (status codes 3XX) on our behalf,
    which is exactly what Unsplash Source relies on: the source url is never the image itself but
    redirects to it. response.url is the last effective url hit in the redirect sequence.
    """

    try:
        r = requests.get(url, timeout=timeout)

    except requests.exceptions.RequestException as error:
        raise ImageDownloadError(f"request to {url} failed: {error}")

    # successful request but received a bad response from the server.
    try:
        r.raise_for_status()
    except requests.exceptions.HTTPError:
        raise ImageDownloadError(
            f"Download error: something went wrong trying to access {url} (status code {r.status_code})"
        )

    return r


def is_json(response: requests.Response) -> bool:
    content_type = response.headers.get("Content-Type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


def read_json(response: requests.Response):
    """Decode a JSON response body, raising MalformedResponseError on invalid JSON."""

    try:
        return response.json()
    except ValueError as error:
        raise MalformedResponseError(
            f"response from {response.url} is not valid JSON: {error}"
        )


def request_json(url: str, timeout: float = None):
    """GET url and decode the JSON body."""

    return read_json(get(url, timeout=timeout))


def save_image(response: requests.Response, dest_dir: Path) -> ImageHandle:
    """
    Validate the binary payload of response and write it to a new file in dest_dir. The file name
    comes from the final url of the response (after redirects) plus a random prefix so that the same
    photo fetched twice never shares a file, and an extension based on the detected image format.
    """

    content = response.content

    try:
        image_format = validate_image(content)
    except InvalidImageError:
        raise InvalidImageError(
            f"Download error: the target resource at {response.url} does not appear to be an image."
        )

    name = Path(urlparse(response.url or "").path).name or "image"
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    destination_path = dest_dir / f"{uuid.uuid4().hex[:8]}-{name}"

    if destination_path.suffix == "":
        destination_path = destination_path.with_name(
            f"{destination_path.name}.{image_format.lower()}"
        )

    try:
        destination_path.write_bytes(content)
    except OSError as error:
        raise ImageDownloadError(f"could not save image to {destination_path}: {error}")

    return ImageHandle(
        source_url=response.url, path=destination_path, format=image_format
    )


def download_image(url: str, dest_dir: Path, timeout: float = None) -> ImageHandle:
    """
    Download the image at url into dest_dir and return a handle to it. This is an API agnostic
    function: any credentials must already be part of the url.

    If downloading the image fails for one of various reasons, will raise an appropriate error
    instead of failing silently.
    """

    return save_image(get(url, timeout=timeout), dest_dir)
