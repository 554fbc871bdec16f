"""
unsplash-background

Show a rotating Unsplash background in the terminal. This module defines the entry point to the
command line front end: it builds a query from the options given, mounts an UnsplashBackground
for it and reports every image that goes on display until the requested duration is over.

    ====================
    Quickstart
    ====================

    A random photo from Unsplash Source, no account required:

        $ unsplash-background -q mountains -q lake

    Rotate through five landscape photos from the API every ten seconds:

        $ unsplash-background --access-key KEY --topic nature --orientation landscape --count 5 --delay 10000

The access key can also be supplied through the UNSPLASH_ACCESS_KEY environment variable or a .env
file in the working directory.
"""

import asyncio
from io import StringIO
from functools import wraps
from pathlib import Path
from sys import exit

import click
from dotenv import load_dotenv

from unsplash_background.background import UnsplashBackground
from unsplash_background.config import ConfigError
from unsplash_background.config import config
from unsplash_background.config import load_config
from unsplash_background.console import confirm_success
from unsplash_background.console import console
from unsplash_background.console import describe
from unsplash_background.console import fail
from unsplash_background.console import setup_logging
from unsplash_background.console import warn
from unsplash_background.query import CONTENT_FILTERS
from unsplash_background.query import ORIENTATIONS
from unsplash_background.query import QueryError
from unsplash_background.query import query_from_options


class NoImageError(click.ClickException):
    """Raised when a query resolved no image at all."""

    pass


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.UsageError:
            raise
        except Exception as error:
            fail(str(error))
            exit(1)

    return wrapper


def single(values: tuple, option: str):
    """Return the only value of a repeatable option, or None. More than one needs an access key."""

    if len(values) > 1:
        raise click.UsageError(f"{option} can only be repeated together with --access-key")
    return values[0] if values else None


def build_query(
    access_key, photo_ids, collection_ids, topics, username, keywords, **authorized_options
):
    """Translate command line options into a query."""

    keywords = ",".join(keywords) or None

    try:
        if access_key:
            return query_from_options(
                access_key=access_key,
                username=username,
                keywords=keywords,
                photo_ids=photo_ids or None,
                collection_ids=collection_ids or None,
                topics=topics or None,
                **authorized_options,
            )

        return query_from_options(
            photo_id=single(photo_ids, "--photo-id"),
            collection_id=single(collection_ids, "--collection-id"),
            topic_id=single(topics, "--topic"),
            username=username,
            keywords=keywords,
            **authorized_options,
        )

    except QueryError as error:
        raise click.UsageError(str(error))


async def show(query, delay: int, duration: float, settings) -> int:
    """
    Mount a background for query and keep it rotating for duration seconds (by default long enough
    to show every image once). Returns the number of images that were resolved.
    """

    def report(handle):
        if handle is not None:
            confirm_success(
                f":framed_picture:  displaying {handle.source_url} [dim]({handle.path})[/]"
            )

    async with UnsplashBackground(
        query, delay=delay, settings=settings, on_change=report
    ) as background:

        images = len(background.controller.sequence)
        if not images:
            raise NoImageError("no image could be resolved for this query.")

        if duration is None:
            duration = delay / 1000 * images if images > 1 else 0

        if duration:
            describe(f"rotating {images} image(s) every {delay}ms for {duration:g}s ...")
            await asyncio.sleep(duration)

    return images


@click.command(name="unsplash-background")
@click.option("--photo-id", "photo_ids", multiple=True, help="Show a specific photo by ID. Repeatable with --access-key.")
@click.option("--collection-id", "collection_ids", multiple=True, help="Public collection ID to filter selection.")
@click.option("--topic", "topics", multiple=True, help="Public topic ID to filter selection.")
@click.option("--username", help="Limit selection to a single user.")
@click.option(
    "--keyword",
    "-q",
    "keywords",
    multiple=True,
    help="Keyword to refine random results (no access key). Can use multiple times e.g. -q pizza -q lemon",
)
@click.option(
    "--access-key",
    envvar="UNSPLASH_ACCESS_KEY",
    help="Unsplash application access key. Enables the full API.",
)
@click.option("--orientation", type=click.Choice(ORIENTATIONS), help="(--access-key only) filter by photo orientation.")
@click.option("--content-filter", type=click.Choice(CONTENT_FILTERS), help="(--access-key only) limit results by content safety.")
@click.option("--count", type=click.IntRange(1, 30), help="(--access-key only) number of photos to return.")
@click.option("--delay", type=click.IntRange(min=1), help="Delay in milliseconds between images.")
@click.option("--duration", type=click.FloatRange(min=0), help="Seconds to keep rotating. Default: show each image once.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Load settings from a JSON config file.",
)
@click.option(
    "--write-config",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Write the effective settings to a JSON config file and exit.",
)
@click.option("--verbose", "-v", count=True, help="Log more. Repeat for debug output.")
@click.option("--quiet", is_flag=True, help="Silence all output printed to stdout.")
@click.version_option(package_name="unsplash-background")
@catch_errors
def cli(
    photo_ids,
    collection_ids,
    topics,
    username,
    keywords,
    access_key,
    orientation,
    content_filter,
    count,
    delay,
    duration,
    config_path,
    write_config,
    verbose,
    quiet,
):
    """
    Show a rotating background image from Unsplash.
    """

    setup_logging(("WARNING", "INFO", "DEBUG")[min(verbose, 2)])

    # capture all std_out to a junk stream.
    if quiet:
        console.file = StringIO()

    settings = config
    if config_path is not None:
        try:
            settings = load_config(config_path)
        except ConfigError as error:
            raise click.UsageError(str(error))

    if write_config is not None:
        written = settings.generate_config_json(write_config)
        confirm_success(f"settings written to {written}")
        return

    query = build_query(
        access_key,
        photo_ids,
        collection_ids,
        topics,
        username,
        keywords,
        orientation=orientation,
        content_filter=content_filter,
        count=count,
    )

    if query.kind == "photo_id" and keywords:
        warn("keywords are ignored when a photo id is given")

    asyncio.run(show(query, delay or settings.DEFAULT_DELAY_MS, duration, settings))


def main():

    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
