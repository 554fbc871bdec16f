"""
unsplash_background Configuration Management

This file handles utilities related to generating and loading configuration variables. The defaults
work out of the box and no file is required: the module level 'config' instance is what the rest of
the package uses unless a caller passes its own UnsplashConfig. Raise a ConfigError for any issues
that arise in processing or retrieving these configuration variables.

A configuration file is a flat JSON object whose keys match the UnsplashConfig field names, e.g.

    {"DEFAULT_DELAY_MS": 10000, "IMAGE_SIZE": "full"}
"""

import json
import tempfile
from dataclasses import dataclass
from dataclasses import asdict
from dataclasses import field
from dataclasses import fields
from pathlib import Path


class ConfigError(Exception):
    """Raise when an issue occurs with handling unsplash_background configuration."""

    pass


class PathEncoder(json.JSONEncoder):
    """
    custom encoder adds support for serializing pathlib objects as strings
    """

    def default(self, o):
        if isinstance(o, Path):
            return str(o)

        else:
            return json.JSONEncoder.default(self, o)


def _media_dir() -> Path:
    # created on first download; handle files are uniquely named and revoked individually
    return Path(tempfile.gettempdir()) / "unsplash-background"


@dataclass
class UnsplashConfig:
    """
    Dataclass to represent configuration variables for unsplash_background. Provides a namespace
    for the service endpoints, timing defaults and the directory where fetched image payloads
    are written while they are in use.
    """

    SOURCE_URL: str = "https://source.unsplash.com"
    API_URL: str = "https://api.unsplash.com"
    DEFAULT_DELAY_MS: int = 5000
    REQUEST_TIMEOUT: float = 10.0
    IMAGE_SIZE: str = "regular"  # key into a photo record's 'urls' object
    MEDIA_DIR: Path = field(default_factory=_media_dir)

    def __post_init__(self):
        """
        Handle the case where a new UnsplashConfig is created from JSON, which cannot
        deserialize a str into a Path.
        """

        self.MEDIA_DIR = Path(self.MEDIA_DIR).expanduser()
        self.SOURCE_URL = self.SOURCE_URL.removesuffix("/")
        self.API_URL = self.API_URL.removesuffix("/")

        if self.DEFAULT_DELAY_MS <= 0:
            raise ConfigError(
                f"DEFAULT_DELAY_MS must be positive, got {self.DEFAULT_DELAY_MS}."
            )

    def generate_config_json(self, dest_file: Path) -> Path:
        """
        Write the UnsplashConfig to file, serializing to JSON. Returns the path of the written file.

        Warning: will overwrite any existing file at dest_file.
        """

        try:
            to_json = json.dumps(
                asdict(self), sort_keys=True, indent=4, cls=PathEncoder
            )

        except TypeError as error:
            raise ConfigError(
                f"There was an error trying to serialize config data to JSON: {error}"
            )

        dest_file = Path(dest_file).expanduser()

        try:
            dest_file.parent.mkdir(parents=True, exist_ok=True)
            with open(dest_file, "w") as file:

                file.write(to_json)

        except OSError as error:
            raise ConfigError(
                f"There was an error saving the configuration file: {error}."
            )

        return dest_file


def load_config(config_src: Path) -> UnsplashConfig:
    """
    Load a config JSON file and instantiate its variables as an UnsplashConfig dataclass.
    Keys that are not UnsplashConfig fields are rejected. Raise ConfigError if the file can't
    be read or parsed.
    """

    config_src = Path(config_src).expanduser()

    try:
        with config_src.open("r") as file:

            from_json = json.loads(file.read())

    except json.JSONDecodeError as error:
        raise ConfigError(f"There was an issue reading the config: {error}")

    except OSError as error:
        raise ConfigError(f"There was an issue opening the config: {error}")

    if not isinstance(from_json, dict):
        raise ConfigError(f"Config at {config_src} must be a JSON object.")

    known = {f.name for f in fields(UnsplashConfig)}
    unknown = set(from_json) - known
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(sorted(unknown))}")

    try:
        return UnsplashConfig(**from_json)
    except (TypeError, AttributeError) as error:
        raise ConfigError(f"Invalid value in config: {error}")


config = UnsplashConfig()
