"""
console.py - provide application level access to Rich Console objects for writing to stdout
and stderr, and route the package's log records through a Rich handler.

Library modules never print. They log through logging.getLogger(__name__) and the command line
front end decides, via setup_logging(), where those records end up.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

unsplash_theme = Theme(
    {"warning": "orange_red1", "fail": "bold red", "confirm": "", "describe": ""}
)

console = Console(theme=unsplash_theme)
error_console = Console(theme=unsplash_theme, stderr=True)
log_console = Console(theme=unsplash_theme, stderr=True)

LOGGER_NAME = "unsplash_background"

"""
Formatting helpers
"""


def warn(msg: str):
    """
    Format msg and print to stderr.
    """

    error_console.print(
        f":exclamation_mark-emoji: [bold]warning: [/] {msg}", style="warning"
    )


def describe(msg: str, **kwargs):
    """
    Format descriptive msg and print to stdout.
    """

    console.print(f"{msg}", style="describe", **kwargs)


def confirm_success(msg: str, **kwargs):
    """
    Format confirmation msg and print to stdout. Accept any additional kwargs that console.print from
    rich module exposes.
    """

    console.print(f"{msg}", style="confirm", **kwargs)


def fail(msg: str):
    """
    Format failure msg and print to stderr.
    """

    error_console.print(f":x-emoji: failed. {msg}", style="fail")


def setup_logging(level="WARNING") -> logging.Logger:
    """
    Attach a RichHandler writing to log_console to the package logger. Calling this more than once
    only updates the level.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=log_console, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)

    return logger
