"""Console logging for the API server and sources."""

import logging
import sys

from src.config import DEBUG

LOGGER_NAME = "social_feed"

_configured = False


def get_logger(name: str | None = None) -> logging.Logger:
    """Get the package logger (or a child of it), configuring handlers once."""
    global _configured
    root = logging.getLogger(LOGGER_NAME)

    if not _configured:
        _configured = True
        root.setLevel(logging.DEBUG if DEBUG else logging.INFO)

        # Prevent duplicate handlers on re-import
        if not root.handlers:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(
                logging.Formatter(
                    "%(asctime)s %(levelname)-8s %(message)s", datefmt="%H:%M:%S"
                )
            )
            root.addHandler(console)

    if name:
        return root.getChild(name)
    return root


def set_verbose(verbose: bool = True) -> None:
    """Switch the package logger to DEBUG level."""
    get_logger().setLevel(logging.DEBUG if verbose else logging.INFO)
