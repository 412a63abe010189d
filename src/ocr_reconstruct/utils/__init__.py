"""Utilities: geometry, image loading, logging and configuration."""

from .logging import setup_logging, setup_logger, get_logger
from .images import load_image, validate_image

__all__ = [
    "setup_logging",
    "setup_logger",
    "get_logger",
    "load_image",
    "validate_image",
]
