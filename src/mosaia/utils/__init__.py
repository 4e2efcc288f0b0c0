"""Utility helpers shared across the package."""

from .environment import config_from_env  # noqa: F401
from .logging import mask_headers, mask_sensitive, setup_logging  # noqa: F401

__all__ = ["config_from_env", "mask_headers", "mask_sensitive", "setup_logging"]
