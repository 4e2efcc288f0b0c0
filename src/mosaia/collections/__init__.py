"""Resource collections built on the authenticated request executor."""

from .base import BaseCollection  # noqa: F401

__all__ = ["BaseCollection"]
