"""HTTP surfaces built on Starlette."""

from .oauth_callback import create_oauth_app  # noqa: F401

__all__ = ["create_oauth_app"]
