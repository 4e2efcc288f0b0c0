"""Configuration loading from ``MOSAIA_*`` environment variables."""

import logging
import os
from typing import Any, Final, Tuple

logger = logging.getLogger("mosaia.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")

# field name -> environment suffix
_STRING_FIELDS: Final[dict[str, str]] = {
    "api_key": "API_KEY",
    "api_url": "API_URL",
    "version": "API_VERSION",
    "app_url": "APP_URL",
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
}


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _timeout(raw: str | None) -> float | None:
    if not raw or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric timeout value %r", raw)
        return None
    if value <= 0:
        logger.warning("Ignoring non-positive timeout value %r", raw)
        return None
    return value


def config_from_env(prefix: str = "MOSAIA_") -> dict[str, Any]:
    """
    Return configuration fields found in the environment.

    Only variables that are set (and non-empty) are returned, so the result can
    be passed straight to ``ConfigurationManager.initialize`` and still pick up
    the built-in defaults for everything else.

    Recognised variables (with the default prefix)::

        MOSAIA_API_KEY, MOSAIA_API_URL, MOSAIA_API_VERSION, MOSAIA_APP_URL,
        MOSAIA_CLIENT_ID, MOSAIA_CLIENT_SECRET, MOSAIA_VERBOSE, MOSAIA_TIMEOUT
    """
    fields: dict[str, Any] = {}
    for field, suffix in _STRING_FIELDS.items():
        value = os.getenv(prefix + suffix)
        if value:
            fields[field] = value.strip()

    verbose_raw = os.getenv(prefix + "VERBOSE")
    if verbose_raw is not None:
        fields["verbose"] = _truthy(verbose_raw)

    timeout = _timeout(os.getenv(prefix + "TIMEOUT"))
    if timeout is not None:
        fields["timeout"] = timeout

    logger.debug("Loaded configuration keys from environment: %s", sorted(fields))
    return fields
