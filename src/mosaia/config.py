"""Process-wide configuration and session store.

:class:`ConfigurationManager` is the single owner of the merged client
configuration and the current :class:`~mosaia.auth.models.SessionState`.
Every component that needs credentials reads through it on each call; nothing
caches a private copy of the session.

``ConfigurationManager.get_instance()`` returns the shared instance used when
no manager is injected.  Plain construction yields an isolated store, which is
what tests and multi-tenant hosts should use.

All mutation is guarded by a re-entrant lock.  Writes are last-writer-wins;
``refresh_lock`` is a separate lock that request executors hold while they
refresh an expired session so that concurrent callers share one refresh.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Final, Mapping, Protocol, runtime_checkable

from mosaia.auth.errors import NotInitializedError
from mosaia.auth.models import CONFIG_FIELDS, AuthType, MosaiaConfig, SessionState

_LOG = logging.getLogger("mosaia.config")

DEFAULT_API_URL: Final[str] = "https://api.mosaia.ai"
DEFAULT_API_VERSION: Final[str] = "1"
DEFAULT_APP_URL: Final[str] = "https://mosaia.ai"
TOKEN_PREFIX: Final[str] = "Bearer"
CONTENT_TYPE: Final[str] = "application/json"

# Fields whose empty/falsy values fall back to the defaults above.
_DEFAULTED_FIELDS: Final[dict[str, str]] = {
    "api_url": DEFAULT_API_URL,
    "version": DEFAULT_API_VERSION,
    "app_url": DEFAULT_APP_URL,
}


@runtime_checkable
class SessionProvider(Protocol):
    """Minimal contract for anything that owns the live configuration."""

    refresh_lock: threading.Lock

    def initialize(self, config: MosaiaConfig | Mapping[str, Any] | None = None, **overrides: Any) -> MosaiaConfig: ...
    def get_config(self) -> MosaiaConfig: ...
    def update_config(self, key: str, value: Any) -> MosaiaConfig: ...
    def is_initialized(self) -> bool: ...
    def reset(self) -> None: ...


def _coerce_session(session: Any) -> Any:
    if isinstance(session, Mapping):
        return SessionState.from_token_payload(
            session, session.get("auth_type") or AuthType.PASSWORD
        )
    return session


def merge_with_defaults(
    config: MosaiaConfig | Mapping[str, Any] | None = None, **overrides: Any
) -> MosaiaConfig:
    """Return a :class:`MosaiaConfig` built from *config* and *overrides*.

    Falsy ``api_url`` / ``version`` / ``app_url`` are replaced by the defaults;
    every other field is kept as given, ``None`` included.
    A ``session`` given as a plain mapping is converted to :class:`SessionState`.
    """
    if isinstance(config, MosaiaConfig):
        fields: dict[str, Any] = {f.name: getattr(config, f.name) for f in dataclasses.fields(config)}
    else:
        fields = dict(config or {})
    fields.update(overrides)

    unknown = set(fields) - CONFIG_FIELDS
    if unknown:
        raise TypeError(f"Unknown configuration field(s): {', '.join(sorted(unknown))}")

    if "session" in fields:
        fields["session"] = _coerce_session(fields["session"])

    for name, default in _DEFAULTED_FIELDS.items():
        if not fields.get(name):
            fields[name] = default
    if "version" in fields:
        fields["version"] = str(fields["version"])
    return MosaiaConfig(**fields)


class ConfigurationManager(SessionProvider):
    """Single source of truth for configuration and session state."""

    _instance: "ConfigurationManager | None" = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._config: MosaiaConfig | None = None
        self._lock = threading.RLock()
        self.refresh_lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> "ConfigurationManager":
        """Return the process-wide manager, creating it on first use."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # ------------------------------------------------------------------ #
    # Lifecycle                                                          #
    # ------------------------------------------------------------------ #
    def initialize(
        self, config: MosaiaConfig | Mapping[str, Any] | None = None, **overrides: Any
    ) -> MosaiaConfig:
        """Merge *config* over the defaults and store it, replacing any prior value."""
        merged = merge_with_defaults(config, **overrides)
        with self._lock:
            self._config = merged
        _LOG.debug(
            "Configuration initialized api_url=%s version=%s session=%s",
            merged.api_url,
            merged.version,
            merged.session.auth_type.value if merged.session else None,
        )
        return merged

    def reset(self) -> None:
        """Clear the configuration; idempotent."""
        with self._lock:
            self._config = None
        _LOG.debug("Configuration reset")

    def is_initialized(self) -> bool:
        return self._config is not None

    # ------------------------------------------------------------------ #
    # Access                                                             #
    # ------------------------------------------------------------------ #
    def get_config(self) -> MosaiaConfig:
        with self._lock:
            if self._config is None:
                raise NotInitializedError()
            return self._config

    def get_read_only_config(self) -> MosaiaConfig:
        """Return an immutable copy of the current configuration."""
        return dataclasses.replace(self.get_config())

    def update_config(self, key: str, value: Any) -> MosaiaConfig:
        """Replace a single field, preserving all others."""
        if key not in CONFIG_FIELDS:
            raise KeyError(key)
        with self._lock:
            if self._config is None:
                raise NotInitializedError()
            if key == "session":
                value = _coerce_session(value)
            self._config = dataclasses.replace(self._config, **{key: value})
            updated = self._config
        _LOG.debug("Configuration field updated: %s", key)
        return updated

    def get_api_url(self) -> str:
        """Return ``{api_url}/v{version}``."""
        return self.get_config().api_base_url

    def get_app_url(self) -> str:
        return self.get_config().app_url or DEFAULT_APP_URL

    def get_api_key(self) -> str | None:
        return self.get_config().api_key
