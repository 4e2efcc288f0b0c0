"""Top-level entry point tying configuration, auth and requests together."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from mosaia.auth.models import MosaiaConfig
from mosaia.auth.oauth import OAuth
from mosaia.auth.service import AuthService
from mosaia.client import APIClient
from mosaia.collections.base import BaseCollection
from mosaia.config import ConfigurationManager, SessionProvider
from mosaia.utils.environment import config_from_env
from mosaia.utils.logging import setup_logging


class Mosaia:
    """Client facade.

    Constructing a :class:`Mosaia` initializes its configuration manager
    (the process-wide one unless *config_manager* is given); every helper it
    hands out reads credentials from that manager.

    >>> client = Mosaia(api_key="...", client_id="...")
    >>> client.collection("agents").get()
    """

    def __init__(
        self,
        config: MosaiaConfig | Mapping[str, Any] | None = None,
        *,
        config_manager: SessionProvider | None = None,
        **fields: Any,
    ) -> None:
        self.config_manager = config_manager or ConfigurationManager.get_instance()
        merged = self.config_manager.initialize(config, **fields)
        if merged.verbose:
            setup_logging(verbose=True)
        self._client: APIClient | None = None

    @classmethod
    def from_env(
        cls, *, prefix: str = "MOSAIA_", config_manager: SessionProvider | None = None, **fields: Any
    ) -> "Mosaia":
        """Build a client from ``MOSAIA_*`` variables; *fields* take precedence."""
        values = config_from_env(prefix)
        values.update(fields)
        return cls(config_manager=config_manager, **values)

    @property
    def config(self) -> MosaiaConfig:
        return self.config_manager.get_config()

    @config.setter
    def config(self, value: MosaiaConfig | Mapping[str, Any]) -> None:
        self.config_manager.initialize(value)

    @property
    def auth(self) -> AuthService:
        return AuthService(config_manager=self.config_manager)

    @property
    def client(self) -> APIClient:
        if self._client is None:
            self._client = APIClient(config_manager=self.config_manager)
        return self._client

    def oauth(
        self,
        redirect_uri: str,
        scopes: Iterable[str] | None = None,
        state: str | None = None,
    ) -> OAuth:
        """Return an :class:`OAuth` helper configured from this client."""
        return OAuth(
            config_manager=self.config_manager,
            redirect_uri=redirect_uri,
            scopes=scopes,
            state=state,
        )

    def collection(self, uri: str) -> BaseCollection:
        return BaseCollection(uri, config_manager=self.config_manager)
