"""Generic CRUD collection bound to one API resource path.

Collections only build requests; reading the session, refreshing it and
attaching credentials are all the request executor's job.
"""

from __future__ import annotations

from typing import Any, Mapping

from mosaia.auth.errors import ApiError
from mosaia.client import APIClient, APIResponse
from mosaia.config import ConfigurationManager, SessionProvider

INVALID_RESPONSE = "Invalid response from API"


class BaseCollection:
    """CRUD operations on ``/{uri}`` and ``/{uri}/{id}``.

    List reads return ``{"data": [...], "paging": ...}``; every other call
    returns the unwrapped ``data`` value.  API failures raise :class:`ApiError`.
    """

    def __init__(self, uri: str, *, config_manager: SessionProvider | None = None) -> None:
        self.uri = "/" + uri.strip("/")
        self.config_manager = config_manager or ConfigurationManager.get_instance()
        self._client: APIClient | None = None

    @property
    def client(self) -> APIClient:
        if self._client is None:
            self._client = APIClient(config_manager=self.config_manager)
        return self._client

    def _path(self, id: str | None = None) -> str:
        return f"{self.uri}/{id}" if id else self.uri

    @staticmethod
    def _unwrap(response: APIResponse) -> Any:
        data = response.raise_for_error()
        if data is None:
            raise ApiError(INVALID_RESPONSE, status=response.status_code)
        return data

    def get(self, params: Mapping[str, Any] | None = None, id: str | None = None) -> Any:
        response = self.client.get(self._path(id), params)
        data = self._unwrap(response)
        if isinstance(data, list):
            return {"data": data, "paging": response.paging}
        return data

    def create(self, entity: Mapping[str, Any]) -> Any:
        return self._unwrap(self.client.post(self.uri, dict(entity)))

    def update(
        self, id: str, updates: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        if not id:
            raise ValueError("Entity ID is required for update")
        return self._unwrap(self.client.put(self._path(id), dict(updates), params=params))

    def delete(self, id: str, params: Mapping[str, Any] | None = None) -> None:
        if not id:
            raise ValueError("Entity ID is required for deletion")
        self.client.delete(self._path(id), params).raise_for_error()
