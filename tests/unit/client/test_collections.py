"""Unit tests for BaseCollection and the Mosaia facade."""

from __future__ import annotations

import pytest

from mosaia import Mosaia
from mosaia.auth.errors import ApiError
from mosaia.auth.oauth import OAuth
from mosaia.auth.service import AuthService
from mosaia.collections import BaseCollection
from mosaia.config import ConfigurationManager


@pytest.fixture()
def agents(manager, fake_session, fake_response):
    manager.initialize(api_key="tok")
    collection = BaseCollection("agents", config_manager=manager)

    def _with(*responses):
        collection.client.session = fake_session(*responses)
        return collection

    return _with


# --------------------------------------------------------------------------- #
# BaseCollection                                                              #
# --------------------------------------------------------------------------- #
def test_get_list_returns_data_and_paging(agents, fake_response) -> None:
    col = agents(fake_response(200, {"data": [{"id": "1"}], "paging": {"total": 1}}))
    assert col.get({"limit": 1}) == {"data": [{"id": "1"}], "paging": {"total": 1}}
    call = col.client.session.calls[0]
    assert call["url"] == "https://api.mosaia.ai/v1/agents"
    assert call["params"] == {"limit": 1}


def test_get_by_id(agents, fake_response) -> None:
    col = agents(fake_response(200, {"data": {"id": "1"}}))
    assert col.get(id="1") == {"id": "1"}
    assert col.client.session.calls[0]["url"].endswith("/agents/1")


def test_create_update_delete(agents, fake_response) -> None:
    col = agents(
        fake_response(201, {"data": {"id": "2"}}),
        fake_response(200, {"data": {"id": "2", "name": "y"}}),
        fake_response(204, None),
    )
    assert col.create({"name": "x"}) == {"id": "2"}
    assert col.update("2", {"name": "y"}, {"force": True}) == {"id": "2", "name": "y"}
    assert col.delete("2") is None

    methods = [(c["method"], c["url"].rsplit("/v1", 1)[1]) for c in col.client.session.calls]
    assert methods == [("POST", "/agents"), ("PUT", "/agents/2"), ("DELETE", "/agents/2")]


def test_api_error_is_raised(agents, fake_response) -> None:
    col = agents(fake_response(404, {"error": {"message": "Agent not found", "status": 404}}))
    with pytest.raises(ApiError) as info:
        col.get(id="missing")
    assert info.value.status == 404


def test_empty_response_is_invalid(agents, fake_response) -> None:
    col = agents(fake_response(200, {"data": None}))
    with pytest.raises(ApiError, match="Invalid response from API"):
        col.create({"name": "x"})


def test_update_and_delete_require_id(agents, fake_response) -> None:
    col = agents(fake_response(200, {}))
    with pytest.raises(ValueError):
        col.update("", {"name": "x"})
    with pytest.raises(ValueError):
        col.delete("")


# --------------------------------------------------------------------------- #
# Mosaia facade                                                               #
# --------------------------------------------------------------------------- #
def test_mosaia_initializes_manager(manager) -> None:
    client = Mosaia(config_manager=manager, api_key="k", client_id="c")
    assert manager.get_api_key() == "k"
    assert client.config.client_id == "c"
    assert isinstance(client.auth, AuthService)
    assert client.client is client.client
    assert client.collection("/agents/").uri == "/agents"


def test_mosaia_uses_process_wide_manager_by_default() -> None:
    Mosaia(api_key="global")
    assert ConfigurationManager.get_instance().get_api_key() == "global"


def test_mosaia_config_setter_replaces_config(manager) -> None:
    client = Mosaia(config_manager=manager, api_key="a")
    client.config = {"api_key": "b"}
    assert manager.get_api_key() == "b"


def test_mosaia_oauth_helper(manager) -> None:
    client = Mosaia(config_manager=manager, client_id="c")
    oauth = client.oauth("https://cb", ["read"], state="s")
    assert isinstance(oauth, OAuth)
    assert oauth.config.client_id == "c"
    assert oauth.config.scopes == ("read",)
    assert oauth.config.state == "s"
