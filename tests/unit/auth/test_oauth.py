"""Unit tests for the OAuth Authorization-Code + PKCE helper."""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from mosaia.auth.errors import OAuthError, TransportError
from mosaia.auth.models import AuthType, OAuthConfig
from mosaia.auth.oauth import OAuth
from mosaia.auth.pkce import code_challenge_s256

REDIRECT_URI = "https://app.example.com/callback"


# --------------------------------------------------------------------------- #
# Construction fallbacks                                                      #
# --------------------------------------------------------------------------- #
def test_fields_fall_back_to_manager_config(manager) -> None:
    manager.initialize(client_id="cfg-client", api_url="https://api.test", version="2")
    oauth = OAuth(config_manager=manager, redirect_uri=REDIRECT_URI)
    assert oauth.config.client_id == "cfg-client"
    assert oauth.config.api_url == "https://api.test"
    assert oauth.config.api_version == "2"
    assert oauth.config.app_url == "https://mosaia.ai"


def test_explicit_fields_win(manager) -> None:
    manager.initialize(client_id="cfg-client")
    oauth = OAuth(
        OAuthConfig(client_id="explicit", app_url="https://app.test"),
        config_manager=manager,
    )
    assert oauth.config.client_id == "explicit"
    assert oauth.config.app_url == "https://app.test"


def test_builtin_defaults_without_manager_config(manager) -> None:
    oauth = OAuth(config_manager=manager, client_id="c")
    assert oauth.config.api_url == "https://api.mosaia.ai"
    assert oauth.config.api_version == "1"
    assert oauth.token_url == "https://api.mosaia.ai/v1/auth/token"


def test_client_id_required(manager) -> None:
    with pytest.raises(ValueError, match="clientId"):
        OAuth(config_manager=manager)


def test_scopes_are_normalised_to_tuple(manager) -> None:
    oauth = OAuth(config_manager=manager, client_id="c", scopes=["read", "write"])
    assert oauth.config.scopes == ("read", "write")


# --------------------------------------------------------------------------- #
# Authorization URL                                                           #
# --------------------------------------------------------------------------- #
def test_authorization_url(manager) -> None:
    oauth = OAuth(
        config_manager=manager,
        client_id="client-1",
        redirect_uri=REDIRECT_URI,
        scopes=["read", "write"],
        state="opaque-123",
    )

    request = oauth.get_authorization_url_and_code_verifier()

    parsed = urlparse(request.url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://mosaia.ai/oauth"
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    assert query == {
        "client_id": "client-1",
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "code_challenge": code_challenge_s256(request.code_verifier),
        "code_challenge_method": "S256",
        "scope": "read,write",
        "state": "opaque-123",
    }
    assert len(request.code_verifier) == 128
    assert request.code_challenge == query["code_challenge"]


def test_authorization_url_without_state(manager) -> None:
    oauth = OAuth(config_manager=manager, client_id="c", redirect_uri=REDIRECT_URI, scopes=["read"])
    query = parse_qs(urlparse(oauth.get_authorization_url_and_code_verifier().url).query)
    assert "state" not in query


def test_fresh_verifier_per_call(manager) -> None:
    oauth = OAuth(config_manager=manager, client_id="c", redirect_uri=REDIRECT_URI, scopes=["read"])
    first = oauth.get_authorization_url_and_code_verifier()
    second = oauth.get_authorization_url_and_code_verifier()
    assert first.code_verifier != second.code_verifier


@pytest.mark.parametrize(
    ("fields", "match"),
    [
        ({"redirect_uri": REDIRECT_URI}, "scopes"),
        ({"redirect_uri": REDIRECT_URI, "scopes": []}, "scopes"),
        ({"scopes": ["read"]}, "redirectUri"),
    ],
)
def test_authorization_url_preconditions(manager, fields, match) -> None:
    oauth = OAuth(config_manager=manager, client_id="c", **fields)
    with pytest.raises(ValueError, match=match):
        oauth.get_authorization_url_and_code_verifier()


def test_with_state_returns_copy(manager) -> None:
    oauth = OAuth(config_manager=manager, client_id="c", state="a")
    other = oauth.with_state("b")
    assert other.config.state == "b"
    assert oauth.config.state == "a"


# --------------------------------------------------------------------------- #
# Code exchange                                                               #
# --------------------------------------------------------------------------- #
def test_exchange_code(manager, fake_response, monkeypatch) -> None:
    manager.initialize(client_id="client-1", api_url="https://api.test", verbose=True)
    captured: dict[str, Any] = {}

    def fake_post(url: str, *, data: dict, headers: dict, timeout: Any) -> Any:
        captured.update(url=url, data=data)
        return fake_response(
            200,
            {"access_token": "oauth-at", "refresh_token": "oauth-rt", "sub": "u1", "exp": 123},
        )

    monkeypatch.setattr(requests, "post", fake_post, raising=True)
    oauth = OAuth(config_manager=manager, redirect_uri=REDIRECT_URI)

    config = oauth.authenticate_with_code_and_verifier("the-code", "the-verifier")

    assert captured["url"] == "https://api.test/v1/auth/token"
    assert captured["data"] == {
        "client_id": "client-1",
        "redirect_uri": REDIRECT_URI,
        "code": "the-code",
        "code_verifier": "the-verifier",
        "grant_type": "authorization_code",
    }
    assert config.api_key == "oauth-at"
    assert config.session.auth_type is AuthType.OAUTH
    assert config.session.refresh_token == "oauth-rt"
    assert config.session.exp == "123"
    # manager settings carried over, result not stored
    assert config.verbose is True
    assert manager.get_config().api_key is None


def test_exchange_code_without_manager_config(manager, fake_response, monkeypatch) -> None:
    monkeypatch.setattr(
        requests, "post", lambda url, **kw: fake_response(200, {"access_token": "at"})
    )
    oauth = OAuth(config_manager=manager, client_id="c", redirect_uri=REDIRECT_URI)
    config = oauth.authenticate_with_code_and_verifier("code", "verifier")
    assert config.client_id == "c"
    assert config.api_url == "https://api.mosaia.ai"
    assert config.api_key == "at"


def test_exchange_code_requires_redirect_uri(manager) -> None:
    oauth = OAuth(config_manager=manager, client_id="c")
    with pytest.raises(ValueError, match="redirectUri"):
        oauth.authenticate_with_code_and_verifier("code", "verifier")


def test_exchange_code_provider_error(manager, fake_response, monkeypatch) -> None:
    body = {"error": "invalid_grant", "error_description": "code already used"}
    monkeypatch.setattr(requests, "post", lambda url, **kw: fake_response(400, body))
    oauth = OAuth(config_manager=manager, client_id="c", redirect_uri=REDIRECT_URI)

    with pytest.raises(OAuthError) as info:
        oauth.authenticate_with_code_and_verifier("code", "verifier")

    assert info.value.error == "invalid_grant"
    assert info.value.to_payload() == body


def test_exchange_code_non_json_success(manager, fake_response, monkeypatch) -> None:
    monkeypatch.setattr(
        requests, "post", lambda url, **kw: fake_response(200, text="<html>oops</html>")
    )
    oauth = OAuth(config_manager=manager, client_id="c", redirect_uri=REDIRECT_URI)
    with pytest.raises(TransportError):
        oauth.authenticate_with_code_and_verifier("code", "verifier")


def test_authorization_url_custom_app_url(manager) -> None:
    oauth = OAuth(
        OAuthConfig(
            client_id="c1",
            redirect_uri="https://a/cb",
            app_url="https://app",
            scopes=("read", "write"),
            state="s1",
        ),
        config_manager=manager,
    )
    parsed = urlparse(oauth.get_authorization_url_and_code_verifier().url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://app/oauth"
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    assert query["scope"] == "read,write"
    assert query["state"] == "s1"
    assert query["redirect_uri"] == "https://a/cb"
