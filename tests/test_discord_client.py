from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from arena_auth.clients.discord import (
    DiscordApiError,
    DiscordOAuthClient,
    OAuthTokenExchangeError,
)
from arena_auth.core.config import DiscordSettings


def _settings(**overrides) -> DiscordSettings:
    values = {
        "OAUTH2_CLIENT_ID": "client",
        "OAUTH2_CLIENT_SECRET": "secret",
        "REDIRECT_URI": "https://api.example.com/api/auth/callback",
        "OAUTH2_TOKEN_URL": "https://discord.test/api/oauth2/token",
        "DISCORD_API_URL": "https://discord.test/api",
        "GUILD_ID": "guild-1",
        "DISCORD_DEFAULT_ROLE": "role-1",
        "DISCORD_BOT_TOKEN": "bot-token",
    }
    values.update(overrides)
    return DiscordSettings(**values)


class Recorder:
    def __init__(self, responder) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


def _client(responder, **overrides) -> tuple[DiscordOAuthClient, Recorder]:
    recorder = Recorder(responder)
    client = DiscordOAuthClient(
        _settings(**overrides), transport=httpx.MockTransport(recorder)
    )
    return client, recorder


def test_authorization_url_carries_client_scopes_and_state() -> None:
    client = DiscordOAuthClient(_settings(SCOPES="identify, guilds.join"))

    url = client.build_authorization_url(state="abc_-123")

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
        "https://discord.com/oauth2/authorize"
    )
    assert params == {
        "client_id": ["client"],
        "redirect_uri": ["https://api.example.com/api/auth/callback"],
        "response_type": ["code"],
        "scope": ["identify guilds.join"],
        "state": ["abc_-123"],
    }


@pytest.mark.asyncio
async def test_exchange_authorization_code_posts_form() -> None:
    client, recorder = _client(
        lambda request: httpx.Response(
            200,
            json={"access_token": "a", "refresh_token": "r", "expires_in": 604800},
        )
    )

    grant = await client.exchange_authorization_code("the-code")

    assert (grant.access_token, grant.refresh_token, grant.expires_in) == ("a", "r", 604800)
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://discord.test/api/oauth2/token"
    assert parse_qs(request.content.decode()) == {
        "grant_type": ["authorization_code"],
        "code": ["the-code"],
        "redirect_uri": ["https://api.example.com/api/auth/callback"],
        "client_id": ["client"],
        "client_secret": ["secret"],
    }


@pytest.mark.asyncio
async def test_refresh_token_allows_missing_rotation() -> None:
    client, recorder = _client(
        lambda request: httpx.Response(200, json={"access_token": "a2", "expires_in": 60})
    )

    grant = await client.refresh_token("old-refresh")

    assert grant.refresh_token is None
    assert grant.expires_at(1_000.7) == 1_060
    form = parse_qs(recorder.requests[0].content.decode())
    assert form["grant_type"] == ["refresh_token"]
    assert form["refresh_token"] == ["old-refresh"]
    assert "redirect_uri" not in form


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "invalid_grant"}),
        httpx.Response(200, json={"access_token": "a"}),
        httpx.Response(200, text="<html>oops</html>"),
    ],
)
async def test_token_errors_raise_exchange_error(response) -> None:
    client, _ = _client(lambda request: response)

    with pytest.raises(OAuthTokenExchangeError):
        await client.refresh_token("r")


@pytest.mark.asyncio
async def test_token_timeout_raises_exchange_error() -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client, _ = _client(timeout)

    with pytest.raises(OAuthTokenExchangeError):
        await client.refresh_token("r")


@pytest.mark.asyncio
async def test_code_exchange_requires_refresh_token() -> None:
    client, _ = _client(
        lambda request: httpx.Response(200, json={"access_token": "a", "expires_in": 60})
    )

    with pytest.raises(OAuthTokenExchangeError):
        await client.exchange_authorization_code("code")


@pytest.mark.asyncio
async def test_get_current_user_uses_bearer_token() -> None:
    client, recorder = _client(
        lambda request: httpx.Response(
            200,
            json={"id": "4242", "username": "arena", "avatar": "hash", "locale": "en-US"},
        )
    )

    profile = await client.get_current_user("access")

    assert (profile.id, profile.username, profile.avatar) == ("4242", "arena", "hash")
    assert recorder.requests[0].headers["Authorization"] == "Bearer access"
    assert str(recorder.requests[0].url) == "https://discord.test/api/users/@me"


@pytest.mark.asyncio
async def test_get_current_user_failure() -> None:
    client, _ = _client(lambda request: httpx.Response(401, json={"message": "401"}))

    with pytest.raises(DiscordApiError):
        await client.get_current_user("expired")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "joined"),
    [
        (httpx.Response(201, json={"user": {"id": "4242"}}), True),
        (httpx.Response(204), False),
        (httpx.Response(400, json={"code": 30001, "message": "Maximum guilds"}), False),
    ],
)
async def test_add_guild_member(response, joined) -> None:
    client, recorder = _client(lambda request: response)

    assert await client.add_guild_member("4242", "access") is joined

    request = recorder.requests[0]
    assert request.method == "PUT"
    assert str(request.url) == "https://discord.test/api/guilds/guild-1/members/4242"
    assert request.headers["Authorization"] == "Bot bot-token"
    assert json.loads(request.content) == {"access_token": "access", "roles": ["role-1"]}


@pytest.mark.asyncio
async def test_add_guild_member_other_errors_raise() -> None:
    client, _ = _client(lambda request: httpx.Response(403, json={"code": 50013}))

    with pytest.raises(DiscordApiError):
        await client.add_guild_member("4242", "access")


@pytest.mark.asyncio
async def test_add_guild_member_requires_bot_token() -> None:
    client, recorder = _client(lambda request: httpx.Response(201), DISCORD_BOT_TOKEN=None)

    with pytest.raises(DiscordApiError):
        await client.add_guild_member("4242", "access")
    assert recorder.requests == []
