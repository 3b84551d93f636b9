"""Unit tests for the Spotify credential cache."""

import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest

from now_playing_sync.exceptions import AuthError, FetchError
from now_playing_sync.state_managers import SPOTIFY_TOKEN_URL, CredentialCache


@pytest.mark.asyncio
async def test_refresh_exchange_request_shape(client_factory, test_settings, fake_clock, token_response_factory):
    """The exchange posts a refresh-token grant with basic client auth."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return token_response_factory("access-1", 3600)

    async with client_factory(handler) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        credential = await cache.get_token()

    assert credential.token == "access-1"
    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == SPOTIFY_TOKEN_URL
    assert request.method == "POST"
    expected = base64.b64encode(b"test-spotify-client-id:test-spotify-client-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    form = parse_qs(request.content.decode())
    assert form == {"grant_type": ["refresh_token"], "refresh_token": ["test-refresh-token"]}


@pytest.mark.asyncio
async def test_expiry_uses_safety_factor(client_factory, test_settings, fake_clock, token_response_factory):
    """expires_at = now + ttl * safety factor."""
    async with client_factory(lambda request: token_response_factory("access-1", 1000)) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        credential = await cache.get_token()

    assert credential.expires_at == pytest.approx(fake_clock.now + 900.0)


@pytest.mark.asyncio
async def test_cached_token_reused_until_expiry(client_factory, test_settings, fake_clock, token_response_factory):
    """No exchange while the credential is valid; exactly one after it expires."""
    tokens = iter(["access-1", "access-2"])

    async with client_factory(lambda request: token_response_factory(next(tokens), 100)) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)

        first = await cache.get_token()
        fake_clock.advance(89)
        again = await cache.get_token()
        assert again.token == first.token == "access-1"
        assert cache.exchange_count == 1

        fake_clock.advance(1)  # now == expires_at
        refreshed = await cache.get_token()

    assert refreshed.token == "access-2"
    assert cache.exchange_count == 2


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_exchange(client_factory, test_settings, fake_clock, token_response_factory):
    """Three callers during an expired-token refresh cause one exchange."""
    release = asyncio.Event()
    calls = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        await release.wait()
        return token_response_factory(f"access-{calls}")

    async with client_factory(handler) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        waiters = [asyncio.create_task(cache.get_token()) for _ in range(3)]
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        release.set()
        credentials = await asyncio.gather(*waiters)

    assert calls == 1
    assert {credential.token for credential in credentials} == {"access-1"}


@pytest.mark.asyncio
async def test_concurrent_callers_all_receive_failure(client_factory, test_settings, fake_clock):
    """A rejected exchange fails every waiter, and the next call tries again."""
    release = asyncio.Event()
    calls = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        await release.wait()
        return httpx.Response(400, json={"error": "invalid_grant"})

    async with client_factory(handler) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        waiters = [asyncio.create_task(cache.get_token()) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert calls == 1
        assert all(isinstance(result, AuthError) for result in results)

        with pytest.raises(AuthError):
            await cache.get_token()
        assert calls == 2


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_exchange(
    client_factory, test_settings, fake_clock, token_response_factory
):
    """Cancelling one waiter leaves the shared refresh running for the others."""
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return token_response_factory("access-1")

    async with client_factory(handler) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        doomed = asyncio.create_task(cache.get_token())
        survivor = asyncio.create_task(cache.get_token())
        await asyncio.sleep(0)
        doomed.cancel()
        release.set()
        credential = await survivor

    assert credential.token == "access-1"
    assert cache.exchange_count == 1


@pytest.mark.asyncio
async def test_forced_refresh_skipped_when_already_rotated(
    client_factory, test_settings, fake_clock, token_response_factory
):
    """refresh(stale) returns the newer credential instead of exchanging again."""
    tokens = iter(["access-1", "access-2", "access-3"])

    async with client_factory(lambda request: token_response_factory(next(tokens))) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        stale = await cache.get_token()

        fresh = await cache.refresh(stale=stale)
        assert fresh.token == "access-2"

        # A second caller still holding the old token must not trigger another exchange
        again = await cache.refresh(stale=stale)

    assert again.token == "access-2"
    assert cache.exchange_count == 2


@pytest.mark.asyncio
async def test_rejected_exchange_raises_auth_error(client_factory, test_settings, fake_clock):
    """A non-success token response is an AuthError."""
    async with client_factory(lambda request: httpx.Response(401, json={"error": "invalid_client"})) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

    assert exc_info.value.details["status_code"] == 401
    assert not cache.has_valid_token()


@pytest.mark.asyncio
async def test_missing_access_token_is_auth_error(client_factory, test_settings, fake_clock):
    """A success body without access_token is rejected."""
    async with client_factory(lambda request: httpx.Response(200, json={"expires_in": 3600})) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        with pytest.raises(AuthError):
            await cache.get_token()


@pytest.mark.asyncio
async def test_timeout_is_transient_fetch_error(client_factory, test_settings, fake_clock):
    """Token endpoint timeouts are transient."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with client_factory(handler) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        with pytest.raises(FetchError) as exc_info:
            await cache.get_token()

    assert exc_info.value.transient


@pytest.mark.asyncio
async def test_rotated_refresh_token_is_used_next_time(client_factory, test_settings, fake_clock):
    """A refresh_token in the response replaces the configured one in memory."""
    sent: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(parse_qs(request.content.decode())["refresh_token"][0])
        return httpx.Response(200, json={"access_token": "a", "expires_in": 10, "refresh_token": "rotated"})

    async with client_factory(handler) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        await cache.get_token()
        fake_clock.advance(60)
        await cache.get_token()

    assert sent == ["test-refresh-token", "rotated"]


@pytest.mark.asyncio
async def test_cleanup_drops_credential(client_factory, test_settings, fake_clock, token_response_factory):
    """cleanup() forgets the cached token."""
    async with client_factory(lambda request: token_response_factory()) as client:
        cache = CredentialCache(client, test_settings, clock=fake_clock)
        await cache.initialize()
        await cache.get_token()
        assert cache.has_valid_token()
        await cache.cleanup()

    assert not cache.has_valid_token()
