"""
Tests for the BoxNow bearer token cache.
"""
import pytest
from unittest.mock import AsyncMock

from app.services.token_cache import TokenCache, TokenGrant


def _cache(clock, tokens=("t1", "t2", "t3"), expires_in=3600, margin=60):
    exchange = AsyncMock(side_effect=[TokenGrant(t, expires_in) for t in tokens])
    return TokenCache(exchange, safety_margin_seconds=margin, clock=clock), exchange


@pytest.mark.asyncio
async def test_first_acquire_exchanges_credentials(fake_clock):
    cache, exchange = _cache(fake_clock)

    assert await cache.acquire() == "t1"
    assert exchange.await_count == 1
    assert cache.credential.expires_at_epoch_ms == fake_clock.now + (3600 - 60) * 1000


@pytest.mark.asyncio
async def test_cached_token_reused_until_margin(fake_clock):
    cache, exchange = _cache(fake_clock)
    await cache.acquire()

    fake_clock.advance(3600 - 60 - 0.001)
    assert await cache.acquire() == "t1"
    assert exchange.await_count == 1


@pytest.mark.asyncio
async def test_expired_token_refreshed_exactly_once(fake_clock):
    cache, exchange = _cache(fake_clock)
    await cache.acquire()

    fake_clock.advance(3600 - 60)
    assert await cache.acquire() == "t2"
    assert await cache.acquire() == "t2"
    assert exchange.await_count == 2
    assert cache.refresh_count == 2


@pytest.mark.asyncio
async def test_lifetime_shorter_than_margin_is_never_cached(fake_clock):
    cache, exchange = _cache(fake_clock, expires_in=30)

    assert await cache.acquire() == "t1"
    assert await cache.acquire() == "t2"
    assert exchange.await_count == 2


@pytest.mark.asyncio
async def test_failed_exchange_leaves_cache_empty(fake_clock):
    exchange = AsyncMock(side_effect=RuntimeError("auth down"))
    cache = TokenCache(exchange, clock=fake_clock)

    with pytest.raises(RuntimeError):
        await cache.acquire()
    assert cache.credential is None
    assert not cache.is_valid()


@pytest.mark.asyncio
async def test_invalidate_forces_refresh(fake_clock):
    cache, exchange = _cache(fake_clock)
    await cache.acquire()

    cache.invalidate()
    assert await cache.acquire() == "t2"
    assert exchange.await_count == 2
