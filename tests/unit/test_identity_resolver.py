from __future__ import annotations

import pytest

from chat_client.services.identity_resolver import IdentityResolver
from tests.conftest import ME


@pytest.mark.asyncio
async def test_resolve_fetches_profile_once(store, api, storage):
    resolver = IdentityResolver(store, api)

    first = await resolver.resolve()
    second = await resolver.resolve()

    assert first == ME
    assert second == ME
    assert store.identity == ME
    assert len(api.calls_to("fetch_profile")) == 1
    assert storage.writes == 1


@pytest.mark.asyncio
async def test_resolve_failure_falls_back_to_cached_identity(store, api):
    store.set_identity(ME)
    api.failing.add("fetch_profile")
    resolver = IdentityResolver(store, api)

    assert await resolver.resolve() == ME


@pytest.mark.asyncio
async def test_resolve_failure_without_cache_returns_none(store, api, caplog):
    api.failing.add("fetch_profile")

    assert await IdentityResolver(store, api).resolve() is None
    assert "misclassified" in caplog.text


@pytest.mark.asyncio
async def test_resolve_retries_after_failure(store, api):
    resolver = IdentityResolver(store, api)
    api.failing.add("fetch_profile")
    await resolver.resolve()

    api.failing.clear()

    assert await resolver.resolve() == ME
