"""
Tests for the ViewCache TTL cache.
"""

from unittest.mock import AsyncMock

import pytest


class TestViewCacheGetSet:

    def test_miss_then_hit(self, view_cache):
        assert view_cache.get("finanzas_diario", ("a",)) is None

        view_cache.set("finanzas_diario", ("a",), [{"x": 1}], ttl_seconds=60)

        assert view_cache.get("finanzas_diario", ("a",)) == [{"x": 1}]
        assert view_cache.get("finanzas_diario", ("b",)) is None
        assert len(view_cache) == 1

    def test_entry_expires_after_ttl(self, view_cache, fake_clock):
        view_cache.set("finanzas_diario", (), [{"x": 1}], ttl_seconds=60)

        fake_clock.advance(59)
        assert view_cache.get("finanzas_diario", ()) is not None

        fake_clock.advance(1)
        assert view_cache.get("finanzas_diario", ()) is None
        assert len(view_cache) == 0

    def test_returned_rows_are_a_copy(self, view_cache):
        view_cache.set("v", (), [{"x": 1}], ttl_seconds=60)
        rows = view_cache.get("v", ())
        rows.append({"x": 2})

        assert view_cache.get("v", ()) == [{"x": 1}]


class TestGetOrLoad:

    async def test_loads_once_while_fresh(self, view_cache):
        loader = AsyncMock(return_value=[{"fecha": "2025-03-01"}])

        first = await view_cache.get_or_load("finanzas_diario", ("p",), 300, loader)
        second = await view_cache.get_or_load("finanzas_diario", ("p",), 300, loader)

        assert first == second == [{"fecha": "2025-03-01"}]
        loader.assert_awaited_once()
        assert view_cache.misses == 1
        assert view_cache.hits == 1

    async def test_reloads_after_expiry(self, view_cache, fake_clock):
        loader = AsyncMock(side_effect=[[{"n": 1}], [{"n": 2}]])

        await view_cache.get_or_load("v", (), 10, loader)
        fake_clock.advance(11)
        rows = await view_cache.get_or_load("v", (), 10, loader)

        assert rows == [{"n": 2}]
        assert loader.await_count == 2

    async def test_loader_error_propagates_and_is_not_cached(self, view_cache):
        loader = AsyncMock(side_effect=[OSError("connection refused"), [{"n": 1}]])

        with pytest.raises(OSError):
            await view_cache.get_or_load("v", (), 10, loader)
        assert len(view_cache) == 0

        assert await view_cache.get_or_load("v", (), 10, loader) == [{"n": 1}]


class TestInvalidate:

    def test_invalidate_all(self, view_cache):
        view_cache.set("a", (), [], 60)
        view_cache.set("b", (1,), [], 60)

        assert view_cache.invalidate() == 2
        assert len(view_cache) == 0

    def test_invalidate_one_view(self, view_cache):
        view_cache.set("a", (1,), [], 60)
        view_cache.set("a", (2,), [], 60)
        view_cache.set("b", (), [{"keep": True}], 60)

        assert view_cache.invalidate("a") == 2
        assert view_cache.get("b", ()) == [{"keep": True}]
        assert view_cache.invalidate("missing") == 0
