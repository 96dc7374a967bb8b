"""Tests for the owner-scoped query cache."""

from app.cache import QueryCache


class TestQueryCache:
    def test_get_or_compute_memoises(self):
        cache = QueryCache()
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("metrics", "u1", compute, 2026) == "value"
        assert cache.get_or_compute("metrics", "u1", compute, 2026) == "value"
        assert cache.get_or_compute("metrics", "u1", compute, 2025) == "value"
        assert len(calls) == 2

    def test_invalidate_drops_every_param_variant_for_owner(self):
        cache = QueryCache()
        cache.set("metrics", "u1", 1, 2025)
        cache.set("metrics", "u1", 2, 2026)
        cache.set("metrics", "u2", 3, 2026)

        removed = cache.invalidate(["metrics"], "u1")

        assert removed == 2
        assert cache.get("metrics", "u2", 2026) == 3

    def test_invalidate_all_ignores_owner(self):
        cache = QueryCache()
        cache.set("entregas", "u1", 1)
        cache.set("entregas", None, 2)

        assert cache.invalidate_all(["entregas"]) == 2
        assert not cache.contains("entregas", None)
