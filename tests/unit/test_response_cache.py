"""Unit tests for the TTL response cache."""

import pytest

from seo_context.utils.cache import ResponseCache


class TestGenerateKey:
    def test_components_are_joined_in_order(self, cache):
        assert cache.generate_key("site-scan", "example.com", "a", "b") == (
            "site-scan:example.com:a:b"
        )
        assert cache.generate_key("site-scan", "example.com", "b", "a") != (
            cache.generate_key("site-scan", "example.com", "a", "b")
        )

    def test_domains_sharing_a_prefix_do_not_collide(self, cache):
        assert cache.generate_key("scan", "example.com") != cache.generate_key(
            "scan", "example.comX"
        )

    def test_delimiter_inside_component_cannot_forge_a_key(self, cache):
        # Without escaping both would be "scan:a:b"
        assert cache.generate_key("scan", "a:b") != cache.generate_key("scan", "a", "b")

    def test_escaped_text_cannot_forge_a_key(self, cache):
        assert cache.generate_key("scan", "a%3Ab") != cache.generate_key("scan", "a:b")

    def test_namespace_is_prepended(self, clock):
        cache = ResponseCache(namespace="tenant-1", clock=clock)

        assert cache.generate_key("seo-context", "example.com") == (
            "tenant-1:seo-context:example.com"
        )

    def test_non_string_component_raises(self, cache):
        with pytest.raises(TypeError):
            cache.generate_key("scan", "example.com", 10)  # type: ignore[arg-type]


class TestGetSet:
    def test_get_returns_value_within_ttl(self, cache, clock):
        cache.set("k", "v", 1)

        assert cache.get("k") == "v"

    def test_get_misses_after_ttl(self, cache, clock):
        cache.set("k", "v", 1)
        clock.advance(1)

        assert cache.get("k") is None
        # Lazy eviction happened on read
        assert len(cache) == 0

    def test_miss_returns_default(self, cache):
        assert cache.get("absent") is None
        assert cache.get("absent", "fallback") == "fallback"

    def test_default_ttl_applies(self, cache, clock):
        cache.set("k", "v")

        clock.advance(3599)
        assert cache.get("k") == "v"
        clock.advance(1)
        assert cache.get("k") is None

    def test_second_set_governs_expiry(self, cache, clock):
        cache.set("k", "first", 100)
        cache.set("k", "second", 10)

        clock.advance(50)
        assert cache.get("k") is None

    def test_second_set_can_extend_expiry(self, cache, clock):
        cache.set("k", "first", 10)
        cache.set("k", "second", 100)

        clock.advance(50)
        assert cache.get("k") == "second"

    def test_set_after_expiry_creates_fresh_entry(self, cache, clock):
        cache.set("k", "old", 1)
        clock.advance(5)
        cache.set("k", "new", 1)

        assert cache.get("k") == "new"

    def test_falsy_values_are_cached(self, cache):
        cache.set("zero", 0)
        cache.set("empty", [])

        assert cache.get("zero", "miss") == 0
        assert cache.get("empty", "miss") == []

    def test_negative_ttl_raises(self, cache):
        with pytest.raises(ValueError):
            cache.set("k", "v", -1)

    def test_contains(self, cache, clock):
        cache.set("k", "v", 1)
        assert "k" in cache

        clock.advance(1)
        assert "k" not in cache

    def test_instances_are_independent(self, clock):
        first = ResponseCache(clock=clock)
        second = ResponseCache(clock=clock)

        first.set("k", "v")

        assert second.get("k") is None


class TestDeletePattern:
    def test_removes_only_matching_domain_and_category(self, cache):
        cache.set(cache.generate_key("scan", "example.com"), 1)
        cache.set(cache.generate_key("scan", "example.com", '{"limit":10}'), 2)
        cache.set(cache.generate_key("scan", "example.comX"), 3)
        cache.set(cache.generate_key("scan", "example.com.au"), 4)
        cache.set(cache.generate_key("seo-context", "example.com"), 5)

        removed = cache.delete_pattern("scan:example.com")

        assert removed == 2
        assert cache.get(cache.generate_key("scan", "example.comX")) == 3
        assert cache.get(cache.generate_key("scan", "example.com.au")) == 4
        assert cache.get(cache.generate_key("seo-context", "example.com")) == 5

    def test_generated_prefix(self, cache):
        cache.set(cache.generate_key("site-scan", "example.com", "{}"), 1)

        assert cache.delete_pattern(cache.generate_key("site-scan", "example.com")) == 1

    def test_nothing_to_invalidate(self, cache):
        assert cache.delete_pattern("scan:example.com") == 0

    def test_expired_entries_are_evicted_and_counted(self, cache, clock):
        cache.set("scan:example.com:a", 1, 10)
        cache.set("scan:example.com:b", 2, 100)
        clock.advance(50)

        assert cache.delete_pattern("scan:example.com") == 2
        assert len(cache) == 0

    def test_trailing_delimiter_prefix(self, cache):
        cache.set("scan:example.com", 1)
        cache.set("scan:example.org", 2)

        assert cache.delete_pattern("scan:") == 2


class TestMaintenance:
    def test_purge_expired(self, cache, clock):
        cache.set("a", 1, 10)
        cache.set("b", 2, 100)
        clock.advance(50)

        assert cache.purge_expired() == 1
        assert cache.get("b") == 2

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.clear()

        assert len(cache) == 0
