"""
ServiceWatch - Tests for Cache Keys, Service Records and the Detail Cache
"""

import pytest

from servicewatch.cache.detail_cache import DetailCache
from servicewatch.models.keys import CacheKey, EntityKind
from servicewatch.models.service import (
    client_emails,
    find_service,
    inbound_tags,
    merge_service_detail,
    same_id,
)


class TestCacheKey:
    """Tests for the typed composite key."""

    def test_equal_tuples_are_the_same_key(self):
        """Keys built from the same parts hash and compare equal."""
        assert CacheKey.port(1, "tag-a", 7) == CacheKey.port(1, "tag-a", 7)
        assert len({CacheKey.port(1, "tag-a", 7), CacheKey.port(1, "tag-a", 7)}) == 1

    def test_window_is_part_of_identity(self):
        """The 7 and 30 day windows are different resources."""
        assert CacheKey.service(1, 7) != CacheKey.service(1, 30)

    def test_separator_characters_do_not_collide(self):
        """Identities containing separators stay distinct."""
        first = CacheKey.user("1-2", "a@x.com", 7)
        second = CacheKey.user("1", "2-a@x.com", 7)
        assert first != second

    def test_kinds_do_not_collide(self):
        """A tag and an email with the same text are different keys."""
        assert CacheKey.port(1, "same", 7) != CacheKey.user(1, "same", 7)

    def test_leaf_keys_require_sub_identity(self):
        """Port and user keys without a tag or email are rejected."""
        with pytest.raises(ValueError):
            CacheKey(EntityKind.PORT_DETAIL, 1)
        with pytest.raises(ValueError):
            CacheKey.user(1, "")

    def test_service_key_rejects_sub_identity(self):
        with pytest.raises(ValueError):
            CacheKey(EntityKind.SERVICE_DETAIL, 1, "tag-a")

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            CacheKey.service(1, 0)

    def test_numeric_and_text_ids_build_equal_keys(self):
        """The list reports 1, a URL or the command line passes "1"."""
        assert CacheKey.service(1, 7) == CacheKey.service("1", 7)
        assert CacheKey.port(2, "tag-c", 7) == CacheKey.port("2", "tag-c", 7)
        assert CacheKey.user(1, "alice@example.com").service_id == "1"

    def test_describe(self):
        assert CacheKey.port(3, "tag-a", 30).describe() == "port-detail/3/tag-a/30d"
        assert CacheKey.service(3).describe() == "service-detail/3/7d"


class TestServiceRecords:
    """Tests for service record helpers."""

    def test_merge_payload_wins_and_base_fields_survive(self):
        """Payload keys overwrite, keys only in the base are kept."""
        base = {"id": 1, "name": "edge", "custom_name": "Tokyo", "total_up": 1}
        payload = {"total_up": 99, "inbound_traffics": []}

        merged = merge_service_detail(base, payload)

        assert merged == {
            "id": 1,
            "name": "edge",
            "custom_name": "Tokyo",
            "total_up": 99,
            "inbound_traffics": [],
        }

    def test_merge_explicit_none_overwrites(self):
        """An explicit null in the payload counts as present."""
        merged = merge_service_detail({"id": 1, "custom_name": "Tokyo"}, {"custom_name": None})
        assert merged["custom_name"] is None

    def test_merge_does_not_mutate_arguments(self):
        base = {"id": 1}
        payload = {"total_up": 5}
        merged = merge_service_detail(base, payload)
        assert base == {"id": 1}
        assert payload == {"total_up": 5}
        assert merged is not base

    def test_merge_without_base(self):
        assert merge_service_detail(None, {"id": 4}) == {"id": 4}

    def test_inbound_tags_and_client_emails(self):
        """Tags and emails come back in order, missing and duplicate entries skipped."""
        service = {
            "inbound_traffics": [{"tag": "b"}, {"tag": "a"}, {"up": 1}, {"tag": "b"}],
            "client_traffics": [{"email": "x@y"}, {"email": ""}, {"email": "z@y"}],
        }
        assert inbound_tags(service) == ["b", "a"]
        assert client_emails(service) == ["x@y", "z@y"]

    def test_missing_collections_are_empty(self):
        assert inbound_tags({"id": 1, "inbound_traffics": None}) == []
        assert client_emails({"id": 1}) == []

    def test_same_id_across_types(self):
        assert same_id(1, "1")
        assert not same_id(1, 2)
        assert not same_id(None, None)

    def test_find_service(self):
        services = [{"id": 1}, {"id": 2}]
        assert find_service(services, "2") is services[1]
        assert find_service(services, 3) is None


class TestDetailCache:
    """Tests for the three-region detail cache."""

    def test_get_missing_returns_none(self):
        cache = DetailCache()
        key = CacheKey.service(1)
        assert cache.get(EntityKind.SERVICE_DETAIL, key) is None
        assert not cache.contains(EntityKind.SERVICE_DETAIL, key)

    def test_put_overwrites_fully(self):
        """A second put replaces the value, it does not merge."""
        cache = DetailCache()
        key = CacheKey.service(1)
        cache.put(EntityKind.SERVICE_DETAIL, key, {"id": 1, "a": 1})
        cache.put(EntityKind.SERVICE_DETAIL, key, {"id": 1, "b": 2})
        assert cache.get(EntityKind.SERVICE_DETAIL, key) == {"id": 1, "b": 2}

    def test_get_returns_same_object(self):
        cache = DetailCache()
        key = CacheKey.port(1, "tag-a")
        value = {"tag": "tag-a"}
        cache.put(EntityKind.PORT_DETAIL, key, value)
        assert cache.get(EntityKind.PORT_DETAIL, key) is value

    def test_key_must_match_region(self):
        cache = DetailCache()
        with pytest.raises(ValueError):
            cache.put(EntityKind.USER_DETAIL, CacheKey.port(1, "tag-a"), {})

    def test_clear_only_touches_one_region(self):
        cache = DetailCache()
        cache.put(EntityKind.SERVICE_DETAIL, CacheKey.service(1), {"id": 1})
        cache.put(EntityKind.PORT_DETAIL, CacheKey.port(1, "tag-a"), {})
        cache.put(EntityKind.USER_DETAIL, CacheKey.user(1, "a@x"), {})

        cache.clear(EntityKind.PORT_DETAIL)

        assert cache.get_stats() == {
            "service-detail": 1,
            "port-detail": 0,
            "user-detail": 1,
        }

    def test_clear_all(self):
        cache = DetailCache()
        cache.put(EntityKind.SERVICE_DETAIL, CacheKey.service(1), {"id": 1})
        cache.put(EntityKind.USER_DETAIL, CacheKey.user(1, "a@x"), {})

        cache.clear_all()

        assert all(count == 0 for count in cache.get_stats().values())
        assert cache.size(EntityKind.SERVICE_DETAIL) == 0
