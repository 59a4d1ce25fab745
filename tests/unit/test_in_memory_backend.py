"""Tests for the in-memory backend."""

import pytest

from dynamodb_keyval.codec.attributes import ABSENT, AttributeValue
from dynamodb_keyval.core.in_memory import InMemoryBackend
from dynamodb_keyval.exceptions import NotFoundError


def key(partition, sort):
    return {"prefix": partition, "suffix": sort}


@pytest.fixture
def backend():
    backend = InMemoryBackend(page_size=2)
    for sort in ("person:3", "person:1", "group:1", "person:2"):
        backend.put_item(key("test:", sort), {"name": AttributeValue.string(sort)})
    backend.put_item(key("other:", "person:1"), {"name": AttributeValue.string("other")})
    return backend


class TestInMemoryBackend:
    """Test storage primitives of the in-memory backend."""

    def test_get_miss(self, backend):
        assert backend.get_item(key("test:", "missing")) is None

    def test_put_overwrites(self, backend):
        backend.put_item(key("test:", "person:1"), {"age": AttributeValue.number(1), "gone": ABSENT})

        assert backend.get_item(key("test:", "person:1")) == {"age": AttributeValue.number(1)}

    def test_update_merges(self, backend):
        backend.update_item(key("test:", "person:1"), {"age": AttributeValue.number(64)})

        assert backend.get_item(key("test:", "person:1")) == {
            "name": AttributeValue.string("person:1"),
            "age": AttributeValue.number(64),
        }

    def test_update_creates_missing(self, backend):
        backend.update_item(key("test:", "person:9"), {"age": AttributeValue.number(1)})

        assert backend.get_item(key("test:", "person:9")) == {"age": AttributeValue.number(1)}

    def test_update_must_exist(self, backend):
        with pytest.raises(NotFoundError):
            backend.update_item(key("test:", "person:9"), {}, must_exist=True)

        assert backend.get_item(key("test:", "person:9")) is None

    def test_delete_is_idempotent(self, backend):
        backend.delete_item(key("test:", "person:1"))
        backend.delete_item(key("test:", "person:1"))

        assert backend.get_item(key("test:", "person:1")) is None

    def test_query_pages_in_sort_order(self, backend):
        first = backend.query_page("test:", "person:")
        assert [i["name"].value for i in first.items] == ["person:1", "person:2"]
        assert first.last_key == key("test:", "person:2")

        second = backend.query_page("test:", "person:", first.last_key)
        assert [i["name"].value for i in second.items] == ["person:3"]
        assert second.last_key is None

    def test_query_whole_partition(self):
        backend = InMemoryBackend()
        backend.put_item(key("p", "b"), {})
        backend.put_item(key("p", "a"), {})

        page = backend.query_page("p")

        assert len(page.items) == 2
        assert page.last_key is None

    def test_query_returns_copies(self, backend):
        page = backend.query_page("other:")
        page.items[0]["name"] = AttributeValue.string("changed")

        assert backend.get_item(key("other:", "person:1"))["name"].value == "other"

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            InMemoryBackend(page_size=0)
