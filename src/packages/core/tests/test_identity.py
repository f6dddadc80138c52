"""Tests for reference resolution."""
import pytest

from bulk_transfer_core.records import IdentityResolver, UserRecord, external_id_of, to_external
from bulk_transfer_core.util import ForeignKeyViolation, InvalidReferenceError


class CountingStore:
    """Just enough of a store to count external id lookups."""

    def __init__(self, ids):
        self.ids = ids
        self.lookups = 0

    async def find_id_by_external_id(self, resource, external_id):
        self.lookups += 1
        return self.ids.get((resource, external_id))


def test_external_id_of():
    assert external_id_of("u-1") == "u-1"
    assert external_id_of("42") is None
    assert external_id_of(42) is None
    assert external_id_of(None) is None


def test_to_external_prefers_external_id():
    assert to_external(3, "u-3") == "u-3"
    assert to_external(3, None) == 3


@pytest.mark.asyncio
async def test_integers_need_no_lookup():
    store = CountingStore({})
    resolver = IdentityResolver(store)
    assert await resolver.resolve(5, "author_id", "users") == 5
    assert await resolver.resolve("17", "author_id", "users") == 17
    assert store.lookups == 0


@pytest.mark.asyncio
async def test_external_lookup_is_memoised():
    store = CountingStore({("users", "u-1"): 9})
    resolver = IdentityResolver(store)
    assert await resolver.resolve("u-1", "author_id", "users") == 9
    assert await resolver.resolve("u-1", "user_id", "users") == 9
    assert store.lookups == 1


@pytest.mark.asyncio
async def test_missing_external_id():
    resolver = IdentityResolver(CountingStore({}))
    with pytest.raises(ForeignKeyViolation) as exc:
        await resolver.resolve("a-404", "article_id", "articles")
    assert exc.value.field == "article_id"
    assert exc.value.reference == "a-404"
    assert "article_id" in str(exc.value)
    assert "a-404" in str(exc.value)
    assert exc.value.error_type == "FOREIGN_KEY_VIOLATION"


@pytest.mark.asyncio
@pytest.mark.parametrize("reference", ["abc", True, 1.5])
async def test_invalid_reference(reference):
    resolver = IdentityResolver(CountingStore({}))
    with pytest.raises(InvalidReferenceError):
        await resolver.resolve(reference, "author_id", "users")


@pytest.mark.asyncio
async def test_resolves_against_store(store):
    user_id = await store.upsert_user(UserRecord(email="a@b.co", name="A"), "u-abc")
    resolver = IdentityResolver(store)
    assert await resolver.resolve("u-abc", "author_id", "users") == user_id
