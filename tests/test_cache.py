from cache import QueryCache, ValueCache, hash_query
from database import RETRIEVAL_CACHE, VALUE_CACHE


def test_hash_query_depends_on_query_and_user():
    assert hash_query("contact form", "u1") == hash_query("contact form", "u1")
    assert hash_query("contact form", "u1") != hash_query("contact form", "u2")
    assert hash_query("contact form", "u1") != hash_query("survey", "u1")
    assert len(hash_query("x", "y")) == 32


def test_query_cache_roundtrip_within_ttl(db, clock):
    cache = QueryCache(db, clock=clock)
    key = hash_query("q", "u1")
    assert cache.get(key, "u1") is None

    cache.put(key, "u1", ["a", "b"])
    clock.advance(3599)
    assert cache.get(key, "u1") == ["a", "b"]
    # scoped to the user
    assert cache.get(key, "u2") is None


def test_query_cache_expires(db, clock):
    cache = QueryCache(db, clock=clock)
    cache.put("h", "u1", ["a"], ttl=60)
    clock.advance(60)
    assert cache.get("h", "u1") is None


def test_query_cache_put_overwrites_and_resets_expiry(db, clock):
    cache = QueryCache(db, clock=clock)
    cache.put("h", "u1", ["a"], ttl=60)
    clock.advance(50)
    cache.put("h", "u1", ["b", "c"], ttl=60)
    clock.advance(50)
    assert cache.get("h", "u1") == ["b", "c"]
    assert db.collection(RETRIEVAL_CACHE).count_documents({"query_hash": "h"}) == 1


def test_value_cache_get_set(db, clock):
    cache = ValueCache(db, ttl=10, clock=clock)
    assert cache.get("k") is None
    cache.set("k", {"n": 1})
    assert cache.get("k") == {"n": 1}
    cache.set("k", [1, 2])
    assert cache.get("k") == [1, 2]
    clock.advance(11)
    assert cache.get("k") is None


def test_value_cache_clear_expired(db, clock):
    cache = ValueCache(db, clock=clock)
    cache.set("old", 1, ttl=5)
    cache.set("new", 2, ttl=500)
    clock.advance(10)
    assert cache.clear_expired() == 1
    assert db.collection(VALUE_CACHE).count_documents({}) == 1
    assert cache.get("new") == 2
