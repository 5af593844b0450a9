"""
Expiring caches stored in MongoDB.

QueryCache keeps the ids of forms retrieved for a (query, user) pair;
ValueCache is a plain key -> value store. Both are upserts with an
``expires_at`` timestamp that is checked on read. Expired entries are
left in place until overwritten or until ``clear_expired`` runs.
"""

import hashlib
import logging
from datetime import timedelta
from typing import Any, Callable, List, Optional

from database import RETRIEVAL_CACHE, VALUE_CACHE, Database, utcnow
from schemas import CacheEntry, CachedRetrieval

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


def hash_query(query: str, user_id: str) -> str:
    return hashlib.md5(f"{query}-{user_id}".encode()).hexdigest()


class QueryCache:
    def __init__(self, db: Database, ttl: int = DEFAULT_TTL_SECONDS, clock: Callable = utcnow):
        self.db = db
        self.ttl = ttl
        self.clock = clock

    def get(self, query_hash: str, user_id: str) -> Optional[List[str]]:
        entry = self.db.collection(RETRIEVAL_CACHE).find_one({
            "query_hash": query_hash,
            "user_id": user_id,
            "expires_at": {"$gt": self.clock()},
        })
        if entry is None:
            logger.debug("Retrieval cache miss for %s", query_hash)
            return None
        logger.debug("Retrieval cache hit for %s", query_hash)
        return list(entry.get("retrieved_forms", []))

    def put(self, query_hash: str, user_id: str, ids: List[str], ttl: Optional[int] = None) -> None:
        ttl = self.ttl if ttl is None else ttl
        entry = CachedRetrieval(
            query_hash=query_hash,
            user_id=user_id,
            retrieved_forms=list(ids),
            expires_at=self.clock() + timedelta(seconds=ttl),
        )
        self.db.collection(RETRIEVAL_CACHE).update_one(
            {"query_hash": query_hash, "user_id": user_id},
            {"$set": entry.model_dump()},
            upsert=True,
        )


class ValueCache:
    def __init__(self, db: Database, ttl: int = DEFAULT_TTL_SECONDS, clock: Callable = utcnow):
        self.db = db
        self.ttl = ttl
        self.clock = clock

    def get(self, key: str) -> Optional[Any]:
        entry = self.db.collection(VALUE_CACHE).find_one({
            "key": key,
            "expires_at": {"$gt": self.clock()},
        })
        return entry.get("value") if entry else None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.ttl if ttl is None else ttl
        now = self.clock()
        entry = CacheEntry(key=key, value=value, expires_at=now + timedelta(seconds=ttl), created_at=now)
        self.db.collection(VALUE_CACHE).update_one(
            {"key": key},
            {"$set": entry.model_dump()},
            upsert=True,
        )

    def clear_expired(self) -> int:
        result = self.db.collection(VALUE_CACHE).delete_many({"expires_at": {"$lt": self.clock()}})
        if result.deleted_count:
            logger.info("Removed %d expired cache entries", result.deleted_count)
        return result.deleted_count
