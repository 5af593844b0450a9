"""
MongoDB access for PromptForm.

A Database is constructed explicitly, connected once (usually by the app
lifespan) and handed to request handlers through a dependency.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

logger = logging.getLogger(__name__)

FORMS = "form"
SUBMISSIONS = "submission"
RETRIEVAL_CACHE = "retrieval_cache"
VALUE_CACHE = "cache"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form pymongo hands back by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value: str) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


class Database:
    def __init__(self, url: str, name: str, client: Optional[MongoClient] = None):
        self.url = url
        self.name = name
        self._client = client
        self._owns_client = client is None
        self.db = None

    def connect(self) -> "Database":
        if self._client is None:
            self._client = MongoClient(self.url)
        self.db = self._client[self.name]
        self.ensure_indexes()
        logger.info("Connected to database %s", self.name)
        return self

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self.db = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, *exc):
        self.close()

    def ensure_indexes(self) -> None:
        self.db[FORMS].create_index("share_link", unique=True)
        self.db[FORMS].create_index([("user_id", ASCENDING), ("keywords", ASCENDING)])
        self.db[SUBMISSIONS].create_index("form_id")
        self.db[RETRIEVAL_CACHE].create_index([("query_hash", ASCENDING), ("user_id", ASCENDING)])
        self.db[VALUE_CACHE].create_index("key", unique=True)

    def collection(self, name: str):
        if self.db is None:
            raise RuntimeError("Database is not connected")
        return self.db[name]

    def list_collection_names(self) -> List[str]:
        if self.db is None:
            raise RuntimeError("Database is not connected")
        return self.db.list_collection_names()

    # --- Generic helpers ---

    def create_document(self, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
        if isinstance(data, BaseModel):
            doc = data.model_dump(by_alias=True, exclude_none=True)
        else:
            doc = dict(data)
        now = utcnow()
        doc.setdefault("created_at", now)
        doc["updated_at"] = now
        result = self.collection(collection_name).insert_one(doc)
        return str(result.inserted_id)

    def get_documents(
        self,
        collection_name: str,
        filter_dict: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[Dict[str, Any]]:
        cursor = self.collection(collection_name).find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    # --- Forms ---

    def find_form_by_share_link(self, share_link: str) -> Optional[Dict[str, Any]]:
        return self.collection(FORMS).find_one({"share_link": share_link})

    def find_owned_form(self, form_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(form_id)
        if oid is None:
            return None
        return self.collection(FORMS).find_one({"_id": oid, "user_id": user_id})

    def find_forms_by_ids(self, ids: List[str], user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Resolve ids to forms in the given order, skipping ids that no longer exist."""
        oids = [oid for oid in (to_object_id(i) for i in ids) if oid is not None]
        if not oids:
            return []
        query: Dict[str, Any] = {"_id": {"$in": oids}}
        if user_id is not None:
            query["user_id"] = user_id
        by_id = {doc["_id"]: doc for doc in self.collection(FORMS).find(query)}
        return [by_id[oid] for oid in oids if oid in by_id]

    def delete_form(self, form: Dict[str, Any]) -> int:
        """Delete a form together with its submissions. Returns the number of submissions removed."""
        self.collection(FORMS).delete_one({"_id": form["_id"]})
        result = self.collection(SUBMISSIONS).delete_many({"form_id": str(form["_id"])})
        logger.info("Deleted form %s and %d submissions", form["_id"], result.deleted_count)
        return result.deleted_count
