"""
Optional similarity service for embedding-mode retrieval.

Enabled only when both EMBEDDING_MODEL and VECTOR_INDEX_NAME are set. The
vector index is an Atlas Vector Search index over ``form.embedding`` with
``user_id`` declared as a filter field.
"""

import hashlib
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from cache import ValueCache
from database import FORMS, Database

logger = logging.getLogger(__name__)


def form_text(title: str, purpose: str, keywords: List[str]) -> str:
    return f"{title} {purpose} {' '.join(keywords or [])}"


class Embedder:
    """Text embeddings through an OpenAI-compatible endpoint, cached by (model, text)."""

    def __init__(self, client: OpenAI, model: str, cache: Optional[ValueCache] = None):
        self.client = client
        self.model = model
        self.cache = cache

    def _key(self, text: str) -> str:
        return "embedding:" + hashlib.md5(f"{self.model}:{text}".encode()).hexdigest()

    def embed(self, text: str) -> List[float]:
        if self.cache is not None:
            cached = self.cache.get(self._key(text))
            if cached is not None:
                return cached
        resp = self.client.embeddings.create(model=self.model, input=[text])
        if not resp.data:
            raise ValueError("No embedding returned")
        vector = list(resp.data[0].embedding)
        if self.cache is not None:
            self.cache.set(self._key(text), vector)
        return vector


class MongoVectorIndex:
    def __init__(self, db: Database, embedder: Embedder, index_name: str, num_candidates: int = 100):
        self.db = db
        self.embedder = embedder
        self.index_name = index_name
        self.num_candidates = num_candidates

    def query(self, user_id: str, text: str, limit: int) -> List[str]:
        vector = self.embedder.embed(text)
        pipeline: List[Dict[str, Any]] = [
            {
                "$vectorSearch": {
                    "index": self.index_name,
                    "path": "embedding",
                    "queryVector": vector,
                    "numCandidates": max(self.num_candidates, limit),
                    "limit": limit,
                    "filter": {"user_id": user_id},
                }
            },
            {"$project": {"_id": 1}},
        ]
        return [str(doc["_id"]) for doc in self.db.collection(FORMS).aggregate(pipeline)]

    def store(self, form: Dict[str, Any]) -> None:
        """Attach an embedding to a newly created form. Failures are logged, not raised."""
        try:
            text = form_text(form.get("title", ""), form.get("purpose", ""), form.get("keywords", []))
            vector = self.embedder.embed(text)
            self.db.collection(FORMS).update_one({"_id": form["_id"]}, {"$set": {"embedding": vector}})
        except Exception as e:
            logger.warning("Failed to store embedding for form %s: %s", form.get("_id"), e)
