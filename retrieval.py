"""
Selection of a user's past forms to use as context for generation.
"""

import logging
from typing import Any, Dict, List, Optional

from cache import QueryCache, hash_query
from database import FORMS, Database

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "Here are relevant forms the user created before:"


class FormRetriever:
    """Finds up to ``limit`` forms of a user relevant to a prompt.

    Results are cached per (query, user) for the cache's TTL. A cached id
    that no longer resolves to a form is dropped from the result.
    """

    def __init__(self, db: Database, cache: QueryCache, similarity=None):
        self.db = db
        self.cache = cache
        # Anything with query(user_id, text, limit) -> ids; see embeddings.MongoVectorIndex
        self.similarity = similarity

    def retrieve(
        self,
        user_id: str,
        query: str,
        keywords: List[str],
        use_embeddings: bool = False,
        limit: int = 5,
    ) -> List[Dict[str, Any]]:
        query_hash = hash_query(query, user_id)
        cached = self.cache.get(query_hash, user_id)
        if cached is not None:
            return self.db.find_forms_by_ids(cached, user_id=user_id)

        if use_embeddings:
            forms = self.by_embeddings(user_id, query, limit)
        else:
            forms = self.by_keywords(user_id, keywords, limit)

        self.cache.put(query_hash, user_id, [str(f["_id"]) for f in forms])
        return forms

    def by_keywords(self, user_id: str, keywords: List[str], limit: int) -> List[Dict[str, Any]]:
        if not keywords:
            return []
        return self.db.get_documents(
            FORMS,
            {"user_id": user_id, "keywords": {"$in": list(keywords)}},
            limit=limit,
        )

    def by_embeddings(self, user_id: str, query: str, limit: int) -> List[Dict[str, Any]]:
        # Without a similarity service this yields nothing; it does not fall back to keywords.
        if self.similarity is None:
            return []
        ids = self.similarity.query(user_id, query, limit)
        return self.db.find_forms_by_ids(ids, user_id=user_id)


def summarize_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """Title, purpose and field names of a stored form (or an already summarized one)."""
    if "schema" in form:
        fields = (form["schema"] or {}).get("fields") or []
    else:
        fields = form.get("fields") or []
    names = [f.get("name", "") if isinstance(f, dict) else str(f) for f in fields]
    return {"title": form.get("title", ""), "purpose": form.get("purpose", ""), "fields": names}


def build_context_prompt(forms: Optional[List[Dict[str, Any]]]) -> str:
    if not forms:
        return ""
    lines = []
    for form in forms:
        summary = summarize_form(form)
        lines.append(
            f'- Title: "{summary["title"]}", Purpose: "{summary["purpose"]}", '
            f'Fields: {", ".join(summary["fields"])}'
        )
    return f"\n\n{CONTEXT_HEADER}\n" + "\n".join(lines)
