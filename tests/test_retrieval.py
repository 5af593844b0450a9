from unittest import mock

import pytest

from cache import QueryCache
from database import FORMS, to_object_id
from retrieval import CONTEXT_HEADER, FormRetriever, build_context_prompt, summarize_form


@pytest.fixture
def retriever(db, clock):
    return FormRetriever(db, QueryCache(db, clock=clock))


def ids(forms):
    return [str(f["_id"]) for f in forms]


def test_keyword_mode_matches_owned_forms(retriever, make_form):
    job = make_form(title="Job", keywords=["resume", "application"])
    make_form(title="Other user's job", user_id="user-2", keywords=["resume"])
    make_form(title="Party", keywords=["party"])

    forms = retriever.retrieve("user-1", "resume upload", ["resume", "upload"])
    assert ids(forms) == [job]


def test_keyword_mode_respects_limit(retriever, make_form):
    for i in range(4):
        make_form(title=f"Survey {i}", keywords=["survey"])
    assert len(retriever.retrieve("user-1", "survey", ["survey"], limit=2)) == 2


def test_second_call_within_ttl_uses_cache(retriever, make_form, clock):
    make_form(keywords=["contact"])
    with mock.patch.object(retriever, "by_keywords", wraps=retriever.by_keywords) as backend:
        first = retriever.retrieve("user-1", "contact details", ["contact", "details"])
        clock.advance(30 * 60)
        second = retriever.retrieve("user-1", "contact details", ["contact", "details"])
    assert backend.call_count == 1
    assert ids(first) == ids(second)


def test_expired_entry_is_recomputed(retriever, make_form, clock):
    make_form(keywords=["contact"])
    with mock.patch.object(retriever, "by_keywords", wraps=retriever.by_keywords) as backend:
        retriever.retrieve("user-1", "contact", ["contact"])
        clock.advance(60 * 60)
        retriever.retrieve("user-1", "contact", ["contact"])
    assert backend.call_count == 2


def test_cached_ids_of_deleted_forms_are_dropped(retriever, make_form, db):
    keep = make_form(title="Keep", keywords=["contact"])
    gone = make_form(title="Gone", keywords=["contact"])
    assert set(ids(retriever.retrieve("user-1", "contact", ["contact"]))) == {keep, gone}

    db.collection(FORMS).delete_one({"_id": to_object_id(gone)})
    with mock.patch.object(retriever, "by_keywords") as backend:
        forms = retriever.retrieve("user-1", "contact", ["contact"])
    backend.assert_not_called()
    assert ids(forms) == [keep]


def test_empty_results_are_cached_too(retriever):
    with mock.patch.object(retriever, "by_keywords", wraps=retriever.by_keywords) as backend:
        assert retriever.retrieve("user-1", "nothing here", ["nothing"]) == []
        assert retriever.retrieve("user-1", "nothing here", ["nothing"]) == []
    assert backend.call_count == 1


def test_embedding_mode_without_similarity_returns_nothing(retriever, make_form):
    make_form(keywords=["contact"])
    assert retriever.retrieve("user-1", "contact", ["contact"], use_embeddings=True) == []


def test_embedding_mode_uses_similarity_service(db, clock, make_form):
    a = make_form(title="A", keywords=[])
    b = make_form(title="B", keywords=[])
    similarity = mock.Mock()
    similarity.query.return_value = [b, a]
    retriever = FormRetriever(db, QueryCache(db, clock=clock), similarity=similarity)

    forms = retriever.retrieve("user-1", "anything", [], use_embeddings=True, limit=3)
    similarity.query.assert_called_once_with("user-1", "anything", 3)
    assert ids(forms) == [b, a]


def test_storage_errors_propagate(retriever):
    with mock.patch.object(retriever.cache, "get", side_effect=RuntimeError("store down")):
        with pytest.raises(RuntimeError, match="store down"):
            retriever.retrieve("user-1", "q", ["q"])


def test_build_context_prompt_empty():
    assert build_context_prompt([]) == ""
    assert build_context_prompt(None) == ""


def test_build_context_prompt_contains_title_and_fields():
    form = {
        "title": "Job Application",
        "purpose": "Hire people",
        "schema": {"title": "Job Application", "fields": [
            {"name": "fullName", "type": "text"},
            {"name": "resume", "type": "image"},
        ]},
    }
    text = build_context_prompt([form])
    assert CONTEXT_HEADER in text
    assert '- Title: "Job Application", Purpose: "Hire people", Fields: fullName, resume' in text


def test_build_context_prompt_one_line_per_form():
    forms = [
        {"title": "A", "purpose": "a", "fields": ["x"]},
        {"title": "B", "purpose": "b", "fields": ["y", "z"]},
    ]
    lines = build_context_prompt(forms).strip().splitlines()
    assert lines[0] == CONTEXT_HEADER
    assert lines[1:] == [
        '- Title: "A", Purpose: "a", Fields: x',
        '- Title: "B", Purpose: "b", Fields: y, z',
    ]


def test_summarize_form():
    form = {"title": "T", "purpose": "P", "schema": {"fields": [{"name": "a"}, {"name": "b"}]}}
    assert summarize_form(form) == {"title": "T", "purpose": "P", "fields": ["a", "b"]}
