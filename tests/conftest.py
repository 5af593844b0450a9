import json
from datetime import datetime, timedelta

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from auth import verify_user
from database import FORMS, Database
from generation import FormSchemaGenerator
from main import app, get_db, get_generator


class Clock:
    """Controllable stand-in for database.utcnow."""
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def db():
    database = Database("mongodb://test", "promptform_test", client=mongomock.MongoClient()).connect()
    yield database
    database.close()


@pytest.fixture
def make_form(db):
    def _make(user_id="user-1", title="Contact", keywords=None, fields=None, share_link=None):
        doc = {
            "user_id": user_id,
            "title": title,
            "purpose": f"{title} purpose",
            "keywords": keywords if keywords is not None else ["contact"],
            "schema": {
                "title": title,
                "fields": fields or [{"name": "email", "type": "email", "required": True}],
            },
            "share_link": share_link or str(ObjectId())[-10:],
        }
        return db.create_document(FORMS, doc)
    return _make


@pytest.fixture
def generated():
    return {
        "title": "Event Signup",
        "purpose": "Collect attendees",
        "keywords": ["Event", "signup"],
        "fields": [
            {"name": "fullName", "type": "text", "required": True, "placeholder": "Your name"},
            {"name": "email", "type": "email", "required": True},
            {"name": "photo", "type": "image", "required": False},
        ],
    }


@pytest.fixture
def backend_calls():
    return []


@pytest.fixture
def generator(generated, backend_calls):
    def backend(prompt):
        backend_calls.append(prompt)
        return "Here you go:\n" + json.dumps(generated)

    return FormSchemaGenerator([backend])


@pytest.fixture
def current_user():
    return {"uid": "user-1"}


@pytest.fixture
def client(db, generator, current_user):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_generator] = lambda: generator
    app.dependency_overrides[verify_user] = lambda: current_user["uid"]
    yield TestClient(app)
    app.dependency_overrides.clear()
