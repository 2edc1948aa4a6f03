import mongomock
import pytest
from fastapi.testclient import TestClient

import seed
from database import get_db
from main import app
from security import IdentityError, create_access_token, get_identity_provider


class FakeIdentityProvider:
    """Stands in for Firebase: known uids, and tokens mapped to uids."""

    def __init__(self):
        self.uids = set()
        self.tokens = {}

    def issue(self, uid: str) -> str:
        token = f"id-token-{uid}"
        self.uids.add(uid)
        self.tokens[token] = uid
        return token

    def verify_token(self, token):
        if token not in self.tokens:
            raise IdentityError("unknown token")
        return {"uid": self.tokens[token]}

    def user_exists(self, uid):
        return uid in self.uids


@pytest.fixture
def db():
    return mongomock.MongoClient()["pixisphere_test"]


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def client(db, identity):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db):
    seed.seed_database(db)
    return db


@pytest.fixture
def bearer():
    def headers(user: dict) -> dict:
        token = create_access_token(str(user["_id"]), user["user_type"])
        return {"Authorization": f"Bearer {token}"}

    return headers


@pytest.fixture
def user(seeded):
    def lookup(collection, username):
        return seeded[collection].find_one({"username": username})

    return lookup
