import uuid

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import Storage
from main import create_app

ADMIN = {"username": "admin", "password": "admin-pass"}


@pytest.fixture
def settings():
    return Settings(
        database_name=f"test_{uuid.uuid4().hex}",
        session_secret="test-secret",
        bcrypt_rounds=4,
        admin_username=ADMIN["username"],
        admin_password=ADMIN["password"],
    )


@pytest.fixture
def storage(settings):
    store = Storage(mongomock.MongoClient(), settings)
    store.initialize()
    return store


@pytest.fixture
def empty_catalog(storage):
    """Storage with the seeded listings removed."""
    storage.properties.delete_many({})
    return storage


@pytest.fixture
def client(settings, storage):
    with TestClient(create_app(settings=settings, storage=storage)) as c:
        yield c


@pytest.fixture
def admin_client(client):
    resp = client.post("/api/login", json=ADMIN)
    assert resp.status_code == 200
    return client


@pytest.fixture
def make_property():
    def _make(**overrides):
        data = {
            "title": "فيلا للبيع",
            "description": "فيلا حديثة بتشطيبات فاخرة",
            "type": "villa",
            "price": 1500000,
            "city": "الرياض",
            "area": "شمال الرياض",
            "neighborhood": "النرجس",
            "address": "حي النرجس، الرياض",
            "bedrooms": 4,
            "bathrooms": 3,
            "size": 400,
            "images": ["https://example.com/villa.jpg"],
        }
        data.update(overrides)
        return data

    return _make
