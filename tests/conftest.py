import uuid

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import main
from database import get_db
from images import get_image_host
from security import Identity
from tests.helpers import FakeImageHost, make_user


@pytest.fixture
def db():
    return mongomock.MongoClient()[f"test_{uuid.uuid4().hex}"]


@pytest.fixture
def host():
    return FakeImageHost()


@pytest.fixture
def admin():
    return Identity(id=str(ObjectId()), email="admin@example.com", name="Admin", role="admin")


@pytest.fixture
def member():
    return Identity(id=str(ObjectId()), email="member@example.com", name="Member", role="user")


@pytest.fixture
def client(db, host):
    main.app.dependency_overrides[get_db] = lambda: db
    main.app.dependency_overrides[get_image_host] = lambda: host
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(db):
    return {"Authorization": f"Bearer {make_user(db, 'boss@example.com', 'admin', name='Boss')}"}


@pytest.fixture
def user_headers(db):
    return {"Authorization": f"Bearer {make_user(db, 'clerk@example.com', 'user', name='Clerk')}"}
