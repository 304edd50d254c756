import mongomock
import pytest
from fastapi.testclient import TestClient

import chatbot
from database import RecordStore, get_store
from main import app


def run_now(delay, callback):
    callback()


@pytest.fixture
def store():
    return RecordStore(mongomock.MongoClient()["medflow-test"])


@pytest.fixture
def chat_registry():
    return chatbot.ChatRegistry(delay=0, schedule=run_now)


@pytest.fixture
def client(store, chat_registry):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[chatbot.get_chat_registry] = lambda: chat_registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client):
    def _login(role, email="staff@medflow.test", password="password123"):
        res = client.post(f"/{role}-login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return res.json()

    return _login
