import pytest
from fastapi.testclient import TestClient

from database import Database
from main import create_app


@pytest.fixture
def db():
    database = Database("sqlite://").open()
    yield database
    database.close()


@pytest.fixture
def client(db):
    with TestClient(create_app(db)) as c:
        yield c
