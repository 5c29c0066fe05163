import os

# Settings are read at import time, so the environment has to be in place first
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ["S3_BUCKET"] = "bookcircle-test"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from bookcircle import database
from bookcircle.main import app


@pytest.fixture
def aws():
    with mock_aws():
        database.reset_clients()
        database.create_tables()
        database.create_bucket()
        yield
    database.reset_clients()


@pytest.fixture
def make_client(aws):
    """Each client keeps its own cookie jar, i.e. its own session."""
    def _make():
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


def signup(client, username, password="secret"):
    resp = client.post("/signup", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return client.get("/me").json()["id"]


@pytest.fixture
def alice(make_client):
    c = make_client()
    c.user_id = signup(c, "alice")
    return c


@pytest.fixture
def bob(make_client):
    c = make_client()
    c.user_id = signup(c, "bob")
    return c


@pytest.fixture
def carol(make_client):
    c = make_client()
    c.user_id = signup(c, "carol")
    return c
