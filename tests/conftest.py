"""Shared fixtures: every test runs against a freshly provisioned SQLite file."""

import os

import pytest
from fastapi.testclient import TestClient

# Point settings at SQLite before the application is imported
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from payroll_api.database import Database, get_database  # noqa: E402
from payroll_api.main import app  # noqa: E402
from payroll_api.models import Base  # noqa: E402

test_database = Database(TEST_DATABASE_URL)
app.dependency_overrides[get_database] = lambda: test_database


@pytest.fixture(autouse=True)
def setup_db():
    """Create fresh tables and seed departments before each test, drop after."""
    Base.metadata.drop_all(bind=test_database.engine)
    test_database.provision()
    yield
    Base.metadata.drop_all(bind=test_database.engine)


@pytest.fixture
def db():
    return test_database


@pytest.fixture
def client():
    return TestClient(app)
