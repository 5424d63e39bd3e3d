"""HTTP client fixture for API tests"""
import pytest
from fastapi.testclient import TestClient

from agencyflow.main import app


@pytest.fixture
def client(db, broker):
    # Not entered as a context manager, so the lifespan (indexes,
    # scheduler) does not run against the in-memory database
    return TestClient(app)
