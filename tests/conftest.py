"""
Pytest configuration and fixtures
"""
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from config import ServerConfig  # noqa: E402
from errors import AuthenticationFailed  # noqa: E402
from grade_client import GradeServiceClient  # noqa: E402
from server import create_app  # noqa: E402


class FakeGradeClient(GradeServiceClient):
    """In-memory grade service that records every call"""

    def __init__(self, subjects=None, auth_error=None, fetch_error=None):
        self.subjects = subjects if subjects is not None else []
        self.auth_error = auth_error
        self.fetch_error = fetch_error
        self.calls = []

    def authenticate(self, service_url, username, password):
        self.calls.append(("authenticate", service_url, username))
        if self.auth_error is not None:
            raise self.auth_error
        return {"url": service_url, "user": username}

    def fetch_subjects(self, session):
        self.calls.append(("fetch_subjects", session["url"]))
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.subjects


@pytest.fixture
def fake_client():
    return FakeGradeClient(subjects=[
        {"name": "Math", "average": 15, "coefficient": 2},
        {"name": "Art", "average": 10, "coefficient": 1},
    ])


@pytest.fixture
def client(fake_client):
    """Test client wired to the fake grade service"""
    return TestClient(create_app(ServerConfig(), client=fake_client))


@pytest.fixture
def rejecting_client():
    return FakeGradeClient(auth_error=AuthenticationFailed())


@pytest.fixture
def credentials():
    return {
        "url": "https://school.example.com/pronote",
        "username": "alice",
        "password": "secret",
    }
