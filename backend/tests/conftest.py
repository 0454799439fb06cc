"""
Central pytest configuration for the home-care billing tests.

This file provides common fixtures, test markers, and setup
for both unit and integration tests.
"""

import os
from datetime import date

import pytest

# Test database configuration (set early so import-time engines use it)
TEST_DATABASE_URL = "sqlite:///:memory:"  # In-memory SQLite for fast tests
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["TESTING"] = "true"
os.environ["LOG_TO_FILE"] = "0"  # Console-only logging in tests
os.environ["TRUSTED_ACTOR_HEADERS"] = "true"  # Tests play the gateway role

from tests.config.markers import (  # noqa: E402,F401
    pytest_collection_modifyitems,
    pytest_configure,
)

# Reference date shared by the scenario tests
AS_OF = date(2024, 6, 15)


@pytest.fixture
def as_of() -> date:
    """Fixed reference date for deterministic obligations."""
    return AS_OF


@pytest.fixture
def db_session():
    """Fresh in-memory schema and a session bound to it."""
    from homecare.db.session import SessionLocal, create_tables, drop_tables

    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def app(db_session):
    """Create a Flask application for testing with proper configuration."""
    from homecare.main import create_app

    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "PROPAGATE_EXCEPTIONS": True,  # Show exceptions in tests
        }
    )
    return app


@pytest.fixture
def client(app):
    """Create a test client for Flask application with proper context."""
    with app.test_client() as client:
        with app.app_context():
            yield client


@pytest.fixture
def operator_headers():
    return {"X-Actor-Id": "op-1", "X-Actor-Role": "operator"}


@pytest.fixture
def admin_headers():
    return {"X-Actor-Id": "admin-1", "X-Actor-Role": "administrator"}


@pytest.fixture
def response_helper():
    """Simple response helper for integration tests."""

    class ResponseHelper:
        @staticmethod
        def assert_json_response(response, expected_status=200):
            assert response.status_code == expected_status
            return response.get_json()

    return ResponseHelper()
