"""
Pytest markers and configuration for the home-care billing tests.

Markers are registered here and added automatically from the test file
location, so test categories stay consistent across the suite.
"""

import pytest


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "auth: mark test as authentication-related")
    config.addinivalue_line("markers", "api: mark test as API endpoint test")
    config.addinivalue_line("markers", "database: mark test as database-related")
    config.addinivalue_line("markers", "services: mark test as service layer test")
    config.addinivalue_line("markers", "domain: mark test as domain model test")
    config.addinivalue_line("markers", "repositories: mark test as repository test")
    config.addinivalue_line("markers", "controllers: mark test as controller-related")
    config.addinivalue_line(
        "markers", "reconciliation: mark test as payment reconciliation test"
    )
    config.addinivalue_line(
        "markers", "calendar: mark test as calendar/notification test"
    )
    config.addinivalue_line("markers", "logging: mark test as logging configuration test")


def pytest_collection_modifyitems(config, items):
    """Modify test items during collection."""
    for item in items:
        path = str(item.fspath)

        # Add markers based on test file location
        if "unit" in path:
            item.add_marker(pytest.mark.unit)

        if "integration" in path:
            item.add_marker(pytest.mark.integration)

        if "auth" in path or "auth" in item.name:
            item.add_marker(pytest.mark.auth)

        if "controller" in path:
            item.add_marker(pytest.mark.controllers)
            item.add_marker(pytest.mark.api)

        if "service" in path or "service" in item.name:
            item.add_marker(pytest.mark.services)

        if "repo" in path or "record_store" in path:
            item.add_marker(pytest.mark.repositories)
            item.add_marker(pytest.mark.database)
