"""
Unit tests for the header-based actor loader.
"""

import pytest
from werkzeug.datastructures import Headers

from homecare.core import auth, config


class _FakeRequest:
    def __init__(self, headers):
        self.headers = Headers(headers)


def _request(actor_id=None, role=None):
    headers = {}
    if actor_id is not None:
        headers["X-Actor-Id"] = actor_id
    if role is not None:
        headers["X-Actor-Role"] = role
    return _FakeRequest(headers)


@pytest.mark.unit
@pytest.mark.auth
class TestLoadActorFromRequest:
    def test_operator(self):
        actor = auth.load_actor_from_request(_request("op-1", "operator"))

        assert actor.id == "op-1"
        assert actor.get_id() == "op-1"
        assert actor.is_authenticated
        assert not actor.is_administrator

    def test_role_is_case_insensitive(self):
        actor = auth.load_actor_from_request(_request("admin-1", " Administrator "))

        assert actor.is_administrator

    def test_missing_id(self):
        assert auth.load_actor_from_request(_request(role="operator")) is None

    def test_unknown_role(self, caplog):
        assert auth.load_actor_from_request(_request("x-1", "superuser")) is None
        assert "unknown role" in caplog.text

    def test_untrusted_headers(self, monkeypatch):
        monkeypatch.setattr(config, "TRUSTED_ACTOR_HEADERS", False)

        assert auth.load_actor_from_request(_request("op-1", "operator")) is None
