"""Tests for transaction and retry helpers."""
import pytest
from sqlalchemy.exc import OperationalError

from freelancedash.models.user import User
from freelancedash.utils.exceptions import Conflict, Unavailable
from freelancedash.utils.response_formatter import service_error_response
from freelancedash.utils.transactions import atomic, retry_transient


def _transient():
    return OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly"))


class TestRetryTransient:

    def test_retries_then_succeeds(self, app):
        calls = []

        @retry_transient(attempts=3, base_delay=0)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise _transient()
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_exhausted_retries_become_unavailable(self, app):
        @retry_transient(attempts=2, base_delay=0)
        def down():
            raise _transient()

        with pytest.raises(Unavailable) as exc:
            down()

        assert exc.value.retryable is True
        assert exc.value.status == 503
        assert exc.value.details == {"operation": "down", "attempts": 2}

    def test_uses_configured_attempts(self, app):
        app.config["STORE_RETRY_ATTEMPTS"] = 4
        calls = []

        @retry_transient()
        def down():
            calls.append(1)
            raise _transient()

        with pytest.raises(Unavailable):
            down()
        assert len(calls) == 4

    def test_service_errors_are_not_retried(self, app):
        calls = []

        @retry_transient(attempts=3, base_delay=0)
        def conflicting():
            calls.append(1)
            raise Conflict("duplicate")

        with pytest.raises(Conflict):
            conflicting()
        assert len(calls) == 1

    def test_unavailable_renders_retryable_envelope(self, app):
        with app.test_request_context():
            resp, status = service_error_response(Unavailable())
        body = resp.get_json()
        assert status == 503
        assert body["success"] is False
        assert body["retryable"] is True
        assert body["error"]["code"] == "UNAVAILABLE"


class TestAtomic:

    def test_rolls_back_on_error(self, session):
        with pytest.raises(RuntimeError):
            with atomic(session):
                session.add(User(email="temp@example.com", password_hash="x", role="client"))
                session.flush()
                raise RuntimeError("abort")

        assert session.query(User).filter_by(email="temp@example.com").first() is None

    def test_commits_on_success(self, session):
        with atomic(session):
            session.add(User(email="kept@example.com", password_hash="x", role="client"))

        session.rollback()
        assert session.query(User).filter_by(email="kept@example.com").first() is not None
