"""
Tests for the approval gate state machine.
"""

import threading
from unittest.mock import MagicMock

import pytest

from toetsgen.access_gate import (
    CHECK_FAILED_PREFIX,
    EVENT_INITIAL_SESSION,
    EVENT_SIGNED_IN,
    EVENT_SIGNED_OUT,
    EVENT_TOKEN_REFRESHED,
    NO_ACCESS_MESSAGE,
    PENDING_MESSAGE,
    STATE_APPROVAL_ERROR,
    STATE_APPROVED,
    STATE_CHECKING,
    STATE_UNAUTHENTICATED,
    TIMEOUT_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    AccessGate,
    ApprovalTimeout,
    call_with_timeout,
    extract_error_message,
)


def _gate(status="approved", **kwargs):
    lookup = MagicMock(return_value=status)
    sign_out = MagicMock()
    return AccessGate(lookup, sign_out=sign_out, **kwargs), lookup, sign_out


class TestApproved:
    def test_initial_state(self):
        gate, lookup, _ = _gate()
        assert gate.state == STATE_CHECKING
        lookup.assert_not_called()

    def test_signed_in_approved(self):
        gate, lookup, sign_out = _gate("approved")
        assert gate.handle_event(EVENT_SIGNED_IN, "a@school.nl") == STATE_APPROVED
        assert gate.is_approved
        assert gate.last_validated_email == "a@school.nl"
        lookup.assert_called_once_with("a@school.nl")
        sign_out.assert_not_called()

    def test_same_identity_not_revalidated(self):
        gate, lookup, _ = _gate("approved")
        gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        gate.handle_event(EVENT_TOKEN_REFRESHED, "a@school.nl")
        gate.handle_event(EVENT_INITIAL_SESSION, "a@school.nl")
        assert lookup.call_count == 1

    def test_last_validated_from_constructor_skips_lookup(self):
        gate, lookup, _ = _gate("pending", last_validated_email="a@school.nl")
        assert gate.handle_event(EVENT_INITIAL_SESSION, "a@school.nl") == STATE_APPROVED
        lookup.assert_not_called()

    def test_different_identity_revalidated(self):
        gate, lookup, _ = _gate("approved", last_validated_email="a@school.nl")
        gate.handle_event(EVENT_SIGNED_IN, "b@school.nl")
        lookup.assert_called_once_with("b@school.nl")


class TestDefinitiveRefusal:
    def test_pending_signs_out(self):
        """Pending status drops the session with an explanation."""
        gate, lookup, sign_out = _gate("pending")
        assert gate.handle_event(EVENT_SIGNED_IN, "a@school.nl") == STATE_UNAUTHENTICATED
        sign_out.assert_called_once()
        assert gate.message == PENDING_MESSAGE
        assert gate.identity is None
        assert gate.last_validated_email is None

    def test_pending_stays_pending_until_changed(self):
        statuses = iter(["pending", "pending", "approved"])
        gate = AccessGate(lambda email: next(statuses), sign_out=MagicMock())
        gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        assert gate.message == PENDING_MESSAGE
        gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        assert gate.message == PENDING_MESSAGE
        assert gate.handle_event(EVENT_SIGNED_IN, "a@school.nl") == STATE_APPROVED

    def test_absent_request(self):
        gate, _, sign_out = _gate(None)
        gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        assert gate.state == STATE_UNAUTHENTICATED
        assert gate.message == NO_ACCESS_MESSAGE
        sign_out.assert_called_once()

    def test_without_sign_out_callback(self):
        gate = AccessGate(lambda email: "pending")
        assert gate.handle_event(EVENT_SIGNED_IN, "a@school.nl") == STATE_UNAUTHENTICATED


class TestTechnicalFailure:
    def test_timeout_keeps_session(self):
        """A slow lookup leaves the session in approval_error."""
        release = threading.Event()

        def slow_lookup(email):
            release.wait(5)
            return "approved"

        sign_out = MagicMock()
        gate = AccessGate(slow_lookup, sign_out=sign_out, timeout=0.05)
        try:
            state = gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        finally:
            release.set()

        assert state == STATE_APPROVAL_ERROR
        assert gate.approval_error == TIMEOUT_MESSAGE
        assert gate.identity == "a@school.nl"
        assert gate.can_retry
        sign_out.assert_not_called()

    def test_lookup_exception(self):
        def broken_lookup(email):
            raise RuntimeError("database is locked")

        sign_out = MagicMock()
        gate = AccessGate(broken_lookup, sign_out=sign_out)
        assert gate.handle_event(EVENT_SIGNED_IN, "a@school.nl") == STATE_APPROVAL_ERROR
        assert gate.approval_error == CHECK_FAILED_PREFIX + "database is locked"
        sign_out.assert_not_called()

    def test_retry_after_failure(self):
        lookup = MagicMock(side_effect=[RuntimeError("offline"), "approved"])
        gate = AccessGate(lookup)
        gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        assert gate.state == STATE_APPROVAL_ERROR
        assert gate.retry() == STATE_APPROVED
        assert gate.approval_error is None

    def test_retry_without_failure_is_noop(self):
        gate, lookup, _ = _gate("approved")
        assert gate.retry() == STATE_CHECKING
        lookup.assert_not_called()


class TestSignOut:
    def test_signed_out_resets(self):
        gate, _, _ = _gate("approved")
        gate.handle_event(EVENT_SIGNED_IN, "a@school.nl")
        assert gate.handle_event(EVENT_SIGNED_OUT) == STATE_UNAUTHENTICATED
        assert gate.last_validated_email is None

    def test_missing_email_resets(self):
        gate, lookup, _ = _gate("approved")
        assert gate.handle_event(EVENT_INITIAL_SESSION, None) == STATE_UNAUTHENTICATED
        lookup.assert_not_called()

    def test_unknown_event(self):
        gate, _, _ = _gate()
        with pytest.raises(ValueError):
            gate.handle_event("password_recovery", "a@school.nl")


class TestCallWithTimeout:
    def test_returns_result(self):
        assert call_with_timeout(lambda x: x * 2, 1, 21) == 42

    def test_raises_timeout(self):
        release = threading.Event()
        try:
            with pytest.raises(ApprovalTimeout):
                call_with_timeout(lambda: release.wait(5), 0.05)
        finally:
            release.set()

    def test_propagates_exception(self):
        def boom():
            raise KeyError("x")

        with pytest.raises(KeyError):
            call_with_timeout(boom, 1)


class TestExtractErrorMessage:
    def test_string(self):
        assert extract_error_message("kapot") == "kapot"

    def test_exception(self):
        assert extract_error_message(RuntimeError("verbinding verbroken")) == "verbinding verbroken"

    def test_dict_message(self):
        assert extract_error_message({"message": "JWT expired"}) == "JWT expired"

    def test_dict_error_description(self):
        assert extract_error_message({"error_description": "invalid grant"}) == "invalid grant"

    def test_attribute(self):
        class ApiError(Exception):
            message = "rate limited"

        assert extract_error_message(ApiError()) == "rate limited"

    def test_json_fallback(self):
        assert extract_error_message({"code": 500}) == '{"code": 500}'

    def test_none(self):
        assert extract_error_message(None) == UNKNOWN_ERROR_MESSAGE

    def test_str_fallback(self):
        assert extract_error_message(object()).startswith("<object object")
