"""
Approval gate for signed-in sessions.

A signed-in identity may only use the generator once its access request is
approved. The gate reacts to auth events (initial session check, sign-in,
token refresh, sign-out) and runs the approval lookup raced against a
timeout.

Two kinds of failure are kept apart:

* technical (lookup raised or timed out): the session is kept, the gate
  enters ``approval_error`` and offers a retry;
* definitive (request pending or absent): the session is signed out
  immediately and an explanatory message is left behind.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from toetsgen.database import STATUS_APPROVED, STATUS_PENDING

logger = logging.getLogger(__name__)

STATE_CHECKING = "checking"
STATE_APPROVAL_ERROR = "approval_error"
STATE_APPROVED = "approved"
STATE_UNAUTHENTICATED = "unauthenticated"

EVENT_INITIAL_SESSION = "initial_session"
EVENT_SIGNED_IN = "signed_in"
EVENT_TOKEN_REFRESHED = "token_refreshed"
EVENT_SIGNED_OUT = "signed_out"
AUTH_EVENTS = (EVENT_INITIAL_SESSION, EVENT_SIGNED_IN, EVENT_TOKEN_REFRESHED, EVENT_SIGNED_OUT)

DEFAULT_APPROVAL_TIMEOUT = 30.0

PENDING_MESSAGE = "Je account is nog in behandeling. Wacht op goedkeuring van de beheerder."
NO_ACCESS_MESSAGE = "Je account heeft geen toegang (meer) tot deze applicatie. Neem contact op met de beheerder."
TIMEOUT_MESSAGE = (
    "Het controleren van je toegangsrechten duurt te lang. De server reageert traag; probeer het opnieuw."
)
CHECK_FAILED_PREFIX = "Fout bij controleren rechten: "
UNKNOWN_ERROR_MESSAGE = "Er is een onbekende fout opgetreden."


def extract_error_message(err):
    """Best-effort human-readable message for any error value.

    Tries, in order: the value itself if it is a string, an exception's
    message, a ``message`` or ``error_description`` attribute or key, a JSON
    rendering, and finally ``str()``.
    """
    if err is None:
        return UNKNOWN_ERROR_MESSAGE
    if isinstance(err, str):
        return err
    for key in ("message", "error_description"):
        value = err.get(key) if isinstance(err, dict) else getattr(err, key, None)
        if isinstance(value, str) and value:
            return value
    if isinstance(err, BaseException) and err.args:
        return str(err.args[0]) if len(err.args) == 1 else str(err)
    if not isinstance(err, BaseException):
        try:
            rendered = json.dumps(err)
        except (TypeError, ValueError):
            rendered = None
        if rendered and rendered not in ("{}", "[]"):
            return rendered
    return str(err) or UNKNOWN_ERROR_MESSAGE


class ApprovalTimeout(Exception):
    """The approval lookup did not finish within the allowed time."""


def call_with_timeout(fn, timeout, *args):
    """Run ``fn(*args)`` and return its result, or raise ApprovalTimeout.

    Whichever settles first wins. A lookup that finishes after the timeout
    is left to complete on its own thread and its result is discarded.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn, *args)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise ApprovalTimeout(f"approval lookup exceeded {timeout}s") from e
    finally:
        executor.shutdown(wait=False)


class AccessGate:
    """State machine deciding whether a session may use the generator.

    Args:
        lookup: Callable ``lookup(email)`` returning "approved", "pending"
            or None.
        sign_out: Callable invoked when a definitive non-approval drops the
            session.
        timeout: Seconds the lookup may take before it counts as a
            technical failure.
        last_validated_email: Identity already approved earlier in this
            session; events for it skip the lookup.
    """

    def __init__(self, lookup, sign_out=None, timeout=DEFAULT_APPROVAL_TIMEOUT, last_validated_email=None):
        self._lookup = lookup
        self._sign_out = sign_out
        self.timeout = timeout
        self.state = STATE_CHECKING
        self.identity = None
        self.last_validated_email = last_validated_email
        self.approval_error = None
        self.message = None

    @property
    def is_approved(self):
        return self.state == STATE_APPROVED

    @property
    def can_retry(self):
        return self.state == STATE_APPROVAL_ERROR and self.identity is not None

    def handle_event(self, event, email=None):
        """Apply one auth event and return the resulting state."""
        if event not in AUTH_EVENTS:
            raise ValueError(f"Unknown auth event: {event}")

        if event == EVENT_SIGNED_OUT or not email:
            self._reset()
            return self.state

        self.identity = email
        if email == self.last_validated_email:
            self.state = STATE_APPROVED
            self.approval_error = None
            return self.state

        return self.check_approval(email)

    def retry(self):
        """Re-run the approval lookup after a technical failure."""
        if not self.can_retry:
            return self.state
        return self.check_approval(self.identity)

    def check_approval(self, email):
        self.state = STATE_CHECKING
        self.approval_error = None
        self.message = None

        try:
            status = call_with_timeout(self._lookup, self.timeout, email)
        except ApprovalTimeout:
            logger.warning("Approval lookup for %s timed out after %ss", email, self.timeout)
            self.state = STATE_APPROVAL_ERROR
            self.approval_error = TIMEOUT_MESSAGE
            return self.state
        except Exception as e:
            logger.exception("Approval lookup for %s failed", email)
            self.state = STATE_APPROVAL_ERROR
            self.approval_error = CHECK_FAILED_PREFIX + extract_error_message(e)
            return self.state

        if status == STATUS_APPROVED:
            self.state = STATE_APPROVED
            self.last_validated_email = email
            return self.state

        logger.info("Access for %s not approved (status=%s); signing out", email, status)
        message = PENDING_MESSAGE if status == STATUS_PENDING else NO_ACCESS_MESSAGE
        if self._sign_out is not None:
            self._sign_out()
        self._reset()
        self.message = message
        return self.state

    def _reset(self):
        self.state = STATE_UNAUTHENTICATED
        self.identity = None
        self.last_validated_email = None
        self.approval_error = None
        self.message = None
