"""Shared utilities for the Toetsgenerator blueprint modules."""

import functools
import logging

from flask import current_app, flash, g, redirect, render_template, request, url_for
from flask import session as flask_session

from toetsgen.access_gate import (
    EVENT_INITIAL_SESSION,
    STATE_APPROVAL_ERROR,
    STATE_APPROVED,
    AccessGate,
)
from toetsgen.access_requests import lookup_access_status
from toetsgen.database import get_session
from toetsgen.web.config_utils import get_approval_timeout

logger = logging.getLogger(__name__)


def _get_session():
    """Get a database session from the shared app engine."""
    if "db_session" not in g:
        engine = current_app.config["DB_ENGINE"]
        g.db_session = get_session(engine)
    return g.db_session


def _app_config():
    return current_app.config["APP_CONFIG"]


def flash_generation_error(task_label, exception):
    """Log the full exception and flash a safe, generic error message.

    Prevents leaking internal details (file paths, SQL, tracebacks) to the UI
    while still logging the full error for debugging.
    """
    logger.exception("%s failed: %s", task_label, exception)
    flash(
        f"{task_label} is mislukt. Controleer de instellingen en probeer het opnieuw.",
        "error",
    )


def _set_current_user():
    g.current_user = {
        "id": flask_session.get("user_id"),
        "email": flask_session.get("email"),
        "school_name": flask_session.get("school_name"),
    }


def build_access_gate():
    """AccessGate wired to the app database and the Flask session.

    The session's ``approved_email`` is the last validated identity, so
    requests from an already-approved identity skip the lookup.
    """
    engine = current_app.config["DB_ENGINE"]
    return AccessGate(
        lookup=functools.partial(lookup_access_status, engine),
        sign_out=flask_session.clear,
        timeout=get_approval_timeout(_app_config()),
        last_validated_email=flask_session.get("approved_email"),
    )


def respond_to_gate(gate, on_approved):
    """Translate the gate's state into a response.

    Approved: remember the identity and call ``on_approved()``.
    Technical failure: keep the session and show the retry page.
    Definitive refusal: the gate already signed out; back to login with
    the explanation.
    """
    if gate.state == STATE_APPROVED:
        flask_session["approved_email"] = gate.last_validated_email
        return on_approved()
    if gate.state == STATE_APPROVAL_ERROR:
        _set_current_user()
        return render_template("access/approval_error.html", error=gate.approval_error), 503
    flash(gate.message or "Je bent uitgelogd.", "error")
    return redirect(url_for("auth.login"), code=303)


def login_required(f):
    """Decorator to require a signed-in session (approved or not)."""

    @functools.wraps(f)
    def decorated_function(*args, **kwargs):
        if not flask_session.get("logged_in"):
            return redirect(url_for("auth.login", next=request.url), code=303)
        _set_current_user()
        return f(*args, **kwargs)

    return decorated_function


def approval_required(f):
    """Decorator to require a signed-in session whose access is approved."""

    @functools.wraps(f)
    def decorated_function(*args, **kwargs):
        if not flask_session.get("logged_in"):
            return redirect(url_for("auth.login", next=request.url), code=303)
        gate = build_access_gate()
        gate.handle_event(EVENT_INITIAL_SESSION, flask_session.get("email"))

        def proceed():
            _set_current_user()
            return f(*args, **kwargs)

        return respond_to_gate(gate, proceed)

    return decorated_function
