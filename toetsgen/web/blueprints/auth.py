"""Authentication routes: login, logout, registration, access requests, health check."""

import logging
from urllib.parse import urlparse

from flask import (
    Blueprint,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask import session as flask_session

from toetsgen.access_gate import EVENT_SIGNED_IN, EVENT_SIGNED_OUT, EVENT_TOKEN_REFRESHED
from toetsgen.access_requests import compose_training_description, request_access
from toetsgen.web.auth import MIN_PASSWORD_LENGTH, authenticate_user, create_user
from toetsgen.web.blueprints.helpers import (
    _get_session,
    build_access_gate,
    login_required,
    respond_to_gate,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _is_safe_url(target):
    """Validate that a redirect URL is safe (relative, same-origin)."""
    if not target:
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc and not target.startswith("//")


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    """Sign in with e-mail and password, then run the approval check."""
    if request.method == "POST":
        email = request.form.get("email", "")
        password = request.form.get("password", "")

        session = _get_session()
        user = authenticate_user(session, email, password)
        if not user:
            return render_template("auth/login.html", error="Je e-mailadres of wachtwoord klopt niet."), 401

        flask_session.clear()  # Regenerate session to prevent fixation
        flask_session["logged_in"] = True
        flask_session["user_id"] = user.id
        flask_session["email"] = user.email
        flask_session["school_name"] = user.school_name

        gate = build_access_gate()
        gate.handle_event(EVENT_SIGNED_IN, user.email)

        def to_next_page():
            next_url = request.args.get("next", "")
            if not _is_safe_url(next_url):
                next_url = url_for("exams.new_exam")
            return redirect(next_url, code=303)

        return respond_to_gate(gate, to_next_page)

    return render_template("auth/login.html")


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """Sign out: the gate drops the session and its validated identity."""
    build_access_gate().handle_event(EVENT_SIGNED_OUT)
    flask_session.clear()
    return redirect(url_for("auth.login"), code=303)


@auth_bp.route("/access/retry", methods=["POST"])
@login_required
def retry_access_check():
    """Run the approval lookup again after a timeout or database error."""
    gate = build_access_gate()
    gate.handle_event(EVENT_TOKEN_REFRESHED, flask_session.get("email"))
    return respond_to_gate(gate, lambda: redirect(url_for("exams.new_exam"), code=303))


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    """Create an account; it stays unusable until an administrator approves it."""
    if request.method == "POST":
        school_name = request.form.get("school_name", "").strip()
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")

        form = {"school_name": school_name, "email": email}
        if len(password) < MIN_PASSWORD_LENGTH:
            return render_template(
                "auth/register.html",
                form=form,
                error=f"Je wachtwoord moet minimaal {MIN_PASSWORD_LENGTH} tekens lang zijn.",
            ), 400
        if not school_name:
            return render_template("auth/register.html", form=form, error="Vul de naam van je school in."), 400
        if not email:
            return render_template("auth/register.html", form=form, error="Vul je e-mailadres in."), 400

        session = _get_session()
        user = create_user(session, email, password, school_name=school_name)
        if not user:
            return render_template("auth/register.html", form=form, error="Dit e-mailadres is al in gebruik."), 400

        request_access(session, user.email, school_name)
        return render_template("auth/register_success.html", email=user.email)

    return render_template("auth/register.html", form={})


@auth_bp.route("/request-access", methods=["GET", "POST"])
def request_access_form():
    """Training / access request from a school, stored as a pending request."""
    if request.method == "POST":
        form = {
            "school_name": request.form.get("school_name", "").strip(),
            "contact_person": request.form.get("contact_person", "").strip(),
            "email": request.form.get("email", "").strip(),
            "phone": request.form.get("phone", "").strip(),
        }
        if not form["email"] or not form["school_name"]:
            return render_template(
                "auth/request_access.html",
                form=form,
                error="Vul ten minste de naam van de school en een e-mailadres in.",
            ), 400

        description = compose_training_description(form["school_name"], form["contact_person"], form["phone"])
        session = _get_session()
        try:
            request_access(session, form["email"], description)
        except Exception:
            session.rollback()
            logger.exception("Storing access request for %s failed", form["email"])
            return render_template(
                "auth/request_access.html",
                form=form,
                error="Er ging iets mis bij het versturen. Probeer het later opnieuw.",
            ), 500
        return render_template("auth/request_access_success.html")

    return render_template("auth/request_access.html", form={})


@auth_bp.route("/health")
def health():
    """Health check endpoint for monitoring and Docker."""
    return jsonify({"status": "ok", "service": "toetsgenerator"})
