"""Feedback form for signed-in teachers."""

import logging

from flask import Blueprint, render_template, request

from toetsgen.feedback import submit_feedback
from toetsgen.web.blueprints.helpers import _app_config, _get_session, login_required

logger = logging.getLogger(__name__)

feedback_bp = Blueprint("feedback", __name__)

MAX_MESSAGE_LENGTH = 5000


@feedback_bp.route("/feedback", methods=["GET", "POST"])
@login_required
def feedback():
    if request.method == "POST":
        name = request.form.get("name", "").strip()
        message = request.form.get("message", "").strip()
        form = {"name": name, "message": message}

        if not message:
            return render_template("feedback/form.html", form=form, error="Schrijf eerst een bericht."), 400
        if len(message) > MAX_MESSAGE_LENGTH:
            return render_template(
                "feedback/form.html",
                form=form,
                error=f"Je bericht mag maximaal {MAX_MESSAGE_LENGTH} tekens bevatten.",
            ), 400

        stored = submit_feedback(_get_session(), _app_config(), name, message)
        logger.info("Feedback %s stored (delivered=%s)", stored.id, stored.delivered)
        return render_template("feedback/thanks.html", delivered=stored.delivered)

    return render_template("feedback/form.html", form={})
