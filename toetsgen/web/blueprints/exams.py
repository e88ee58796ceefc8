"""Exam configuration form, topic suggestions, generation, result views and exports."""

import io
import logging
from collections.abc import Mapping

from flask import (
    Blueprint,
    abort,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)

from toetsgen.database import Exam
from toetsgen.exam_config import (
    DEFAULT_DURATION,
    DEFAULT_LANGUAGE_LEVEL,
    DEFAULT_QUESTION_COUNT,
    LANGUAGE_LEVELS,
    ConfigurationError,
    assemble_configuration,
    validation_errors,
)
from toetsgen.exam_export import download_name, export_docx, export_text
from toetsgen.exam_generator import GenerationError, generate_exam
from toetsgen.exam_models import GeneratedExam
from toetsgen.llm_provider import ProviderError
from toetsgen.presentation import VIEW_IDS, VIEWS, ResultView
from toetsgen.question_types import QuestionTypeAllocation
from toetsgen.taxonomy import DEFAULT_SCHEME, SCHEMES, TaxonomyDistribution, get_scheme
from toetsgen.topic_suggester import apply_suggestion, suggest_topics
from toetsgen.web.blueprints.helpers import _app_config, _get_session, approval_required, flash_generation_error

logger = logging.getLogger(__name__)

exams_bp = Blueprint("exams", __name__)

TEXT_FIELDS = ("subject", "level", "topics", "learning_goals", "extra_requirements")

DOCX_MIMETYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _parse_int(raw, default, low, high):
    try:
        value = int(raw)
    except (ValueError, TypeError):
        return default
    return max(low, min(value, high))


def _default_fields():
    generation = _app_config().get("generation", {})
    return {
        "subject": "",
        "level": "",
        "topics": "",
        "learning_goals": "",
        "extra_requirements": "",
        "duration": generation.get("default_duration", DEFAULT_DURATION),
        "question_count": generation.get("default_question_count", DEFAULT_QUESTION_COUNT),
        "language_level": DEFAULT_LANGUAGE_LEVEL,
    }


def _read_form(form):
    """Rebuild the form state (fields, distribution, allocation) from a POST.

    Changing the taxonomy radio resets the distribution to the new scheme's
    defaults; otherwise the submitted percentages are kept.
    """
    fields = _default_fields()
    for name in TEXT_FIELDS:
        fields[name] = form.get(name, "")
    fields["duration"] = _parse_int(form.get("duration"), fields["duration"], 1, 600)
    fields["question_count"] = _parse_int(form.get("question_count"), fields["question_count"], 1, 100)
    language_level = form.get("language_level", DEFAULT_LANGUAGE_LEVEL)
    fields["language_level"] = language_level if language_level in LANGUAGE_LEVELS else DEFAULT_LANGUAGE_LEVEL

    scheme_id = form.get("taxonomy", DEFAULT_SCHEME)
    if get_scheme(scheme_id) is None:
        scheme_id = DEFAULT_SCHEME
    current_scheme = form.get("current_taxonomy", scheme_id)
    if current_scheme != scheme_id:
        distribution = TaxonomyDistribution(current_scheme if get_scheme(current_scheme) else DEFAULT_SCHEME)
        distribution.switch_scheme(scheme_id)
    else:
        distribution = TaxonomyDistribution.from_form(scheme_id, form)

    allocation = QuestionTypeAllocation.from_form(form)
    return fields, distribution, allocation


def _state_from_exam(record):
    """Form state to return to from a stored exam."""
    stored = record.configuration or {}
    fields = _default_fields()
    for name in TEXT_FIELDS + ("duration", "question_count", "language_level"):
        if name in stored:
            fields[name] = stored[name]
    scheme_id = stored.get("taxonomy", DEFAULT_SCHEME)
    distribution = TaxonomyDistribution(
        scheme_id if get_scheme(scheme_id) else DEFAULT_SCHEME,
        values=stored.get("distribution") if get_scheme(scheme_id) else None,
    )
    allocation = QuestionTypeAllocation(stored.get("question_type_entries"))
    return fields, distribution, allocation


def _form_errors(fields, distribution, allocation):
    return validation_errors(distribution, allocation, fields["subject"], fields["topics"])


def _render_form(fields, distribution, allocation, errors=None, suggestion=None, status=200):
    return (
        render_template(
            "exams/new.html",
            can_generate=not _form_errors(fields, distribution, allocation),
            fields=fields,
            distribution=distribution,
            allocation=allocation,
            schemes=SCHEMES.values(),
            language_levels=LANGUAGE_LEVELS,
            errors=errors or [],
            suggestion=suggestion,
        ),
        status,
    )


def _get_exam_or_404(exam_id):
    record = _get_session().query(Exam).filter_by(id=exam_id).first()
    if not record or record.user_id != g.current_user["id"]:
        abort(404)
    return record


def _load_content(record):
    return GeneratedExam.model_validate(record.content)


@exams_bp.route("/")
@approval_required
def index():
    """Redirect root URL to the exam form."""
    return redirect(url_for("exams.new_exam"))


@exams_bp.route("/exams/new", methods=["GET", "POST"])
@approval_required
def new_exam():
    """Exam configuration form.

    Without JavaScript every edit is a POST with an ``action``: add or remove
    a question type, switch scheme, ask for topic suggestions, or generate.
    """
    if request.method == "GET":
        from_exam = request.args.get("from_exam", type=int)
        if from_exam:
            fields, distribution, allocation = _state_from_exam(_get_exam_or_404(from_exam))
        else:
            fields, distribution, allocation = _default_fields(), TaxonomyDistribution(), QuestionTypeAllocation()
        return _render_form(fields, distribution, allocation)

    fields, distribution, allocation = _read_form(request.form)
    action = request.form.get("action", "update")

    remove_label = request.form.get("remove_type")
    if remove_label:
        allocation.remove_type(remove_label)
        return _render_form(fields, distribution, allocation)

    if action == "add_type":
        allocation.add_type(request.form.get("qtype_next", ""))
        return _render_form(fields, distribution, allocation)

    if action == "suggest":
        if not fields["subject"] or not fields["level"]:
            return _render_form(
                fields, distribution, allocation, errors=["Vul eerst het vak en het niveau in."], status=400
            )
        suggestion = suggest_topics(_app_config(), fields["subject"], fields["level"])
        fields["topics"] = apply_suggestion(fields["topics"], suggestion)
        return _render_form(fields, distribution, allocation, suggestion=suggestion)

    if action != "generate":
        return _render_form(fields, distribution, allocation)

    errors = _form_errors(fields, distribution, allocation)
    if errors:
        return _render_form(fields, distribution, allocation, errors=errors, status=400)

    config = _app_config()
    try:
        exam_config = assemble_configuration(distribution, allocation, **fields)
        exam = generate_exam(config, exam_config)
    except ConfigurationError as ce:
        return _render_form(fields, distribution, allocation, errors=ce.errors, status=400)
    except (GenerationError, ProviderError) as pe:
        logger.warning("Exam generation failed: %s", pe)
        flash(pe.user_message, "error")
        return _render_form(fields, distribution, allocation, status=500)
    except Exception as e:
        flash_generation_error("Het genereren van de toets", e)
        return _render_form(fields, distribution, allocation, status=500)

    session = _get_session()
    configuration = exam_config.model_dump()
    configuration["question_type_entries"] = [list(entry) for entry in allocation.entries]
    record = Exam(
        user_id=g.current_user["id"],
        title=exam.title,
        taxonomy=exam.taxonomy,
        configuration=configuration,
        content=exam.model_dump(),
    )
    session.add(record)
    session.commit()
    return redirect(url_for("exams.exam_detail", exam_id=record.id), code=303)


@exams_bp.route("/exams/suggest-topics", methods=["POST"])
@approval_required
def suggest_topics_api():
    """JSON topic suggestions for the form's "Zoek onderwerpen" button."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form
    if not isinstance(data, Mapping):
        return jsonify({"error": "Ongeldig verzoek."}), 400
    values = {name: data.get(name) or "" for name in ("subject", "level", "topics")}
    if not all(isinstance(value, str) for value in values.values()):
        return jsonify({"error": "Ongeldig verzoek."}), 400

    subject = values["subject"].strip()
    level = values["level"].strip()
    if not subject or not level:
        return jsonify({"error": "Vul eerst het vak en het niveau in."}), 400

    suggestion = suggest_topics(_app_config(), subject, level)
    return jsonify(
        {
            "topics": apply_suggestion(values["topics"], suggestion),
            "suggestion": suggestion.topics,
            "sources": suggestion.sources,
        }
    )


@exams_bp.route("/exams")
@approval_required
def exams_list():
    """List the signed-in teacher's generated exams, newest first."""
    records = (
        _get_session()
        .query(Exam)
        .filter_by(user_id=g.current_user["id"])
        .order_by(Exam.created_at.desc(), Exam.id.desc())
        .all()
    )
    return render_template("exams/list.html", exams=records)


@exams_bp.route("/exams/<int:exam_id>")
@approval_required
def exam_detail(exam_id):
    """Show one generated exam in the selected view and layout."""
    record = _get_exam_or_404(exam_id)
    return render_template(
        "exams/detail.html",
        record=record,
        exam=_load_content(record),
        state=ResultView.from_args(request.args),
        views=VIEWS,
    )


@exams_bp.route("/exams/<int:exam_id>/print")
@approval_required
def exam_print(exam_id):
    """Print-styled full document; the browser's print dialog makes the PDF."""
    record = _get_exam_or_404(exam_id)
    return render_template("exams/print.html", record=record, exam=_load_content(record))


@exams_bp.route("/exams/<int:exam_id>/export.txt")
@approval_required
def exam_export_text(exam_id):
    """Download the exam, or one view of it, as plain text."""
    record = _get_exam_or_404(exam_id)
    view = request.args.get("view") or None
    if view == "full":
        view = None
    if view is not None and view not in VIEW_IDS:
        abort(400)

    text = export_text(_load_content(record), view=view)
    return send_file(
        io.BytesIO(text.encode("utf-8")),
        mimetype="text/plain; charset=utf-8",
        as_attachment=True,
        download_name=download_name(record.title, "txt", view),
    )


@exams_bp.route("/exams/<int:exam_id>/export.docx")
@approval_required
def exam_export_docx(exam_id):
    """Download the full exam as a Word document."""
    record = _get_exam_or_404(exam_id)
    buf = export_docx(_load_content(record))
    return send_file(
        buf,
        mimetype=DOCX_MIMETYPE,
        as_attachment=True,
        download_name=download_name(record.title, "docx"),
    )
