"""Flask blueprints for the Toetsgenerator web frontend."""

from toetsgen.web.blueprints.auth import auth_bp
from toetsgen.web.blueprints.exams import exams_bp
from toetsgen.web.blueprints.feedback import feedback_bp


def register_blueprints(app):
    """Register all blueprint modules on the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(exams_bp)
    app.register_blueprint(feedback_bp)
