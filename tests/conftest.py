"""
Shared pytest fixtures for Toetsgenerator tests.

Provides commonly-used database, config, and Flask test client fixtures
so that individual test files do not need to duplicate boilerplate setup
and teardown logic.

Fixture summary
---------------
Database:
    db_path              -- temp .db file path with cleanup
    db_session           -- (session, db_path) tuple
    db_engine_session    -- (engine, session, db_path) tuple

Config:
    mock_config          -- standard config dict using MockLLMProvider

LLM:
    mock_provider        -- a MockLLMProvider() instance

Data builders:
    sample_exam_data     -- RTTI exam dict in the provider's camelCase shape
    sample_exam          -- the same exam parsed into a GeneratedExam

Flask:
    flask_app            -- Flask app seeded with users, access requests, exams
    flask_client         -- signed-in client for the approved teacher
    anon_flask_client    -- unauthenticated test client
"""

import json
import os
import tempfile

import pytest

from toetsgen.database import STATUS_APPROVED, STATUS_PENDING, AccessRequest, Base, Exam, get_engine, get_session, init_db
from toetsgen.exam_models import GeneratedExam
from toetsgen.mock_responses import get_exam_response
from toetsgen.web.auth import create_user

APPROVED_EMAIL = "docent@school.nl"
PENDING_EMAIL = "wacht@school.nl"
OTHER_EMAIL = "collega@school.nl"
PASSWORD = "geheim123"

# ---------------------------------------------------------------------------
# Core database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path():
    """Provide a temporary database file path with cleanup."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    try:
        if os.path.exists(tmp.name):
            os.remove(tmp.name)
    except OSError:
        pass  # Windows may still hold the lock


@pytest.fixture
def db_session(db_path):
    """Provide an initialized SQLAlchemy session bound to a temp DB.

    Yields a ``(session, db_path)`` tuple.
    """
    engine = get_engine(db_path)
    init_db(engine)
    session = get_session(engine)
    yield session, db_path
    session.close()
    engine.dispose()


@pytest.fixture
def db_engine_session(db_path):
    """Provide engine AND session for tests that need engine access.

    Yields an ``(engine, session, db_path)`` tuple.
    """
    engine = get_engine(db_path)
    init_db(engine)
    session = get_session(engine)
    yield engine, session, db_path
    session.close()
    engine.dispose()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config(db_session):
    """Provide a standard mock config dict."""
    session, db_path_value = db_session
    return {
        "llm": {"provider": "mock"},
        "paths": {"database_file": db_path_value},
        "generation": {"default_duration": 60, "default_question_count": 15},
        "access": {"approval_timeout_seconds": 5},
        "feedback": {"relay_url": ""},
    }


# ---------------------------------------------------------------------------
# LLM provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_provider():
    """Provide a MockLLMProvider instance (zero-cost, no API calls)."""
    from toetsgen.llm_provider import MockLLMProvider

    return MockLLMProvider()


# ---------------------------------------------------------------------------
# Data builder fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_exam_data():
    """Return an RTTI exam dict as the provider would send it."""
    return json.loads(get_exam_response("RTTI", topics=["Cellen", "Fotosynthese"]))


@pytest.fixture
def sample_exam(sample_exam_data):
    return GeneratedExam.model_validate(sample_exam_data)


# ---------------------------------------------------------------------------
# Flask test client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def flask_app(db_path, monkeypatch, sample_exam):
    """Provide a Flask test app with a temporary, seeded database.

    Seed (ids are stable on a fresh database):
        user 1 ``docent@school.nl``   approved, owns exam 1
        user 2 ``wacht@school.nl``    pending
        user 3 ``collega@school.nl``  approved, owns exam 2

    All users share the password ``geheim123``.
    """
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    for name in ("DATABASE_URL", "DATABASE_PATH", "LLM_PROVIDER", "GEMINI_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    session = get_session(engine)

    approved = create_user(session, APPROVED_EMAIL, PASSWORD, school_name="Het Lyceum")
    create_user(session, PENDING_EMAIL, PASSWORD, school_name="De Wachtschool")
    other = create_user(session, OTHER_EMAIL, PASSWORD, school_name="Het College")
    session.add_all(
        [
            AccessRequest(email=APPROVED_EMAIL, school_name="Het Lyceum", status=STATUS_APPROVED),
            AccessRequest(email=PENDING_EMAIL, school_name="De Wachtschool", status=STATUS_PENDING),
            AccessRequest(email=OTHER_EMAIL, school_name="Het College", status=STATUS_APPROVED),
        ]
    )
    configuration = {
        "taxonomy": "RTTI",
        "subject": "Biologie",
        "level": "Havo 4",
        "topics": "Cellen, Fotosynthese",
        "learning_goals": "De leerling kan cellen beschrijven.",
        "distribution": {"R": 20, "T1": 40, "T2": 30, "I": 10},
        "duration": 45,
        "question_count": 4,
        "question_types": "100% Meerkeuze",
        "language_level": "Laag (Korte zinnen, makkelijke woorden)",
        "extra_requirements": "",
        "question_type_entries": [["Meerkeuze", 100]],
    }
    for owner in (approved, other):
        session.add(
            Exam(
                user_id=owner.id,
                title=sample_exam.title,
                taxonomy="RTTI",
                configuration=configuration,
                content=sample_exam.model_dump(),
            )
        )
    session.commit()
    session.close()
    engine.dispose()

    from toetsgen.web.app import create_app

    test_config = {
        "paths": {"database_file": db_path},
        "llm": {"provider": "mock"},
        "generation": {"default_duration": 60, "default_question_count": 15},
        "access": {"approval_timeout_seconds": 5},
        "feedback": {"relay_url": ""},
    }
    app = create_app(test_config)
    app.config["TESTING"] = True
    app.config["WTF_CSRF_ENABLED"] = False  # Disable CSRF for non-security tests

    yield app

    app.config["DB_ENGINE"].dispose()


@pytest.fixture
def flask_client(flask_app):
    """Provide a signed-in test client for the approved teacher.

    Uses session injection to bypass the login flow; the approval check
    still runs on the first protected request.
    """
    with flask_app.test_client() as client:
        with client.session_transaction() as sess:
            sess["logged_in"] = True
            sess["user_id"] = 1
            sess["email"] = APPROVED_EMAIL
            sess["school_name"] = "Het Lyceum"
        yield client


@pytest.fixture
def anon_flask_client(flask_app):
    """Provide an unauthenticated Flask test client."""
    with flask_app.test_client() as client:
        yield client
