"""
Authentication helpers for the Toetsgenerator web frontend.
"""

from werkzeug.security import check_password_hash, generate_password_hash

from toetsgen.database import User

MIN_PASSWORD_LENGTH = 6


def normalize_email(email):
    return (email or "").strip().lower()


def create_user(session, email, password, school_name=None, is_admin=False):
    """Create a new user with hashed password.

    Args:
        session: SQLAlchemy session.
        email: Unique e-mail address (stored lowercase).
        password: Plain-text password (will be hashed).
        school_name: Name of the teacher's school.
        is_admin: Whether the user may manage access requests.

    Returns:
        User object on success, None if the e-mail address is already registered.
    """
    email = normalize_email(email)
    existing = session.query(User).filter_by(email=email).first()
    if existing:
        return None

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        school_name=school_name,
        is_admin=is_admin,
    )
    session.add(user)
    session.commit()
    return user


def authenticate_user(session, email, password):
    """Authenticate a user by e-mail and password.

    Returns:
        User object if credentials are valid, None otherwise.
    """
    user = session.query(User).filter_by(email=normalize_email(email)).first()
    if user and check_password_hash(user.password_hash, password):
        return user
    return None
