"""
Access-request store.

Every registration and every "request access" submission adds a pending row
keyed by e-mail address. An administrator approves rows by hand (see the
``approve`` CLI command); only approved identities may use the generator.
"""

import logging
from datetime import datetime

from toetsgen.database import ACCESS_STATUSES, STATUS_APPROVED, STATUS_PENDING, AccessRequest, get_session
from toetsgen.web.auth import normalize_email

logger = logging.getLogger(__name__)


def get_access_status(session, email):
    """Return "approved", "pending", or None when no request exists.

    An e-mail address with several requests counts as approved as soon as
    one of them is.
    """
    rows = session.query(AccessRequest).filter_by(email=normalize_email(email)).all()
    if not rows:
        return None
    if any(row.status == STATUS_APPROVED for row in rows):
        return STATUS_APPROVED
    return STATUS_PENDING


def lookup_access_status(engine, email):
    """Look up the status on a fresh session.

    Safe to call from a worker thread: it never touches the request's
    session on ``flask.g``.
    """
    session = get_session(engine)
    try:
        return get_access_status(session, email)
    finally:
        session.close()


def request_access(session, email, description):
    """Insert a pending access request.

    Insert-only: an existing request for the same address is left alone and
    a new row is added.

    Returns:
        The new AccessRequest.
    """
    access_request = AccessRequest(
        email=normalize_email(email),
        school_name=description,
        status=STATUS_PENDING,
    )
    session.add(access_request)
    session.commit()
    logger.info("Access requested for %s", access_request.email)
    return access_request


def compose_training_description(school_name, contact_person, phone):
    """Free-text description stored with a training/access request."""
    return f"TRAINING AANVRAAG | School: {school_name} | Contact: {contact_person} | Tel: {phone}"


def set_access_status(session, email, status):
    """Set the status of every request for an address.

    Returns:
        Number of rows updated (0 if the address has no requests).
    """
    if status not in ACCESS_STATUSES:
        raise ValueError(f"Invalid access status: {status}")
    rows = session.query(AccessRequest).filter_by(email=normalize_email(email)).all()
    for row in rows:
        row.status = status
        row.reviewed_at = datetime.utcnow()
    session.commit()
    return len(rows)


def revoke_access(session, email):
    """Delete every request for an address, so it no longer has any status.

    Returns:
        Number of rows deleted.
    """
    count = session.query(AccessRequest).filter_by(email=normalize_email(email)).delete()
    session.commit()
    return count


def list_access_requests(session, status=None):
    query = session.query(AccessRequest)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(AccessRequest.created_at.desc(), AccessRequest.id.desc()).all()
